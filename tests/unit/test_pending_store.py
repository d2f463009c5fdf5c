"""Tests for the pending-state store and the pre-session message log."""
from datetime import timedelta

from src.core.intent.models import EmotionalTone, PendingStep, Person, SessionCreationState
from src.core.pending.pre_session import PreSessionLog
from src.core.pending.store import PendingStateStore
from tests.fakes import NOW


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class TestPendingStateStore:
    def test_set_get_clear(self):
        store = PendingStateStore()
        state = SessionCreationState(person=Person(first_name="Sarah"))
        store.set("u1", state)

        assert store.get("u1") == state
        assert store.get("u2") is None
        assert store.clear("u1") is True
        assert store.clear("u1") is False
        assert store.get("u1") is None

    def test_last_write_wins(self):
        store = PendingStateStore()
        store.set("u1", SessionCreationState(person=Person(first_name="A")))
        store.set("u1", SessionCreationState(person=Person(first_name="B")))
        assert store.get("u1").person.first_name == "B"
        assert len(store) == 1

    def test_expires_lazily_on_read(self):
        clock = Clock(NOW)
        store = PendingStateStore(ttl=timedelta(hours=24), clock=clock)
        store.start_creation("u1", "Sarah")

        clock.advance(hours=23)
        assert store.get("u1") is not None
        assert len(store) == 1

        clock.advance(hours=2)
        assert len(store) == 1
        assert store.get("u1") is None
        assert len(store) == 0

    def test_rewrite_refreshes_expiry(self):
        clock = Clock(NOW)
        store = PendingStateStore(ttl=timedelta(hours=1), clock=clock)
        store.start_creation("u1", "Sarah")
        clock.advance(minutes=50)
        store.set("u1", store.get("u1"))
        clock.advance(minutes=50)
        assert store.get("u1") is not None

    def test_start_creation(self):
        store = PendingStateStore()
        state = store.start_creation("u1", "Sarah")
        assert state.type == "session_creation"
        assert state.step == PendingStep.GATHERING_CONTACT
        assert store.get_creation("u1").person.first_name == "Sarah"


class TestPreSessionLog:
    def test_state_and_history(self):
        log = PreSessionLog()
        log.store_message("u1", "USER", "Jordan forgot again", EmotionalTone.UPSET, "Jordan", "chores")
        log.store_message("u1", "AI", "That sounds frustrating.")
        log.store_message("u1", "USER", "I don't know what to do")

        state = log.get_state("u1")
        assert state.turn_count == 2
        assert state.last_person_mention == "Jordan"
        assert log.recent_history("u1") == [
            {"role": "user", "content": "Jordan forgot again"},
            {"role": "assistant", "content": "That sounds frustrating."},
            {"role": "user", "content": "I don't know what to do"},
        ]

    def test_retention(self):
        clock = Clock(NOW)
        log = PreSessionLog(retention=timedelta(hours=24), clock=clock)
        log.store_message("u1", "USER", "old")
        clock.advance(hours=20)
        log.store_message("u1", "USER", "new")
        clock.advance(hours=5)

        assert [m["content"] for m in log.recent_history("u1")] == ["new"]

    def test_clear(self):
        log = PreSessionLog()
        log.store_message("u1", "USER", "hi")
        log.clear("u1")
        log.clear("u1")
        assert log.get_state("u1").messages == []
