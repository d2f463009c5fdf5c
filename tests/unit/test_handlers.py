"""Tests for the built-in intent handlers (except session creation)."""
from datetime import timedelta

import pytest

from src.core.intent.models import PendingStep, Person
from src.core.sessions.models import SessionStatus
from src.handlers.builtin.conversation_handler import NO_ACTIVE_SESSION_MESSAGE, ConversationHandler
from src.handlers.builtin.help_handler import (
    FALLBACK_MESSAGE,
    GETTING_STARTED_HELP_MESSAGE,
    IN_SESSION_HELP_MESSAGE,
    HelpHandler,
)
from src.handlers.builtin.session_switch_handler import SessionSwitchHandler
from src.handlers.builtin.sessions_list_handler import NO_SESSIONS_MESSAGE, SessionsListHandler
from src.handlers.builtin.witnessing_handler import ACKNOWLEDGEMENT_MESSAGE, WitnessingHandler
from src.handlers.models import ANY_INTENT, ActionType, ActiveSession
from tests.fakes import NOW, USER_ID, FakeResponder, make_session

ACTIVE = ActiveSession(id="s-active", partner_name="Mia")


class TestHelpHandler:
    @pytest.mark.asyncio
    async def test_getting_started_variant(self, make_context):
        result = await HelpHandler().handle(make_context("HELP", "how does this work?"))
        assert result.action_type == ActionType.HELP
        assert result.message == GETTING_STARTED_HELP_MESSAGE
        assert "1. **Start a session**" in result.message
        assert "4. **Find solutions**" in result.message

    @pytest.mark.asyncio
    async def test_in_session_variant(self, make_context):
        result = await HelpHandler().handle(make_context("HELP", active_session=ACTIVE))
        assert result.message == IN_SESSION_HELP_MESSAGE
        assert "current session" in result.message

    @pytest.mark.asyncio
    async def test_unknown_in_session_passes_through(self, make_context):
        result = await HelpHandler().handle(make_context("UNKNOWN", active_session=ACTIVE))
        assert result.message == ""
        assert result.pass_through.session_id == "s-active"

    @pytest.mark.asyncio
    async def test_unknown_uses_follow_up_question(self, make_context):
        result = await HelpHandler().handle(
            make_context("UNKNOWN", follow_up_question="Who is this about?")
        )
        assert result.action_type == ActionType.FALLBACK
        assert result.message == "Who is this about?"
        assert [a.id for a in result.actions] == ["start-session", "get-help"]

    @pytest.mark.asyncio
    async def test_unknown_canned_fallback(self, make_context):
        result = await HelpHandler().handle(make_context("UNKNOWN"))
        assert result.message == FALLBACK_MESSAGE
        assert [a.id for a in result.actions] == ["start-session", "get-help"]

    def test_always_applicable(self, make_context):
        handler = HelpHandler()
        assert handler.supports("ANYTHING")
        assert handler.metadata.supported_intents == [ANY_INTENT]
        assert handler.can_handle(make_context("ANYTHING"))


class TestConversationHandler:
    def test_applicable_only_with_active_session(self, make_context):
        handler = ConversationHandler()
        assert handler.can_handle(make_context("CONTINUE_CONVERSATION", active_session=ACTIVE))
        assert not handler.can_handle(make_context("CONTINUE_CONVERSATION"))

    @pytest.mark.asyncio
    async def test_passes_through_with_empty_reply(self, make_context):
        result = await ConversationHandler().handle(
            make_context("CONTINUE_CONVERSATION", active_session=ACTIVE)
        )
        assert result.action_type == ActionType.CONTINUE_CONVERSATION
        assert result.message == ""
        assert result.pass_through.session_id == "s-active"

    @pytest.mark.asyncio
    async def test_no_active_session_is_fallback(self, make_context):
        result = await ConversationHandler().handle(make_context("CONTINUE_CONVERSATION"))
        assert result.action_type == ActionType.FALLBACK
        assert result.message == NO_ACTIVE_SESSION_MESSAGE
        assert result.pass_through is None
        assert [a.id for a in result.actions] == ["start-session", "list-sessions"]


class TestSessionSwitchHandler:
    def test_applicability(self, make_context):
        handler = SessionSwitchHandler()
        assert handler.can_handle(make_context("SWITCH_SESSION", session_id="s-1"))
        assert handler.can_handle(make_context("SWITCH_SESSION", person=Person(first_name="Sam")))
        assert not handler.can_handle(make_context("SWITCH_SESSION"))

    @pytest.mark.asyncio
    async def test_not_found_seeds_pending_creation(self, make_context, pending_store):
        result = await SessionSwitchHandler().handle(
            make_context("SWITCH_SESSION", "go to my session with Sarah", person=Person(first_name="Sarah"))
        )

        assert result.action_type == ActionType.NOT_FOUND
        assert len(result.actions) == 2
        assert [a.id for a in result.actions] == ["create-session", "list-sessions"]
        pending = pending_store.get_creation(USER_ID)
        assert pending is not None
        assert pending.person.first_name == "Sarah"
        assert pending.step == PendingStep.GATHERING_CONTACT

    @pytest.mark.asyncio
    async def test_not_found_replaces_unrelated_creation(self, make_context, pending_store):
        pending_store.start_creation(USER_ID, "Robin")
        await SessionSwitchHandler().handle(
            make_context("SWITCH_SESSION", person=Person(first_name="Sarah"))
        )
        assert pending_store.get_creation(USER_ID).person.first_name == "Sarah"

    @pytest.mark.asyncio
    async def test_found_by_partner_name(self, make_context, session_store, pre_session_log):
        session_store.add(make_session("s-1", "Sarah"))
        pre_session_log.store_message(USER_ID, "USER", "thinking about Sarah")

        result = await SessionSwitchHandler().handle(
            make_context("SWITCH_SESSION", person=Person(first_name="sarah"))
        )

        assert result.action_type == ActionType.SWITCH_SESSION
        assert result.session_change.type == "switched"
        assert result.session_change.session_id == "s-1"
        assert result.session_change.session.partner_name == "Sarah"
        assert result.pass_through.session_id == "s-1"
        assert "Sarah" in result.message
        assert pre_session_log.get_state(USER_ID).turn_count == 0

    @pytest.mark.asyncio
    async def test_switch_drops_pending_creation(self, make_context, session_store, pending_store):
        session_store.add(make_session("s-1", "Sarah"))
        pending_store.start_creation(USER_ID, "Robin")

        result = await SessionSwitchHandler().handle(
            make_context("SWITCH_SESSION", session_id="s-1")
        )

        assert result.action_type == ActionType.SWITCH_SESSION
        assert pending_store.get(USER_ID) is None

    @pytest.mark.asyncio
    async def test_found_by_session_id(self, make_context, session_store):
        session_store.add(make_session("s-9", "Leo"))
        result = await SessionSwitchHandler().handle(make_context("SWITCH_SESSION", session_id="s-9"))
        assert result.session_change.session_id == "s-9"

    @pytest.mark.asyncio
    async def test_session_of_another_user_not_found(self, make_context, session_store):
        session_store.add(make_session("s-x", "Leo", user_id="someone-else"))
        result = await SessionSwitchHandler().handle(make_context("SWITCH_SESSION", session_id="s-x"))
        assert result.action_type == ActionType.NOT_FOUND

    @pytest.mark.asyncio
    async def test_substring_match_takes_first_in_store_order(self, make_context, session_store):
        session_store.add(make_session("older", "Samantha", updated_at=NOW - timedelta(days=3)))
        session_store.add(make_session("newer", "Sam", updated_at=NOW))

        result = await SessionSwitchHandler().handle(
            make_context("SWITCH_SESSION", person=Person(first_name="Sam"))
        )
        assert result.session_change.session_id == "newer"

    @pytest.mark.asyncio
    async def test_terminal_sessions_ignored(self, make_context, session_store):
        session_store.add(make_session("done", "Sarah", status=SessionStatus.RESOLVED))
        result = await SessionSwitchHandler().handle(
            make_context("SWITCH_SESSION", person=Person(first_name="Sarah"))
        )
        assert result.action_type == ActionType.NOT_FOUND


class TestSessionsListHandler:
    @pytest.mark.asyncio
    async def test_lists_sessions_with_actions(self, make_context, session_store):
        session_store.add(make_session("s-1", "Sarah"))
        session_store.add(make_session("s-2", "Leo", status=SessionStatus.INVITED))

        result = await SessionsListHandler().handle(make_context("LIST_SESSIONS"))

        assert result.action_type == ActionType.LIST_SESSIONS
        assert "You have 2 open sessions" in result.message
        assert "Sarah" in result.message and "Leo" in result.message
        assert {a.id for a in result.actions} == {
            "switch-session-s-1",
            "switch-session-s-2",
            "start-session",
        }

    @pytest.mark.asyncio
    async def test_no_sessions(self, make_context):
        result = await SessionsListHandler().handle(make_context("LIST_SESSIONS"))
        assert result.message == NO_SESSIONS_MESSAGE
        assert [a.id for a in result.actions] == ["start-session"]


class TestWitnessingHandler:
    def test_applicability(self, make_context):
        handler = WitnessingHandler()
        assert handler.can_handle(make_context("UNKNOWN"))
        assert handler.can_handle(make_context("CONTINUE_CONVERSATION"))
        assert not handler.can_handle(make_context("UNKNOWN", active_session=ACTIVE))
        assert not handler.can_handle(make_context("HELP"))

    @pytest.mark.asyncio
    async def test_stores_both_messages(self, make_context, pre_session_log, responder):
        result = await WitnessingHandler().handle(make_context("UNKNOWN", "I'm so tired"))

        assert result.action_type == ActionType.WITNESSING
        assert result.message == "That sounds really hard."
        assert result.actions is None
        assert responder.calls == [(USER_ID, "Alex", "I'm so tired")]
        state = pre_session_log.get_state(USER_ID)
        assert [m.role for m in state.messages] == ["USER", "AI"]
        assert state.turn_count == 1
        assert result.data["turnCount"] == 1
        assert result.data["mode"] == "inner_work"

    @pytest.mark.asyncio
    async def test_person_mention_offers_session(
        self, make_context, services, pre_session_log, mention_result
    ):
        services.responder = FakeResponder(mention_result)

        result = await WitnessingHandler().handle(make_context("UNKNOWN", "Jordan never helps"))

        assert result.message.startswith(mention_result.response)
        assert "Jordan" in result.message.split("\n\n", 1)[1]
        assert [a.id for a in result.actions] == ["start-session-with-person", "continue-reflecting"]
        assert result.session_change is None
        assert pre_session_log.get_state(USER_ID).last_person_mention == "Jordan"
        assert result.data["personMention"]["name"] == "Jordan"

    @pytest.mark.asyncio
    async def test_failure_returns_acknowledgement(self, make_context, services):
        services.responder = FakeResponder(error=RuntimeError("model down"))
        result = await WitnessingHandler().handle(make_context("UNKNOWN", "hard day"))
        assert result.message == ACKNOWLEDGEMENT_MESSAGE
