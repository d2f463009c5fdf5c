"""Per-user pending-state store.

Holds at most one in-progress multi-turn flow per user (currently only
session creation).  Entries expire after a fixed retention window, checked
lazily whenever an entry is read; there is no background sweep.

Concurrency: the store is shared by every request in the process and does
no locking.  Two rapid messages from the same user each read, modify and
write the entry, so the later write wins and the earlier turn's update can
be lost.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

from src.core.intent.models import PendingState, PendingStep, Person, SessionCreationState
from src.utils.logging import get_logger

logger = get_logger("pending.store")

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PendingStateStore:
    """In-memory, TTL-bound map of user id to :data:`PendingState`.

    Parameters
    ----------
    ttl:
        How long an untouched entry survives.
    clock:
        Source of "now"; injectable for tests.
    """

    def __init__(self, ttl: timedelta = timedelta(hours=24), clock: Clock = _utcnow) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[PendingState, datetime]] = {}

    def get(self, user_id: str) -> PendingState | None:
        entry = self._entries.get(user_id)
        if entry is None:
            return None

        state, written_at = entry
        if self._clock() - written_at > self.ttl:
            del self._entries[user_id]
            logger.debug("pending_state_expired", user_id=user_id, state_type=state.type)
            return None
        return state

    def set(self, user_id: str, state: PendingState) -> None:
        """Store *state* for *user_id*, replacing whatever was there."""
        self._entries[user_id] = (state, self._clock())
        logger.debug("pending_state_saved", user_id=user_id, state_type=state.type)

    def clear(self, user_id: str) -> bool:
        if self._entries.pop(user_id, None) is not None:
            logger.debug("pending_state_cleared", user_id=user_id)
            return True
        return False

    # ------------------------------------------------------------------
    # Session-creation helpers
    # ------------------------------------------------------------------

    def get_creation(self, user_id: str) -> SessionCreationState | None:
        state = self.get(user_id)
        if isinstance(state, SessionCreationState):
            return state
        return None

    def start_creation(self, user_id: str, first_name: str) -> SessionCreationState:
        """Begin a fresh creation flow for *first_name*, dropping any other flow."""
        state = SessionCreationState(
            person=Person(first_name=first_name),
            step=PendingStep.GATHERING_CONTACT,
        )
        self.set(user_id, state)
        logger.info("pending_creation_started", user_id=user_id, person=first_name)
        return state

    def __len__(self) -> int:
        return len(self._entries)
