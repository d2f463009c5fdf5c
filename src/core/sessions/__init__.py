"""Session read model, store contract and reference implementations."""

from src.core.sessions.models import (
    SessionMember,
    SessionRecord,
    SessionStatus,
    SessionSummary,
    TERMINAL_STATUSES,
)
from src.core.sessions.store import InMemorySessionStore, SessionStore

__all__ = [
    "InMemorySessionStore",
    "SessionMember",
    "SessionRecord",
    "SessionStatus",
    "SessionStore",
    "SessionSummary",
    "TERMINAL_STATUSES",
]
