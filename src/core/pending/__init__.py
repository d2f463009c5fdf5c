"""Short-lived per-user state: pending multi-turn flows and pre-session messages."""

from src.core.pending.pre_session import PreSessionLog, PreSessionMessage, PreSessionState
from src.core.pending.store import PendingStateStore

__all__ = [
    "PendingStateStore",
    "PreSessionLog",
    "PreSessionMessage",
    "PreSessionState",
]
