"""Pre-session witnessing: empathetic listening before a session exists."""

from src.core.witnessing.responder import (
    PersonMention,
    PreSessionResponder,
    WitnessingResponder,
    WitnessingResult,
)

__all__ = [
    "PersonMention",
    "PreSessionResponder",
    "WitnessingResponder",
    "WitnessingResult",
]
