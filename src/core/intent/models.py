"""Data models for chat intent detection.

Intent, confidence and emotional tone arrive from the classification model
as free-form strings.  The ``map_*`` functions below are total: any input,
including ``None`` or a non-string, maps onto a member of the closed
enumeration, falling back to an explicit default.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Literal

from pydantic import BaseModel, Field


class ChatIntent(str, Enum):
    """Built-in intents.  Plugins may contribute further intent strings."""

    CREATE_SESSION = "CREATE_SESSION"
    CONTINUE_CONVERSATION = "CONTINUE_CONVERSATION"
    LIST_SESSIONS = "LIST_SESSIONS"
    SWITCH_SESSION = "SWITCH_SESSION"
    HELP = "HELP"
    UNKNOWN = "UNKNOWN"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EmotionalTone(str, Enum):
    NEUTRAL = "neutral"
    UPSET = "upset"
    HOPEFUL = "hopeful"
    ANXIOUS = "anxious"


class PendingStep(str, Enum):
    """Slot-filling steps of the session-creation flow."""

    GATHERING_NAME = "GATHERING_NAME"
    GATHERING_CONTACT = "GATHERING_CONTACT"
    CONFIRMING = "CONFIRMING"


# ---------------------------------------------------------------------------
# People and context extracted from a message
# ---------------------------------------------------------------------------


class ContactInfo(BaseModel):
    type: Literal["email", "phone"]
    value: str


class Person(BaseModel):
    """A (possibly partial) description of the person a user wants to talk to."""

    first_name: str | None = None
    last_name: str | None = None
    contact_info: ContactInfo | None = None

    @property
    def display_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts)

    def merged_with(self, other: Person | None) -> Person:
        """Return a copy where every field set on *other* overrides ours."""
        if other is None:
            return self.model_copy()
        return Person(
            first_name=other.first_name or self.first_name,
            last_name=other.last_name or self.last_name,
            contact_info=other.contact_info or self.contact_info,
        )


class SessionContext(BaseModel):
    topic: str | None = None
    emotional_tone: EmotionalTone = EmotionalTone.NEUTRAL


class MissingInfo(BaseModel):
    field: str
    required: bool = True
    prompt_text: str = ""


# ---------------------------------------------------------------------------
# Situational context fed into detection
# ---------------------------------------------------------------------------


class SessionInfo(BaseModel):
    """One of the user's open sessions, as shown to the classifier."""

    id: str
    partner_name: str
    status: str
    last_activity: datetime


class SemanticMatch(BaseModel):
    session_id: str
    partner_name: str
    similarity: float = Field(ge=0.0, le=1.0)


class SessionCreationState(BaseModel):
    """Pending multi-turn session creation.

    Further pending flows become additional models discriminated by
    ``type``.
    """

    type: Literal["session_creation"] = "session_creation"
    person: Person = Field(default_factory=Person)
    step: PendingStep = PendingStep.GATHERING_NAME
    topic: str | None = None


PendingState = SessionCreationState


class DetectionInput(BaseModel):
    message: str
    has_active_session: bool = False
    active_session_partner_name: str | None = None
    user_sessions: list[SessionInfo] = []
    semantic_matches: list[SemanticMatch] = []
    pending_state: PendingState | None = None
    recent_messages: list[dict[str, str]] = []


class DetectionResult(BaseModel):
    """Exactly one of these is produced per inbound message.

    ``intent`` is a plain string so plugin-contributed intents fit alongside
    the :class:`ChatIntent` members (which compare equal to their values).
    """

    intent: str
    confidence: Confidence = Confidence.LOW
    session_id: str | None = None
    person: Person | None = None
    session_context: SessionContext | None = None
    missing_info: list[MissingInfo] | None = None
    follow_up_question: str | None = None

    model_config = {"frozen": True}


class DetectionHint(BaseModel):
    """Plugin-supplied guidance merged into the classification prompt."""

    intent: str
    keywords: list[str] = []
    examples: list[str] = []
    description: str = ""


# ---------------------------------------------------------------------------
# Total mapping functions for raw model output
# ---------------------------------------------------------------------------


def map_intent(raw: Any, custom_intents: Iterable[str] = ()) -> str:
    """Map a raw intent string to a known intent; anything else is UNKNOWN."""
    if not isinstance(raw, str):
        return ChatIntent.UNKNOWN.value
    candidate = raw.strip()
    upper = candidate.upper()
    if upper in ChatIntent.__members__:
        return ChatIntent[upper].value
    for custom in custom_intents:
        if candidate == custom or upper == custom.upper():
            return custom
    return ChatIntent.UNKNOWN.value


def map_confidence(raw: Any) -> Confidence:
    if isinstance(raw, str):
        try:
            return Confidence(raw.strip().lower())
        except ValueError:
            pass
    return Confidence.LOW


def map_emotional_tone(raw: Any) -> EmotionalTone:
    if isinstance(raw, str):
        try:
            return EmotionalTone(raw.strip().lower())
        except ValueError:
            pass
    return EmotionalTone.NEUTRAL


def _str_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value.strip() and value.strip().lower() != "null":
        return value.strip()
    return None


def parse_contact_info(raw: Any) -> ContactInfo | None:
    if not isinstance(raw, dict):
        return None
    kind = _str_or_none(raw.get("type"))
    value = _str_or_none(raw.get("value"))
    if not value or kind not in ("email", "phone"):
        return None
    return ContactInfo(type=kind, value=value)


def parse_person(raw: Any) -> Person | None:
    """Build a :class:`Person` from the model's camelCase ``person`` object."""
    if not isinstance(raw, dict):
        return None
    person = Person(
        first_name=_str_or_none(raw.get("firstName")),
        last_name=_str_or_none(raw.get("lastName")),
        contact_info=parse_contact_info(raw.get("contactInfo")),
    )
    if person.first_name is None and person.last_name is None and person.contact_info is None:
        return None
    return person


def parse_session_context(raw: Any) -> SessionContext | None:
    if not isinstance(raw, dict):
        return None
    return SessionContext(
        topic=_str_or_none(raw.get("topic")),
        emotional_tone=map_emotional_tone(raw.get("emotionalTone")),
    )


def parse_missing_info(raw: Any) -> list[MissingInfo] | None:
    if not isinstance(raw, list):
        return None
    items: list[MissingInfo] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        field_name = _str_or_none(entry.get("field"))
        if field_name is None:
            continue
        items.append(
            MissingInfo(
                field=field_name,
                required=bool(entry.get("required", True)),
                prompt_text=_str_or_none(entry.get("promptText")) or "",
            )
        )
    return items
