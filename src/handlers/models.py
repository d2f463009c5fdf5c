"""Data models for intent handlers and their results."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel

from src.core.sessions.models import SessionSummary

# Listed in ``supported_intents`` by handlers that accept every intent.
ANY_INTENT = "*"


class HandlerMetadata(BaseModel):
    """Identity and dispatch properties of an intent handler.

    Higher ``priority`` handlers are tried first; they should be the more
    specific matches.
    """

    id: str
    name: str
    supported_intents: list[str]
    priority: int
    description: str = ""
    version: str = "1.0.0"


class PluginMetadata(BaseModel):
    id: str
    name: str = ""
    detectable_intents: list[str] = []
    version: str = "1.0.0"


class ActionType(str, Enum):
    SESSION_CREATED = "SESSION_CREATED"
    GATHERING_INFO = "GATHERING_INFO"
    CONFIRM_SESSION = "CONFIRM_SESSION"
    CANCELLED = "CANCELLED"
    SWITCH_SESSION = "SWITCH_SESSION"
    NOT_FOUND = "NOT_FOUND"
    LIST_SESSIONS = "LIST_SESSIONS"
    CONTINUE_CONVERSATION = "CONTINUE_CONVERSATION"
    WITNESSING = "WITNESSING"
    HELP = "HELP"
    FALLBACK = "FALLBACK"
    ERROR = "ERROR"


class ChatAction(BaseModel):
    """A suggested UI action rendered next to the assistant's reply."""

    id: str
    label: str
    type: str = "select"
    payload: dict[str, Any] | None = None


class ActiveSession(BaseModel):
    id: str
    partner_name: str | None = None


class SessionChange(BaseModel):
    type: Literal["created", "switched"]
    session_id: str
    session: SessionSummary | None = None


class PassThrough(BaseModel):
    """Hand the live message flow to the session's stage pipeline."""

    session_id: str


class IntentHandlerResult(BaseModel):
    """What a handler decided.

    An empty ``message`` means the stage pipeline (outside the router)
    produces the reply, which is only valid together with ``pass_through``.
    """

    action_type: str
    message: str = ""
    actions: list[ChatAction] | None = None
    session_change: SessionChange | None = None
    pass_through: PassThrough | None = None
    data: dict[str, Any] | None = None


START_SESSION_ACTION = ChatAction(id="start-session", label="Start a session")
LIST_SESSIONS_ACTION = ChatAction(id="list-sessions", label="See my sessions")
GET_HELP_ACTION = ChatAction(id="get-help", label="How does this work?")
