"""Request/response schemas for the chat endpoints."""

from pydantic import BaseModel, Field

from src.core.intent.models import DetectionResult
from src.core.router import ChatMessage
from src.core.sessions.models import SessionSummary
from src.handlers.models import PassThrough, SessionChange


class SendMessageRequest(BaseModel):
    """A chat message typed by the user, or the label of an action they tapped."""

    content: str = Field(..., min_length=1, max_length=10000, description="Message text")
    current_session_id: str | None = Field(
        default=None,
        description="Session the user is currently viewing, if any",
    )
    action_id: str | None = Field(
        default=None,
        description="Id of the suggested action the user selected",
    )


class SendMessageResponse(BaseModel):
    """Result of one chat turn.

    ``assistant_message`` is ``None`` when ``pass_through`` is set; the
    session's own pipeline then produces the reply.
    """

    user_message: ChatMessage
    assistant_message: ChatMessage | None = None
    intent: DetectionResult
    handler_id: str | None = None
    action_type: str
    session_change: SessionChange | None = None
    pass_through: PassThrough | None = None
    data: dict | None = None


class PendingCreationInfo(BaseModel):
    step: str
    person_name: str | None = None


class ChatContextResponse(BaseModel):
    sessions: list[SessionSummary]
    has_pending_creation: bool
    pending_creation: PendingCreationInfo | None = None


class CancelResponse(BaseModel):
    cancelled: bool
