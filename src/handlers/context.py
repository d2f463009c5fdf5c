"""Per-request context handed to intent handlers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.core.intent.models import DetectionResult
from src.core.notifications import InvitationService, SessionNotifier
from src.core.pending.pre_session import PreSessionLog
from src.core.pending.store import PendingStateStore
from src.core.responses import ResponseGenerator
from src.core.sessions.store import SessionStore
from src.core.witnessing.responder import PreSessionResponder
from src.handlers.models import ActiveSession


@dataclass
class RouterServices:
    """Collaborators shared by every handler, built once at startup."""

    session_store: SessionStore
    pending_store: PendingStateStore
    pre_session_log: PreSessionLog
    responder: PreSessionResponder
    response_generator: ResponseGenerator
    invitations: InvitationService
    notifier: SessionNotifier


@dataclass
class HandlerContext:
    user_id: str
    message: str
    intent: DetectionResult
    services: RouterServices
    active_session: ActiveSession | None = None
    user_name: str | None = None
    request_context: dict[str, Any] = field(default_factory=dict)
