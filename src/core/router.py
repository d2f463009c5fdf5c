"""Chat router that processes one inbound chat message end-to-end.

The :class:`ChatRouter` takes a raw message, builds the situational
context, detects the intent, dispatches to the first applicable handler and
assembles the assistant reply.  Every stage degrades instead of failing:
detection falls back to keywords, handler failures become degraded replies,
and when no handler accepts the message a router-level fallback is used.
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from src.core.intent.detector import IntentDetector
from src.core.intent.models import (
    DetectionInput,
    DetectionResult,
    PendingStep,
    SemanticMatch,
    SessionInfo,
)
from src.core.sessions.models import SessionRecord, SessionSummary
from src.core.sessions.search import NullSessionSearch, SessionSearch
from src.handlers.builtin import register_builtin_handlers
from src.handlers.context import HandlerContext, RouterServices
from src.handlers.models import (
    GET_HELP_ACTION,
    LIST_SESSIONS_ACTION,
    START_SESSION_ACTION,
    ActionType,
    ActiveSession,
    ChatAction,
    IntentHandlerResult,
    PassThrough,
    SessionChange,
)
from src.handlers.registry import HandlerRegistry
from src.utils.logging import get_logger
from src.utils.tasks import fire_and_forget

logger = get_logger("router")

ROUTER_FALLBACK_MESSAGE = (
    "Sorry, I couldn't work out how to help with that just now. You can start "
    "a session with someone, look at your sessions, or ask how this works."
)
HANDLER_ERROR_MESSAGE = (
    "Something went wrong on my side while handling that. Could you try again?"
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RouterStage(str, Enum):
    CONTEXT_GATHERING = "context_gathering"
    INTENT_DETECTION = "intent_detection"
    HANDLER_DISPATCH = "handler_dispatch"
    RESPONSE_ASSEMBLY = "response_assembly"


class ChatMessage(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    type: Literal["router", "session"] = "router"
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    session_id: str | None = None
    actions: list[ChatAction] | None = None


class RouterResponse(BaseModel):
    """Outcome of one chat turn.

    ``assistant_message`` is ``None`` only for a pass-through, where the
    session's stage pipeline writes the reply.
    """

    user_message: ChatMessage
    assistant_message: ChatMessage | None = None
    intent: DetectionResult
    handler_id: str | None = None
    action_type: str
    session_change: SessionChange | None = None
    pass_through: PassThrough | None = None
    data: dict[str, Any] | None = None


class PendingCreation(BaseModel):
    step: PendingStep
    person_name: str | None = None


class ChatContext(BaseModel):
    sessions: list[SessionSummary]
    has_pending_creation: bool
    pending_creation: PendingCreation | None = None


class ChatRouter:
    """Routes chat messages to intent handlers.

    Parameters
    ----------
    registry:
        Handler and plugin registry.  Built-in handlers and drop-in
        extensions are added by :meth:`initialize`.
    detector:
        The :class:`IntentDetector`; usually shares *registry*.
    services:
        Collaborators handed to every handler.
    session_search:
        Semantic search over past sessions.  Failures count as no matches.
    recent_sessions_limit:
        How many open sessions are shown to the classifier.
    context_sessions_limit:
        How many session summaries :meth:`get_chat_context` returns.
    extension_dirs:
        Directories scanned for ``*_handler.py`` / ``*_plugin.py`` modules.
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        detector: IntentDetector,
        services: RouterServices,
        session_search: SessionSearch | None = None,
        recent_sessions_limit: int = 10,
        context_sessions_limit: int = 5,
        extension_dirs: list[str] | None = None,
    ):
        self.registry = registry
        self.detector = detector
        self.services = services
        self.session_search = session_search or NullSessionSearch()
        self.recent_sessions_limit = recent_sessions_limit
        self.context_sessions_limit = context_sessions_limit
        self.extension_dirs = extension_dirs or []
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Register built-in handlers and discover extensions.  Safe to call repeatedly."""
        if self._initialized:
            return
        register_builtin_handlers(self.registry)
        if self.extension_dirs:
            self.registry.discover(*self.extension_dirs)
        self._initialized = True
        logger.info(
            "router_initialized",
            handlers=len(self.registry),
            plugins=len(self.registry.get_plugins()),
        )

    # ------------------------------------------------------------------
    # Message processing
    # ------------------------------------------------------------------

    async def process_message(
        self,
        user_id: str,
        content: str,
        current_session_id: str | None = None,
        user_name: str | None = None,
        request_context: dict[str, Any] | None = None,
    ) -> RouterResponse:
        """Process one inbound chat message.

        Stages run in order: context gathering, intent detection, handler
        dispatch, response assembly.  The returned response always carries
        a non-empty assistant message unless it is a pass-through.
        """
        self.initialize()
        request_context = request_context or {}
        stage = RouterStage.CONTEXT_GATHERING
        logger.info("process_message_start", user_id=user_id, stage=stage.value, input_len=len(content))

        user_message = ChatMessage(
            role="user",
            content=content,
            type="session" if current_session_id else "router",
            session_id=current_session_id,
        )

        active = await self._load_active_session(user_id, current_session_id)
        sessions, matches = await asyncio.gather(
            self.services.session_store.list_open_sessions(
                user_id, limit=self.recent_sessions_limit
            ),
            self._search_sessions(user_id, content),
        )
        pending = self.services.pending_store.get(user_id)
        recent = [] if active else self.services.pre_session_log.recent_history(user_id)

        detection_input = DetectionInput(
            message=content,
            has_active_session=active is not None,
            active_session_partner_name=active.partner_name if active else None,
            user_sessions=[
                SessionInfo(
                    id=s.id,
                    partner_name=s.partner_name(user_id),
                    status=s.status.value,
                    last_activity=s.updated_at,
                )
                for s in sessions
                if active is None or s.id != active.id
            ],
            semantic_matches=matches,
            pending_state=pending,
            recent_messages=recent,
        )

        stage = RouterStage.INTENT_DETECTION
        intent = await self.detector.detect(detection_input)
        logger.info(
            "intent_detected",
            user_id=user_id,
            intent=intent.intent,
            confidence=intent.confidence.value,
            has_pending=pending is not None,
        )

        stage = RouterStage.HANDLER_DISPATCH
        context = HandlerContext(
            user_id=user_id,
            message=content,
            intent=intent,
            services=self.services,
            active_session=active,
            user_name=user_name,
            request_context=request_context,
        )
        handler_id, result = await self._dispatch(context)

        stage = RouterStage.RESPONSE_ASSEMBLY
        response = self._assemble(user_message, intent, handler_id, result, active)

        if response.session_change is not None:
            fire_and_forget(
                self.services.notifier.notify_session_change(
                    user_id,
                    response.session_change.type,
                    response.session_change.session_id,
                ),
                "session_change_notification",
                user_id=user_id,
                session_id=response.session_change.session_id,
            )

        logger.info(
            "process_message_complete",
            user_id=user_id,
            stage=stage.value,
            handler_id=handler_id,
            action_type=response.action_type,
            pass_through=response.pass_through is not None,
        )
        return response

    async def _load_active_session(
        self, user_id: str, session_id: str | None
    ) -> ActiveSession | None:
        if not session_id:
            return None
        session: SessionRecord | None = await self.services.session_store.get_session_for_member(
            session_id, user_id
        )
        if session is None:
            logger.warning("active_session_not_found", user_id=user_id, session_id=session_id)
            return None
        return ActiveSession(id=session.id, partner_name=session.partner_name(user_id))

    async def _search_sessions(self, user_id: str, query: str) -> list[SemanticMatch]:
        if not query.strip():
            return []
        try:
            return await self.session_search.find_relevant_sessions(user_id, query)
        except Exception as exc:
            logger.warning("session_search_failed", user_id=user_id, error=str(exc))
            return []

    async def _dispatch(
        self, context: HandlerContext
    ) -> tuple[str | None, IntentHandlerResult | None]:
        """Run the first applicable handler, trying candidates by descending priority."""
        for handler in self.registry.get_handlers(context.intent.intent):
            try:
                applicable = handler.can_handle(context)
                if inspect.isawaitable(applicable):
                    applicable = await applicable
            except Exception as exc:
                logger.error(
                    "handler_can_handle_failed",
                    handler_id=handler.id,
                    user_id=context.user_id,
                    error=str(exc),
                )
                continue

            if not applicable:
                continue

            logger.debug("handler_selected", handler_id=handler.id, user_id=context.user_id)
            try:
                return handler.id, await handler.handle(context)
            except Exception as exc:
                logger.error(
                    "handler_failed",
                    handler_id=handler.id,
                    user_id=context.user_id,
                    error=str(exc),
                )
                return handler.id, IntentHandlerResult(
                    action_type=ActionType.ERROR.value,
                    message=HANDLER_ERROR_MESSAGE,
                )

        logger.warning(
            "no_handler_accepted",
            user_id=context.user_id,
            intent=context.intent.intent,
        )
        return None, None

    def _assemble(
        self,
        user_message: ChatMessage,
        intent: DetectionResult,
        handler_id: str | None,
        result: IntentHandlerResult | None,
        active: ActiveSession | None,
    ) -> RouterResponse:
        if result is None:
            result = self._router_fallback()

        if not result.message.strip() and result.pass_through is None:
            logger.warning("empty_handler_reply", handler_id=handler_id, action_type=result.action_type)
            result = result.model_copy(update={"message": self._router_fallback().message})

        assistant_message = None
        if result.message.strip():
            session_id = None
            if result.session_change is not None:
                session_id = result.session_change.session_id
            elif active is not None:
                session_id = active.id
            assistant_message = ChatMessage(
                role="assistant",
                content=result.message,
                type="session" if session_id else "router",
                session_id=session_id,
                actions=result.actions,
            )

        return RouterResponse(
            user_message=user_message,
            assistant_message=assistant_message,
            intent=intent,
            handler_id=handler_id,
            action_type=result.action_type,
            session_change=result.session_change,
            pass_through=result.pass_through,
            data=result.data,
        )

    @staticmethod
    def _router_fallback() -> IntentHandlerResult:
        return IntentHandlerResult(
            action_type=ActionType.FALLBACK.value,
            message=ROUTER_FALLBACK_MESSAGE,
            actions=[START_SESSION_ACTION, LIST_SESSIONS_ACTION, GET_HELP_ACTION],
        )

    # ------------------------------------------------------------------
    # Context and cancellation
    # ------------------------------------------------------------------

    async def get_chat_context(self, user_id: str) -> ChatContext:
        """Open sessions and pending-creation status for the chat sidebar."""
        sessions = await self.services.session_store.list_open_sessions(
            user_id, limit=self.context_sessions_limit
        )
        pending = self.services.pending_store.get_creation(user_id)
        return ChatContext(
            sessions=[SessionSummary.from_record(s, user_id) for s in sessions],
            has_pending_creation=pending is not None,
            pending_creation=(
                PendingCreation(
                    step=pending.step,
                    person_name=pending.person.display_name or None,
                )
                if pending is not None
                else None
            ),
        )

    async def cancel_pending(self, user_id: str) -> bool:
        """Run every handler's cleanup hook for *user_id*.

        Returns whether pending state existed beforehand.
        """
        self.initialize()
        had_pending = self.services.pending_store.get(user_id) is not None
        for handler in self.registry.get_all_handlers():
            try:
                await handler.cleanup(user_id, self.services)
            except Exception as exc:
                logger.error(
                    "handler_cleanup_failed",
                    handler_id=handler.id,
                    user_id=user_id,
                    error=str(exc),
                )
        # Drop any pending flow whose owner handler is no longer registered.
        self.services.pending_store.clear(user_id)
        logger.info("pending_cancelled", user_id=user_id, had_pending=had_pending)
        return had_pending
