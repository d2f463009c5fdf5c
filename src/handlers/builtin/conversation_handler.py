"""Conversation continuation: hand in-session messages to the stage pipeline."""

from __future__ import annotations

from src.core.intent.models import ChatIntent
from src.handlers.base import IntentHandler
from src.handlers.context import HandlerContext
from src.handlers.models import (
    LIST_SESSIONS_ACTION,
    START_SESSION_ACTION,
    ActionType,
    HandlerMetadata,
    IntentHandlerResult,
    PassThrough,
)

NO_ACTIVE_SESSION_MESSAGE = (
    "I don't see an active session. Would you like to start one or see your "
    "existing sessions?"
)


class ConversationHandler(IntentHandler):
    @property
    def metadata(self) -> HandlerMetadata:
        return HandlerMetadata(
            id="conversation",
            name="Conversation Continuation",
            supported_intents=[ChatIntent.CONTINUE_CONVERSATION.value],
            priority=50,
        )

    def can_handle(self, context: HandlerContext) -> bool:
        return context.active_session is not None

    async def handle(self, context: HandlerContext) -> IntentHandlerResult:
        if context.active_session is None:
            return IntentHandlerResult(
                action_type=ActionType.FALLBACK.value,
                message=NO_ACTIVE_SESSION_MESSAGE,
                actions=[START_SESSION_ACTION, LIST_SESSIONS_ACTION],
            )

        # The stage pipeline writes the actual reply.
        return IntentHandlerResult(
            action_type=ActionType.CONTINUE_CONVERSATION.value,
            message="",
            pass_through=PassThrough(session_id=context.active_session.id),
        )
