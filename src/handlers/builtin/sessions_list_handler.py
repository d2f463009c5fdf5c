"""Render the caller's open sessions with a selectable action for each."""

from __future__ import annotations

from src.core.intent.models import ChatIntent
from src.core.sessions.models import SessionRecord
from src.handlers.base import IntentHandler
from src.handlers.context import HandlerContext
from src.handlers.models import (
    START_SESSION_ACTION,
    ActionType,
    ChatAction,
    HandlerMetadata,
    IntentHandlerResult,
)
from src.utils.logging import get_logger
from src.utils.time_language import recency_phrase

logger = get_logger("handlers.sessions_list")

NO_SESSIONS_MESSAGE = (
    "You don't have any open sessions yet. Tell me who you'd like to talk with "
    "and I'll help you start one."
)
LIST_ERROR_MESSAGE = "I couldn't load your sessions just now. Please try again in a moment."

_STATUS_LABELS = {
    "CREATED": "just created",
    "INVITED": "waiting for them to join",
    "ACTIVE": "in progress",
    "WAITING": "waiting on your partner",
    "PAUSED": "paused",
    "ARCHIVED": "archived",
}


class SessionsListHandler(IntentHandler):
    @property
    def metadata(self) -> HandlerMetadata:
        return HandlerMetadata(
            id="sessions-list",
            name="Sessions List",
            supported_intents=[ChatIntent.LIST_SESSIONS.value],
            priority=80,
        )

    def can_handle(self, context: HandlerContext) -> bool:
        return True

    async def handle(self, context: HandlerContext) -> IntentHandlerResult:
        try:
            sessions = await context.services.session_store.list_open_sessions(context.user_id)
        except Exception as exc:
            logger.error("sessions_list_failed", user_id=context.user_id, error=str(exc))
            return IntentHandlerResult(
                action_type=ActionType.ERROR.value,
                message=LIST_ERROR_MESSAGE,
            )

        if not sessions:
            return IntentHandlerResult(
                action_type=ActionType.LIST_SESSIONS.value,
                message=NO_SESSIONS_MESSAGE,
                actions=[START_SESSION_ACTION],
            )

        lines = [self._describe(s, context.user_id) for s in sessions]
        actions = [
            ChatAction(
                id=f"switch-session-{s.id}",
                label=f"Continue with {s.partner_name(context.user_id)}",
                payload={"sessionId": s.id},
            )
            for s in sessions
        ]
        actions.append(START_SESSION_ACTION)

        noun = "session" if len(sessions) == 1 else "sessions"
        message = f"You have {len(sessions)} open {noun}:\n" + "\n".join(lines)
        return IntentHandlerResult(
            action_type=ActionType.LIST_SESSIONS.value,
            message=message,
            actions=actions,
            data={"sessionIds": [s.id for s in sessions]},
        )

    @staticmethod
    def _describe(session: SessionRecord, user_id: str) -> str:
        status = _STATUS_LABELS.get(session.status.value, session.status.value.lower())
        return (
            f"• {session.partner_name(user_id)} - {status}, "
            f"last active {recency_phrase(session.updated_at)}"
        )
