"""Switch to an existing session by id or by the partner's name."""

from __future__ import annotations

from src.core.intent.models import ChatIntent
from src.core.sessions.models import SessionRecord, SessionSummary
from src.handlers.base import IntentHandler
from src.handlers.context import HandlerContext
from src.handlers.models import (
    LIST_SESSIONS_ACTION,
    ActionType,
    ChatAction,
    HandlerMetadata,
    IntentHandlerResult,
    PassThrough,
    SessionChange,
)
from src.utils.logging import get_logger

logger = get_logger("handlers.session_switch")

SWITCH_ERROR_MESSAGE = (
    "I had trouble opening that session. You can ask to see your sessions and "
    "pick one from the list."
)


async def find_session_by_partner_name(
    context: HandlerContext, first_name: str
) -> SessionRecord | None:
    """First open session whose partner name contains *first_name* (case-insensitive).

    No ranking: when several partners match, the store's ordering decides.
    """
    needle = first_name.lower()
    sessions = await context.services.session_store.list_open_sessions(context.user_id)
    for session in sessions:
        partner = session.partner_of(context.user_id)
        name = partner.display_name if partner else ""
        if needle in name.lower():
            return session
    return None


class SessionSwitchHandler(IntentHandler):
    @property
    def metadata(self) -> HandlerMetadata:
        return HandlerMetadata(
            id="session-switch",
            name="Session Switch",
            supported_intents=[ChatIntent.SWITCH_SESSION.value],
            priority=90,
        )

    def can_handle(self, context: HandlerContext) -> bool:
        intent = context.intent
        return bool(intent.session_id or (intent.person and intent.person.first_name))

    async def handle(self, context: HandlerContext) -> IntentHandlerResult:
        try:
            return await self._switch(context)
        except Exception as exc:
            logger.error(
                "session_switch_failed",
                handler_id=self.id,
                user_id=context.user_id,
                error=str(exc),
            )
            return IntentHandlerResult(
                action_type=ActionType.ERROR.value,
                message=SWITCH_ERROR_MESSAGE,
                actions=[LIST_SESSIONS_ACTION],
            )

    async def _switch(self, context: HandlerContext) -> IntentHandlerResult:
        intent = context.intent
        services = context.services
        first_name = intent.person.first_name if intent.person else None

        session = None
        if intent.session_id:
            session = await services.session_store.get_session_for_member(
                intent.session_id, context.user_id
            )

        if session is None and first_name:
            session = await find_session_by_partner_name(context, first_name)

        if session is None:
            logger.info("session_switch_not_found", user_id=context.user_id, person=first_name)
            person_name = first_name or "that person"
            if first_name:
                # Replaces any unrelated creation already in progress.
                services.pending_store.start_creation(context.user_id, first_name)

            return IntentHandlerResult(
                action_type=ActionType.NOT_FOUND.value,
                message=(
                    f"I don't see an existing session with {person_name}. "
                    "Would you like to start one?"
                ),
                actions=[
                    ChatAction(
                        id="create-session",
                        label=f"Start session with {person_name}",
                        payload={"personName": person_name} if first_name else None,
                    ),
                    LIST_SESSIONS_ACTION,
                ],
            )

        partner = await services.session_store.get_partner(session.id, context.user_id)
        partner_name = (partner.display_name if partner else "") or "your partner"
        logger.info(
            "session_switched",
            user_id=context.user_id,
            session_id=session.id,
        )
        services.pre_session_log.clear(context.user_id)
        if services.pending_store.get_creation(context.user_id) is not None:
            services.pending_store.clear(context.user_id)
            logger.info("pending_creation_dropped_on_switch", user_id=context.user_id)

        message = await services.response_generator.generate(
            "session_switched",
            person_name=partner_name,
            session_status=session.status.value,
        )
        return IntentHandlerResult(
            action_type=ActionType.SWITCH_SESSION.value,
            message=message or f"Switching to your session with {partner_name}.",
            session_change=SessionChange(
                type="switched",
                session_id=session.id,
                session=SessionSummary.from_record(session, context.user_id),
            ),
            pass_through=PassThrough(session_id=session.id),
        )
