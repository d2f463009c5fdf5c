"""Pre-session witnessing.

The main handler for users without an active session: it listens
empathetically, keeps the exchange in the pre-session log, and gently
offers a session when the user keeps talking about a specific person.
"""

from __future__ import annotations

from src.core.intent.models import ChatIntent
from src.handlers.base import IntentHandler
from src.handlers.context import HandlerContext
from src.handlers.models import (
    ActionType,
    ChatAction,
    HandlerMetadata,
    IntentHandlerResult,
)
from src.utils.logging import get_logger

logger = get_logger("handlers.witnessing")

ACKNOWLEDGEMENT_MESSAGE = "Thank you for sharing that. I'm here to listen. What else is on your mind?"

SESSION_INVITATION = (
    "\n\nIf you'd like, I can help you start a session to work through things with "
    "{name}. But there's no rush - we can also just keep talking here."
)

_WITNESSABLE = {ChatIntent.UNKNOWN.value, ChatIntent.CONTINUE_CONVERSATION.value}


class WitnessingHandler(IntentHandler):
    @property
    def metadata(self) -> HandlerMetadata:
        return HandlerMetadata(
            id="witnessing",
            name="Pre-Session Witnessing",
            supported_intents=[ChatIntent.UNKNOWN.value, ChatIntent.CONTINUE_CONVERSATION.value],
            priority=40,
        )

    def can_handle(self, context: HandlerContext) -> bool:
        return context.active_session is None and context.intent.intent in _WITNESSABLE

    async def handle(self, context: HandlerContext) -> IntentHandlerResult:
        services = context.services
        user_name = context.user_name or "there"

        try:
            reply = await services.responder.respond(context.user_id, user_name, context.message)

            mention = reply.person_mention
            services.pre_session_log.store_message(
                context.user_id,
                "USER",
                context.message,
                emotional_tone=reply.emotional_tone,
                extracted_person=mention.name if mention else None,
                extracted_topic=reply.topic,
            )
            services.pre_session_log.store_message(context.user_id, "AI", reply.response)

            message = reply.response
            actions: list[ChatAction] = []
            if reply.suggest_session and mention is not None:
                message += SESSION_INVITATION.format(name=mention.name)
                actions = [
                    ChatAction(
                        id="start-session-with-person",
                        label=f"Start session with {mention.name}",
                        payload={"personName": mention.name},
                    ),
                    ChatAction(id="continue-reflecting", label="Keep talking"),
                ]

            state = services.pre_session_log.get_state(context.user_id)
            return IntentHandlerResult(
                action_type=ActionType.WITNESSING.value,
                message=message,
                actions=actions or None,
                data={
                    "turnCount": state.turn_count,
                    "personMention": mention.model_dump() if mention else None,
                    "emotionalTone": reply.emotional_tone.value,
                    "topic": reply.topic,
                    "mode": "pre_session" if mention else "inner_work",
                },
            )
        except Exception as exc:
            logger.error(
                "witnessing_failed",
                handler_id=self.id,
                user_id=context.user_id,
                error=str(exc),
            )
            return IntentHandlerResult(
                action_type=ActionType.WITNESSING.value,
                message=ACKNOWLEDGEMENT_MESSAGE,
            )
