"""Multi-turn session creation.

Drives the pending-state slot-filling flow::

    GATHERING_NAME -> GATHERING_CONTACT -> CONFIRMING -> session created

Each turn merges whatever the detector extracted (plus an e-mail address or
phone number found verbatim in the message) into the pending person, then
asks for the next missing piece.  The session is only created after the
user confirms.
"""

from __future__ import annotations

import re

from src.core.intent.models import (
    ChatIntent,
    ContactInfo,
    PendingStep,
    Person,
    SessionCreationState,
)
from src.core.sessions.models import SessionSummary
from src.handlers.base import IntentHandler
from src.handlers.context import HandlerContext, RouterServices
from src.handlers.models import (
    LIST_SESSIONS_ACTION,
    START_SESSION_ACTION,
    ActionType,
    ChatAction,
    HandlerMetadata,
    IntentHandlerResult,
    SessionChange,
)
from src.utils.logging import get_logger
from src.utils.tasks import fire_and_forget

logger = get_logger("handlers.session_creation")

_EMAIL = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)+")
_PHONE = re.compile(r"\+?\d[\d\s().-]{6,}\d")
_DATE_LIKE = re.compile(r"^(\d{4}[-/.]\d{1,2}[-/.]\d{1,2}|\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4})$")
_MIN_PHONE_DIGITS = 7
_CANCEL = re.compile(r"\b(cancel|never ?mind|forget it|stop|not now)\b", re.IGNORECASE)
_DECLINE = re.compile(r"^\s*(no|nope|nah)\b", re.IGNORECASE)
_AFFIRM = re.compile(
    r"^\s*(yes|yeah|yep|sure|ok(ay)?|please do|go ahead|send( it)?|do it|confirm|sounds good)\b",
    re.IGNORECASE,
)

CONFIRM_ACTION_ID = "confirm-session"
CANCEL_ACTION_ID = "cancel-session"

ASK_NAME_MESSAGE = "Who would you like to work things out with? Just tell me their name."
CANCELLED_MESSAGE = "No problem, I've cancelled that. We can start a session whenever you're ready."
CREATION_ERROR_MESSAGE = (
    "Something went wrong while setting up the session. Could you tell me again "
    "who you'd like to talk with?"
)


def extract_contact(message: str) -> ContactInfo | None:
    """Find an e-mail address or phone number typed directly in *message*."""
    match = _EMAIL.search(message)
    if match:
        return ContactInfo(type="email", value=match.group(0))
    for match in _PHONE.finditer(message):
        value = match.group(0).strip()
        if _DATE_LIKE.match(value):
            continue
        if sum(ch.isdigit() for ch in value) >= _MIN_PHONE_DIGITS:
            return ContactInfo(type="phone", value=value)
    return None


class SessionCreationHandler(IntentHandler):
    @property
    def metadata(self) -> HandlerMetadata:
        return HandlerMetadata(
            id="session-creation",
            name="Session Creation",
            supported_intents=[
                ChatIntent.CREATE_SESSION.value,
                ChatIntent.UNKNOWN.value,
                ChatIntent.CONTINUE_CONVERSATION.value,
            ],
            priority=100,
            description=(
                "Accepts UNKNOWN and CONTINUE_CONVERSATION only while a creation "
                "is pending and no session is active."
            ),
        )

    def can_handle(self, context: HandlerContext) -> bool:
        if context.intent.intent == ChatIntent.CREATE_SESSION:
            return True
        if context.active_session is not None:
            return False
        return context.services.pending_store.get_creation(context.user_id) is not None

    async def handle(self, context: HandlerContext) -> IntentHandlerResult:
        try:
            return await self._advance(context)
        except Exception as exc:
            logger.error(
                "session_creation_failed",
                handler_id=self.id,
                user_id=context.user_id,
                error=str(exc),
            )
            return IntentHandlerResult(
                action_type=ActionType.ERROR.value,
                message=CREATION_ERROR_MESSAGE,
            )

    async def cleanup(self, user_id: str, services: RouterServices) -> None:
        if services.pending_store.get_creation(user_id) is not None:
            services.pending_store.clear(user_id)
            logger.info("pending_creation_cancelled", user_id=user_id)

    # ------------------------------------------------------------------

    async def _advance(self, context: HandlerContext) -> IntentHandlerResult:
        store = context.services.pending_store
        pending = store.get_creation(context.user_id)
        message = context.message
        action_id = context.request_context.get("action_id")

        if pending is not None and (
            action_id == CANCEL_ACTION_ID
            or _CANCEL.search(message)
            or (pending.step == PendingStep.CONFIRMING and _DECLINE.search(message))
        ):
            store.clear(context.user_id)
            return IntentHandlerResult(
                action_type=ActionType.CANCELLED.value,
                message=CANCELLED_MESSAGE,
                actions=[START_SESSION_ACTION, LIST_SESSIONS_ACTION],
            )

        previous = pending.person if pending else Person()
        person = previous.merged_with(context.intent.person)
        if person.contact_info is None:
            contact = extract_contact(message)
            if contact is not None:
                person = person.model_copy(update={"contact_info": contact})

        topic = None
        if context.intent.session_context and context.intent.session_context.topic:
            topic = context.intent.session_context.topic
        elif pending is not None:
            topic = pending.topic

        confirmed = (
            pending is not None
            and pending.step == PendingStep.CONFIRMING
            and person == pending.person
            and (action_id == CONFIRM_ACTION_ID or _AFFIRM.search(message))
        )
        if confirmed:
            return await self._create(context, person, topic)

        if not person.first_name:
            step = PendingStep.GATHERING_NAME
            reply = context.intent.follow_up_question or ASK_NAME_MESSAGE
            actions = None
        elif person.contact_info is None:
            step = PendingStep.GATHERING_CONTACT
            reply = self._contact_question(context, person)
            actions = None
        else:
            step = PendingStep.CONFIRMING
            reply = (
                f"Great. I'll invite {person.display_name} at {person.contact_info.value}. "
                "Shall I send the invitation?"
            )
            actions = [
                ChatAction(id=CONFIRM_ACTION_ID, label="Yes, send it"),
                ChatAction(id=CANCEL_ACTION_ID, label="Not now"),
            ]

        store.set(
            context.user_id,
            SessionCreationState(person=person, step=step, topic=topic),
        )
        logger.info("pending_creation_advanced", user_id=context.user_id, step=step.value)

        return IntentHandlerResult(
            action_type=(
                ActionType.CONFIRM_SESSION.value
                if step == PendingStep.CONFIRMING
                else ActionType.GATHERING_INFO.value
            ),
            message=reply,
            actions=actions,
            data={"step": step.value, "person": person.model_dump(exclude_none=True)},
        )

    @staticmethod
    def _contact_question(context: HandlerContext, person: Person) -> str:
        if context.intent.follow_up_question:
            return context.intent.follow_up_question
        for item in context.intent.missing_info or []:
            if item.prompt_text:
                return item.prompt_text
        return (
            f"What's {person.first_name}'s email address or phone number? "
            "I'll use it to send them an invitation."
        )

    async def _create(
        self, context: HandlerContext, person: Person, topic: str | None
    ) -> IntentHandlerResult:
        services = context.services
        session = await services.session_store.create_session(
            context.user_id, context.user_name, person, topic
        )

        services.pending_store.clear(context.user_id)
        services.pre_session_log.clear(context.user_id)

        fire_and_forget(
            services.invitations.send_invitation(session, person, context.user_name),
            "invitation_send",
            session_id=session.id,
            user_id=context.user_id,
        )

        message = await services.response_generator.generate(
            "session_created",
            person_name=person.first_name or person.display_name,
        )
        return IntentHandlerResult(
            action_type=ActionType.SESSION_CREATED.value,
            message=message,
            session_change=SessionChange(
                type="created",
                session_id=session.id,
                session=SessionSummary.from_record(session, context.user_id),
            ),
        )
