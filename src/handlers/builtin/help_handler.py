"""Help and catch-all fallback.

Lowest priority and always applicable.  It accepts every intent, so the
candidate list for any intent ends with this handler and dispatch always
terminates with a reply.
"""

from __future__ import annotations

from src.core.intent.models import ChatIntent
from src.handlers.base import IntentHandler
from src.handlers.context import HandlerContext
from src.handlers.models import (
    ANY_INTENT,
    GET_HELP_ACTION,
    LIST_SESSIONS_ACTION,
    START_SESSION_ACTION,
    ActionType,
    HandlerMetadata,
    IntentHandlerResult,
    PassThrough,
)

IN_SESSION_HELP_MESSAGE = """This app helps you have difficult conversations in a healthy way. Here's how it works:

In your current session, you can:
• Share how you're feeling - I'll listen and help you feel heard
• Work through understanding your partner's perspective
• Discover what you both truly need
• Find solutions that work for everyone

Just share what's on your mind, and I'll guide you through the process."""

GETTING_STARTED_HELP_MESSAGE = """I'm here to help you work through difficult conversations. Here's how it works:

1. **Start a session** - Tell me who you'd like to talk to (e.g., "I need to talk to my partner John")
2. **Feel heard** - Share your feelings privately with me first
3. **Build empathy** - Understand each other's perspectives
4. **Find solutions** - Discover what you both need and create agreements

To get started, just tell me who you'd like to work things out with."""

FALLBACK_MESSAGE = (
    "I'm here to help you work through difficult conversations. You can start a "
    "session with someone by telling me their name, or ask for help to learn more "
    "about how this works."
)


def help_message(has_active_session: bool) -> str:
    return IN_SESSION_HELP_MESSAGE if has_active_session else GETTING_STARTED_HELP_MESSAGE


class HelpHandler(IntentHandler):
    @property
    def metadata(self) -> HandlerMetadata:
        return HandlerMetadata(
            id="help",
            name="Help & Guidance",
            supported_intents=[ANY_INTENT],
            priority=10,
            description="Catch-all: accepts every intent.",
        )

    def can_handle(self, context: HandlerContext) -> bool:
        return True

    async def handle(self, context: HandlerContext) -> IntentHandlerResult:
        active = context.active_session

        if context.intent.intent == ChatIntent.HELP:
            return IntentHandlerResult(
                action_type=ActionType.HELP.value,
                message=help_message(active is not None),
                actions=[START_SESSION_ACTION, LIST_SESSIONS_ACTION],
            )

        # Anything else reaching the catch-all is treated as unrecognised.
        if active is not None:
            # Probably ordinary chat inside the session.
            return IntentHandlerResult(
                action_type=ActionType.CONTINUE_CONVERSATION.value,
                message="",
                pass_through=PassThrough(session_id=active.id),
            )

        return IntentHandlerResult(
            action_type=ActionType.FALLBACK.value,
            message=context.intent.follow_up_question or FALLBACK_MESSAGE,
            actions=[START_SESSION_ACTION, GET_HELP_ACTION],
        )
