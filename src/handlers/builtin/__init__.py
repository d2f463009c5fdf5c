"""Built-in intent handlers."""

from src.handlers.builtin.conversation_handler import ConversationHandler
from src.handlers.builtin.help_handler import HelpHandler
from src.handlers.builtin.session_creation_handler import SessionCreationHandler
from src.handlers.builtin.session_switch_handler import SessionSwitchHandler
from src.handlers.builtin.sessions_list_handler import SessionsListHandler
from src.handlers.builtin.witnessing_handler import WitnessingHandler
from src.handlers.registry import HandlerRegistry
from src.utils.logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "ConversationHandler",
    "HelpHandler",
    "SessionCreationHandler",
    "SessionSwitchHandler",
    "SessionsListHandler",
    "WitnessingHandler",
    "register_builtin_handlers",
]


def register_builtin_handlers(registry: HandlerRegistry) -> None:
    """Register every built-in handler with *registry*."""
    for handler in (
        SessionCreationHandler(),
        SessionSwitchHandler(),
        SessionsListHandler(),
        ConversationHandler(),
        WitnessingHandler(),
        HelpHandler(),
    ):
        registry.register(handler)

    logger.info("builtin_handlers_registered", count=6)
