"""Abstract base classes for intent handlers and detection plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable

from src.core.intent.models import DetectionHint, DetectionInput, DetectionResult
from src.handlers.context import HandlerContext, RouterServices
from src.handlers.models import ANY_INTENT, HandlerMetadata, IntentHandlerResult, PluginMetadata


class IntentHandler(ABC):
    """Base class that every intent handler must inherit from.

    A handler declares which intents it supports and a priority via
    ``metadata``.  For a detected intent the router tries handlers in
    descending priority and runs the first whose :meth:`can_handle` returns
    true.  :meth:`can_handle` must not have side effects.
    """

    @property
    @abstractmethod
    def metadata(self) -> HandlerMetadata:
        ...

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def priority(self) -> int:
        return self.metadata.priority

    def supports(self, intent: str) -> bool:
        supported = self.metadata.supported_intents
        return ANY_INTENT in supported or intent in supported

    @abstractmethod
    def can_handle(self, context: HandlerContext) -> bool | Awaitable[bool]:
        """Decide whether this handler applies; may be sync or async."""
        ...

    @abstractmethod
    async def handle(self, context: HandlerContext) -> IntentHandlerResult:
        ...

    async def cleanup(self, user_id: str, services: RouterServices) -> None:
        """Abandon any in-flight state this handler keeps for *user_id*."""
        return None


class IntentDetectionPlugin(ABC):
    """Extends intent detection with extra intents or result rewriting."""

    @property
    @abstractmethod
    def metadata(self) -> PluginMetadata:
        ...

    @property
    def id(self) -> str:
        return self.metadata.id

    @abstractmethod
    def get_detection_hints(self) -> list[DetectionHint]:
        """Keywords, examples and descriptions added to the classification prompt."""
        ...

    def post_process(
        self,
        result: DetectionResult,
        detection_input: DetectionInput,
    ) -> DetectionResult:
        """Return a (possibly new) result; the default leaves it unchanged.

        Results are immutable, so build changes with
        ``result.model_copy(update={...})``.
        """
        return result
