"""Central registry of intent handlers and detection plugins."""

from __future__ import annotations

from src.core.intent.models import DetectionHint
from src.handlers.base import IntentDetectionPlugin, IntentHandler
from src.handlers.loader import load_extensions_from_directory
from src.utils.exceptions import HandlerNotFoundError
from src.utils.logging import get_logger

logger = get_logger(__name__)


class HandlerRegistry:
    """Ordered maps of handler id -> handler and plugin id -> plugin.

    Built once at startup and passed by reference to the router::

        registry = HandlerRegistry()
        register_builtin_handlers(registry)
        registry.discover("./src/handlers/user")
        for handler in registry.get_handlers("HELP"):
            ...

    Registering an id that already exists replaces the entry in place, so
    it keeps its original registration position for tie-breaking.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, IntentHandler] = {}
        self._plugins: dict[str, IntentDetectionPlugin] = {}

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(self, *directories: str) -> int:
        """Import ``*_handler.py`` / ``*_plugin.py`` files from *directories*
        and register what they define.

        Returns the number of handlers and plugins registered.
        """
        count = 0

        for directory in directories:
            handlers, plugins = load_extensions_from_directory(directory)
            for handler in handlers:
                self.register(handler)
                count += 1
            for plugin in plugins:
                self.register_plugin(plugin)
                count += 1

        logger.info("extensions_discovered", count=count)
        return count

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def register(self, handler: IntentHandler) -> None:
        handler_id = handler.metadata.id
        if handler_id in self._handlers:
            logger.warning(
                "handler_replaced",
                handler_id=handler_id,
                old_priority=self._handlers[handler_id].metadata.priority,
                new_priority=handler.metadata.priority,
            )
        self._handlers[handler_id] = handler
        logger.debug(
            "handler_registered",
            handler_id=handler_id,
            handler_name=handler.metadata.name,
            priority=handler.metadata.priority,
        )

    def unregister(self, handler_id: str) -> None:
        """Remove *handler_id*; unknown ids are ignored."""
        self._handlers.pop(handler_id, None)

    def get(self, handler_id: str) -> IntentHandler:
        handler = self._handlers.get(handler_id)
        if handler is None:
            raise HandlerNotFoundError(handler_id)
        return handler

    def get_handlers(self, intent: str) -> list[IntentHandler]:
        """Handlers supporting *intent*, highest priority first.

        ``sorted`` is stable, so equal priorities keep registration order.
        """
        matching = [h for h in self._handlers.values() if h.supports(intent)]
        return sorted(matching, key=lambda h: h.metadata.priority, reverse=True)

    def get_all_handlers(self) -> list[IntentHandler]:
        return sorted(self._handlers.values(), key=lambda h: h.metadata.priority, reverse=True)

    # ------------------------------------------------------------------
    # Plugins
    # ------------------------------------------------------------------

    def register_plugin(self, plugin: IntentDetectionPlugin) -> None:
        plugin_id = plugin.metadata.id
        if plugin_id in self._plugins:
            logger.warning("plugin_replaced", plugin_id=plugin_id)
        self._plugins[plugin_id] = plugin
        logger.debug("plugin_registered", plugin_id=plugin_id)

    def unregister_plugin(self, plugin_id: str) -> None:
        self._plugins.pop(plugin_id, None)

    def get_plugins(self) -> list[IntentDetectionPlugin]:
        """Plugins in registration order."""
        return list(self._plugins.values())

    def get_detection_hints(self) -> list[DetectionHint]:
        hints: list[DetectionHint] = []
        for plugin in self._plugins.values():
            try:
                hints.extend(plugin.get_detection_hints())
            except Exception as exc:
                logger.error("plugin_hints_failed", plugin_id=plugin.metadata.id, error=str(exc))
        return hints

    def custom_intents(self) -> list[str]:
        """Intent strings contributed by plugins, first occurrence wins."""
        seen: dict[str, None] = {}
        for plugin in self._plugins.values():
            for intent in plugin.metadata.detectable_intents:
                seen.setdefault(intent, None)
        return list(seen)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._handlers)

    def __contains__(self, handler_id: str) -> bool:
        return handler_id in self._handlers
