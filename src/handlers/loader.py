"""Dynamic extension loader -- imports drop-in handler and plugin modules."""

import importlib.util
import inspect
import sys
from pathlib import Path

from src.handlers.base import IntentDetectionPlugin, IntentHandler
from src.utils.logging import get_logger

logger = get_logger(__name__)

_PATTERNS = ("*_handler.py", "*_plugin.py")


def _module_name_for(path: Path) -> str:
    """Derive a unique, deterministic module name from a file path."""
    return f"_chat_extensions_.{path.stem}_{hash(str(path.resolve())) & 0xFFFFFFFF:08x}"


def load_extensions_from_directory(
    directory: str | Path,
) -> tuple[list[IntentHandler], list[IntentDetectionPlugin]]:
    """Import every ``*_handler.py`` and ``*_plugin.py`` file in *directory*.

    Missing directories yield empty lists.  A file that fails to import is
    logged and skipped.
    """
    directory = Path(directory)
    handlers: list[IntentHandler] = []
    plugins: list[IntentDetectionPlugin] = []

    if not directory.is_dir():
        logger.debug("extensions_directory_missing", path=str(directory))
        return handlers, plugins

    files = sorted({p for pattern in _PATTERNS for p in directory.glob(pattern)})
    for filepath in files:
        module = _import_file(filepath)
        if module is None:
            continue
        found_handlers, found_plugins = _extract_instances(module, filepath)
        handlers.extend(found_handlers)
        plugins.extend(found_plugins)

    return handlers, plugins


def _import_file(filepath: Path):
    module_name = _module_name_for(filepath)

    spec = importlib.util.spec_from_file_location(module_name, str(filepath))
    if spec is None or spec.loader is None:
        logger.error("extension_spec_creation_failed", path=str(filepath))
        return None

    module = importlib.util.module_from_spec(spec)
    # Register in sys.modules so intra-module imports work.
    sys.modules[module_name] = module

    try:
        spec.loader.exec_module(module)
    except Exception:
        logger.exception("extension_module_exec_error", path=str(filepath))
        sys.modules.pop(module_name, None)
        return None

    return module


def _extract_instances(
    module: object, filepath: Path
) -> tuple[list[IntentHandler], list[IntentDetectionPlugin]]:
    """Instantiate concrete handler and plugin classes defined in *module*."""
    handlers: list[IntentHandler] = []
    plugins: list[IntentDetectionPlugin] = []

    for name, obj in inspect.getmembers(module, inspect.isclass):
        # Only classes defined in this file, not ones it imported.
        if obj.__module__ != module.__name__ or inspect.isabstract(obj):
            continue
        if not issubclass(obj, (IntentHandler, IntentDetectionPlugin)):
            continue

        try:
            instance = obj()
        except Exception:
            logger.exception("extension_instantiation_error", cls=name, path=str(filepath))
            continue

        if isinstance(instance, IntentHandler):
            handlers.append(instance)
        else:
            plugins.append(instance)
        logger.info("extension_loaded", extension_id=instance.id, file=str(filepath))

    return handlers, plugins
