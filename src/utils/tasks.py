"""Fire-and-forget background work.

Side effects such as invitation e-mails and presence notifications must
never fail the chat turn that triggered them.  :func:`fire_and_forget`
schedules a coroutine on the running loop and logs, rather than raises,
whatever it throws.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine

from src.utils.logging import get_logger

logger = get_logger("utils.tasks")

# Strong references so pending tasks are not garbage-collected mid-flight.
_background_tasks: set[asyncio.Task] = set()


def fire_and_forget(coro: Coroutine[Any, Any, Any], event: str, **log_fields: Any) -> asyncio.Task:
    """Schedule *coro* in the background; failures are logged under *event*."""
    task = asyncio.ensure_future(coro)
    _background_tasks.add(task)

    def _done(t: asyncio.Task) -> None:
        _background_tasks.discard(t)
        if t.cancelled():
            logger.warning(f"{event}_cancelled", **log_fields)
            return
        exc = t.exception()
        if exc is not None:
            logger.error(f"{event}_failed", error=str(exc), **log_fields)

    task.add_done_callback(_done)
    return task


async def drain_background_tasks() -> None:
    """Wait for every scheduled background task (used at shutdown and in tests)."""
    if _background_tasks:
        await asyncio.gather(*list(_background_tasks), return_exceptions=True)
