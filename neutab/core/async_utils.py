"""Async helper utilities."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Coroutine

logger = logging.getLogger(__name__)


def raise_if_cancelled(exc: BaseException) -> None:
    """Re-raise ``asyncio.CancelledError`` instances to preserve cancellation semantics."""

    if isinstance(exc, asyncio.CancelledError):  # pragma: no cover - simple guard
        raise exc


def spawn_background(
    coro: Coroutine[Any, Any, Any],
    tasks: set[asyncio.Task[Any]],
    *,
    name: str,
) -> asyncio.Task[Any]:
    """Start ``coro`` as a task and keep a strong reference until it finishes.

    Unexpected exceptions are logged so a fire-and-forget task never dies silently.
    """
    task = asyncio.create_task(coro, name=name)
    tasks.add(task)

    def _done(t: asyncio.Task[Any]) -> None:
        tasks.discard(t)
        if t.cancelled():
            return
        exc = t.exception()
        if exc is not None:
            logger.error(
                "background_task_failed",
                extra={"task": name, "error": str(exc), "error_type": type(exc).__name__},
            )

    task.add_done_callback(_done)
    return task
