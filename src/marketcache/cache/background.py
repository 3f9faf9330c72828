"""Detached cache tasks.

Cache write-backs and invalidations run beside the request instead of inside
it. The request never awaits them, and ordering between "response sent" and
"task finished" is unspecified. Failures are logged by a done callback.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DetachedTasks:
    """Holds references to fire-and-forget tasks until they finish."""

    def __init__(self, name: str = "cache") -> None:
        self.name = name
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background {self.name} task failed: {exc}")

    async def drain(self) -> None:
        """Wait for every outstanding task (including ones spawned meanwhile)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def __len__(self) -> int:
        return len(self._tasks)
