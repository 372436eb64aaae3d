"""
Fire-and-forget dispatch for auxiliary side effects.

Bridges trigger work (typing indicators, responder calls, read receipts) that
must never block or fail the caller. 'BackgroundTasks' schedules each coroutine
as an independent task, keeps a strong reference until it finishes (the event
loop only holds weak references to tasks) and routes any failure to the log.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

from loguru import logger


class BackgroundTasks:
    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], description: str) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda finished: self._on_done(finished, description))
        return task

    def _on_done(self, task: asyncio.Task[Any], description: str) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug(f"Background task cancelled: {description}")
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).warning(f"Background task failed: {description}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until every task spawned so far has finished. Failures are already logged."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
