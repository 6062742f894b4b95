import asyncio
from typing import Awaitable, Optional, Set

import structlog

logger = structlog.get_logger()


class BackgroundTaskTracker:
    """
    Holds strong references to fire-and-forget tasks until they finish.

    The event loop only keeps weak references to tasks, so a task spawned
    without being stored somewhere can be garbage collected mid-flight.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Awaitable, name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task failed",
                task=task.get_name(),
                error=str(exc),
            )

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for every task spawned so far, including ones spawned while waiting"""
        while self._tasks:
            tasks = list(self._tasks)
            done, pending = await asyncio.wait(tasks, timeout=timeout)
            if pending:
                logger.warning("Background tasks still running after drain timeout", count=len(pending))
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
                return


background_tasks = BackgroundTaskTracker()
