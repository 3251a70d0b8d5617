"""
task_queue.py — Fire-and-forget background work
Submitted coroutines run as asyncio tasks the caller never awaits. The queue
holds a strong reference until each task finishes and logs anything it
raises, so a failing task can't crash the process or surface as an
unhandled exception.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class BackgroundTaskQueue:
    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def submit(self, coro, name: str | None = None) -> None:
        """Schedule `coro` on the running loop. The caller keeps no handle to the outcome."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug(f"Background task {task.get_name()} cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background task {task.get_name()} failed: {exc!r}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float = 10.0) -> None:
        """Wait for outstanding tasks (application shutdown); cancel whatever is left."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        done, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning(f"Cancelled {len(still_running)} background task(s) at shutdown")


_queue = BackgroundTaskQueue()


def get_task_queue() -> BackgroundTaskQueue:
    return _queue
