"""Fire-and-forget persistence.

Repository calls are blocking SQLite writes. ``BackgroundWriter`` pushes them
onto worker threads and logs failures; the pipeline never awaits the result.
"""

import asyncio
import logging
from typing import Callable

logger = logging.getLogger("pulse.repos")


class BackgroundWriter:
    """Schedules blocking writes without gating the caller."""

    def __init__(self) -> None:
        self._pending: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of writes still in flight."""
        return len(self._pending)

    def submit(self, description: str, func: Callable, *args) -> None:
        """Run ``func(*args)`` on a worker thread.

        Must be called from inside a running event loop. Exceptions raised
        by *func* are logged under *description* and otherwise dropped.
        """
        task = asyncio.get_running_loop().create_task(asyncio.to_thread(func, *args))
        self._pending.add(task)
        task.add_done_callback(lambda t: self._on_done(t, description))

    def _on_done(self, task: asyncio.Task, description: str) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Persistence failed (%s): %s", description, exc)

    async def drain(self) -> None:
        """Wait for every in-flight write. Used on shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
