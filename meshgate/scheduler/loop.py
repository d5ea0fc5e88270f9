"""
Real-time scheduler on the running asyncio event loop.
"""

from __future__ import annotations

import asyncio
import inspect
import logging

from meshgate.scheduler.abc import AbstractScheduler, Callback, TimerHandle

logger = logging.getLogger(__name__)


async def run_callback(callback: Callback) -> None:
    """Call callback, awaiting the result if it is awaitable."""
    result = callback()
    if inspect.isawaitable(result):
        await result


class TaskTimerHandle(TimerHandle):
    """TimerHandle backed by an asyncio task."""

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled() or self._task.done()

    def cancel(self) -> None:
        self._task.cancel()


class AsyncioScheduler(AbstractScheduler):
    """
    Scheduler using the event loop clock and asyncio tasks.

    Example:
        >>> scheduler = AsyncioScheduler()
        >>> handle = scheduler.schedule_periodic(1.0, poll)
        >>> ...
        >>> handle.cancel()
    """

    def now(self) -> float:
        return asyncio.get_running_loop().time()

    async def sleep(self, delay: float) -> None:
        await asyncio.sleep(delay)

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        async def _once() -> None:
            await asyncio.sleep(delay)
            await self._guarded(callback)

        return TaskTimerHandle(asyncio.create_task(_once()))

    def schedule_periodic(self, interval: float, callback: Callback) -> TimerHandle:
        async def _loop() -> None:
            while True:
                await asyncio.sleep(interval)
                await self._guarded(callback)

        return TaskTimerHandle(asyncio.create_task(_loop()))

    async def _guarded(self, callback: Callback) -> None:
        try:
            await run_callback(callback)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled callback %r failed", callback)
