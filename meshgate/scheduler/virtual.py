"""
Virtual-time scheduler for tests.

Time only moves when the test calls advance(). Timers due within the
advanced span fire in deadline order, and the event loop is given a few
turns after each one so the tasks they wake can run to their next await.

Example:
    >>> scheduler = VirtualScheduler()
    >>> session = LinkSession(transport, sink=events.append, scheduler=scheduler)
    >>> task = asyncio.create_task(session.connect())
    >>> await scheduler.advance(10.0)
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from typing import Final

from meshgate.scheduler.abc import AbstractScheduler, Callback, TimerHandle
from meshgate.scheduler.loop import run_callback

logger = logging.getLogger(__name__)

SETTLE_ROUNDS: Final[int] = 20
"""Event loop turns given to woken tasks after each timer fires."""


class VirtualTimer(TimerHandle):
    """A pending entry on the virtual clock."""

    def __init__(
        self,
        deadline: float,
        callback: Callback | None = None,
        interval: float | None = None,
        future: asyncio.Future[None] | None = None,
    ) -> None:
        self.deadline = deadline
        self.callback = callback
        self.interval = interval
        self.future = future
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class VirtualScheduler(AbstractScheduler):
    """
    Scheduler with a manually advanced clock.

    Attributes:
        pending: Number of live timers and sleepers.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, VirtualTimer]] = []
        self._sequence = itertools.count()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def now(self) -> float:
        return self._now

    async def sleep(self, delay: float) -> None:
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        timer = self._push(VirtualTimer(self._now + max(0.0, delay), future=future))
        try:
            await future
        finally:
            timer.cancel()

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        return self._push(VirtualTimer(self._now + max(0.0, delay), callback=callback))

    def schedule_periodic(self, interval: float, callback: Callback) -> TimerHandle:
        if interval <= 0:
            raise ValueError(f"Periodic interval must be positive, got {interval}")
        return self._push(
            VirtualTimer(self._now + interval, callback=callback, interval=interval)
        )

    async def advance(self, seconds: float) -> None:
        """
        Move the clock forward, firing every timer that comes due.

        Args:
            seconds: Virtual seconds to advance (0 just lets the loop settle).
        """
        target = self._now + seconds
        await self.settle()
        while self._queue and self._queue[0][0] <= target:
            _, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self._now = max(self._now, timer.deadline)
            self._fire(timer)
            await self.settle()
        self._now = target
        await self.settle()

    async def settle(self) -> None:
        """Give the event loop a few turns without moving the clock."""
        for _ in range(SETTLE_ROUNDS):
            await asyncio.sleep(0)

    def _push(self, timer: VirtualTimer) -> VirtualTimer:
        heapq.heappush(self._queue, (timer.deadline, next(self._sequence), timer))
        return timer

    def _fire(self, timer: VirtualTimer) -> None:
        if timer.future is not None:
            if not timer.future.done():
                timer.future.set_result(None)
            return

        if timer.interval is not None:
            timer.deadline += timer.interval
            self._push(timer)
        else:
            timer.cancel()

        assert timer.callback is not None
        task = asyncio.ensure_future(self._run(timer.callback))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, callback: Callback) -> None:
        try:
            await run_callback(callback)
        except Exception:
            logger.exception("Scheduled callback %r failed", callback)
