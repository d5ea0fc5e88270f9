"""
Abstract scheduler interface.

LinkSession never calls asyncio.sleep or reads a clock directly; all of its
waits, periodic polls and deferred actions go through a scheduler so tests
can drive time explicitly.

Implementations:
- AsyncioScheduler: real time on the running event loop
- VirtualScheduler: manually advanced clock for tests
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import Callable, Union

Callback = Callable[[], Union[Awaitable[None], None]]
"""A timer callback; coroutine functions are awaited."""


class TimerHandle(ABC):
    """Handle to a scheduled one-shot or periodic callback."""

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        ...

    @abstractmethod
    def cancel(self) -> None:
        """
        Stop the timer.

        Safe to call more than once. A callback already running is allowed
        to finish.
        """
        ...


class AbstractScheduler(ABC):
    """
    Clock and timer source for a session.

    All callbacks run on the same event loop as the session, so they never
    execute concurrently with message handling.
    """

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds. Only differences are meaningful."""
        ...

    @abstractmethod
    async def sleep(self, delay: float) -> None:
        """Suspend the calling task for delay seconds."""
        ...

    @abstractmethod
    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        """Run callback once after delay seconds."""
        ...

    @abstractmethod
    def schedule_periodic(self, interval: float, callback: Callback) -> TimerHandle:
        """
        Run callback every interval seconds until cancelled.

        The first run happens one interval from now. A run that is still
        awaiting delays the next one rather than overlapping it.
        """
        ...
