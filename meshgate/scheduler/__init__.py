"""
Time sources for LinkSession.

Available schedulers:
- AsyncioScheduler: real time on the running event loop
- VirtualScheduler: manually advanced clock for tests
"""

from meshgate.scheduler.abc import AbstractScheduler, Callback, TimerHandle
from meshgate.scheduler.loop import AsyncioScheduler
from meshgate.scheduler.virtual import VirtualScheduler

__all__ = [
    "AbstractScheduler",
    "AsyncioScheduler",
    "Callback",
    "TimerHandle",
    "VirtualScheduler",
]
