"""Tests for the scheduler implementations."""

import asyncio

import pytest

from meshgate.scheduler import AsyncioScheduler, VirtualScheduler


class TestVirtualScheduler:
    """Tests for VirtualScheduler."""

    @pytest.fixture
    def scheduler(self):
        """Create a VirtualScheduler instance."""
        return VirtualScheduler()

    @pytest.mark.asyncio
    async def test_clock_only_moves_on_advance(self, scheduler):
        """Test now() is manual."""
        assert scheduler.now() == 0.0
        await scheduler.advance(2.5)
        assert scheduler.now() == 2.5

    @pytest.mark.asyncio
    async def test_sleep_wakes_at_deadline(self, scheduler):
        """Test a sleeper wakes only once its time has come."""
        woke = []

        async def sleeper():
            await scheduler.sleep(1.0)
            woke.append(scheduler.now())

        task = asyncio.create_task(sleeper())
        await scheduler.advance(0.9)
        assert woke == []
        await scheduler.advance(0.2)
        assert woke == [1.0]
        assert task.done()

    @pytest.mark.asyncio
    async def test_call_later(self, scheduler):
        """Test a one-shot callback fires once."""
        calls = []
        scheduler.call_later(0.5, lambda: calls.append(scheduler.now()))
        await scheduler.advance(2.0)
        assert calls == [0.5]

    @pytest.mark.asyncio
    async def test_periodic(self, scheduler):
        """Test periodic callbacks fire every interval until cancelled."""
        calls = []
        handle = scheduler.schedule_periodic(1.0, lambda: calls.append(scheduler.now()))
        await scheduler.advance(3.5)
        assert calls == [1.0, 2.0, 3.0]

        handle.cancel()
        assert handle.cancelled
        await scheduler.advance(5.0)
        assert len(calls) == 3
        assert scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_async_callback_awaited(self, scheduler):
        """Test coroutine callbacks run to completion."""
        done = []

        async def callback():
            await asyncio.sleep(0)
            done.append(True)

        scheduler.call_later(0.1, callback)
        await scheduler.advance(0.1)
        assert done == [True]

    @pytest.mark.asyncio
    async def test_timers_fire_in_deadline_order(self, scheduler):
        """Test ordering across timers."""
        order = []
        scheduler.call_later(0.3, lambda: order.append("c"))
        scheduler.call_later(0.1, lambda: order.append("a"))
        scheduler.call_later(0.2, lambda: order.append("b"))
        await scheduler.advance(1.0)
        assert order == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_cancelled_sleeper_removed(self, scheduler):
        """Test cancelling a sleeping task drops its timer."""
        task = asyncio.create_task(scheduler.sleep(5.0))
        await scheduler.settle()
        task.cancel()
        await scheduler.settle()
        assert scheduler.pending == 0

    def test_periodic_interval_must_be_positive(self, scheduler):
        """Test zero intervals are rejected."""
        with pytest.raises(ValueError):
            scheduler.schedule_periodic(0, lambda: None)


class TestAsyncioScheduler:
    """Tests for AsyncioScheduler."""

    @pytest.mark.asyncio
    async def test_call_later_and_periodic(self):
        """Test real-time timers fire and cancel."""
        scheduler = AsyncioScheduler()
        once = []
        ticks = []

        scheduler.call_later(0.01, lambda: once.append(True))
        handle = scheduler.schedule_periodic(0.01, lambda: ticks.append(True))
        await asyncio.sleep(0.08)
        handle.cancel()
        await asyncio.sleep(0.01)

        assert once == [True]
        assert len(ticks) >= 2
        assert handle.cancelled

    @pytest.mark.asyncio
    async def test_failing_callback_keeps_periodic_running(self):
        """Test an exception in one run does not stop the timer."""
        scheduler = AsyncioScheduler()
        calls = []

        def flaky():
            calls.append(True)
            raise RuntimeError("boom")

        handle = scheduler.schedule_periodic(0.01, flaky)
        await asyncio.sleep(0.06)
        handle.cancel()

        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_now_is_loop_time(self):
        """Test the clock is the event loop clock."""
        scheduler = AsyncioScheduler()
        assert scheduler.now() == pytest.approx(asyncio.get_running_loop().time(), abs=0.01)
