"""
Property-based tests for the refresh scheduler.

Intervals are kept to a few milliseconds so the loop can be observed
without slowing the suite down.
"""

import asyncio
import contextlib
import io

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from anyone_dns.enums import LogLevel
from anyone_dns.scheduler import RefreshScheduler
from anyone_dns.service_logger import ServiceLogger


class Counter:
    def __init__(self, fail_on: frozenset = frozenset()) -> None:
        self.count = 0
        self.active = 0
        self.max_active = 0
        self._fail_on = fail_on

    async def __call__(self) -> None:
        self.count += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0.002)
            if self.count in self._fail_on:
                raise RuntimeError(f"run {self.count} failed")
        finally:
            self.active -= 1


class TestLoop:
    """Run, wait, repeat until stopped."""

    def test_stop_event_ends_loop(self) -> None:
        counter = Counter()
        scheduler = RefreshScheduler(counter, interval_seconds=0.005)

        async def scenario() -> None:
            stop = asyncio.Event()
            task = asyncio.create_task(scheduler.run(stop))
            await asyncio.sleep(0.05)
            stop.set()
            await asyncio.wait_for(task, timeout=1)

        asyncio.run(scenario())

        assert counter.count >= 2
        assert scheduler.run_count == counter.count
        assert not scheduler.is_running()

    @given(run_immediately=st.booleans())
    @settings(max_examples=4, deadline=None)
    def test_run_immediately_controls_first_run(self, run_immediately: bool) -> None:
        counter = Counter()
        scheduler = RefreshScheduler(counter, interval_seconds=10)

        async def scenario() -> None:
            scheduler.start(run_immediately=run_immediately)
            await asyncio.sleep(0.02)
            await scheduler.stop()

        asyncio.run(scenario())

        assert counter.count == (1 if run_immediately else 0)

    def test_runs_never_overlap(self) -> None:
        counter = Counter()
        scheduler = RefreshScheduler(counter, interval_seconds=0)

        async def scenario() -> None:
            scheduler.start()
            await asyncio.sleep(0.05)
            await scheduler.stop()

        asyncio.run(scenario())

        assert counter.count >= 2
        assert counter.max_active == 1

    def test_failing_run_keeps_loop_alive(self) -> None:
        logger = ServiceLogger(output_stream=io.StringIO())
        counter = Counter(fail_on=frozenset({1}))
        scheduler = RefreshScheduler(counter, interval_seconds=0.002, logger=logger)

        async def scenario() -> None:
            scheduler.start()
            await asyncio.sleep(0.05)
            await scheduler.stop()

        asyncio.run(scenario())

        assert counter.count >= 2
        errors = [e for e in logger.entries if e.level == LogLevel.ERROR]
        assert errors[0].data["error_message"] == "run 1 failed"


class TestArming:
    """At most one loop is armed at a time."""

    def test_start_replaces_armed_loop(self) -> None:
        scheduler = RefreshScheduler(Counter(), interval_seconds=10)

        async def scenario() -> None:
            first = scheduler.start(run_immediately=False)
            second = scheduler.start(run_immediately=False)
            await asyncio.sleep(0)
            assert first is not second
            assert scheduler.is_armed()
            await scheduler.stop()
            with contextlib.suppress(asyncio.CancelledError):
                await first
            assert first.cancelled()

        asyncio.run(scenario())

        assert not scheduler.is_armed()

    def test_stop_without_start_is_noop(self) -> None:
        scheduler = RefreshScheduler(Counter(), interval_seconds=1)
        asyncio.run(scheduler.stop())
        assert not scheduler.is_armed()

    def test_wait_returns_after_stop_event(self) -> None:
        scheduler = RefreshScheduler(Counter(), interval_seconds=0.001)

        async def scenario() -> None:
            scheduler.start(run_immediately=False)
            waiter = asyncio.create_task(scheduler.wait())
            await asyncio.sleep(0.01)
            scheduler._stop_event.set()
            await asyncio.wait_for(waiter, timeout=1)

        asyncio.run(scenario())

    def test_wait_returns_after_stop(self) -> None:
        scheduler = RefreshScheduler(Counter(), interval_seconds=60)

        async def scenario() -> None:
            scheduler.start()
            waiter = asyncio.create_task(scheduler.wait())
            await asyncio.sleep(0.01)
            await scheduler.stop()
            await asyncio.wait_for(waiter, timeout=1)
            assert not waiter.cancelled()

        asyncio.run(scenario())

    @given(interval=st.floats(max_value=-0.001, allow_nan=False, allow_infinity=False))
    @settings(max_examples=10)
    def test_negative_interval_rejected(self, interval: float) -> None:
        with pytest.raises(ValueError):
            RefreshScheduler(Counter(), interval_seconds=interval)
