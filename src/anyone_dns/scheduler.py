"""
Refresh scheduler for the anyone-dns cache.

Runs a callback, waits a fixed interval, and repeats until stopped. The
next wait only starts after the callback has finished, so runs never
overlap, and at most one loop is armed per scheduler.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from .enums import LogLevel
from .service_logger import ServiceLogger


class RefreshScheduler:
    """
    Single-chain interval scheduler backed by an asyncio task.

    ``start()`` replaces any previously armed loop; ``stop()`` cancels it.
    """

    COMPONENT = "RefreshScheduler"

    def __init__(
        self,
        callback: Callable[[], Awaitable[object]],
        interval_seconds: float,
        logger: Optional[ServiceLogger] = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            callback: Async function to run on every tick
            interval_seconds: Wait between the end of one run and the start of the next
            logger: Optional logger
        """
        if interval_seconds < 0:
            raise ValueError(f"interval_seconds must be non-negative, got {interval_seconds}")

        self._callback = callback
        self._interval_seconds = interval_seconds
        self._logger = logger
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._running = False
        self._run_count = 0

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def run_count(self) -> int:
        """Number of callback runs started by this scheduler."""
        return self._run_count

    def is_running(self) -> bool:
        return self._running

    def is_armed(self) -> bool:
        """True while a loop task exists and has not finished."""
        return self._task is not None and not self._task.done()

    async def run(
        self,
        stop_event: Optional[asyncio.Event] = None,
        run_immediately: bool = True,
    ) -> None:
        """
        Run the scheduler loop until ``stop_event`` is set or the task is cancelled.

        Args:
            stop_event: Optional event to signal the loop to stop
            run_immediately: Run the callback before the first wait
        """
        stop_event = stop_event or asyncio.Event()
        self._running = True
        skip_run = not run_immediately

        try:
            while not stop_event.is_set():
                if not skip_run:
                    self._run_count += 1
                    try:
                        await self._callback()
                    except Exception as e:
                        # Keep the chain alive; the next tick retries
                        self._log_error("Scheduled run failed", e)
                skip_run = False

                if await self._wait(stop_event):
                    break
        finally:
            self._running = False

    def start(self, run_immediately: bool = True) -> asyncio.Task:
        """
        Arm the loop as a background task, replacing any loop already armed.

        Must be called from within a running event loop.
        """
        if self._task is not None and not self._task.done():
            self._task.cancel()

        self._stop_event = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self.run(self._stop_event, run_immediately=run_immediately)
        )
        self._log(
            LogLevel.DEBUG,
            "Refresh loop armed",
            {"interval_seconds": self._interval_seconds, "run_immediately": run_immediately},
        )
        return self._task

    async def stop(self) -> None:
        """Signal the loop to stop and wait for it to finish."""
        if self._stop_event is not None:
            self._stop_event.set()

        task, self._task = self._task, None
        if task is None or task.done():
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def wait(self) -> None:
        """
        Block until the armed loop finishes; returns at once if none is armed.

        A loop ended by stop() counts as finished.
        """
        task = self._task
        if task is not None:
            await asyncio.wait([task])

    async def _wait(self, stop_event: asyncio.Event) -> bool:
        """Wait one interval; return True if the stop event fired meanwhile."""
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=self._interval_seconds)
        except asyncio.TimeoutError:
            return False
        return True

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, self.COMPONENT, message, data)

    def _log_error(self, message: str, error: Exception) -> None:
        if self._logger:
            self._logger.error(self.COMPONENT, message, error)
