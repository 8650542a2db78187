"""
Cooperative timer that drives the virtual clock.

A single asyncio loop schedules one tick at a time with call_later. Each
tick advances the orchestrator by real elapsed time and reschedules itself
while the clock is running. Stopping cancels the pending callback, and so
does pausing or resetting the clock through the orchestrator.
"""

from typing import TYPE_CHECKING, Any, Callable, Optional
import asyncio
import logging

from arcanum.environment.clock import TICK_INTERVAL_SECONDS, now_ms

if TYPE_CHECKING:
    from arcanum.environment.orchestrator import EnvironmentOrchestrator

logger = logging.getLogger(__name__)


class ClockRunner:
    """Periodically ticks an orchestrator on an asyncio event loop."""

    def __init__(
        self,
        orchestrator: "EnvironmentOrchestrator",
        loop: Optional[asyncio.AbstractEventLoop] = None,
        interval: float = TICK_INTERVAL_SECONDS,
        time_source: Callable[[], float] = now_ms,
    ):
        """
        Args:
            orchestrator: The orchestrator to tick
            loop: Event loop to schedule on (defaults to the running loop)
            interval: Seconds between ticks
            time_source: Returns the current time in epoch milliseconds
        """
        self.orchestrator = orchestrator
        self._loop = loop
        self.interval = interval
        self.time_source = time_source
        self._handle: Optional[Any] = None
        self._attached = False
        self.tick_count = 0

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def is_active(self) -> bool:
        """True while a tick is scheduled."""
        return self._handle is not None

    def start(self) -> bool:
        """
        Schedule ticking if the clock is running and nothing is scheduled.

        Returns:
            True if a tick was scheduled by this call
        """
        if self._handle is not None or not self.orchestrator.clock.running:
            return False
        self._handle = self.loop.call_later(self.interval, self._on_tick)
        if not self._attached:
            self.orchestrator.register_clock_callback(self._on_clock_change)
            self._attached = True
        logger.debug(f"Clock runner started ({self.interval}s interval)")
        return True

    def stop(self) -> None:
        """Cancel the pending tick, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.debug("Clock runner stopped")
        self._detach()

    def toggle(self) -> bool:
        """Start or pause the clock and the timer together."""
        running = self.orchestrator.toggle_clock(self.time_source())
        if running:
            self.start()
        else:
            self.stop()
        return running

    def _detach(self) -> None:
        if self._attached:
            self.orchestrator.unregister_clock_callback(self._on_clock_change)
            self._attached = False

    def _on_clock_change(self, running: bool) -> None:
        if not running:
            self.stop()

    def _on_tick(self) -> None:
        self._handle = None
        if not self.orchestrator.clock.running:
            self._detach()
            return
        self.orchestrator.tick(self.time_source())
        self.tick_count += 1
        self.start()


async def run_for(
    orchestrator: "EnvironmentOrchestrator",
    seconds: float,
    interval: float = TICK_INTERVAL_SECONDS,
    time_source: Callable[[], float] = now_ms,
) -> ClockRunner:
    """
    Tick an orchestrator on the running loop for a number of real seconds.

    The clock is caught up first. If the clock is paused, this just waits.
    """
    orchestrator.resume(time_source())
    runner = ClockRunner(
        orchestrator,
        loop=asyncio.get_running_loop(),
        interval=interval,
        time_source=time_source,
    )
    runner.start()
    try:
        await asyncio.sleep(seconds)
    finally:
        runner.stop()
    return runner
