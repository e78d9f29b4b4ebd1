"""Fixed-interval cycle scheduler with single-flight execution.

State transitions: idle → running → idle, and → stopped on shutdown. The
first cycle runs immediately, later ones every `interval` seconds. Two
disciplines:

- skip: each tick spawns the cycle in the background; a tick that lands
  while a cycle is still running is dropped (never queued).
- sequential: the cycle is awaited, then the scheduler sleeps, so cycles
  can never overlap but the schedule drifts by the cycle duration.

Errors raised by a cycle are logged and handed to `on_error`; they never
stop the loop.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class Discipline(str, Enum):
    SKIP = "skip"
    SEQUENTIAL = "sequential"


class CycleScheduler:
    def __init__(
        self,
        cycle: Callable[[], Awaitable[object]],
        interval: float,
        discipline: str = Discipline.SKIP,
        on_error: Optional[Callable[[Exception], Awaitable[None]]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.cycle = cycle
        self.interval = interval
        self.discipline = Discipline(discipline)
        self.on_error = on_error
        self._sleep = sleep
        self._state = SchedulerState.IDLE
        self._runner: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Task] = None
        self.skipped = 0
        self.completed = 0
        self.last_result = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    def _begin(self) -> bool:
        """Single-flight guard: claim the running slot if it is free."""
        if self._state is not SchedulerState.IDLE:
            if self._state is SchedulerState.RUNNING:
                self.skipped += 1
                logger.info("Previous cycle still running, skipping this trigger")
            return False
        self._state = SchedulerState.RUNNING
        return True

    async def _execute(self):
        logger.info("Cycle running")
        try:
            self.last_result = await self.cycle()
            self.completed += 1
            logger.info("Cycle completed")
        except Exception as e:
            logger.error("Cycle failed: %s", e, exc_info=True)
            await self._report(e)
        finally:
            if self._state is SchedulerState.RUNNING:
                self._state = SchedulerState.IDLE

    async def _report(self, error: Exception):
        if self.on_error is None:
            return
        try:
            await self.on_error(error)
        except Exception:
            logger.exception("Error handler failed")

    async def trigger(self) -> bool:
        """Run one cycle now unless one is in flight. Returns whether it ran.

        The cycle runs as its own task so cancelling the caller (for
        instance the runner during stop()) leaves it to finish.
        """
        if not self._begin():
            return False
        self._inflight = asyncio.create_task(self._execute())
        await asyncio.shield(self._inflight)
        return True

    def trigger_background(self) -> bool:
        """Start a cycle as a task unless one is in flight."""
        if not self._begin():
            return False
        self._inflight = asyncio.create_task(self._execute())
        return True

    async def run(self, max_ticks: Optional[int] = None):
        """Tick until stopped, or until `max_ticks` ticks have fired."""
        ticks = 0
        logger.info("Scheduler started (%s, every %.0fs)", self.discipline.value, self.interval)
        while self._state is not SchedulerState.STOPPED:
            if self.discipline is Discipline.SKIP:
                self.trigger_background()
            else:
                await self.trigger()
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break
            await self._sleep(self.interval)
        await self.wait_idle()

    async def wait_idle(self):
        """Wait for the in-flight background cycle, if any."""
        if self._inflight is not None and not self._inflight.done():
            await asyncio.shield(self._inflight)

    def start(self) -> asyncio.Task:
        self._runner = asyncio.create_task(self.run())
        return self._runner

    async def stop(self):
        """Cancel the pending timer and let the in-flight cycle finish."""
        self._state = SchedulerState.STOPPED
        if self._runner is not None and not self._runner.done():
            self._runner.cancel()
            try:
                await self._runner
            except asyncio.CancelledError:
                pass
        await self.wait_idle()
        logger.info("Scheduler stopped")
