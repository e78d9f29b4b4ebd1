"""Tests for the single-flight cycle scheduler."""

import asyncio

import pytest

from stockpulse.jobs.scheduler import CycleScheduler, Discipline, SchedulerState


class FakeClock:
    """Stands in for asyncio.sleep; runs a hook on each tick."""

    def __init__(self, on_tick=None):
        self.delays = []
        self.on_tick = on_tick

    async def __call__(self, seconds):
        self.delays.append(seconds)
        if self.on_tick:
            self.on_tick(len(self.delays))
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_trigger_is_single_flight():
    started, release = asyncio.Event(), asyncio.Event()

    async def cycle():
        started.set()
        await release.wait()
        return "done"

    scheduler = CycleScheduler(cycle, interval=60)
    first = asyncio.create_task(scheduler.trigger())
    await started.wait()

    assert scheduler.state is SchedulerState.RUNNING
    assert await scheduler.trigger() is False
    assert scheduler.skipped == 1

    release.set()
    assert await first is True
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.last_result == "done"


@pytest.mark.asyncio
async def test_skip_discipline_drops_overlapping_ticks():
    release = asyncio.Event()
    runs = []

    async def cycle():
        runs.append(1)
        await release.wait()

    clock = FakeClock()
    scheduler = CycleScheduler(cycle, interval=300, discipline=Discipline.SKIP, sleep=clock)
    running = asyncio.create_task(scheduler.run(max_ticks=3))
    while scheduler.skipped < 2:
        await asyncio.sleep(0)
    assert scheduler.state is SchedulerState.RUNNING

    release.set()
    await running

    assert runs == [1]
    assert scheduler.skipped == 2
    assert scheduler.completed == 1
    assert clock.delays == [300, 300]


@pytest.mark.asyncio
async def test_sequential_discipline_runs_every_tick():
    order = []
    clock = FakeClock(lambda n: order.append("sleep"))

    async def cycle():
        order.append("cycle")

    scheduler = CycleScheduler(cycle, interval=5, discipline="sequential", sleep=clock)
    await scheduler.run(max_ticks=3)

    assert order == ["cycle", "sleep", "cycle", "sleep", "cycle"]
    assert scheduler.completed == 3
    assert scheduler.skipped == 0


@pytest.mark.asyncio
async def test_first_cycle_runs_before_any_wait():
    clock = FakeClock()
    calls = []

    async def cycle():
        calls.append(len(clock.delays))

    scheduler = CycleScheduler(cycle, interval=10, discipline="sequential", sleep=clock)
    await scheduler.run(max_ticks=1)
    assert calls == [0]
    assert clock.delays == []


@pytest.mark.asyncio
async def test_errors_do_not_stop_the_loop():
    errors = []
    attempts = []

    async def cycle():
        attempts.append(1)
        raise RuntimeError("cycle blew up")

    async def on_error(e):
        errors.append(str(e))

    scheduler = CycleScheduler(cycle, interval=1, discipline="sequential", on_error=on_error, sleep=FakeClock())
    await scheduler.run(max_ticks=3)

    assert len(attempts) == 3
    assert errors == ["cycle blew up"] * 3
    assert scheduler.state is SchedulerState.IDLE


@pytest.mark.asyncio
async def test_failing_error_handler_is_contained():
    async def cycle():
        raise RuntimeError("x")

    async def on_error(e):
        raise ValueError("handler broke")

    scheduler = CycleScheduler(cycle, interval=1, on_error=on_error)
    assert await scheduler.trigger() is True
    assert scheduler.state is SchedulerState.IDLE


@pytest.mark.asyncio
async def test_stop_cancels_timer_and_waits_for_cycle():
    started, release = asyncio.Event(), asyncio.Event()
    finished = []

    async def cycle():
        started.set()
        await release.wait()
        finished.append(1)

    scheduler = CycleScheduler(cycle, interval=3600)
    scheduler.start()
    await started.wait()

    stopping = asyncio.create_task(scheduler.stop())
    await asyncio.sleep(0)
    assert not stopping.done()

    release.set()
    await stopping
    assert finished == [1]
    assert scheduler.state is SchedulerState.STOPPED
    assert await scheduler.trigger() is False


@pytest.mark.asyncio
async def test_stop_lets_sequential_cycle_finish():
    started, release = asyncio.Event(), asyncio.Event()
    finished = []

    async def cycle():
        started.set()
        await release.wait()
        finished.append(1)

    scheduler = CycleScheduler(cycle, interval=3600, discipline=Discipline.SEQUENTIAL)
    scheduler.start()
    await started.wait()

    stopping = asyncio.create_task(scheduler.stop())
    await asyncio.sleep(0)
    assert not stopping.done()

    release.set()
    await stopping
    assert finished == [1]
    assert scheduler.completed == 1
    assert scheduler.state is SchedulerState.STOPPED
