"""
Tests for the scheduler event loop.

Each test drives the loop with asyncio.run and a short tick so the
periodic path is exercised without slowing the suite down.
"""

import asyncio
import threading

import pytest

from ambient_brightness.core.errors import SensorError
from ambient_brightness.domain.mapping import KeyboardMapper, ScreenMapper
from ambient_brightness.domain.models import (
    Active,
    ControlState,
    Decrease,
    Idle,
    Increase,
    SchedulerState,
)
from ambient_brightness.domain.smoothing import SmoothingEngine
from ambient_brightness.services.control_channel import CommandQueue
from ambient_brightness.services.scheduler import Scheduler

from conftest import KBD, SCREEN, wait_until


@pytest.fixture
def parts(sensor, backlight):
    engine = SmoothingEngine.init(sensor)
    return engine, KeyboardMapper(backlight, *KBD), ScreenMapper(backlight, *SCREEN)


def make_scheduler(parts, tick_seconds):
    engine, keyboard, screen = parts
    queue = CommandQueue(asyncio.get_running_loop())
    return Scheduler(engine, keyboard, screen, queue, tick_seconds=tick_seconds), queue


async def send(queue, command):
    # same path as the control thread
    await asyncio.to_thread(queue.send, command, threading.Event())


def test_apply_commands(parts):
    async def scenario():
        scheduler, _ = make_scheduler(parts, 60)
        assert scheduler.control_state == ControlState()

        scheduler.apply(Idle())
        assert scheduler.control_state.idle
        scheduler.apply(Active())
        assert not scheduler.control_state.idle

        scheduler.apply(Increase(10))
        scheduler.apply(Decrease(3))
        assert scheduler.control_state.screen_offset == 7

    asyncio.run(scenario())


def test_first_pass_is_immediate(parts, backlight):
    async def scenario():
        scheduler, _ = make_scheduler(parts, 60)
        task = asyncio.ensure_future(scheduler.run())
        await wait_until(lambda: scheduler.passes == 1)
        assert scheduler.state is SchedulerState.RUNNING
        assert backlight.read(*SCREEN) == 500

        scheduler.shutdown()
        await task
        assert scheduler.passes == 1
        assert scheduler.state is SchedulerState.STOPPED

    asyncio.run(scenario())


def test_steady_state_then_idle(parts, backlight):
    async def scenario():
        scheduler, queue = make_scheduler(parts, 0.01)
        task = asyncio.ensure_future(scheduler.run())

        await wait_until(lambda: scheduler.passes >= 10)
        assert scheduler.last_pct == 92
        assert backlight.read(*KBD) == 0
        assert backlight.read(*SCREEN) == 500

        await send(queue, Idle())
        await wait_until(lambda: scheduler.last_pct == 23)
        assert scheduler.control_state.idle
        assert backlight.read(*KBD) == 3  # 23 < 50
        assert backlight.read(*SCREEN) == 200  # 20%

        await send(queue, Active())
        await wait_until(lambda: scheduler.last_pct == 92)

        scheduler.shutdown()
        await task

    asyncio.run(scenario())


def test_offset_commands_trigger_pass(parts, backlight):
    async def scenario():
        scheduler, queue = make_scheduler(parts, 60)
        task = asyncio.ensure_future(scheduler.run())
        await wait_until(lambda: scheduler.passes == 1)

        await send(queue, Increase(10))
        await wait_until(lambda: scheduler.passes == 2)
        await send(queue, Decrease(3))
        await wait_until(lambda: scheduler.passes == 3)

        assert scheduler.control_state.screen_offset == 7
        assert backlight.read(*SCREEN) == 570

        scheduler.shutdown()
        await task

    asyncio.run(scenario())


def test_periodic_tick_runs_passes(parts, sensor):
    async def scenario():
        scheduler, _ = make_scheduler(parts, 0.02)
        task = asyncio.ensure_future(scheduler.run())
        await wait_until(lambda: scheduler.passes >= 5)
        scheduler.shutdown()
        await task

    asyncio.run(scenario())
    # seed + one read per pass
    assert sensor.reads >= 6


def test_no_passes_after_shutdown(parts):
    async def scenario():
        scheduler, _ = make_scheduler(parts, 0.01)
        task = asyncio.ensure_future(scheduler.run())
        await wait_until(lambda: scheduler.passes >= 2)
        scheduler.shutdown()
        await task
        done = scheduler.passes
        await asyncio.sleep(0.05)
        return done, scheduler.passes

    before, after = asyncio.run(scenario())
    assert before == after


def test_sensor_error_ends_loop(parts, sensor):
    async def scenario():
        scheduler, _ = make_scheduler(parts, 0.01)
        task = asyncio.ensure_future(scheduler.run())
        await wait_until(lambda: scheduler.passes >= 2)
        sensor.fail_next()
        with pytest.raises(SensorError):
            await task
        assert scheduler.state is SchedulerState.STOPPED

    asyncio.run(scenario())
