"""Shared fixtures: simulated hardware, short socket paths, a background loop."""

import asyncio
import shutil
import tempfile
import threading
from pathlib import Path

import pytest

from ambient_brightness.drivers.backlight_sim import SimulatedBacklightService
from ambient_brightness.sensors.simulated_sensor import SimulatedIlluminanceSensor

KBD = ("leds", "asus::kbd_backlight")
SCREEN = ("backlight", "intel_backlight")

# log10(316228) ~= 5.5 -> 5.5 / 6 * 100 -> 92%
STEADY_RAW = 316228


async def wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def backlight():
    """Keyboard at level 0 (max 3), screen at 0 of 1000."""
    service = SimulatedBacklightService()
    service.add_device(*KBD, brightness=0, max_brightness=3)
    service.add_device(*SCREEN, brightness=0, max_brightness=1000)
    return service


@pytest.fixture
def sensor():
    return SimulatedIlluminanceSensor(raw=STEADY_RAW)


@pytest.fixture
def sock_path():
    """Unix socket paths are limited to ~108 bytes, so stay out of tmp_path."""
    d = tempfile.mkdtemp(prefix="ab")
    yield Path(d) / "ctl.sock"
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def loop_thread():
    """An event loop running on its own thread, standing in for the scheduler side."""
    loop = asyncio.new_event_loop()
    t = threading.Thread(target=loop.run_forever, daemon=True)
    t.start()
    yield loop
    loop.call_soon_threadsafe(loop.stop)
    t.join(timeout=2)
    loop.close()
