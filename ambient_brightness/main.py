"""
Ambient brightness daemon.

Reads the laptop's ambient light sensor, smooths it, and sets keyboard and
screen backlight levels. A running daemon accepts commands on a local Unix
socket.

Usage:
    ambient-brightness --server           # run the daemon
    ambient-brightness --dim              # ask the daemon to dim (idle)
    ambient-brightness                    # ask the daemon to undim (active)
    ambient-brightness --increase 10      # raise the screen offset
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from typing import Optional, Sequence

from .core.config import Settings, settings
from .core.errors import AmbientBrightnessError
from .core.log import configure_logging
from .domain.interfaces import BacklightService, SensorSource
from .domain.mapping import KeyboardMapper, ScreenMapper
from .domain.models import Active, Command, Decrease, Idle, Increase
from .domain.smoothing import SmoothingEngine
from .drivers.backlight_sim import SimulatedBacklightService
from .drivers.sysfs import SysfsBacklightService
from .sensors.iio_sensor import IioIlluminanceSensor
from .sensors.simulated_sensor import SimulatedIlluminanceSensor
from .services.control_channel import ControlServer
from .services.control_client import ControlClient
from .services.daemon import Daemon


logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def build_sensor(cfg: Settings) -> SensorSource:
    if cfg.sensor_mode == "sim":
        return SimulatedIlluminanceSensor(raw=cfg.sim_raw)
    return IioIlluminanceSensor(
        root=cfg.iio_root,
        device_name=cfg.sensor_name,
        attribute=cfg.sensor_attribute,
    )


def build_backlight(cfg: Settings) -> BacklightService:
    if cfg.backlight_mode == "sim":
        service = SimulatedBacklightService()
        service.add_device(cfg.kbd_subsystem, cfg.kbd_name, brightness=0, max_brightness=3)
        service.add_device(
            cfg.screen_subsystem, cfg.screen_name,
            brightness=0, max_brightness=cfg.sim_max_brightness,
        )
        return service

    if cfg.backlight_mode == "sysfs":
        return SysfsBacklightService(root=cfg.sysfs_class_root)

    # PyGObject is only needed when talking to logind
    from .drivers.logind import LogindBacklightService
    return LogindBacklightService(
        root=cfg.sysfs_class_root, session_path=cfg.logind_session_path
    )


def build_daemon(cfg: Settings) -> Daemon:
    server = ControlServer.bind(
        cfg.socket_path,
        poll_seconds=cfg.channel_poll_seconds,
        retries=cfg.channel_retry_attempts,
        retry_delay=cfg.channel_retry_delay_seconds,
        read_timeout=cfg.channel_read_timeout_seconds,
    )
    try:
        service = build_backlight(cfg)
        sensor = build_sensor(cfg)
        logger.info("Using sensor %s", sensor.sensor_id)
        engine = SmoothingEngine.init(
            sensor, window=cfg.smoothing_window, max_reading=cfg.max_reading
        )
        keyboard = KeyboardMapper(service, cfg.kbd_subsystem, cfg.kbd_name)
        screen = ScreenMapper(service, cfg.screen_subsystem, cfg.screen_name)
    except BaseException:
        server.close()
        raise

    return Daemon(server, engine, keyboard, screen, tick_seconds=cfg.tick_seconds)


async def run_server(cfg: Settings) -> None:
    logger.info("Starting %s (sensor=%s backlight=%s)", cfg.app_name, cfg.sensor_mode, cfg.backlight_mode)
    daemon = build_daemon(cfg)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, daemon.request_shutdown)
    try:
        await daemon.run()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
    logger.info("Shutdown complete")


def send_command(cfg: Settings, command: Command) -> None:
    with ControlClient(cfg.socket_path) as client:
        client.send(command)


def command_from_args(args: argparse.Namespace) -> Command:
    if args.dim:
        return Idle()
    if args.increase is not None:
        return Increase(args.increase)
    if args.decrease is not None:
        return Decrease(args.decrease)
    return Active()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="ambient-brightness",
        description="Adaptive keyboard and screen backlight from the ambient light sensor",
    )

    p.add_argument("-s", "--server", action="store_true", help="Run the daemon")

    client = p.add_mutually_exclusive_group()
    client.add_argument("-d", "--dim", action="store_true", help="Tell the daemon the user is idle")
    client.add_argument("--increase", type=int, metavar="N", help="Raise the screen offset by N percent")
    client.add_argument("--decrease", type=int, metavar="N", help="Lower the screen offset by N percent")

    p.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = p.parse_args(argv)
    if args.server and (args.dim or args.increase is not None or args.decrease is not None):
        p.error("--server cannot be combined with client options")
    for amount in (args.increase, args.decrease):
        if amount is not None and not -128 <= amount <= 127:
            p.error(f"amount {amount} must be between -128 and 127")
    return args


def main(argv: Optional[Sequence[str]] = None, cfg: Optional[Settings] = None) -> int:
    args = parse_args(argv)
    cfg = cfg or settings

    configure_logging("DEBUG" if args.verbose else cfg.log_level, cfg.log_file)

    try:
        if args.server:
            asyncio.run(run_server(cfg))
        else:
            send_command(cfg, command_from_args(args))
            logger.info("Done")
    except AmbientBrightnessError as e:
        logger.exception("Fatal: %s", e)
        return EXIT_FAILURE
    except OSError as e:
        logger.error("Fatal: %s", e)
        return EXIT_FAILURE

    return EXIT_SUCCESS
