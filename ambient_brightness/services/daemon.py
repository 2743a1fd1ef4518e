from __future__ import annotations
import asyncio
import logging
import threading
from typing import Optional

from ..domain.mapping import KeyboardMapper, ScreenMapper
from ..domain.smoothing import SmoothingEngine
from .control_channel import CommandQueue, ControlServer
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


class Daemon:
    """Runs the control channel thread and the scheduler as one unit.

    Whichever side finishes first stops the other; the channel thread is
    always joined before run() returns, and the first failure is re-raised.
    """

    def __init__(
        self,
        server: ControlServer,
        engine: SmoothingEngine,
        keyboard: KeyboardMapper,
        screen: ScreenMapper,
        tick_seconds: float = 5.0,
    ) -> None:
        self._server = server
        self._engine = engine
        self._keyboard = keyboard
        self._screen = screen
        self._tick = tick_seconds

        self._channel_stop = threading.Event()
        self._shutdown_requested = False
        self.scheduler: Optional[Scheduler] = None

    def request_shutdown(self) -> None:
        """Fire the shutdown signal once. Must run on the event loop thread."""
        if self._shutdown_requested:
            return
        self._shutdown_requested = True
        logger.info("Shutdown requested")
        self._channel_stop.set()
        if self.scheduler is not None:
            self.scheduler.shutdown()

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        commands = CommandQueue(loop)
        self.scheduler = Scheduler(
            self._engine, self._keyboard, self._screen, commands, tick_seconds=self._tick
        )
        if self._shutdown_requested:
            self.scheduler.shutdown()

        channel = asyncio.ensure_future(
            asyncio.to_thread(self._server.serve, commands, self._channel_stop)
        )
        scheduler = asyncio.ensure_future(self.scheduler.run())

        done, _ = await asyncio.wait({channel, scheduler}, return_when=asyncio.FIRST_COMPLETED)
        try:
            if scheduler not in done:
                if not self._shutdown_requested:
                    logger.error("Control channel stopped, stopping scheduler")
                self.scheduler.shutdown()
        finally:
            self._channel_stop.set()
            logger.info("Waiting for control channel thread to stop")
            await asyncio.wait({channel, scheduler})

        # the side that finished first holds the root cause
        first, second = (scheduler, channel) if scheduler in done else (channel, scheduler)
        first.result()
        second.result()
        logger.info("Daemon stopped")
