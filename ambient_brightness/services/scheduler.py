from __future__ import annotations
import asyncio
import logging
from typing import Optional

from ..domain.mapping import KeyboardMapper, ScreenMapper
from ..domain.models import (
    Active,
    Command,
    ControlState,
    Decrease,
    Idle,
    Increase,
    SchedulerState,
)
from ..domain.smoothing import SmoothingEngine
from .control_channel import CommandQueue


logger = logging.getLogger(__name__)


class Scheduler:
    """Single owner of the adjustment state.

    Multiplexes the shutdown event, command arrivals and a fixed-rate tick;
    every command and every tick is followed by one update pass. Errors from
    any pass end the loop.
    """

    def __init__(
        self,
        engine: SmoothingEngine,
        keyboard: KeyboardMapper,
        screen: ScreenMapper,
        commands: CommandQueue,
        tick_seconds: float = 5.0,
    ) -> None:
        self._engine = engine
        self._keyboard = keyboard
        self._screen = screen
        self._commands = commands
        self._tick = tick_seconds

        self._stop = asyncio.Event()
        self.state = SchedulerState.RUNNING
        self.passes = 0
        self.last_pct: Optional[int] = None

    @property
    def control_state(self) -> ControlState:
        return ControlState(idle=self._engine.idle, screen_offset=self._screen.offset)

    def shutdown(self) -> None:
        self._stop.set()

    def update(self) -> None:
        pct = self._engine.update()
        logger.debug("Update pass: pct=%d state=%s", pct, self.control_state)
        self._keyboard.adjust(pct)
        self._screen.adjust(pct)
        self.passes += 1
        self.last_pct = pct

    def apply(self, command: Command) -> None:
        if isinstance(command, Idle):
            self._engine.dim()
        elif isinstance(command, Active):
            self._engine.undim()
        elif isinstance(command, Increase):
            self._screen.increase(command.amount)
        elif isinstance(command, Decrease):
            self._screen.decrease(command.amount)
        else:
            raise TypeError(f"Unknown command: {command!r}")
        logger.info("Applied %s -> %s", command, self.control_state)

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        logger.info("Scheduler started (tick_seconds=%s)", self._tick)

        stop_waiter = asyncio.ensure_future(self._stop.wait())
        receiver: Optional[asyncio.Future] = None
        try:
            self.update()
            next_tick = loop.time() + self._tick
            receiver = asyncio.ensure_future(self._commands.receive())

            while True:
                timeout = max(0.0, next_tick - loop.time())
                done, _ = await asyncio.wait(
                    {stop_waiter, receiver},
                    timeout=timeout,
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if stop_waiter in done:
                    self.state = SchedulerState.DRAINING
                    logger.info("Scheduler draining")
                    break

                if receiver in done:
                    command = receiver.result()
                    receiver = asyncio.ensure_future(self._commands.receive())
                    self.apply(command)
                    self.update()
                    continue

                self.update()
                next_tick += self._tick
                now = loop.time()
                if next_tick <= now:
                    # a slow pass swallowed whole ticks; don't replay them
                    next_tick = now + self._tick
        finally:
            stop_waiter.cancel()
            if receiver is not None:
                receiver.cancel()
            self.state = SchedulerState.STOPPED
            logger.info("Scheduler stopped after %d passes", self.passes)
