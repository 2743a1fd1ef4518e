from __future__ import annotations
import logging
from typing import Sequence, Tuple

from .interfaces import BacklightService

logger = logging.getLogger(__name__)


StepTable = Sequence[Tuple[int, int]]

# (upper_bound, level) pairs, first match wins. The LED driver treats 0 as
# its brightest setting, so dark rooms map to 3.
KBD_TABLE: StepTable = (
    (50, 3),
    (60, 2),
    (80, 1),
)
KBD_DEFAULT = 0

# (upper_bound, target percent of max_brightness)
SCREEN_TABLE: StepTable = (
    (1, 5),
    (10, 10),
    (20, 15),
    (30, 20),
    (40, 25),
    (50, 30),
    (60, 35),
    (70, 40),
    (80, 45),
)
SCREEN_DEFAULT = 50

# Increase and Decrease both add the offset's magnitude. Set to False to
# apply the signed offset instead.
OFFSET_MAGNITUDE_ONLY = True


def lookup(table: StepTable, value: int, default: int) -> int:
    for upper, result in table:
        if value < upper:
            return result
    return default


def kbd_level(pct: int) -> int:
    return lookup(KBD_TABLE, pct, KBD_DEFAULT)


def screen_target_pct(pct: int) -> int:
    return lookup(SCREEN_TABLE, pct, SCREEN_DEFAULT)


class KeyboardMapper:
    def __init__(
        self,
        service: BacklightService,
        subsystem: str = "leds",
        name: str = "asus::kbd_backlight",
    ) -> None:
        self._service = service
        self.subsystem = subsystem
        self.name = name

    def adjust(self, pct: int) -> None:
        new_level = kbd_level(pct)
        cur_level = self._service.read(self.subsystem, self.name)

        logger.debug("KBD: pct:%d, new:%d, cur:%d", pct, new_level, cur_level)
        if cur_level != new_level:
            logger.info(
                "Adjusting KBD backlight: pct:%d old:%d new:%d",
                pct, cur_level, new_level,
            )
            self._service.set(self.subsystem, self.name, new_level)


class ScreenMapper:
    def __init__(
        self,
        service: BacklightService,
        subsystem: str = "backlight",
        name: str = "intel_backlight",
    ) -> None:
        self._service = service
        self.subsystem = subsystem
        self.name = name
        self.offset = 0
        # static capability, read once
        self.max_brightness = service.read(subsystem, name, "max_brightness")

    def increase(self, amount: int) -> None:
        self.offset += amount

    def decrease(self, amount: int) -> None:
        self.offset -= amount

    def target_pct(self, pct: int) -> int:
        base = screen_target_pct(pct)
        if OFFSET_MAGNITUDE_ONLY:
            return base + abs(self.offset)
        return max(0, base + self.offset)

    def pct_to_level(self, pct: int) -> int:
        return min(pct * self.max_brightness // 100, self.max_brightness)

    def adjust(self, pct: int) -> None:
        new_pct = self.target_pct(pct)
        new_level = self.pct_to_level(new_pct)
        cur_level = self._service.read(self.subsystem, self.name)

        logger.debug(
            "Screen: pct:%d, offset:%d, target:%d%%, new:%d, cur:%d",
            pct, self.offset, new_pct, new_level, cur_level,
        )
        if cur_level != new_level:
            logger.info(
                "Adjusting screen backlight: pct:%d old:%d new:%d%%->%d",
                pct, cur_level, new_pct, new_level,
            )
            self._service.set(self.subsystem, self.name, new_level)
