from __future__ import annotations
import logging
import math
from collections import deque
from typing import Optional

from .interfaces import SensorSource
from ..core.errors import SensorError

logger = logging.getLogger(__name__)


MAX_READING = 2_500_000
WINDOW = 10


class MovingAverage:
    """Arithmetic mean of the last ``window`` inputs.

    Accumulates until the window is full, so the first outputs average
    fewer samples.
    """

    def __init__(self, window: int, initial: Optional[float] = None) -> None:
        if window < 1:
            raise ValueError(f"Invalid moving average window: {window}")
        self._buf: deque[float] = deque(maxlen=window)
        if initial is not None:
            self._buf.append(initial)

    def __len__(self) -> int:
        return len(self._buf)

    @property
    def window(self) -> int:
        return self._buf.maxlen or 0

    @property
    def value(self) -> Optional[float]:
        if not self._buf:
            return None
        return sum(self._buf) / len(self._buf)

    def next(self, value: float) -> float:
        self._buf.append(value)
        return sum(self._buf) / len(self._buf)


class SmoothingEngine:
    """Turns raw illuminance samples into a 0-100 ambient percentage.

    Samples are averaged in the log10 domain, which compresses the sensor's
    multi-decade range so a single flash cannot step the output.
    """

    def __init__(
        self,
        sensor: SensorSource,
        window: int = WINDOW,
        max_reading: int = MAX_READING,
    ) -> None:
        if window < 1:
            raise ValueError(f"Invalid moving average window: {window}")
        if max_reading < 10:
            raise ValueError(f"Invalid max reading: {max_reading}")
        self._sensor = sensor
        self._window = window
        max_reading = int(max_reading)
        self._ceiling = math.log10(max_reading)
        # integer log10, exact for powers of ten
        self._max_exponent = len(str(max_reading)) - 1
        self._filter: Optional[MovingAverage] = None
        self._idle = False

    @classmethod
    def init(
        cls,
        sensor: SensorSource,
        window: int = WINDOW,
        max_reading: int = MAX_READING,
    ) -> "SmoothingEngine":
        engine = cls(sensor, window=window, max_reading=max_reading)
        engine.seed()
        return engine

    @property
    def idle(self) -> bool:
        return self._idle

    @property
    def ceiling(self) -> float:
        return self._ceiling

    @property
    def max_exponent(self) -> int:
        return self._max_exponent

    @property
    def smoothed(self) -> Optional[float]:
        return self._filter.value if self._filter else None

    def dim(self) -> None:
        self._idle = True

    def undim(self) -> None:
        self._idle = False

    def seed(self) -> None:
        raw = self._sensor.read()
        if raw <= 0:
            raise SensorError(f"Cannot seed smoothing from non-positive reading {raw}")
        self._filter = MovingAverage(self._window, initial=self._clamped_log(raw))
        logger.debug("Ambient seeded: raw=%d log=%.4f", raw, self._filter.value)

    def _clamped_log(self, raw: int) -> float:
        return min(math.log10(raw), self._ceiling)

    def update(self) -> int:
        if self._filter is None:
            raise RuntimeError("SmoothingEngine used before seed()")

        raw = self._sensor.read()
        # total darkness; log10 is undefined below 1
        val = self._clamped_log(max(raw, 1))
        new_val = self._filter.next(val)
        new_pct = new_val * 100.0 / self._max_exponent
        dimmed = new_pct / 4.0 if self._idle else new_pct

        logger.debug(
            "Ambient - raw:%d, val:%.4f, new_val:%.4f, new_pct:%.4f, dimmed:%.4f",
            raw, val, new_val, new_pct, dimmed,
        )
        # round half away from zero; dimmed is never negative
        pct = math.floor(dimmed + 0.5)
        return max(0, min(100, pct))
