from __future__ import annotations
import logging
from typing import Dict, List, Optional, Tuple

from ..core.errors import DeviceError

logger = logging.getLogger(__name__)


Key = Tuple[str, str, str]


class SimulatedBacklightService:
    """In-memory backlight attributes; every set() is recorded in ``writes``."""

    def __init__(self, devices: Optional[Dict[Key, int]] = None) -> None:
        self._attrs: Dict[Key, int] = dict(devices or {})
        self.writes: List[Tuple[str, str, int]] = []

    def add_device(self, subsystem: str, name: str, brightness: int = 0, max_brightness: Optional[int] = None) -> None:
        self._attrs[(subsystem, name, "brightness")] = brightness
        if max_brightness is not None:
            self._attrs[(subsystem, name, "max_brightness")] = max_brightness

    def read(self, subsystem: str, name: str, attribute: str = "brightness") -> int:
        try:
            return self._attrs[(subsystem, name, attribute)]
        except KeyError:
            raise DeviceError(f"No simulated attribute {subsystem}/{name}/{attribute}") from None

    def set(self, subsystem: str, name: str, level: int) -> None:
        key = (subsystem, name, "brightness")
        if key not in self._attrs:
            raise DeviceError(f"No simulated device {subsystem}/{name}")
        self._attrs[key] = int(level)
        self.writes.append((subsystem, name, int(level)))
        logger.info("SIM %s/%s brightness=%d", subsystem, name, level)
