from __future__ import annotations

import logging
from pathlib import Path

from ..core.errors import SensorError

logger = logging.getLogger(__name__)


class IioIlluminanceSensor:
    """Ambient light sensor exposed by the kernel IIO subsystem.

    The device is located once by its ``name`` attribute; every read()
    re-reads the raw channel attribute.
    """

    def __init__(
        self,
        root: str = "/sys/bus/iio/devices",
        device_name: str = "als",
        attribute: str = "in_illuminance_raw",
    ) -> None:
        self._device_name = device_name
        self._path = self._find_device(Path(root), device_name) / attribute
        logger.info("Using IIO sensor %s at %s", device_name, self._path)

    @property
    def sensor_id(self) -> str:
        return f"iio:{self._device_name}"

    @property
    def path(self) -> Path:
        return self._path

    @staticmethod
    def _find_device(root: Path, device_name: str) -> Path:
        for dev in sorted(root.glob("iio:device*")):
            name_file = dev / "name"
            try:
                name = name_file.read_text().strip()
            except OSError:
                continue
            if name == device_name:
                return dev
        raise SensorError(f"Couldn't find IIO device '{device_name}' under {root}")

    def read(self) -> int:
        try:
            raw = self._path.read_text().strip()
            return int(raw)
        except (OSError, ValueError) as e:
            raise SensorError(f"Reading {self._path} failed: {e}") from e
