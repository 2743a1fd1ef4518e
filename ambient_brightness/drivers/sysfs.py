from __future__ import annotations

import logging
from pathlib import Path

from ..core.errors import DeviceError

logger = logging.getLogger(__name__)


def read_value(path: Path) -> int:
    """Read a trimmed integer from a sysfs attribute."""
    try:
        return int(Path(path).read_text().strip())
    except (OSError, ValueError) as e:
        raise DeviceError(f"Reading {path} failed: {e}") from e


class SysfsBacklightService:
    """Reads and writes /sys/class/<subsystem>/<name>/<attribute> directly.

    Writing requires root (or a udev rule granting access).
    """

    def __init__(self, root: str = "/sys/class") -> None:
        self._root = Path(root)

    def attribute_path(self, subsystem: str, name: str, attribute: str = "brightness") -> Path:
        return self._root / subsystem / name / attribute

    def read(self, subsystem: str, name: str, attribute: str = "brightness") -> int:
        return read_value(self.attribute_path(subsystem, name, attribute))

    def set(self, subsystem: str, name: str, level: int) -> None:
        path = self.attribute_path(subsystem, name)
        try:
            path.write_text(str(int(level)))
        except OSError as e:
            raise DeviceError(f"Writing {level} to {path} failed: {e}") from e
        logger.info("sysfs %s/%s brightness=%d", subsystem, name, level)
