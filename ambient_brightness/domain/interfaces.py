from __future__ import annotations
from typing import Protocol, runtime_checkable


@runtime_checkable
class SensorSource(Protocol):
    sensor_id: str

    def read(self) -> int:
        """Return one raw illuminance sample. Raise SensorError on failure."""
        ...


@runtime_checkable
class BacklightService(Protocol):
    def read(self, subsystem: str, name: str, attribute: str = "brightness") -> int:
        ...

    def set(self, subsystem: str, name: str, level: int) -> None:
        ...
