from __future__ import annotations

from threading import Lock

from ..core.errors import SensorError


class SimulatedIlluminanceSensor:
    def __init__(self, raw: int = 316228, sensor_id: str = "als_sim"):
        self._sensor_id = sensor_id
        self._lock = Lock()
        self._raw = int(raw)
        self._fail_next = False
        self.reads = 0

    @property
    def sensor_id(self) -> str:
        return self._sensor_id

    def set_raw(self, raw: int) -> None:
        with self._lock:
            self._raw = int(raw)

    def fail_next(self) -> None:
        """Make the next read() raise, as an unplugged sensor would."""
        with self._lock:
            self._fail_next = True

    def read(self) -> int:
        with self._lock:
            if self._fail_next:
                self._fail_next = False
                raise SensorError("Simulated sensor read failure")
            self.reads += 1
            return self._raw
