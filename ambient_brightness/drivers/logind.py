from __future__ import annotations

import logging

import gi

gi.require_version("Gio", "2.0")
gi.require_version("GLib", "2.0")

from gi.repository import Gio, GLib  # type: ignore  # noqa: E402

from ..core.errors import DeviceError  # noqa: E402
from .sysfs import SysfsBacklightService  # noqa: E402

logger = logging.getLogger(__name__)


LOGIND_BUS_NAME = "org.freedesktop.login1"
LOGIND_SESSION_IFACE = "org.freedesktop.login1.Session"


class LogindBacklightService(SysfsBacklightService):
    """Commits brightness through logind's Session.SetBrightness.

    logind lets the user owning the active session change backlight and LED
    brightness without root. Current values are still read from sysfs.
    """

    def __init__(
        self,
        root: str = "/sys/class",
        session_path: str = "/org/freedesktop/login1/session/auto",
    ) -> None:
        super().__init__(root)
        self._session_path = session_path
        try:
            self._bus = Gio.bus_get_sync(Gio.BusType.SYSTEM, None)
        except GLib.Error as e:
            raise DeviceError(f"Connecting to the system bus failed: {e.message}") from e
        logger.info("logind session %s", session_path)

    def set(self, subsystem: str, name: str, level: int) -> None:
        try:
            self._bus.call_sync(
                LOGIND_BUS_NAME,
                self._session_path,
                LOGIND_SESSION_IFACE,
                "SetBrightness",
                GLib.Variant("(ssu)", (subsystem, name, int(level))),
                None,
                Gio.DBusCallFlags.NONE,
                -1,
                None,
            )
        except GLib.Error as e:
            raise DeviceError(
                f"SetBrightness({subsystem}, {name}, {level}) failed: {e.message}"
            ) from e
        logger.info("logind %s/%s brightness=%d", subsystem, name, level)
