class AmbientBrightnessError(Exception):
    """Base class for every fatal daemon error."""


class SensorError(AmbientBrightnessError):
    """Reading the illuminance sensor failed."""


class DeviceError(AmbientBrightnessError):
    """Reading or writing a backlight attribute failed."""


class ChannelIOError(AmbientBrightnessError):
    """Non-transient I/O failure on the control socket."""
