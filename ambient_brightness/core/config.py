import tempfile
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AMBIENT_BRIGHTNESS_", env_file=".env", extra="ignore"
    )

    app_name: str = "Ambient Brightness"

    # Scheduling
    tick_seconds: float = Field(default=5.0, gt=0)

    # Smoothing
    smoothing_window: int = 10  # 10 ticks => ~50s of inertia
    max_reading: int = 2_500_000

    # Sensor mode: "iio" for the real ALS, "sim" for development
    sensor_mode: Literal["iio", "sim"] = "iio"
    iio_root: str = "/sys/bus/iio/devices"
    sensor_name: str = "als"
    sensor_attribute: str = "in_illuminance_raw"
    sim_raw: int = 316228

    # Backlight mode: "logind" (DBus session), "sysfs" (needs root) or "sim"
    backlight_mode: Literal["logind", "sysfs", "sim"] = "logind"
    sysfs_class_root: str = "/sys/class"
    logind_session_path: str = "/org/freedesktop/login1/session/auto"
    sim_max_brightness: int = Field(default=1000, gt=0)

    # Devices
    kbd_subsystem: str = "leds"
    kbd_name: str = "asus::kbd_backlight"
    screen_subsystem: str = "backlight"
    screen_name: str = "intel_backlight"

    # Control channel
    socket_dir: str = Field(default_factory=tempfile.gettempdir)
    socket_name: str = "ambient_brightness.sock"
    channel_poll_seconds: float = Field(default=0.1, gt=0)
    channel_retry_attempts: int = Field(default=3, ge=1)
    channel_retry_delay_seconds: float = Field(default=0.1, ge=0)
    channel_read_timeout_seconds: float = Field(default=1.0, gt=0)

    # Logging
    log_level: str = "WARNING"
    log_file: Optional[str] = None

    @field_validator("smoothing_window")
    @classmethod
    def _check_window(cls, v: int) -> int:
        if v < 1:
            raise ValueError("smoothing_window must be at least 1")
        return v

    @field_validator("max_reading")
    @classmethod
    def _check_max_reading(cls, v: int) -> int:
        # floor(log10(max_reading)) is the percentage denominator
        if v < 10:
            raise ValueError("max_reading must be at least 10")
        return v

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def socket_path(self) -> Path:
        return Path(self.socket_dir) / self.socket_name


settings = Settings()
