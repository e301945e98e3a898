"""Configuration models describing lastmod settings."""

from __future__ import annotations

from typing import Any, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lastmod.stamping.folders import normalize_folder

MIN_UPDATE_INTERVAL = 60
MAX_UPDATE_INTERVAL = 84_600


class LastmodBaseModel(BaseModel):
    """Shared configuration for lastmod Pydantic models."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


def clamp_interval(value: Any) -> int:
    """Coerce ``value`` into the supported update-interval range.

    Non-numeric input falls back to the minimum; out-of-range input is clamped.

    Args:
        value: Raw interval in seconds.

    Returns:
        int: Interval within ``[MIN_UPDATE_INTERVAL, MAX_UPDATE_INTERVAL]``.
    """
    if isinstance(value, bool):
        return MIN_UPDATE_INTERVAL
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return MIN_UPDATE_INTERVAL
    if seconds != seconds or seconds < MIN_UPDATE_INTERVAL:
        return MIN_UPDATE_INTERVAL
    if seconds > MAX_UPDATE_INTERVAL:
        return MAX_UPDATE_INTERVAL
    return int(seconds)


class StampingSettings(LastmodBaseModel):
    """Policy controlling how the ``last-modified`` log evolves.

    Attributes:
        collapse_per_day: Keep at most one entry per calendar day; disables the interval.
        min_interval_seconds: Minimum gap between appended entries in interval mode.
        ignored_folders: Vault-relative folders whose notes are never stamped.
        property_name: Front matter key holding the log.
        legacy_scalar: How a pre-existing single timestamp value is treated.
    """

    collapse_per_day: bool = True
    min_interval_seconds: int = MIN_UPDATE_INTERVAL
    ignored_folders: List[str] = Field(default_factory=list)
    property_name: str = "last-modified"
    legacy_scalar: Literal["discard", "wrap"] = "discard"

    @field_validator("min_interval_seconds", mode="before")
    @classmethod
    def _clamp_interval(cls, value: Any) -> int:
        return clamp_interval(value)

    @field_validator("ignored_folders", mode="before")
    @classmethod
    def _normalize_folders(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        folders: list[str] = []
        for entry in value:
            folder = normalize_folder(str(entry))
            if folder and folder not in folders:
                folders.append(folder)
        return folders


class WatchSettings(LastmodBaseModel):
    """Options for the filesystem watcher.

    Attributes:
        debounce_seconds: Quiet period before a batch of changed notes is stamped.
        extensions: File suffixes treated as notes.
        lock_timeout_seconds: Maximum wait for a note's write lock.
    """

    debounce_seconds: float = 1.0
    extensions: List[str] = Field(default_factory=lambda: [".md"])
    lock_timeout_seconds: float = 10.0


class LoggingSettings(LastmodBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    max_size_mb: int = 10
    backup_count: int = 5


class CLIOptions(LastmodBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class LastmodConfig(LastmodBaseModel):
    """Top-level configuration struct for lastmod.

    Attributes:
        stamping: Timestamp-log policy.
        watch: Watcher settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    stamping: StampingSettings = Field(default_factory=StampingSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "MIN_UPDATE_INTERVAL",
    "MAX_UPDATE_INTERVAL",
    "LastmodBaseModel",
    "clamp_interval",
    "StampingSettings",
    "WatchSettings",
    "LoggingSettings",
    "CLIOptions",
    "LastmodConfig",
]
