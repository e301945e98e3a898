"""Logging configuration for long-running commands."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from lastmod.config.models import LoggingSettings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: LoggingSettings, log_dir: Path) -> Path:
    """Attach a rotating file handler to the ``lastmod`` logger.

    Args:
        settings: Logging configuration section.
        log_dir: Directory receiving ``lastmod.log``.

    Returns:
        Path: Location of the active log file.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "lastmod.log"
    logger = logging.getLogger("lastmod")
    level = logging.getLevelName(settings.level.upper())
    logger.setLevel(level if isinstance(level, int) else logging.WARNING)

    for handler in list(logger.handlers):
        if isinstance(handler, RotatingFileHandler) and Path(handler.baseFilename) == log_path:
            return log_path

    handler = RotatingFileHandler(
        log_path,
        maxBytes=max(1, settings.max_size_mb) * 1024 * 1024,
        backupCount=max(0, settings.backup_count),
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    return log_path


__all__ = ["LOG_FORMAT", "configure_logging"]
