"""Strict codec for ``YYYY-MM-DDTHH:mm:ss`` timestamps."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
_TIMESTAMP_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}", re.ASCII)


def format_timestamp(instant: datetime) -> str:
    """Render a wall-clock instant as a log entry.

    Args:
        instant: Naive wall-clock instant; sub-second precision is dropped.

    Returns:
        str: Zero-padded ``YYYY-MM-DDTHH:mm:ss`` string without an offset.
    """
    return (
        f"{instant.year:04d}-{instant.month:02d}-{instant.day:02d}"
        f"T{instant.hour:02d}:{instant.minute:02d}:{instant.second:02d}"
    )


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a log entry, rejecting anything that deviates from the pattern.

    Only strings are entries; other values, including ``datetime`` objects, are
    invalid.

    Args:
        value: Raw entry taken from the front matter.

    Returns:
        Optional[datetime]: Parsed instant, or ``None`` when the entry is invalid.
    """
    if not isinstance(value, str) or _TIMESTAMP_PATTERN.fullmatch(value) is None:
        return None
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        return None


__all__ = ["TIMESTAMP_FORMAT", "format_timestamp", "parse_timestamp"]
