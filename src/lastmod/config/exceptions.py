"""Errors raised by the configuration layer."""

from __future__ import annotations

from typing import Optional


class ConfigError(Exception):
    """A configuration file, override, or value could not be used.

    Attributes:
        key: Dotted name of the offending setting, when one is known.
    """

    def __init__(self, message: str, *, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key
