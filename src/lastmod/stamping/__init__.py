"""Timestamp-log update engine."""

from .engine import apply_stamp
from .folders import is_ignored, normalize_folder
from .normalizer import Absent, Scalar, Sequence, classify_property, normalize_log
from .policy import StampResult, decide, seconds_since
from .timestamps import TIMESTAMP_FORMAT, format_timestamp, parse_timestamp

__all__ = [
    "apply_stamp",
    "decide",
    "seconds_since",
    "StampResult",
    "is_ignored",
    "normalize_folder",
    "Absent",
    "Scalar",
    "Sequence",
    "classify_property",
    "normalize_log",
    "TIMESTAMP_FORMAT",
    "format_timestamp",
    "parse_timestamp",
]
