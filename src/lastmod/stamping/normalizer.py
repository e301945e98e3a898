"""Coerce raw front matter values into an ordered timestamp log."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Union

LegacyScalarPolicy = Literal["discard", "wrap"]


@dataclass(frozen=True, slots=True)
class Absent:
    """The property is missing or explicitly null."""


@dataclass(frozen=True, slots=True)
class Scalar:
    """The property holds a single non-sequence value, usually a legacy timestamp.

    Attributes:
        value: Raw value as loaded from YAML.
    """

    value: Any


@dataclass(frozen=True, slots=True)
class Sequence:
    """The property holds an ordered list of entries.

    Attributes:
        items: Entries in insertion order; the last one is the most recent.
    """

    items: tuple[Any, ...]


PropertyValue = Union[Absent, Scalar, Sequence]


def classify_property(raw: Any) -> PropertyValue:
    """Tag a raw property value as absent, scalar, or sequence.

    Args:
        raw: Value loaded from the note's front matter (``None`` when missing).

    Returns:
        PropertyValue: Tagged representation of ``raw``.
    """
    if raw is None:
        return Absent()
    if isinstance(raw, (list, tuple)):
        return Sequence(tuple(raw))
    return Scalar(raw)


def _entry_text(item: Any) -> str:
    return item if isinstance(item, str) else str(item)


def normalize_log(raw: Any, *, legacy: LegacyScalarPolicy = "discard") -> list[str]:
    """Return the timestamp log stored in ``raw`` as a fresh list of strings.

    Args:
        raw: Raw property value or an already classified ``PropertyValue``.
        legacy: ``"discard"`` drops a scalar value, ``"wrap"`` keeps it as the
            single entry of a new log.

    Returns:
        list[str]: Ordered log entries; empty when nothing usable was stored.
    """
    value = raw if isinstance(raw, (Absent, Scalar, Sequence)) else classify_property(raw)
    match value:
        case Sequence(items=items):
            return [_entry_text(item) for item in items]
        case Scalar(value=str() as scalar) if legacy == "wrap":
            return [scalar]
        case _:
            return []


__all__ = [
    "Absent",
    "Scalar",
    "Sequence",
    "PropertyValue",
    "LegacyScalarPolicy",
    "classify_property",
    "normalize_log",
]
