"""Decision rules that turn an existing log into its updated form."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Literal, Sequence

from .timestamps import format_timestamp, parse_timestamp

if TYPE_CHECKING:
    from lastmod.config.models import StampingSettings

StampAction = Literal["append", "overwrite", "skip", "ignored"]


@dataclass(frozen=True, slots=True)
class StampResult:
    """Outcome of a single stamping decision.

    Attributes:
        log: Log to store for the note; a new list when ``mutated`` is true.
        mutated: Whether the caller has to write ``log`` back to the note.
        action: Branch that produced the result.
    """

    log: list[str] = field(default_factory=list)
    mutated: bool = False
    action: StampAction = "skip"


def seconds_since(previous: str | None, now: datetime) -> float:
    """Return the seconds elapsed since ``previous``, or infinity when unknown.

    Args:
        previous: Last log entry, if any.
        now: Current wall-clock instant.

    Returns:
        float: Elapsed seconds; ``math.inf`` when ``previous`` is missing or invalid.
    """
    instant = parse_timestamp(previous) if previous is not None else None
    if instant is None:
        return math.inf
    return (now - instant).total_seconds()


def decide(log: Sequence[str], now: datetime, settings: "StampingSettings") -> StampResult:
    """Apply the collapse-per-day or interval rule to ``log``.

    An entry that fails strict parsing is treated as infinitely old, so a
    corrupted log heals on the next modification instead of getting stuck.

    Args:
        log: Existing entries, oldest first. Never mutated.
        now: Current wall-clock instant.
        settings: Active stamping policy.

    Returns:
        StampResult: Updated log together with the mutation flag.
    """
    entries = list(log)
    last = entries[-1] if entries else None
    stamp = format_timestamp(now)

    if settings.collapse_per_day:
        previous = parse_timestamp(last) if last is not None else None
        if previous is not None and previous.date() == now.date():
            entries[-1] = stamp
            return StampResult(log=entries, mutated=True, action="overwrite")
        entries.append(stamp)
        return StampResult(log=entries, mutated=True, action="append")

    if seconds_since(last, now) > settings.min_interval_seconds:
        entries.append(stamp)
        return StampResult(log=entries, mutated=True, action="append")
    return StampResult(log=entries, mutated=False, action="skip")


__all__ = ["StampAction", "StampResult", "decide", "seconds_since"]
