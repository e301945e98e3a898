"""Result models describing stamping outcomes."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class StampOutcome(BaseModel):
    """Result of stamping a single note.

    Attributes:
        path: Vault-relative POSIX path of the note.
        action: Branch taken by the engine (``append``, ``overwrite``, ``skip``, ``ignored``).
        previous: Log stored before the update.
        log: Log after the update; equals ``previous`` when nothing changed.
        written: Whether the note was rewritten on disk.
        dry_run: Whether writing was suppressed.
        mtime_ns: Modification time of the note after writing, when written.
    """

    path: str
    action: Literal["append", "overwrite", "skip", "ignored"]
    previous: List[str] = Field(default_factory=list)
    log: List[str] = Field(default_factory=list)
    written: bool = False
    dry_run: bool = False
    mtime_ns: Optional[int] = None


class StampBatch(BaseModel):
    """Aggregated outcomes for several notes."""

    outcomes: List[StampOutcome] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    def counts(self) -> dict[str, int]:
        """Return per-action totals plus written and error counts."""
        totals = {"appended": 0, "overwritten": 0, "skipped": 0, "ignored": 0}
        keys = {
            "append": "appended",
            "overwrite": "overwritten",
            "skip": "skipped",
            "ignored": "ignored",
        }
        for outcome in self.outcomes:
            totals[keys[outcome.action]] += 1
        totals["written"] = sum(1 for outcome in self.outcomes if outcome.written)
        totals["errors"] = len(self.errors)
        return totals


__all__ = ["StampOutcome", "StampBatch"]
