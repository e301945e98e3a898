"""Host integration that stamps notes through the engine."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from lastmod.config.models import StampingSettings
from lastmod.stamping import apply_stamp, is_ignored, normalize_log

from .errors import NoteError
from .models import StampBatch, StampOutcome
from .repository import NoteRepository

LOGGER = logging.getLogger(__name__)


class Stamper:
    """Apply the stamping policy to notes and persist the resulting log."""

    def __init__(
        self,
        repository: NoteRepository,
        settings: StampingSettings,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.repository = repository
        self.settings = settings
        self.clock = clock

    def stamp(
        self,
        path: Path | str,
        *,
        now: Optional[datetime] = None,
        dry_run: bool = False,
    ) -> StampOutcome:
        """Update the log of one note inside a single read-modify-write transaction.

        Args:
            path: Note path, absolute or vault-relative.
            now: Instant to record; defaults to the configured clock.
            dry_run: Compute the outcome without writing the note.

        Returns:
            StampOutcome: Description of what changed.

        Raises:
            NoteError: If the note cannot be read, locked, or written.
        """
        relative = self.repository.relative_path(path)
        if is_ignored(relative, self.settings.ignored_folders):
            LOGGER.debug("Skipping %s: inside an ignored folder", relative)
            return StampOutcome(path=relative, action="ignored", dry_run=dry_run)

        instant = now if now is not None else self.clock()
        name = self.settings.property_name
        with self.repository.transaction(path) as session:
            raw = session.front_matter.get(name)
            result = apply_stamp(relative, raw, instant, self.settings)
            write = result.mutated and not dry_run
            if write:
                session.front_matter[name] = list(result.log)
                session.commit()

        outcome = StampOutcome(
            path=relative,
            action=result.action,
            previous=normalize_log(raw, legacy="wrap"),
            log=result.log,
            written=write,
            dry_run=dry_run,
            mtime_ns=session.mtime_ns,
        )
        if write:
            LOGGER.info("Stamped %s (%s)", relative, result.action)
        return outcome

    def stamp_many(
        self,
        paths: Iterable[Path | str],
        *,
        now: Optional[datetime] = None,
        dry_run: bool = False,
    ) -> StampBatch:
        """Stamp several notes, collecting per-note errors instead of raising.

        Args:
            paths: Notes to stamp.
            now: Instant shared by every note; defaults to the clock per note.
            dry_run: Compute outcomes without writing.

        Returns:
            StampBatch: Outcomes and error messages.
        """
        batch = StampBatch()
        for path in paths:
            try:
                batch.outcomes.append(self.stamp(path, now=now, dry_run=dry_run))
            except NoteError as exc:
                LOGGER.warning("Failed to stamp %s: %s", path, exc)
                batch.errors.append(f"{path}: {exc}")
        return batch


__all__ = ["Stamper"]
