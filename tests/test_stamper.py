"""Tests for stamping notes on disk."""

from __future__ import annotations

import os
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator

import pytest

from lastmod.config.models import StampingSettings
from lastmod.notes import NoteRepository, NoteSession, Stamper, split_front_matter

MakeNote = Callable[[str, str], Path]


def _log(path: Path) -> list:
    data, _, _ = split_front_matter(path.read_text(encoding="utf-8"))
    return data.get("last-modified")


def test_stamp_writes_first_entry(vault: Path, make_note: MakeNote) -> None:
    note = make_note("note.md", "---\ntitle: Note\n---\nBody\n")
    stamper = Stamper(NoteRepository(vault), StampingSettings())

    outcome = stamper.stamp(note, now=datetime(2024, 1, 1, 10, 0, 0))

    assert outcome.action == "append"
    assert outcome.written is True
    assert outcome.mtime_ns == note.stat().st_mtime_ns
    assert _log(note) == ["2024-01-01T10:00:00"]


def test_stamp_overwrites_same_day_entry_written_by_another_tool(
    vault: Path, make_note: MakeNote
) -> None:
    note = make_note("note.md", "---\nlast-modified:\n  - 2024-01-01T08:00:00\n---\n")
    stamper = Stamper(NoteRepository(vault), StampingSettings())

    outcome = stamper.stamp(note, now=datetime(2024, 1, 1, 15, 30, 0))

    assert outcome.action == "overwrite"
    assert outcome.previous == ["2024-01-01T08:00:00"]
    assert _log(note) == ["2024-01-01T15:30:00"]


def test_throttled_stamp_leaves_file_untouched(vault: Path, make_note: MakeNote) -> None:
    original = "---\nlast-modified:\n- '2024-01-01T10:00:00'\n---\nBody\n"
    note = make_note("note.md", original)
    settings = StampingSettings(collapse_per_day=False, min_interval_seconds=60)
    stamper = Stamper(NoteRepository(vault), settings)

    outcome = stamper.stamp(note, now=datetime(2024, 1, 1, 10, 0, 30))

    assert outcome.action == "skip"
    assert outcome.written is False
    assert note.read_text(encoding="utf-8") == original


def test_ignored_folder_is_skipped_without_reading(vault: Path, make_note: MakeNote) -> None:
    note = make_note("Archive/note.md", "---\n- not a mapping\n---\n")
    settings = StampingSettings(ignored_folders=["Archive"])
    stamper = Stamper(NoteRepository(vault), settings)

    outcome = stamper.stamp(note, now=datetime(2024, 1, 1, 10, 0, 0))

    assert outcome.action == "ignored"
    assert outcome.written is False
    assert not (vault / ".lastmod" / "locks").exists()


def test_dry_run_computes_without_writing(vault: Path, make_note: MakeNote) -> None:
    note = make_note("note.md", "Body\n")
    stamper = Stamper(NoteRepository(vault), StampingSettings())

    outcome = stamper.stamp(note, now=datetime(2024, 1, 1, 10, 0, 0), dry_run=True)

    assert outcome.log == ["2024-01-01T10:00:00"]
    assert outcome.written is False
    assert note.read_text(encoding="utf-8") == "Body\n"


def test_custom_property_name(vault: Path, make_note: MakeNote) -> None:
    note = make_note("note.md", "Body\n")
    settings = StampingSettings(property_name="edited")
    stamper = Stamper(NoteRepository(vault), settings)

    stamper.stamp(note, now=datetime(2024, 1, 1, 10, 0, 0))

    data, _, _ = split_front_matter(note.read_text(encoding="utf-8"))
    assert data == {"edited": ["2024-01-01T10:00:00"]}


def test_clock_is_used_when_no_instant_is_given(vault: Path, make_note: MakeNote) -> None:
    note = make_note("note.md", "Body\n")
    stamper = Stamper(
        NoteRepository(vault),
        StampingSettings(),
        clock=lambda: datetime(2030, 6, 1, 12, 0, 0),
    )

    stamper.stamp(note)

    assert _log(note) == ["2030-06-01T12:00:00"]


def test_stamp_many_collects_errors(vault: Path, make_note: MakeNote) -> None:
    good = make_note("good.md", "Body\n")
    bad = make_note("bad.md", "---\nkey: [unclosed\n---\n")
    stamper = Stamper(NoteRepository(vault), StampingSettings())

    batch = stamper.stamp_many(
        [good, bad, vault / "missing.md"], now=datetime(2024, 1, 1, 10, 0, 0)
    )

    assert [outcome.path for outcome in batch.outcomes] == ["good.md"]
    assert len(batch.errors) == 2
    counts = batch.counts()
    assert counts["appended"] == 1
    assert counts["written"] == 1
    assert counts["errors"] == 2


def test_note_that_is_not_utf8_is_reported_and_the_batch_continues(
    vault: Path, make_note: MakeNote
) -> None:
    latin1 = vault / "latin1.md"
    latin1.write_bytes(b"---\ntitle: caf\xe9\n---\n\xff\n")
    good = make_note("good.md", "Body\n")
    stamper = Stamper(NoteRepository(vault), StampingSettings())

    batch = stamper.stamp_many([latin1, good], now=datetime(2024, 1, 1, 10, 0, 0))

    assert [outcome.path for outcome in batch.outcomes] == ["good.md"]
    assert len(batch.errors) == 1
    assert "latin1.md" in batch.errors[0]
    assert latin1.read_bytes() == b"---\ntitle: caf\xe9\n---\n\xff\n"
    assert not latin1.with_suffix(".md.tmp").exists()


@pytest.mark.parametrize(
    "entry",
    ["2024-01-01 10:00:00", "2024-01-01T10:00:00.25", "2024-01-01T10:00:00+02:00"],
)
def test_unquoted_off_pattern_entry_is_kept_and_a_new_entry_appended(
    vault: Path, make_note: MakeNote, entry: str
) -> None:
    note = make_note("note.md", f"---\nlast-modified:\n- {entry}\n---\nBody\n")
    stamper = Stamper(NoteRepository(vault), StampingSettings(collapse_per_day=True))

    outcome = stamper.stamp(note, now=datetime(2024, 1, 1, 15, 0, 0))

    assert outcome.action == "append"
    assert outcome.previous == [entry]
    assert _log(note) == [entry, "2024-01-01T15:00:00"]


def test_unquoted_valid_entries_are_preserved_verbatim_on_append(
    vault: Path, make_note: MakeNote
) -> None:
    note = make_note(
        "note.md",
        "---\ncreated: 2023-12-31\nlast-modified:\n- 2023-12-31T09:00:00\n---\nBody\n",
    )
    stamper = Stamper(NoteRepository(vault), StampingSettings(collapse_per_day=True))

    stamper.stamp(note, now=datetime(2024, 1, 1, 15, 0, 0))

    data, _, _ = split_front_matter(note.read_text(encoding="utf-8"))
    assert data["created"] == "2023-12-31"
    assert data["last-modified"] == ["2023-12-31T09:00:00", "2024-01-01T15:00:00"]


class _SavedAgainAfterRelease(NoteRepository):
    """Repository where another editor saves the note as soon as the lock is released."""

    written_mtime_ns = 0

    @contextmanager
    def transaction(self, path: Path | str) -> Iterator[NoteSession]:
        with super().transaction(path) as session:
            yield session
        stat = session.path.stat()
        self.written_mtime_ns = stat.st_mtime_ns
        os.utime(session.path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))


def test_recorded_mtime_belongs_to_our_write(vault: Path, make_note: MakeNote) -> None:
    note = make_note("note.md", "Body\n")
    repository = _SavedAgainAfterRelease(vault)
    stamper = Stamper(repository, StampingSettings())

    outcome = stamper.stamp(note, now=datetime(2024, 1, 1, 10, 0, 0))

    assert outcome.mtime_ns == repository.written_mtime_ns
    assert outcome.mtime_ns != note.stat().st_mtime_ns
