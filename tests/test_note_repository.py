"""Tests for the note repository and its read-modify-write transactions."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable

import pytest

from lastmod.notes import NoteError, NoteRepository, split_front_matter
from lastmod.notes import repository as repository_module

MakeNote = Callable[[str, str], Path]


def test_relative_path_is_vault_relative(vault: Path, make_note: MakeNote) -> None:
    note = make_note("Folder/note.md", "Body")
    repo = NoteRepository(vault)

    assert repo.relative_path(note) == "Folder/note.md"
    assert repo.relative_path("Folder/note.md") == "Folder/note.md"


def test_relative_path_rejects_paths_outside_the_vault(vault: Path, tmp_path: Path) -> None:
    repo = NoteRepository(vault)

    with pytest.raises(NoteError):
        repo.relative_path(tmp_path / "elsewhere.md")


def test_read_property_returns_raw_value(vault: Path, make_note: MakeNote) -> None:
    make_note("note.md", "---\nlast-modified: legacy\n---\nBody")
    repo = NoteRepository(vault)

    assert repo.read_property("note.md", "last-modified") == "legacy"
    assert repo.read_property("note.md", "missing") is None


def test_read_missing_note_raises(vault: Path) -> None:
    with pytest.raises(NoteError):
        NoteRepository(vault).read("missing.md")


def test_read_rejects_notes_that_are_not_utf8(vault: Path) -> None:
    (vault / "note.md").write_bytes(b"\xff\xfe body")

    with pytest.raises(NoteError, match="Unable to read note.md"):
        NoteRepository(vault).read("note.md")


def test_committed_transaction_rewrites_front_matter(vault: Path, make_note: MakeNote) -> None:
    note = make_note("note.md", "---\ntitle: Note\n---\nBody\n")
    repo = NoteRepository(vault)

    with repo.transaction("note.md") as session:
        session.front_matter["last-modified"] = ["2024-01-01T10:00:00"]
        session.commit()

    data, body, _ = split_front_matter(note.read_text(encoding="utf-8"))
    assert data == {"title": "Note", "last-modified": ["2024-01-01T10:00:00"]}
    assert body == "Body\n"
    assert not note.with_suffix(".md.tmp").exists()


def test_uncommitted_transaction_leaves_note_untouched(vault: Path, make_note: MakeNote) -> None:
    original = "---\ntitle: Note\n---\nBody\n"
    note = make_note("note.md", original)
    repo = NoteRepository(vault)

    with repo.transaction("note.md") as session:
        session.front_matter["last-modified"] = ["2024-01-01T10:00:00"]

    assert note.read_text(encoding="utf-8") == original


def test_failed_transaction_releases_locks_and_skips_write(
    vault: Path, make_note: MakeNote
) -> None:
    original = "Body\n"
    note = make_note("note.md", original)
    repo = NoteRepository(vault)

    with pytest.raises(RuntimeError):
        with repo.transaction("note.md") as session:
            session.front_matter["x"] = 1
            session.commit()
            raise RuntimeError("boom")

    assert note.read_text(encoding="utf-8") == original
    with repo.transaction("note.md") as session:
        assert session.front_matter == {}


def test_note_without_front_matter_gains_a_block(vault: Path, make_note: MakeNote) -> None:
    note = make_note("note.md", "# Title\n")
    repo = NoteRepository(vault)

    with repo.transaction(note) as session:
        assert session.had_front_matter is False
        session.front_matter["last-modified"] = ["2024-01-01T10:00:00"]
        session.commit()

    assert note.read_text(encoding="utf-8") == (
        "---\nlast-modified:\n- '2024-01-01T10:00:00'\n---\n# Title\n"
    )


def test_concurrent_transactions_on_one_note_do_not_lose_updates(
    vault: Path, make_note: MakeNote
) -> None:
    note = make_note("note.md", "---\ncount: 0\n---\n")
    repo = NoteRepository(vault)

    def _increment() -> None:
        for _ in range(10):
            with repo.transaction("note.md") as session:
                session.front_matter["count"] += 1
                session.commit()

    threads = [threading.Thread(target=_increment) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    data, _, _ = split_front_matter(note.read_text(encoding="utf-8"))
    assert data["count"] == 40


def test_lock_files_live_in_the_state_directory(vault: Path, make_note: MakeNote) -> None:
    make_note("note.md", "Body")
    repo = NoteRepository(vault)

    with repo.transaction("note.md"):
        pass

    locks = list((vault / ".lastmod" / "locks").iterdir())
    assert len(locks) == 1
    assert locks[0].suffix == ".lock"


def test_session_records_the_mtime_of_its_own_write(vault: Path, make_note: MakeNote) -> None:
    note = make_note("note.md", "Body\n")
    repo = NoteRepository(vault)

    with repo.transaction(note) as untouched:
        pass
    with repo.transaction(note) as written:
        written.front_matter["title"] = "Note"
        written.commit()

    assert untouched.mtime_ns is None
    assert written.mtime_ns == note.stat().st_mtime_ns


def test_in_process_locks_are_released_after_use(vault: Path, make_note: MakeNote) -> None:
    repo = NoteRepository(vault)
    notes = [make_note(f"note-{index}.md", "---\ncount: 0\n---\n") for index in range(5)]

    def _touch(path: Path) -> None:
        with repo.transaction(path) as session:
            session.front_matter["count"] += 1
            session.commit()

    threads = [threading.Thread(target=_touch, args=(path,)) for path in notes * 3]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    with pytest.raises(NoteError):
        with repo.transaction("missing.md"):
            pass

    assert repository_module._thread_locks == {}
    assert all(split_front_matter(p.read_text(encoding="utf-8"))[0]["count"] == 3 for p in notes)
