"""Ignored-folder matching for vault-relative note paths."""

from __future__ import annotations

from typing import Iterable


def normalize_folder(value: str) -> str:
    """Return a folder path in the canonical ``a/b`` form used for matching.

    Args:
        value: Folder path as typed by a user or stored in configuration.

    Returns:
        str: Path with POSIX separators and no leading ``./`` or surrounding slashes.
    """
    folder = value.strip().replace("\\", "/")
    while folder.startswith("./"):
        folder = folder[2:]
    return folder.strip("/")


def is_ignored(note_path: str, ignored_folders: Iterable[str]) -> bool:
    """Return whether ``note_path`` lives under one of ``ignored_folders``.

    The trailing separator is part of the comparison so ``Arch`` never matches
    ``Archive/note.md``. Empty entries never match anything.

    Args:
        note_path: Vault-relative POSIX path of the note.
        ignored_folders: Vault-relative folder paths without trailing slash.

    Returns:
        bool: ``True`` when the note must not be stamped.
    """
    return any(folder and note_path.startswith(folder + "/") for folder in ignored_folders)


__all__ = ["is_ignored", "normalize_folder"]
