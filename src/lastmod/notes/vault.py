"""Vault traversal helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator

from .repository import DEFAULT_STATE_DIRNAME


def _is_hidden(relative: Path) -> bool:
    return any(part.startswith(".") for part in relative.parts)


def list_folders(vault_root: Path, state_dirname: str = DEFAULT_STATE_DIRNAME) -> list[str]:
    """Return every folder in the vault as a sorted vault-relative POSIX path.

    Hidden folders and the state directory are skipped.
    """
    root = vault_root.expanduser().resolve()
    folders: list[str] = []
    for path in root.rglob("*"):
        if not path.is_dir():
            continue
        relative = path.relative_to(root)
        if _is_hidden(relative) or relative.parts[0] == state_dirname:
            continue
        folders.append(relative.as_posix())
    return sorted(folders)


def iter_notes(
    vault_root: Path,
    extensions: Iterable[str],
    state_dirname: str = DEFAULT_STATE_DIRNAME,
) -> Iterator[Path]:
    """Yield note files under the vault whose suffix is one of ``extensions``."""
    root = vault_root.expanduser().resolve()
    suffixes = {extension.lower() for extension in extensions}
    for path in sorted(root.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in suffixes:
            continue
        relative = path.relative_to(root)
        if _is_hidden(relative) or relative.parts[0] == state_dirname:
            continue
        yield path
