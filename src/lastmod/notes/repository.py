"""Scoped read-modify-write access to notes inside a vault."""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

import portalocker

from .errors import NoteError, NoteLockError
from .frontmatter import render_front_matter, split_front_matter

LOGGER = logging.getLogger(__name__)

DEFAULT_STATE_DIRNAME = ".lastmod"

_thread_locks: dict[Path, tuple[threading.Lock, int]] = {}
_thread_locks_guard = threading.Lock()


@contextmanager
def _thread_lock(path: Path) -> Iterator[None]:
    """Hold the in-process lock for ``path``; the entry is dropped once unused."""
    with _thread_locks_guard:
        lock, users = _thread_locks.get(path, (threading.Lock(), 0))
        _thread_locks[path] = (lock, users + 1)
    try:
        with lock:
            yield
    finally:
        with _thread_locks_guard:
            lock, users = _thread_locks[path]
            if users == 1:
                del _thread_locks[path]
            else:
                _thread_locks[path] = (lock, users - 1)


@dataclass
class NoteSession:
    """Mutable view of a note held for the duration of a transaction.

    Attributes:
        path: Absolute path of the note.
        relative: Vault-relative POSIX path.
        front_matter: Parsed front matter; edit in place and call ``commit``.
        body: Text following the front matter block.
        had_front_matter: Whether the note carried a block when it was read.
        mtime_ns: Modification time of the file this session wrote, if any.
    """

    path: Path
    relative: str
    front_matter: dict[str, Any]
    body: str
    had_front_matter: bool
    committed: bool = field(default=False, init=False)
    mtime_ns: Optional[int] = field(default=None, init=False)

    def commit(self) -> None:
        """Mark the session so the note is written when the transaction closes."""
        self.committed = True


class NoteRepository:
    """Read and atomically rewrite notes stored under a vault root."""

    def __init__(
        self,
        vault_root: Path,
        *,
        state_dirname: str = DEFAULT_STATE_DIRNAME,
        lock_timeout: float = 10.0,
    ) -> None:
        """Initialize the repository.

        Args:
            vault_root: Directory containing the notes.
            state_dirname: Name of the directory holding lock files and logs.
            lock_timeout: Seconds to wait for a note's file lock.
        """
        self._vault_root = vault_root.expanduser().resolve()
        self._state_dirname = state_dirname
        self._lock_timeout = lock_timeout

    @property
    def vault_root(self) -> Path:
        """Return the resolved vault root."""
        return self._vault_root

    @property
    def state_dirname(self) -> str:
        """Return the name of the state directory inside the vault."""
        return self._state_dirname

    @property
    def state_dir(self) -> Path:
        """Return the state directory path."""
        return self._vault_root / self._state_dirname

    def resolve(self, path: Path | str) -> Path:
        """Return the absolute path for ``path``, interpreting relative paths against the vault."""
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self._vault_root / candidate
        return candidate.resolve()

    def relative_path(self, path: Path | str) -> str:
        """Return the vault-relative POSIX path of a note.

        Raises:
            NoteError: If the note lies outside the vault.
        """
        resolved = self.resolve(path)
        try:
            return resolved.relative_to(self._vault_root).as_posix()
        except ValueError as exc:
            raise NoteError(f"{resolved} is not inside the vault {self._vault_root}") from exc

    def read(self, path: Path | str) -> NoteSession:
        """Read a note without locking it.

        Raises:
            NoteError: If the note cannot be read or parsed.
        """
        resolved = self.resolve(path)
        relative = self.relative_path(resolved)
        try:
            text = resolved.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise NoteError(f"Unable to read {relative}: {exc}") from exc
        front_matter, body, had_block = split_front_matter(text)
        return NoteSession(
            path=resolved,
            relative=relative,
            front_matter=front_matter,
            body=body,
            had_front_matter=had_block,
        )

    def read_property(self, path: Path | str, name: str) -> Any:
        """Return the raw value of front matter property ``name`` or ``None``."""
        return self.read(path).front_matter.get(name)

    @contextmanager
    def transaction(self, path: Path | str) -> Iterator[NoteSession]:
        """Hold exclusive access to a note while it is read, modified, and written.

        The note is rewritten only when the session was committed and the block
        exited without an exception. Locks are always released.

        Args:
            path: Note path, absolute or vault-relative.

        Yields:
            NoteSession: Parsed note contents.

        Raises:
            NoteLockError: If the file lock is not acquired within the timeout.
            NoteError: If the note cannot be read, parsed, or written.
        """
        resolved = self.resolve(path)
        relative = self.relative_path(resolved)
        lock_path = self._lock_path(relative)
        lock_path.parent.mkdir(parents=True, exist_ok=True)

        with _thread_lock(resolved):
            try:
                file_lock = portalocker.Lock(str(lock_path), timeout=self._lock_timeout)
                file_lock.acquire()
            except portalocker.LockException as exc:
                raise NoteLockError(f"Timed out waiting for the lock on {relative}") from exc
            try:
                session = self.read(resolved)
                yield session
                if session.committed:
                    session.mtime_ns = self._write(session)
            finally:
                file_lock.release()

    def _write(self, session: NoteSession) -> int:
        contents = render_front_matter(session.front_matter, session.body)
        tmp_path = session.path.with_suffix(session.path.suffix + ".tmp")
        try:
            tmp_path.write_text(contents, encoding="utf-8")
            shutil.copymode(session.path, tmp_path)
            os.replace(tmp_path, session.path)
            mtime_ns = session.path.stat().st_mtime_ns
        except OSError as exc:
            if tmp_path.exists():
                tmp_path.unlink()
            raise NoteError(f"Unable to write {session.relative}: {exc}") from exc
        LOGGER.debug("Wrote front matter for %s", session.relative)
        return mtime_ns

    def _lock_path(self, relative: str) -> Path:
        digest = hashlib.sha1(relative.encode("utf-8")).hexdigest()
        return self.state_dir / "locks" / f"{digest}.lock"


__all__ = ["DEFAULT_STATE_DIRNAME", "NoteRepository", "NoteSession"]
