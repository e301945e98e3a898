"""Filesystem watch service that stamps notes as they change."""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from lastmod.config import LastmodConfig
from lastmod.notes import NoteRepository, StampBatch, Stamper

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class WatchBatchResult:
    """Outcome metadata describing a processed watch batch.

    Attributes:
        batch_id: Sequential identifier of the batch within the session.
        vault_root: Vault that produced the batch.
        dry_run: Indicates whether writes were suppressed.
        batch: Stamp outcomes and errors.
        counts: Summary metrics.
        json_payload: JSON-ready payload mirroring CLI outputs.
        triggered_paths: Paths that triggered the batch run.
        echoes: Paths dropped because the event came from our own write.
    """

    batch_id: int
    vault_root: Path
    dry_run: bool
    batch: StampBatch
    counts: dict[str, int]
    json_payload: dict[str, Any]
    triggered_paths: list[Path]
    echoes: list[Path]


class WatchService:
    """Monitor a vault and stamp notes after they are modified."""

    def __init__(
        self,
        config: LastmodConfig,
        vault_root: Path,
        *,
        dry_run: bool = False,
        debounce_override: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the watch service.

        Args:
            config: Loaded lastmod configuration.
            vault_root: Directory to monitor.
            dry_run: Whether to avoid rewriting notes.
            debounce_override: Optional debounce interval override in seconds.
            clock: Source of the instant recorded for each note.
        """
        self._config = config
        self._dry_run = dry_run
        self._repository = NoteRepository(
            vault_root, lock_timeout=config.watch.lock_timeout_seconds
        )
        self._stamper = Stamper(self._repository, config.stamping, clock=clock)
        self._extensions = {extension.lower() for extension in config.watch.extensions}
        self._observer: Any = None
        self._queue: queue.Queue[Path | None] = queue.Queue()
        self._stop_event = threading.Event()
        self._own_writes: dict[Path, int] = {}
        self._batch_counter = 0
        self._debounce_seconds = (
            max(0.1, debounce_override)
            if debounce_override and debounce_override > 0
            else max(0.1, config.watch.debounce_seconds)
        )

    @property
    def vault_root(self) -> Path:
        """Return the monitored vault root."""
        return self._repository.vault_root

    @property
    def log_path(self) -> Path:
        """Return the path of the batch log."""
        return self._repository.state_dir / "watch.log"

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    def process_paths(self, paths: Iterable[Path]) -> Optional[WatchBatchResult]:
        """Stamp the given notes as if they had just changed.

        Args:
            paths: Note paths that changed.

        Returns:
            Optional[WatchBatchResult]: Batch result, or ``None`` when nothing qualified.
        """
        candidates: list[Path] = []
        echoes: list[Path] = []
        for path in sorted(set(paths)):
            if not self.accepts(path) or not path.is_file():
                continue
            if self._is_echo(path):
                echoes.append(path)
                continue
            candidates.append(path)
        if not candidates:
            return None

        batch = self._stamper.stamp_many(candidates, dry_run=self._dry_run)
        for outcome in batch.outcomes:
            if outcome.written and outcome.mtime_ns is not None:
                self._own_writes[self._repository.resolve(outcome.path)] = outcome.mtime_ns

        batch_id = self._next_batch_id()
        counts = batch.counts()
        json_payload: dict[str, Any] = {
            "context": {
                "batch_id": batch_id,
                "vault_root": self.vault_root.as_posix(),
                "dry_run": self._dry_run,
                "triggered_paths": [path.as_posix() for path in candidates],
            },
            "counts": counts,
            "notes": [outcome.model_dump(mode="json") for outcome in batch.outcomes],
            "errors": list(batch.errors),
        }
        result = WatchBatchResult(
            batch_id=batch_id,
            vault_root=self.vault_root,
            dry_run=self._dry_run,
            batch=batch,
            counts=counts,
            json_payload=json_payload,
            triggered_paths=candidates,
            echoes=echoes,
        )
        self._append_log(result)
        return result

    def accepts(self, path: Path) -> bool:
        """Return whether ``path`` is a note this service should stamp."""
        if path.suffix.lower() not in self._extensions:
            return False
        try:
            relative = path.resolve().relative_to(self.vault_root)
        except ValueError:
            return False
        return self._repository.state_dirname not in relative.parts

    def watch(self, callback: Callable[[WatchBatchResult], None]) -> None:
        """Start processing filesystem events until ``stop`` is called.

        Args:
            callback: Callable invoked with each completed batch result.
        """
        if self._observer is not None:
            raise RuntimeError("WatchService is already running.")

        self._stop_event.clear()
        self._observer = Observer()
        handler = _WatchEventHandler(self, self._queue)
        self._observer.schedule(handler, str(self.vault_root), recursive=True)
        self._observer.start()
        LOGGER.info("Watching %s", self.vault_root)
        try:
            self._run_loop(callback)
        finally:
            self.stop()

    def stop(self) -> None:
        """Terminate the watch service and release resources."""
        self._stop_event.set()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
        # Unblock the queue so the processing loop can exit.
        self._queue.put(None)

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #

    def _run_loop(self, callback: Callable[[WatchBatchResult], None]) -> None:
        """Consume queued events and flush them once the debounce window passes."""
        pending: set[Path] = set()
        flush_deadline: Optional[float] = None

        while not self._stop_event.is_set():
            timeout: Optional[float] = None
            if flush_deadline is not None:
                timeout = max(0.0, flush_deadline - time.monotonic())

            try:
                path = self._queue.get(timeout=timeout)
            except queue.Empty:
                if pending:
                    self._flush(pending, callback)
                    pending.clear()
                flush_deadline = None
                continue

            if path is None:
                break

            pending.add(path)
            flush_deadline = time.monotonic() + self._debounce_seconds

    def _flush(self, pending: set[Path], callback: Callable[[WatchBatchResult], None]) -> None:
        try:
            result = self.process_paths(pending)
        except Exception as exc:  # pragma: no cover - keeps the watcher alive
            LOGGER.exception("Watch batch failed")
            self._log_failure(pending, exc)
            return
        if result is not None:
            callback(result)

    def _is_echo(self, path: Path) -> bool:
        """Consume the recorded write for ``path`` and report whether the event is its echo."""
        resolved = path.resolve()
        recorded = self._own_writes.pop(resolved, None)
        if recorded is None:
            return False
        try:
            return resolved.stat().st_mtime_ns == recorded
        except OSError:
            return False

    def _next_batch_id(self) -> int:
        self._batch_counter += 1
        return self._batch_counter

    def _append_log(self, result: WatchBatchResult) -> None:
        if self._dry_run:
            return
        counts = result.counts
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf-8") as log_file:
                timestamp = datetime.now().isoformat(timespec="seconds")
                log_file.write(
                    f"[{timestamp}] batch={result.batch_id} appended={counts['appended']} "
                    f"overwritten={counts['overwritten']} skipped={counts['skipped']} "
                    f"ignored={counts['ignored']} errors={counts['errors']}\n"
                )
                for outcome in result.batch.outcomes:
                    log_file.write(f"  {outcome.action}: {outcome.path}\n")
                for error in result.batch.errors:
                    log_file.write(f"  error: {error}\n")
        except OSError as exc:
            LOGGER.warning("Unable to append to %s: %s", self.log_path, exc)

    def _log_failure(self, paths: Iterable[Path], exc: Exception) -> None:
        if self._dry_run:
            return
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf-8") as log_file:
                timestamp = datetime.now().isoformat(timespec="seconds")
                joined = ", ".join(path.as_posix() for path in sorted(paths))
                log_file.write(
                    f"[{timestamp}] batch_error paths=[{joined}] "
                    f"error={exc.__class__.__name__}: {exc}\n"
                )
        except OSError as log_exc:
            LOGGER.warning("Unable to append to %s: %s", self.log_path, log_exc)


class _WatchEventHandler(FileSystemEventHandler):
    """Forward filesystem events for notes into the service queue."""

    def __init__(self, service: WatchService, queue_handle: queue.Queue[Path | None]) -> None:
        self._service = service
        self._queue = queue_handle

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle a filesystem create event."""
        self._enqueue(event.src_path, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle a filesystem modify event."""
        self._enqueue(event.src_path, event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:  # pragma: no cover - watchdog-specific
        """Handle a filesystem move event, e.g. an editor's atomic save."""
        self._enqueue(getattr(event, "dest_path", event.src_path), event.is_directory)

    def _enqueue(self, raw_path: str | bytes, is_directory: bool) -> None:
        if is_directory:
            return
        if isinstance(raw_path, bytes):
            raw_path = raw_path.decode("utf-8", errors="surrogateescape")
        path = Path(raw_path).expanduser()
        if self._service.accepts(path):
            self._queue.put(path)
