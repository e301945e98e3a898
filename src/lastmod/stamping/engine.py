"""Single entry point composing the folder gate, normalizer, and policy."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from .folders import is_ignored
from .normalizer import normalize_log
from .policy import StampResult, decide

if TYPE_CHECKING:
    from lastmod.config.models import StampingSettings


def apply_stamp(
    note_path: str,
    raw_value: Any,
    now: datetime,
    settings: "StampingSettings",
) -> StampResult:
    """Compute the new ``last-modified`` log for a changed note.

    The function performs no I/O; callers write ``result.log`` back only when
    ``result.mutated`` is true. Notes under an ignored folder get their stored
    list back as is; a value that is not a list reads as an empty log.

    Args:
        note_path: Vault-relative POSIX path of the note.
        raw_value: Current property value (``None`` when absent).
        now: Current wall-clock instant.
        settings: Active stamping policy.

    Returns:
        StampResult: Updated log, mutation flag, and the branch taken.
    """
    if is_ignored(note_path, settings.ignored_folders):
        log = list(raw_value) if isinstance(raw_value, (list, tuple)) else []
        return StampResult(log=log, mutated=False, action="ignored")
    log = normalize_log(raw_value, legacy=settings.legacy_scalar)
    return decide(log, now, settings)


__all__ = ["apply_stamp"]
