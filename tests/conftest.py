"""Shared fixtures for the lastmod test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from lastmod.config.models import StampingSettings


@pytest.fixture
def collapse_settings() -> StampingSettings:
    return StampingSettings(collapse_per_day=True)


@pytest.fixture
def interval_settings() -> StampingSettings:
    return StampingSettings(collapse_per_day=False, min_interval_seconds=60)


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def make_note(vault: Path) -> Callable[[str, str], Path]:
    """Return a helper that writes a note into the test vault."""

    def _make(relative: str, text: str) -> Path:
        path = vault / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _make
