"""Configuration management for lastmod."""

from __future__ import annotations

import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import (
    MAX_UPDATE_INTERVAL,
    MIN_UPDATE_INTERVAL,
    LastmodConfig,
    StampingSettings,
)
from .resolver import (
    ENV_PREFIX,
    assign_nested,
    env_overrides,
    flatten_for_env,
    lookup_nested,
    resolve_with_precedence,
    validate_config,
)

DEFAULT_CONFIG_PATH = Path("~/.lastmod/config.yaml")
_CONFIG_HEADER = textwrap.dedent(
    """\
    # lastmod configuration file
    # Generated automatically; manage via `lastmod config edit`, `lastmod config set`,
    # or `lastmod ignore add/remove`.
    """
)


class ConfigManager:
    """Read, update, and persist the user's configuration file.

    Only the settings a user actually changed are stored on disk; everything
    else comes from the model defaults when the file is loaded. Values written
    through ``set_values`` and ``replace`` are stored in their validated form,
    so an out-of-range interval is saved clamped and folder names are saved
    normalized.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        include_env: bool = True,
        cli_overrides: Mapping[str, Any] | None = None,
    ) -> LastmodConfig:
        """Return the effective configuration.

        Args:
            include_env: Apply ``LASTMOD__`` environment variables.
            cli_overrides: Dotted-key overrides that win over every other source.

        Raises:
            ConfigError: If the file or any override is invalid.
        """
        return resolve_with_precedence(
            defaults=LastmodConfig(),
            file_overrides=self._read_file(),
            env_overrides=env_overrides(self._env) if include_env else None,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the settings stored on disk, without defaults."""
        return self._read_file()

    def set_values(self, changes: Mapping[str, Any]) -> dict[str, Any]:
        """Store dotted-key ``changes`` in the file after validating them.

        Args:
            changes: Mapping such as ``{"stamping.min_interval_seconds": 5}``.

        Returns:
            dict[str, Any]: The value actually stored for each key, after
            clamping and normalization.

        Raises:
            ConfigError: If a key is unknown or a value is rejected.
        """
        stored = self._read_file()
        paths = {key: [part for part in key.split(".") if part] for key in changes}
        for key, value in changes.items():
            if not paths[key]:
                raise ConfigError(f"'{key}' is not a setting name.", key=key)
            assign_nested(stored, paths[key], value)

        validated = validate_config(stored).model_dump(mode="python")
        applied = {key: lookup_nested(validated, path) for key, path in paths.items()}
        for key, value in applied.items():
            assign_nested(stored, paths[key], value)
        self._write_file(stored)
        return applied

    def replace(self, data: Mapping[str, Any]) -> LastmodConfig:
        """Validate ``data`` as the full file contents and write it.

        Raises:
            ConfigError: If ``data`` does not describe a valid configuration.
        """
        config = resolve_with_precedence(defaults=LastmodConfig(), file_overrides=data)
        self._write_file(dict(data))
        return config

    def ensure_exists(self) -> Path:
        """Write a file holding the defaults unless one is already present."""
        if not self._config_path.exists():
            self._write_file(LastmodConfig().model_dump(mode="python"))
        return self._config_path

    def read_text(self) -> str:
        """Return the current configuration file contents."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}
        try:
            raw = yaml.safe_load(self._config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse {self._config_path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"{self._config_path} must contain a mapping at the top level.")
        return raw

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
        contents = (
            _CONFIG_HEADER
            + f"# Last updated: {stamp}\n"
            + yaml.safe_dump(dict(data), sort_keys=False, allow_unicode=True)
        )
        self._config_path.write_text(contents, encoding="utf-8")


__all__ = [
    "ConfigError",
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "ENV_PREFIX",
    "LastmodConfig",
    "MAX_UPDATE_INTERVAL",
    "MIN_UPDATE_INTERVAL",
    "StampingSettings",
    "flatten_for_env",
    "resolve_with_precedence",
]
