"""CLI tests for configuration and ignore-list commands."""

import os
from pathlib import Path
from typing import Any

from click.testing import CliRunner

from lastmod.cli import cli
from lastmod.config import ConfigManager


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = {key: value for key, value in os.environ.items() if not key.startswith("LASTMOD__")}
    env["HOME"] = str(tmp_path)
    return env


def _manager(tmp_path: Path) -> ConfigManager:
    return ConfigManager(config_path=tmp_path / ".lastmod" / "config.yaml", env={})


def test_config_view_creates_and_displays_config(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["config", "view"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    assert "stamping:" in result.output


def test_config_view_as_env_lists_override_variables(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    env["LASTMOD__STAMPING__MIN_INTERVAL_SECONDS"] = "5"

    result = runner.invoke(cli, ["config", "view", "--as-env"], env=env)

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert "LASTMOD__STAMPING__MIN_INTERVAL_SECONDS=60" in lines
    assert "LASTMOD__STAMPING__IGNORED_FOLDERS=[]" in lines


def test_config_set_updates_value_and_writes_diff(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(
        cli, ["config", "set", "stamping.collapse_per_day", "--value", "false"], env=env
    )

    assert result.exit_code == 0
    assert "Updated stamping.collapse_per_day" in result.output
    config = _manager(tmp_path).load(include_env=False)
    assert config.stamping.collapse_per_day is False


def test_config_set_clamps_interval(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(
        cli, ["config", "set", "stamping.min_interval_seconds", "--value", "5"], env=env
    )

    assert result.exit_code == 0
    assert "adjusted to 60" in result.output
    file_data = _manager(tmp_path).load_file_overrides()
    assert file_data["stamping"]["min_interval_seconds"] == 60


def test_config_set_rejects_unknown_values(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["config", "set", "stamping.legacy_scalar", "--value", "migrate"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code != 0


def test_config_edit_applies_changes(tmp_path: Path, monkeypatch) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    manager = _manager(tmp_path)
    manager.ensure_exists()

    def _mock_edit(text: str, **_: Any) -> str:
        return text.replace("min_interval_seconds: 60", "min_interval_seconds: 600")

    monkeypatch.setattr("lastmod.cli.click.edit", _mock_edit)

    result = runner.invoke(cli, ["config", "edit"], env=env)

    assert result.exit_code == 0
    assert "updated" in result.output.lower()
    assert manager.load(include_env=False).stamping.min_interval_seconds == 600


def test_ignore_add_list_and_remove(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    added = runner.invoke(cli, ["ignore", "add", "Archive/"], env=env)
    duplicate = runner.invoke(cli, ["ignore", "add", "Archive"], env=env)
    listed = runner.invoke(cli, ["ignore", "list"], env=env)

    assert added.exit_code == 0
    assert "already ignored" in duplicate.output
    assert listed.output.strip() == "Archive"
    assert _manager(tmp_path).load(include_env=False).stamping.ignored_folders == ["Archive"]

    removed = runner.invoke(cli, ["ignore", "remove", "Archive"], env=env)

    assert removed.exit_code == 0
    assert _manager(tmp_path).load(include_env=False).stamping.ignored_folders == []


def test_ignore_add_rejects_vault_root(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["ignore", "add", "/"], env=_env_with_home(tmp_path))

    assert result.exit_code != 0


def test_ignore_remove_unknown_folder_fails(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["ignore", "remove", "Nope"], env=_env_with_home(tmp_path))

    assert result.exit_code != 0
    assert "not in the ignored folders list" in result.output
