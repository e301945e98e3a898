"""Command line interface for the lastmod project."""

from __future__ import annotations

import difflib
from pathlib import Path
from typing import Any

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from lastmod.config import ConfigError, ConfigManager, LastmodConfig, flatten_for_env
from lastmod.logging_setup import configure_logging
from lastmod.notes import (
    NoteError,
    NoteRepository,
    StampBatch,
    Stamper,
    iter_notes,
    list_folders,
)
from lastmod.stamping import is_ignored, normalize_folder, normalize_log, parse_timestamp
from lastmod.watch import WatchBatchResult, WatchService

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    important_modes = {"summary", "warning", "error"}
    if summary_only and mode not in important_modes:
        return

    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands."""
    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _resolve_output_modes(
    ctx: click.Context,
    config: LastmodConfig,
    *,
    json_output: bool,
    quiet: bool,
    summary_mode: bool,
) -> tuple[bool, bool]:
    """Combine CLI flags with configured defaults for quiet/summary output.

    Returns:
        tuple[bool, bool]: Effective quiet and summary-only flags.

    Raises:
        click.ClickException: If the flags conflict.
    """
    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if quiet_enabled and explicit_quiet:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if summary_only and explicit_summary:
            raise click.ClickException("--json cannot be combined with --summary.")

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _load_config(json_output: bool = False) -> LastmodConfig:
    try:
        manager = ConfigManager()
        manager.ensure_exists()
        return manager.load()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        raise


def _emit_errors(errors: list[str], *, quiet: bool, summary_only: bool) -> None:
    """Emit per-note errors honoring quiet/summary preferences."""
    if not errors:
        return
    _emit_message(
        "[red]Errors encountered:[/red]",
        mode="error",
        quiet=quiet,
        summary_only=summary_only,
    )
    for entry in errors:
        _emit_message(f"  - {entry}", mode="error", quiet=quiet, summary_only=summary_only)


def _outcome_table(batch: StampBatch) -> Table:
    table = Table(title="Stamped notes")
    table.add_column("Note", overflow="fold")
    table.add_column("Action")
    table.add_column("Entries", justify="right")
    table.add_column("Latest")
    styles = {"append": "green", "overwrite": "cyan", "skip": "yellow", "ignored": "dim"}
    for outcome in batch.outcomes:
        style = styles.get(outcome.action, "")
        table.add_row(
            outcome.path,
            f"[{style}]{outcome.action}[/{style}]" if style else outcome.action,
            str(len(outcome.log)),
            outcome.log[-1] if outcome.log else "-",
        )
    return table


def _summary_metrics(counts: dict[str, int], *, dry_run: bool) -> dict[str, Any]:
    metrics: dict[str, Any] = dict(counts)
    if dry_run:
        metrics["dry_run"] = True
    return metrics


def _emit_watch_batch(
    result: WatchBatchResult,
    *,
    json_output: bool,
    quiet: bool,
    summary_only: bool,
) -> None:
    """Render output for a processed watch batch."""

    if json_output:
        console.print_json(data=result.json_payload)
        return

    _emit_message(
        f"[cyan]Watch batch {result.batch_id} processed "
        f"{len(result.triggered_paths)} changed note(s).[/cyan]",
        mode="detail",
        quiet=quiet,
        summary_only=summary_only,
    )
    if result.batch.outcomes:
        _emit_message(
            _outcome_table(result.batch), mode="detail", quiet=quiet, summary_only=summary_only
        )
    _emit_errors(result.batch.errors, quiet=quiet, summary_only=summary_only)
    _emit_message(
        _format_summary_line(
            "Watch", result.vault_root, _summary_metrics(result.counts, dry_run=result.dry_run)
        ),
        mode="summary",
        quiet=quiet,
        summary_only=summary_only,
    )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="lastmod")
def cli() -> None:
    """lastmod keeps a `last-modified` timestamp log in your notes' front matter.

    Returns:
        None: This function is invoked for its side effects.
    """


@cli.command()
@click.argument("notes", nargs=-1, type=click.Path(dir_okay=False, path_type=str))
@click.option(
    "--vault",
    type=click.Path(exists=True, file_okay=False, path_type=str),
    default=".",
    show_default=True,
    help="Vault root that note paths and ignored folders are relative to.",
)
@click.option("--all", "all_notes", is_flag=True, help="Stamp every note in the vault.")
@click.option(
    "--at", "at", type=str, help="Record this YYYY-MM-DDTHH:mm:ss instant instead of now."
)
@click.option("--dry-run", is_flag=True, help="Preview changes without modifying notes.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the outcomes.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def stamp(
    ctx: click.Context,
    notes: tuple[str, ...],
    vault: str,
    all_notes: bool,
    at: str | None,
    dry_run: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Record a modification for NOTES as if they had just changed.

    Args:
        ctx: Click context for parameter source inspection.
        notes: Note paths, absolute or relative to the vault.
        vault: Vault root directory.
        all_notes: When True, stamp every note in the vault.
        at: Optional explicit instant to record.
        dry_run: When True, skip writing notes.
        json_output: When True, emit JSON payloads instead of text.
        summary_mode: When True, restrict output to summary/warning lines.
        quiet: When True, suppress non-error output entirely.

    Raises:
        click.ClickException: If option combinations are invalid.
    """
    config = _load_config(json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )

    now = None
    if at is not None:
        now = parse_timestamp(at)
        if now is None:
            raise click.ClickException("--at must use the YYYY-MM-DDTHH:mm:ss format.")

    repository = NoteRepository(Path(vault), lock_timeout=config.watch.lock_timeout_seconds)
    targets: list[Path | str] = list(notes)
    if all_notes:
        targets.extend(iter_notes(repository.vault_root, config.watch.extensions))
    if not targets:
        raise click.ClickException("Provide at least one NOTE or pass --all.")

    stamper = Stamper(repository, config.stamping)
    batch = stamper.stamp_many(targets, now=now, dry_run=dry_run)
    counts = batch.counts()

    if json_output:
        console.print_json(
            data={
                "context": {"vault_root": repository.vault_root.as_posix(), "dry_run": dry_run},
                "counts": counts,
                "notes": [outcome.model_dump(mode="json") for outcome in batch.outcomes],
                "errors": list(batch.errors),
            }
        )
        if batch.errors:
            raise SystemExit(1)
        return

    if dry_run:
        _emit_message(
            "[yellow]Dry run: no notes were modified.[/yellow]",
            mode="warning",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    if batch.outcomes:
        _emit_message(
            _outcome_table(batch), mode="detail", quiet=quiet_enabled, summary_only=summary_only
        )
    _emit_errors(batch.errors, quiet=quiet_enabled, summary_only=summary_only)
    _emit_message(
        _format_summary_line(
            "Stamp", repository.vault_root, _summary_metrics(counts, dry_run=dry_run)
        ),
        mode="summary",
        quiet=quiet_enabled,
        summary_only=summary_only,
    )
    if batch.errors:
        raise SystemExit(1)


@cli.command()
@click.argument("vault", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option("--dry-run", is_flag=True, help="Preview actions without modifying notes.")
@click.option("--debounce", type=float, help="Override debounce interval in seconds.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing watch batches.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def watch(
    ctx: click.Context,
    vault: str,
    dry_run: bool,
    debounce: float | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Continuously monitor VAULT and stamp notes as they change.

    Args:
        ctx: Click context for parameter source inspection.
        vault: Vault root directory.
        dry_run: When True, skip writing notes.
        debounce: Optional debounce override in seconds.
        json_output: When True, emit JSON payloads instead of text.
        summary_mode: When True, restrict output to summary/warning lines.
        quiet: When True, suppress non-error output entirely.

    Raises:
        click.ClickException: If option combinations are invalid.
    """
    config = _load_config(json_output)
    quiet_enabled, summary_only = _resolve_output_modes(
        ctx, config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
    )
    if debounce is not None and debounce <= 0:
        raise click.ClickException("--debounce must be greater than zero.")

    service = WatchService(
        config,
        Path(vault),
        dry_run=dry_run,
        debounce_override=debounce,
    )
    if not dry_run:
        configure_logging(config.logging, service.log_path.parent)

    if not json_output:
        _emit_message(
            f"[cyan]Watching {service.vault_root}. Press Ctrl+C to stop.[/cyan]",
            mode="detail",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )

    try:
        service.watch(
            lambda result: _emit_watch_batch(
                result,
                json_output=json_output,
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        )
    except KeyboardInterrupt:
        service.stop()
        if not json_output:
            _emit_message(
                "[yellow]Watch stopped by user request.[/yellow]",
                mode="summary",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
    except (RuntimeError, OSError) as exc:
        _handle_cli_error(
            str(exc), code="watch_runtime_error", json_output=json_output, original=exc
        )


@cli.command()
@click.argument("note", type=click.Path(dir_okay=False, path_type=str))
@click.option(
    "--vault",
    type=click.Path(exists=True, file_okay=False, path_type=str),
    default=".",
    show_default=True,
    help="Vault root that NOTE is relative to.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit the metadata as JSON.")
def show(note: str, vault: str, json_output: bool) -> None:
    """Print the front matter of NOTE together with the active stamping settings.

    Args:
        note: Note path, absolute or relative to the vault.
        vault: Vault root directory.
        json_output: When True, emit JSON instead of tables.
    """
    config = _load_config(json_output)
    settings = config.stamping
    repository = NoteRepository(Path(vault))
    try:
        session = repository.read(note)
    except NoteError as exc:
        _handle_cli_error(str(exc), code="note_error", json_output=json_output, original=exc)
        return

    log = normalize_log(session.front_matter.get(settings.property_name), legacy="wrap")
    ignored = is_ignored(session.relative, settings.ignored_folders)

    if json_output:
        console.print_json(
            data={
                "path": session.relative,
                "front_matter": session.front_matter,
                "log": log,
                "ignored": ignored,
                "settings": settings.model_dump(mode="json"),
            },
            default=str,
        )
        return

    properties = Table(title=f"Front matter of {session.relative}")
    properties.add_column("Property")
    properties.add_column("Value", overflow="fold")
    for key, value in session.front_matter.items():
        properties.add_row(str(key), str(value))
    if not session.front_matter:
        properties.add_row("[dim](none)[/dim]", "")
    console.print(properties)

    policy = Table(title="Stamping settings")
    policy.add_column("Setting")
    policy.add_column("Value")
    policy.add_row("collapse_per_day", str(settings.collapse_per_day))
    policy.add_row("min_interval_seconds", str(settings.min_interval_seconds))
    policy.add_row("ignored_folders", ", ".join(settings.ignored_folders) or "-")
    policy.add_row("note ignored", str(ignored))
    console.print(policy)


@cli.command()
@click.argument("vault", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option("--json", "json_output", is_flag=True, help="Emit folders as JSON.")
def folders(vault: str, json_output: bool) -> None:
    """List folders in VAULT and mark the ones excluded from stamping.

    Args:
        vault: Vault root directory.
        json_output: When True, emit JSON instead of a table.
    """
    config = _load_config(json_output)
    ignored = config.stamping.ignored_folders
    entries = [
        {"folder": folder, "ignored": is_ignored(folder + "/", ignored)}
        for folder in list_folders(Path(vault))
    ]

    if json_output:
        console.print_json(data={"folders": entries})
        return

    table = Table(title=f"Folders in {Path(vault).expanduser().resolve()}")
    table.add_column("Folder", overflow="fold")
    table.add_column("Ignored")
    for entry in entries:
        table.add_row(entry["folder"], "[yellow]yes[/yellow]" if entry["ignored"] else "no")
    console.print(table)


@cli.group()
def ignore() -> None:
    """Manage folders whose notes are never stamped."""


def _save_ignored_folders(manager: ConfigManager, folders: list[str]) -> None:
    try:
        manager.set_values({"stamping.ignored_folders": folders})
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


def _current_ignored(manager: ConfigManager) -> list[str]:
    try:
        return list(manager.load(include_env=False).stamping.ignored_folders)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


@ignore.command("add")
@click.argument("folder")
def ignore_add(folder: str) -> None:
    """Exclude FOLDER (vault-relative) from stamping.

    Args:
        folder: Folder path relative to the vault root.
    """
    normalized = normalize_folder(folder)
    if not normalized:
        raise click.ClickException(
            "FOLDER must name a folder inside the vault, not the vault root."
        )

    manager = ConfigManager()
    current = _current_ignored(manager)
    if normalized in current:
        console.print(f"[yellow]{normalized} is already ignored.[/yellow]")
        return
    _save_ignored_folders(manager, [*current, normalized])
    console.print(f"[green]Ignoring notes under {normalized}/.[/green]")


@ignore.command("remove")
@click.argument("folder")
def ignore_remove(folder: str) -> None:
    """Stop excluding FOLDER from stamping.

    Args:
        folder: Folder path relative to the vault root.
    """
    normalized = normalize_folder(folder)
    manager = ConfigManager()
    current = _current_ignored(manager)
    if normalized not in current:
        raise click.ClickException(f"{normalized or folder} is not in the ignored folders list.")
    _save_ignored_folders(manager, [entry for entry in current if entry != normalized])
    console.print(f"[green]Notes under {normalized}/ will be stamped again.[/green]")


@ignore.command("list")
def ignore_list() -> None:
    """Show the configured ignored folders."""
    current = _current_ignored(ConfigManager())
    if not current:
        console.print("[yellow]No folders are ignored.[/yellow]")
        return
    for folder in current:
        console.print(folder)


@cli.group()
def config() -> None:
    """Manage lastmod configuration files and overrides.

    Returns:
        None: This function is invoked for its side effects.
    """


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.option(
    "--as-env",
    is_flag=True,
    help="Print each setting as the LASTMOD__ environment variable that overrides it.",
)
def config_view(no_env: bool, as_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.
        as_env: If True, print ``NAME=value`` lines instead of YAML.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if as_env:
        for name, value in flatten_for_env(loaded).items():
            click.echo(f"{name}={value}")
        return

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Values outside a setting's allowed range are stored corrected, e.g. update
    intervals are clamped and folder names normalized.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing or validation fails.
    """
    if not key.strip(". "):
        raise click.ClickException(
            "KEY must specify a dotted path such as 'stamping.min_interval_seconds'."
        )
    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    manager = ConfigManager()
    try:
        manager.ensure_exists()
        before = manager.read_text().splitlines()
        stored = manager.set_values({key: parsed_value})[key]
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if stored != parsed_value:
        console.print(f"[yellow]{key} adjusted to {stored!r}.[/yellow]")

    diff = [
        line
        for line in difflib.unified_diff(
            before,
            manager.read_text().splitlines(),
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
        if "Last updated" not in line
    ]
    changed = [
        line for line in diff if line[:1] in ("+", "-") and not line.startswith(("+++", "---"))
    ]
    if not changed:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {key}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return
    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Invalid YAML: {exc}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("Configuration file must contain a top-level mapping.")

    try:
        manager.replace(parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point.

    Returns:
        None: This function is invoked for its side effects.
    """
    cli()


if __name__ == "__main__":
    main()
