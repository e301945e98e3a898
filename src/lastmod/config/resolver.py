"""Layering of configuration sources into a validated ``LastmodConfig``."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Iterable, Mapping, Optional

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import LastmodConfig

ENV_PREFIX = "LASTMOD__"


def resolve_with_precedence(
    *,
    defaults: LastmodConfig,
    file_overrides: Optional[Mapping[str, Any]] = None,
    env_overrides: Optional[Mapping[str, Any]] = None,
    cli_overrides: Optional[Mapping[str, Any]] = None,
) -> LastmodConfig:
    """Validate the merge of defaults < file < environment < CLI.

    CLI overrides use dotted keys (``stamping.min_interval_seconds``); the other
    layers are nested mappings.

    Raises:
        ConfigError: If a layer is malformed or the merged values do not validate.
    """
    layers: list[Mapping[str, Any]] = [defaults.model_dump(mode="python")]
    if file_overrides is not None:
        layers.append(_require_mapping(file_overrides, "file"))
    if env_overrides is not None:
        layers.append(_require_mapping(env_overrides, "environment"))
    if cli_overrides is not None:
        layers.append(expand_dotted(_require_mapping(cli_overrides, "cli")))
    return validate_config(merge_layers(layers))


def validate_config(data: Mapping[str, Any]) -> LastmodConfig:
    """Build a ``LastmodConfig`` from merged data, reporting each bad field.

    Raises:
        ConfigError: Naming every rejected setting by its dotted key.
    """
    try:
        return LastmodConfig.model_validate(data)
    except ValidationError as exc:
        problems = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        first_key = ".".join(str(part) for part in exc.errors()[0]["loc"])
        raise ConfigError(
            "Invalid configuration values: " + "; ".join(problems), key=first_key
        ) from exc


def merge_layers(layers: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Deep-merge nested mappings; later layers win, lists are replaced whole."""
    merged: dict[str, Any] = {}
    for layer in layers:
        merged = _merge(merged, layer)
    return merged


def expand_dotted(overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Turn ``{"stamping.collapse_per_day": False}`` into nested mappings.

    Raises:
        ConfigError: If a key is not a string or two keys collide.
    """
    nested: dict[str, Any] = {}
    for key, value in overrides.items():
        if not isinstance(key, str) or not key.strip("."):
            raise ConfigError(f"Override key {key!r} must be a dotted setting name.")
        path = [segment for segment in key.split(".") if segment]
        try:
            assign_nested(nested, path, value)
        except ConfigError as exc:
            raise ConfigError(f"Override {key} collides with another override.", key=key) from exc
    return nested


def env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``LASTMOD__SECTION__KEY`` variables; values are read as YAML literals."""
    overrides: dict[str, Any] = {}
    for name, raw_value in env.items():
        if not name.startswith(ENV_PREFIX):
            continue
        path = [segment.lower() for segment in name[len(ENV_PREFIX) :].split("__") if segment]
        if not path:
            continue
        try:
            value = yaml.safe_load(raw_value)
        except yaml.YAMLError:
            value = raw_value
        assign_nested(overrides, path, value)
    return overrides


def flatten_for_env(config: LastmodConfig) -> Dict[str, str]:
    """Render every setting as the environment variable that would override it."""
    flat: Dict[str, str] = {}
    stack: list[tuple[list[str], Any]] = [([], config.model_dump(mode="python"))]
    while stack:
        path, value = stack.pop()
        if isinstance(value, dict):
            stack.extend(([*path, str(key)], child) for key, child in value.items())
            continue
        name = ENV_PREFIX + "__".join(part.upper() for part in path)
        if isinstance(value, bool):
            flat[name] = str(value).lower()
        elif isinstance(value, list):
            flat[name] = yaml.safe_dump(value, default_flow_style=True).strip()
        else:
            flat[name] = str(value)
    return dict(sorted(flat.items()))


def assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Set ``value`` at ``path`` inside ``target``, creating sections on the way.

    Raises:
        ConfigError: If a non-mapping value sits where a section is expected.
    """
    node = target
    for segment in path[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(f"'{segment}' is a value, not a section.", key=".".join(path))
        node = child
    node[path[-1]] = value


def lookup_nested(source: Mapping[str, Any], path: list[str]) -> Any:
    """Return the value at ``path`` or ``None`` when any segment is missing."""
    node: Any = source
    for segment in path:
        if not isinstance(node, MappingABC) or segment not in node:
            return None
        node = node[segment]
    return node


def _require_mapping(source: Any, layer: str) -> Mapping[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{layer.capitalize()} configuration must be a mapping.")
    return source


def _merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = [
    "ENV_PREFIX",
    "assign_nested",
    "env_overrides",
    "expand_dotted",
    "flatten_for_env",
    "lookup_nested",
    "merge_layers",
    "resolve_with_precedence",
    "validate_config",
]
