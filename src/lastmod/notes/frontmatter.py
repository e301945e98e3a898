"""YAML front matter parsing and rendering."""

from __future__ import annotations

import re
from typing import Any, Mapping, Tuple

import yaml

from .errors import FrontMatterError

_FRONT_MATTER = re.compile(
    r"\A---[ \t]*\r?\n(?P<yaml>.*?)^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class _NoteLoader(yaml.SafeLoader):
    """Safe loader that leaves date-like scalars as the strings written in the note."""


_NoteLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def split_front_matter(text: str) -> Tuple[dict[str, Any], str, bool]:
    """Split a note into its front matter mapping and body.

    Args:
        text: Full note contents.

    Returns:
        Tuple[dict[str, Any], str, bool]: Front matter mapping, body text, and
        whether the note carried a front matter block.

    Raises:
        FrontMatterError: If the block is not valid YAML or not a mapping.
    """
    match = _FRONT_MATTER.match(text)
    if match is None:
        return {}, text, False

    try:
        data = yaml.load(match.group("yaml"), Loader=_NoteLoader) or {}
    except yaml.YAMLError as exc:
        raise FrontMatterError(f"Invalid front matter: {exc}") from exc
    if not isinstance(data, dict):
        raise FrontMatterError("Front matter must contain a mapping at the top level.")
    return data, text[match.end() :], True


def render_front_matter(data: Mapping[str, Any], body: str) -> str:
    """Return note contents with ``data`` serialized as the front matter block.

    Args:
        data: Properties to serialize; key order is preserved.
        body: Text following the block.

    Returns:
        str: Full note contents.
    """
    if not data:
        return "---\n---\n" + body
    serialized = yaml.safe_dump(
        dict(data),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"---\n{serialized}---\n{body}"


__all__ = ["split_front_matter", "render_front_matter"]
