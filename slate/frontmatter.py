"""Front matter parsing for Slate.

A content file starts with a ``+++`` line, followed by a TOML block, a second
``+++`` line, and the Markdown body:

    +++
    title = "Hello"
    tags = ["rust", "web"]
    created_at = 2021-03-04T05:06:07Z
    +++
    Body text.

Key functions:
- parse_front_matter: Split a file into a FrontMatter record and its body.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any

from .errors import InvalidFrontMatter, MalformedContent

FRONT_MATTER_DELIMITER = "+++"


@dataclass(frozen=True)
class ExternalDiscussion:
    """A link to a discussion of an entry hosted elsewhere."""

    name: str
    url: str


@dataclass
class FrontMatter:
    """Metadata parsed from a content file's TOML header.

    Every field is optional; defaults are applied by the entry builder.
    """

    slug: str | None = None
    title: str | None = None
    description: str | None = None
    template: str | None = None
    tags: list[str] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    comments_enabled: bool | None = None
    external_discussions: list[ExternalDiscussion] | None = None
    extra: dict[str, Any] = field(default_factory=dict)


def parse_front_matter(text: str, path: Path | None = None) -> tuple[FrontMatter, str]:
    """Split a content file into its front matter and body.

    Args:
        text: Full text of the content file.
        path: Source path, used only for error context.

    Returns:
        Tuple of (FrontMatter, body text).

    Raises:
        MalformedContent: The first line is not the delimiter, or the closing
            delimiter never appears.
        InvalidFrontMatter: The block is not valid TOML or a field has the
            wrong type.
    """
    lines = text.splitlines()
    if not lines or lines[0] != FRONT_MATTER_DELIMITER:
        raise MalformedContent(
            path, f"content does not start with '{FRONT_MATTER_DELIMITER}'"
        )

    for index, line in enumerate(lines[1:], start=1):
        if line == FRONT_MATTER_DELIMITER:
            block = lines[1:index]
            body = lines[index + 1 :]
            break
    else:
        raise MalformedContent(
            path, f"front matter is missing its closing '{FRONT_MATTER_DELIMITER}'"
        )

    try:
        data = tomllib.loads("\n".join(block))
    except tomllib.TOMLDecodeError as exc:
        raise InvalidFrontMatter(path, f"invalid TOML: {exc}", exc) from exc

    return _to_front_matter(data, path), "\n".join(body)


def _to_front_matter(data: dict[str, Any], path: Path | None) -> FrontMatter:
    """Validate field types and build a FrontMatter record."""
    known = {
        "slug": _string(data, "slug", path),
        "title": _string(data, "title", path),
        "description": _string(data, "description", path),
        "template": _string(data, "template", path),
        "tags": _string_list(data, "tags", path),
        "created_at": _timestamp(data, "created_at", path),
        "updated_at": _timestamp(data, "updated_at", path),
        "comments_enabled": _boolean(data, "comments_enabled", path),
        "external_discussions": _discussions(data, "external_discussions", path),
    }
    extra = {k: v for k, v in data.items() if k not in known}
    return FrontMatter(**known, extra=extra)


def _wrong_type(path: Path | None, key: str, expected: str, value: Any):
    return InvalidFrontMatter(
        path,
        f"field '{key}' must be {expected}, got {type(value).__name__}",
        field=key,
    )


def _string(data: dict[str, Any], key: str, path: Path | None) -> str | None:
    value = data.get(key)
    if value is None or isinstance(value, str):
        return value
    raise _wrong_type(path, key, "a string", value)


def _boolean(data: dict[str, Any], key: str, path: Path | None) -> bool | None:
    value = data.get(key)
    if value is None or isinstance(value, bool):
        return value
    raise _wrong_type(path, key, "a boolean", value)


def _string_list(data: dict[str, Any], key: str, path: Path | None) -> list[str] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise _wrong_type(path, key, "an array of strings", value)
    return list(value)


def _timestamp(data: dict[str, Any], key: str, path: Path | None) -> datetime | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, datetime):
        return normalize_datetime(value)
    if isinstance(value, date):
        return datetime.combine(value, time(0, 0), tzinfo=timezone.utc)
    raise _wrong_type(path, key, "a date or datetime", value)


def _discussions(
    data: dict[str, Any], key: str, path: Path | None
) -> list[ExternalDiscussion] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list):
        raise _wrong_type(path, key, "an array of tables", value)
    discussions = []
    for item in value:
        if (
            not isinstance(item, dict)
            or not isinstance(item.get("name"), str)
            or not isinstance(item.get("url"), str)
        ):
            raise InvalidFrontMatter(
                path,
                f"field '{key}' entries need string 'name' and 'url' keys",
                field=key,
            )
        discussions.append(ExternalDiscussion(name=item["name"], url=item["url"]))
    return discussions


def normalize_datetime(value: datetime) -> datetime:
    """Return an aware UTC datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
