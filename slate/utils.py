"""Utility functions for Slate.

Key functions:
    slugify: Convert names to URL slugs.
    titleize: Convert names to human-readable titles.
    is_markdown: Check if a path is a Markdown file.
    is_hidden: Check if a path name is hidden.
    is_scratch_file: Check if a path is an editor swap/backup file.
    ordinal: English ordinal suffix for a number.
"""

from __future__ import annotations

import re
from pathlib import Path

SCRATCH_SUFFIXES = (".swp", ".swx", "~")


def slugify(name: str) -> str:
    """Convert a name to a lowercase, hyphen-separated slug.

    Args:
        name: Arbitrary text such as a title or filename stem.

    Returns:
        URL-friendly slug, or an empty string if nothing survives.

    Examples:
        >>> slugify("Hello, World!")
        'hello-world'
    """
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "-", name)
    return cleaned.strip("-").lower()


def titleize(name: str) -> str:
    """Convert a slug or filename to a human-readable title.

    Examples:
        >>> titleize("getting-started")
        'Getting Started'
    """
    words = re.split(r"[\s\-_]+", Path(name).stem)
    return " ".join(word.capitalize() for word in words if word) or "Untitled"


def is_markdown(path: Path) -> bool:
    """Check if a path is a Markdown file (case-insensitive .md)."""
    return path.suffix.lower() == ".md"


def is_hidden(path: Path) -> bool:
    """Check if a path's own name starts with a dot."""
    return path.name.startswith(".")


def is_scratch_file(path: Path) -> bool:
    """Check if a path looks like an editor swap, lock or backup file.

    Args:
        path: Path reported by the filesystem watcher.

    Returns:
        True for names like ``.#post.md``, ``post.md~`` or ``.post.md.swp``.
    """
    name = path.name
    return name.startswith(".#") or name.endswith(SCRATCH_SUFFIXES)


def ordinal(number: int) -> str:
    """Return the number with its English ordinal suffix.

    Examples:
        >>> ordinal(1), ordinal(12), ordinal(23)
        ('1st', '12th', '23rd')
    """
    if 10 <= number % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"
