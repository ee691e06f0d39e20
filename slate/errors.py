"""Build errors for Slate.

Every failure that can abort a site build is a BuildError carrying the path of
the offending file or directory. Callers catch BuildError at the boundary: the
CLI turns it into an exit code, the watcher logs it and keeps the previous
snapshot live.
"""

from __future__ import annotations

from pathlib import Path


class BuildError(Exception):
    """Error during site build with file context.

    Attributes:
        source_path: Path to the source file or directory that caused the error.
        message: Human-readable error message.
        original_error: The original exception that was caught, if any.
    """

    def __init__(
        self,
        source_path: Path | None,
        message: str,
        original_error: Exception | None = None,
    ):
        self.source_path = source_path
        self.message = message
        self.original_error = original_error
        if source_path is None:
            super().__init__(message)
        else:
            super().__init__(f"{source_path}: {message}")


class MalformedContent(BuildError):
    """The front matter delimiters are missing or unterminated."""


class InvalidFrontMatter(BuildError):
    """The front matter is not valid TOML, or a field has the wrong type.

    Attributes:
        field: Name of the offending field, or None for a parse error.
    """

    def __init__(
        self,
        source_path: Path | None,
        message: str,
        original_error: Exception | None = None,
        field: str | None = None,
    ):
        self.field = field
        super().__init__(source_path, message, original_error)


class DuplicateSlug(BuildError):
    """Two entries resolved to the same slug.

    Attributes:
        slug: The repeated slug.
        first_path: Source of the entry that claimed the slug first.
    """

    def __init__(self, slug: str, source_path: Path, first_path: Path):
        self.slug = slug
        self.first_path = first_path
        super().__init__(
            source_path, f"duplicate slug '{slug}' (already used by {first_path})"
        )


class FilesystemError(BuildError):
    """Reading or enumerating the content tree failed."""


class RenderIOError(BuildError):
    """Writing rendered HTML to the output directory failed."""
