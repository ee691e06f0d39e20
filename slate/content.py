"""Content processing for Slate.

This module turns content units under ``<content_root>/blog`` into Entry
objects. A content unit is either a directory holding ``content.md`` plus any
assets, or (legacy layout) a bare ``.md`` file.

Key classes:
- Entry: Immutable dataclass representing one blog entry.
- AssociatedFile: A non-content file living under an entry directory.
- ContentLoader: Discovers content units in the blog directory.
- EntryBuilder: Builds a validated Entry from one content unit.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .errors import FilesystemError, InvalidFrontMatter, MalformedContent
from .frontmatter import ExternalDiscussion, FrontMatter, parse_front_matter
from .materialize import materialize_html
from .renderers import MarkdownRenderer, default_renderer
from .utils import is_hidden, is_markdown

logger = logging.getLogger(__name__)

BLOG_DIR_NAME = "blog"
CONTENT_FILE_NAME = "content.md"
DEFAULT_ENTRY_TEMPLATE = "blog_entry"
DEFAULT_COMMENTS_ENABLED = True


@dataclass(frozen=True)
class AssociatedFile:
    """A file stored alongside an entry's content.

    Attributes:
        relative_path: POSIX path relative to the entry directory.
        full_path: Absolute location on disk.
    """

    relative_path: str
    full_path: Path


@dataclass(frozen=True)
class Entry:
    """Represents a blog entry with all its metadata.

    The rendered body is not held in memory; ``html_path`` points at the
    materialized HTML and ``read_html`` loads it on demand.

    Attributes:
        slug: Unique identifier used in URLs.
        title: Human-readable title.
        description: Short summary for listings and meta tags.
        tags: Tags in front matter order.
        created_at: Creation time (aware, UTC).
        updated_at: Optional last update time (aware, UTC).
        comments_enabled: Whether the comment widget is shown.
        external_discussions: Links to discussions elsewhere.
        template_name: Template used to render the entry page.
        html_path: Path of the rendered HTML body.
        associated_files: Non-content files under the entry directory.
        source_path: Content file the entry was parsed from.
    """

    slug: str
    title: str
    description: str
    tags: tuple[str, ...]
    created_at: datetime
    updated_at: datetime | None
    comments_enabled: bool
    external_discussions: tuple[ExternalDiscussion, ...]
    template_name: str
    html_path: Path
    associated_files: frozenset[AssociatedFile]
    source_path: Path

    @property
    def url(self) -> str:
        return f"/blog/{self.slug}"

    def read_html(self) -> str:
        """Read the rendered HTML body from disk.

        Raises:
            OSError: The materialized file is missing or unreadable.
        """
        with open(self.html_path, encoding="utf-8") as f:
            return f.read()

    def associated_file(self, relative_path: str) -> AssociatedFile | None:
        """Look up an associated file by its path relative to the entry."""
        for item in self.associated_files:
            if item.relative_path == relative_path:
                return item
        return None


@dataclass(frozen=True)
class ContentUnit:
    """One top-level child of the blog directory that holds an entry.

    Attributes:
        path: The directory (or legacy file) itself.
        content_path: The file containing front matter and body.
    """

    path: Path
    content_path: Path

    @property
    def is_directory(self) -> bool:
        return self.path != self.content_path


class ContentLoader:
    """Discovers content units in a blog directory.

    Children are visited in name order so the scan order, and with it the
    order of entries sharing a timestamp, is the same on every platform.

    Attributes:
        blog_dir: Directory whose immediate children are content units.
        legacy_files: Whether bare ``.md`` files count as entries.
    """

    def __init__(self, blog_dir: Path, legacy_files: bool = True):
        self.blog_dir = blog_dir
        self.legacy_files = legacy_files

    def iter_units(self) -> Iterator[ContentUnit]:
        """Yield each content unit under the blog directory.

        Raises:
            FilesystemError: The blog directory cannot be listed.
        """
        try:
            children = sorted(self.blog_dir.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            raise FilesystemError(
                self.blog_dir, f"could not read blog directory: {exc}", exc
            ) from exc

        for child in children:
            if is_hidden(child):
                continue
            if child.is_dir():
                content_path = child / CONTENT_FILE_NAME
                if content_path.is_file():
                    yield ContentUnit(child, content_path)
                else:
                    logger.debug("Skipping %s: no %s", child, CONTENT_FILE_NAME)
            elif self.legacy_files and child.is_file() and is_markdown(child):
                yield ContentUnit(child, child)
            else:
                logger.debug("Skipping %s: not a content unit", child)


class EntryBuilder:
    """Builds Entry objects from content units.

    Attributes:
        output_dir: Directory the rendered HTML bodies are written to.
        renderer: Markdown renderer.
    """

    def __init__(self, output_dir: Path, renderer: MarkdownRenderer | None = None):
        self.output_dir = output_dir
        self.renderer = renderer or default_renderer

    def build(self, unit: ContentUnit) -> Entry:
        """Build an Entry from a content unit.

        Args:
            unit: The content unit to process.

        Returns:
            A fully populated Entry.

        Raises:
            BuildError: Any step failed; the error names the offending path.
        """
        text = self._read(unit.content_path)
        front_matter, body = parse_front_matter(text, unit.content_path)

        html = self.renderer.render(body)
        html_path = materialize_html(self.output_dir, unit.path.name, html)

        associated = (
            self._collect_associated_files(unit) if unit.is_directory else frozenset()
        )
        return self._make_entry(unit, front_matter, html_path, associated)

    def _read(self, path: Path) -> str:
        try:
            with open(path, encoding="utf-8") as f:
                return f.read()
        except UnicodeDecodeError as exc:
            raise MalformedContent(path, "content is not valid UTF-8", exc) from exc
        except OSError as exc:
            raise FilesystemError(path, f"could not read content: {exc}", exc) from exc

    def _collect_associated_files(self, unit: ContentUnit) -> frozenset[AssociatedFile]:
        """Walk the unit directory collecting every file but the content file."""

        def on_error(exc: OSError) -> None:
            raise exc

        files = set()
        try:
            for root, _dirs, names in os.walk(unit.path, onerror=on_error):
                for name in names:
                    full_path = Path(root) / name
                    if full_path == unit.content_path:
                        continue
                    relative = full_path.relative_to(unit.path).as_posix()
                    files.add(AssociatedFile(relative, full_path))
        except OSError as exc:
            raise FilesystemError(
                unit.path, f"could not walk entry directory: {exc}", exc
            ) from exc
        return frozenset(files)

    def _make_entry(
        self,
        unit: ContentUnit,
        front_matter: FrontMatter,
        html_path: Path,
        associated: frozenset[AssociatedFile],
    ) -> Entry:
        slug = front_matter.slug
        if slug is None:
            slug = default_slug(unit)
        elif not slug or "/" in slug:
            raise InvalidFrontMatter(
                unit.content_path,
                f"field 'slug' must be a non-empty name without '/', got {slug!r}",
                field="slug",
            )

        created_at = front_matter.created_at or file_created_at(unit.content_path)
        comments_enabled = front_matter.comments_enabled
        if comments_enabled is None:
            comments_enabled = DEFAULT_COMMENTS_ENABLED

        return Entry(
            slug=slug,
            title=front_matter.title or "",
            description=front_matter.description or "",
            tags=tuple(front_matter.tags or ()),
            created_at=created_at,
            updated_at=front_matter.updated_at,
            comments_enabled=comments_enabled,
            external_discussions=tuple(front_matter.external_discussions or ()),
            template_name=front_matter.template or DEFAULT_ENTRY_TEMPLATE,
            html_path=html_path,
            associated_files=associated,
            source_path=unit.content_path,
        )


def default_slug(unit: ContentUnit) -> str:
    """Slug for a unit without one in its front matter.

    Directories use their full name; legacy files drop their extension.
    """
    if unit.is_directory:
        return unit.path.name
    return unit.path.stem


def file_created_at(path: Path) -> datetime:
    """Best available creation time of a file, as an aware UTC datetime.

    Uses the birth time where the platform records one and falls back to
    the modification time elsewhere.

    Raises:
        FilesystemError: The file cannot be stat'ed.
    """
    try:
        stat = path.stat()
    except OSError as exc:
        raise FilesystemError(path, f"could not read file metadata: {exc}", exc) from exc
    timestamp = getattr(stat, "st_birthtime", None)
    if timestamp is None:
        timestamp = stat.st_mtime
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)
