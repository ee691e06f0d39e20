"""Site building functionality for Slate.

This module scans a content root, builds every entry, validates that slugs are
unique and produces an immutable Site snapshot. A build either succeeds as a
whole or raises a BuildError; there is no best-effort mode, so a half-built
site can never be served.

Key functions:
- build_site: Build a Site from a content root into an output root.
- prune_generations: Remove output generations no snapshot uses any more.
- load_config: Load project configuration from slate.yaml.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .collections import EntryCollection
from .content import BLOG_DIR_NAME, ContentLoader, Entry, EntryBuilder
from .errors import BuildError, DuplicateSlug, RenderIOError
from .renderers import MarkdownRenderer
from .site import Site

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "slate.yaml"
GENERATION_PREFIX = ".gen-"

DEFAULT_CONFIG = {
    "content_dir": "content",
    "output_dir": "output",
    "templates_dir": "templates",
    "static_dir": "static",
    "host": "127.0.0.1",
    "port": 4000,
    "title": "Slate",
    "description": "",
    "legacy_files": True,
}


@dataclass(frozen=True)
class SiteMeta:
    """Site-wide presentation metadata passed to the context builders."""

    title: str = "Slate"
    description: str = ""

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> SiteMeta:
        return cls(
            title=str(config.get("title") or ""),
            description=str(config.get("description") or ""),
        )


def load_config(project_root: Path) -> dict[str, Any]:
    """Load project configuration from slate.yaml.

    Args:
        project_root: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.
    """
    config_path = project_root / CONFIG_FILE_NAME
    config = DEFAULT_CONFIG.copy()
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                config.update(loaded)
    return config


def resolve_dir(project_root: Path, config: dict[str, Any], key: str) -> Path:
    """Resolve a configured directory relative to the project root."""
    return project_root / str(config.get(key) or DEFAULT_CONFIG[key])


class SiteBuilder:
    """Builds Site snapshots from a content root.

    Every build writes its HTML into a fresh generation directory
    ``<output_root>/blog/.gen-*`` so the files behind an earlier snapshot are
    never overwritten. A failed build removes its own generation.

    Attributes:
        content_root: Directory containing ``blog/``.
        output_root: Directory rendered HTML is written under.
        legacy_files: Whether bare ``blog/*.md`` files are entries.
    """

    def __init__(
        self,
        content_root: Path,
        output_root: Path,
        renderer: MarkdownRenderer | None = None,
        legacy_files: bool = True,
    ):
        self.content_root = content_root
        self.output_root = output_root
        self.legacy_files = legacy_files
        self.renderer = renderer
        self._loader = ContentLoader(content_root / BLOG_DIR_NAME, legacy_files)

    def build(self) -> Site:
        """Scan the whole content tree and return a new Site.

        Raises:
            BuildError: Any entry failed to build, or two entries share a slug.
        """
        generation_dir = self._make_generation_dir()
        try:
            entries = self._build_entries(EntryBuilder(generation_dir, self.renderer))
        except BuildError:
            shutil.rmtree(generation_dir, ignore_errors=True)
            raise

        site = Site(
            entries=EntryCollection(entries).sorted(), output_dir=generation_dir
        )
        logger.debug(
            "Built %d entries from %s into %s",
            len(site.entries),
            self.content_root,
            generation_dir,
        )
        return site

    def _build_entries(self, entry_builder: EntryBuilder) -> list[Entry]:
        entries: list[Entry] = []
        seen: dict[str, Path] = {}
        for unit in self._loader.iter_units():
            entry = entry_builder.build(unit)
            if entry.slug in seen:
                raise DuplicateSlug(entry.slug, entry.source_path, seen[entry.slug])
            seen[entry.slug] = entry.source_path
            entries.append(entry)
        return entries

    def _make_generation_dir(self) -> Path:
        blog_out = self.output_root / BLOG_DIR_NAME
        try:
            blog_out.mkdir(parents=True, exist_ok=True)
            return Path(tempfile.mkdtemp(prefix=GENERATION_PREFIX, dir=blog_out))
        except OSError as exc:
            raise RenderIOError(
                blog_out, f"could not create output directory: {exc}", exc
            ) from exc


def build_site(
    content_root: Path,
    output_root: Path,
    renderer: MarkdownRenderer | None = None,
    legacy_files: bool = True,
) -> Site:
    """Build a Site from ``content_root`` into ``output_root``.

    Args:
        content_root: Directory containing the ``blog`` directory.
        output_root: Directory the rendered HTML is written under.
        renderer: Optional custom Markdown renderer.
        legacy_files: Whether bare ``blog/*.md`` files are entries.

    Returns:
        The new Site snapshot.

    Raises:
        BuildError: The build failed; the error names the offending path.
    """
    return SiteBuilder(content_root, output_root, renderer, legacy_files).build()


def prune_generations(output_root: Path, keep: Iterable[Path | None]) -> list[Path]:
    """Remove generation directories not listed in ``keep``.

    Call this only after the snapshot owning the newest kept directory has
    been swapped in.

    Args:
        output_root: Output root passed to ``build_site``.
        keep: Generation directories still referenced by live snapshots.

    Returns:
        The directories that were removed.
    """
    blog_out = output_root / BLOG_DIR_NAME
    kept = {path for path in keep if path is not None}
    try:
        children = sorted(blog_out.iterdir())
    except FileNotFoundError:
        return []
    except OSError as exc:
        logger.warning("Could not list %s for pruning: %s", blog_out, exc)
        return []

    removed = []
    for child in children:
        if not child.name.startswith(GENERATION_PREFIX) or child in kept:
            continue
        if not child.is_dir():
            continue
        shutil.rmtree(child, ignore_errors=True)
        logger.debug("Pruned old output generation %s", child)
        removed.append(child)
    return removed
