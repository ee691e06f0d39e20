"""The immutable site snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .collections import EntryCollection, TagCollection
from .content import Entry


@dataclass(frozen=True)
class Site:
    """One fully built, never mutated view of the content tree.

    Attributes:
        entries: Entries sorted by ``created_at`` descending, slugs unique.
        output_dir: Generation directory holding this snapshot's HTML.
        built_at: When the snapshot was produced.
    """

    entries: EntryCollection
    output_dir: Path | None = None
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def find(self, slug: str) -> Entry | None:
        return self.entries.get(slug)

    def tags(self) -> TagCollection:
        return TagCollection(self.entries)
