from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence

from .content import Entry


class EntryCollection(Sequence[Entry]):
    """Immutable, ordered sequence of Entries with lookup helpers."""

    def __init__(self, entries: Iterable[Entry]):
        self._entries = tuple(entries)
        self._positions: dict[str, int] | None = None

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return EntryCollection(self._entries[item])
        return self._entries[item]

    def __eq__(self, other) -> bool:
        if isinstance(other, EntryCollection):
            return self._entries == other._entries
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._entries)

    def with_tag(self, tag: str) -> EntryCollection:
        return EntryCollection(e for e in self._entries if tag in e.tags)

    def sorted(self) -> EntryCollection:
        """Newest first by ``created_at``; ties keep their current order."""
        return EntryCollection(
            sorted(self._entries, key=lambda e: e.created_at, reverse=True)
        )

    def latest(self, count: int = 5) -> EntryCollection:
        return self[:count]

    def tags(self) -> list[str]:
        """Every tag used by any entry, deduplicated and sorted (case-sensitive)."""
        return sorted({tag for entry in self._entries for tag in entry.tags})

    def position_of(self, slug: str) -> int | None:
        """Index of the entry with ``slug``, or None if absent."""
        if self._positions is None:
            self._positions = {e.slug: i for i, e in enumerate(self._entries)}
        return self._positions.get(slug)

    def get(self, slug: str) -> Entry | None:
        position = self.position_of(slug)
        return None if position is None else self._entries[position]

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"EntryCollection({len(self._entries)} entries)"


class TagCollection(Mapping[str, EntryCollection]):
    """Mapping of tag name to EntryCollection, keys sorted ascending."""

    def __init__(self, entries: Iterable[Entry]):
        mapping: dict[str, list[Entry]] = {}
        for entry in entries:
            for tag in dict.fromkeys(entry.tags):
                mapping.setdefault(tag, []).append(entry)
        self._mapping = {k: EntryCollection(mapping[k]) for k in sorted(mapping)}

    def __getitem__(self, key: str) -> EntryCollection:
        return self._mapping[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:  # pragma: no cover - for debugging
        return f"TagCollection({len(self._mapping)} tags)"
