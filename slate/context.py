"""Template contexts built from a Site snapshot.

Every builder here is a pure function of a Site (plus site-wide metadata); none
of them touch the live model or the watcher. The only I/O is the lazy read of an
entry's rendered HTML in ``build_blog_entry_context``.

Key functions:
- paginate: Slice a sequence into a 1-based page with neighbour page numbers.
- build_index_context / build_blog_index_context / build_tags_context /
  build_blog_tag_context / build_blog_entry_context: Page contexts.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any
from urllib.parse import quote

from .build import SiteMeta
from .content import Entry
from .site import Site
from .utils import ordinal

RECENT_ENTRIES_LIMIT = 5
BLOG_INDEX_PAGE_SIZE = 10


def format_datetime(value: datetime) -> str:
    """Format a datetime for display, e.g. ``January 1st, 2021``."""
    return f"{value.strftime('%B')} {ordinal(value.day)}, {value.year}"


def tag_url(tag: str) -> str:
    return f"/blog/tags/{quote(tag, safe='')}"


@dataclass
class BaseContext:
    title: str
    meta_description: str


@dataclass
class EntryStub:
    """Lightweight projection of an Entry for lists and neighbour links."""

    slug: str
    title: str
    description: str
    tags: list[str]
    url: str
    created_at: str

    @classmethod
    def from_entry(cls, entry: Entry) -> EntryStub:
        return cls(
            slug=entry.slug,
            title=entry.title,
            description=entry.description,
            tags=list(entry.tags),
            url=entry.url,
            created_at=format_datetime(entry.created_at),
        )


@dataclass
class Pagination:
    """One page of a sequence.

    Attributes:
        items: The items on this page (empty past the end).
        page: The 1-based page number.
        previous_page: ``page - 1``, or None on the first page.
        next_page: ``page + 1`` if items remain after this page, else None.
    """

    items: list[Any]
    page: int
    previous_page: int | None
    next_page: int | None


def paginate(items: Sequence[Any], page: int, page_size: int) -> Pagination:
    """Slice ``items`` into the given 1-based page.

    Raises:
        ValueError: ``page`` or ``page_size`` is less than 1.
    """
    if page < 1:
        raise ValueError(f"page must be at least 1, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be at least 1, got {page_size}")
    start = (page - 1) * page_size
    end = start + page_size
    return Pagination(
        items=list(items[start:end]),
        page=page,
        previous_page=page - 1 if page > 1 else None,
        next_page=page + 1 if len(items) > end else None,
    )


class _Context:
    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class IndexContext(_Context):
    base: BaseContext
    recent_entries: list[EntryStub]


@dataclass
class AboutContext(_Context):
    base: BaseContext


@dataclass
class BlogIndexContext(_Context):
    base: BaseContext
    entries: list[EntryStub]
    page: int
    previous_page: int | None
    next_page: int | None


@dataclass
class TagSummary:
    name: str
    count: int
    url: str


@dataclass
class TagsContext(_Context):
    base: BaseContext
    tags: list[TagSummary]


@dataclass
class BlogTagContext(_Context):
    base: BaseContext
    tag: str
    entries: list[EntryStub]
    page: int
    previous_page: int | None
    next_page: int | None


@dataclass
class BlogEntryContext(_Context):
    base: BaseContext
    slug: str
    title: str
    tags: list[str]
    created_at: str
    updated_at: str | None
    entry_content: str
    comments_enabled: bool
    external_discussions: list[dict[str, str]] = field(default_factory=list)
    previous_entry: EntryStub | None = None
    next_entry: EntryStub | None = None


@dataclass
class ErrorContext(_Context):
    base: BaseContext
    header: str
    message: str


def build_index_context(site: Site, meta: SiteMeta) -> IndexContext:
    """Context for the home page: the most recent entries."""
    return IndexContext(
        base=BaseContext(title=meta.title, meta_description=meta.description),
        recent_entries=[
            EntryStub.from_entry(e) for e in site.entries.latest(RECENT_ENTRIES_LIMIT)
        ],
    )


def build_about_context(meta: SiteMeta) -> AboutContext:
    return AboutContext(
        base=BaseContext(title=f"About {meta.title}", meta_description=meta.description)
    )


def build_blog_index_context(site: Site, page: int, meta: SiteMeta) -> BlogIndexContext:
    """Context for one page of the blog index.

    Pages past the end have no entries; it is up to the caller whether that
    is a not-found.

    Raises:
        ValueError: ``page`` is less than 1.
    """
    pagination = paginate(site.entries, page, BLOG_INDEX_PAGE_SIZE)
    return BlogIndexContext(
        base=BaseContext(
            title=f"{meta.title} Blog", meta_description=meta.description
        ),
        entries=[EntryStub.from_entry(e) for e in pagination.items],
        page=pagination.page,
        previous_page=pagination.previous_page,
        next_page=pagination.next_page,
    )


def build_tags_context(site: Site, meta: SiteMeta) -> TagsContext:
    """Context for the tag index: every tag, sorted, with its entry count."""
    tags = site.tags()
    return TagsContext(
        base=BaseContext(title=f"{meta.title} Tags", meta_description=meta.description),
        tags=[
            TagSummary(name=name, count=len(entries), url=tag_url(name))
            for name, entries in tags.items()
        ],
    )


def build_blog_tag_context(
    site: Site, tag: str, page: int, meta: SiteMeta
) -> BlogTagContext | None:
    """Context for one page of entries carrying ``tag``.

    Returns:
        None when no entry has the tag. A known tag with a page past the end
        gives a context with no entries instead.

    Raises:
        ValueError: ``page`` is less than 1.
    """
    tagged = site.entries.with_tag(tag)
    if not tagged:
        return None
    pagination = paginate(tagged, page, BLOG_INDEX_PAGE_SIZE)
    return BlogTagContext(
        base=BaseContext(
            title=f"{meta.title} Blog: {tag}", meta_description=meta.description
        ),
        tag=tag,
        entries=[EntryStub.from_entry(e) for e in pagination.items],
        page=pagination.page,
        previous_page=pagination.previous_page,
        next_page=pagination.next_page,
    )


def find_neighbours(site: Site, entry: Entry) -> tuple[Entry | None, Entry | None]:
    """Return the (older, newer) neighbours of ``entry`` by slug.

    Entries are sorted newest first, so the older neighbour sits at the next
    index and the newer one at the previous index. An entry not in the site
    has no neighbours.
    """
    position = site.entries.position_of(entry.slug)
    if position is None:
        return None, None
    older = site.entries[position + 1] if position + 1 < len(site.entries) else None
    newer = site.entries[position - 1] if position > 0 else None
    return older, newer


def build_blog_entry_context(site: Site, entry: Entry, meta: SiteMeta) -> BlogEntryContext:
    """Context for an entry page, reading its rendered HTML from disk.

    Raises:
        OSError: The rendered HTML could not be read.
    """
    older, newer = find_neighbours(site, entry)
    return BlogEntryContext(
        base=BaseContext(
            title=entry.title or meta.title,
            meta_description=entry.description or entry.title,
        ),
        slug=entry.slug,
        title=entry.title,
        tags=list(entry.tags),
        created_at=format_datetime(entry.created_at),
        updated_at=format_datetime(entry.updated_at) if entry.updated_at else None,
        entry_content=entry.read_html(),
        comments_enabled=entry.comments_enabled,
        external_discussions=[
            {"name": d.name, "url": d.url} for d in entry.external_discussions
        ],
        previous_entry=EntryStub.from_entry(older) if older else None,
        next_entry=EntryStub.from_entry(newer) if newer else None,
    )


def build_error_context(header: str, message: str, meta: SiteMeta) -> ErrorContext:
    return ErrorContext(
        base=BaseContext(title=header, meta_description=meta.description),
        header=header,
        message=message,
    )
