from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from slate.content import Entry


@pytest.fixture
def content_root(tmp_path):
    root = tmp_path / "content"
    (root / "blog").mkdir(parents=True)
    return root


@pytest.fixture
def output_root(tmp_path):
    return tmp_path / "output"


@pytest.fixture
def write_entry(content_root):
    """Write an entry under content/blog; directory layout unless legacy=True."""

    def write(name, front_matter="", body="Body text.", files=None, legacy=False):
        blog = content_root / "blog"
        path = blog / name if legacy else blog / name / "content.md"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"+++\n{front_matter}\n+++\n{body}", encoding="utf-8")
        for rel, text in (files or {}).items():
            target = path.parent / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        return path

    return write


BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def make_entry(tmp_path):
    """Build an in-memory Entry; ``day`` offsets created_at from 2024-01-01."""

    def make(slug, day=0, tags=(), title=None, html="<p>hi</p>"):
        html_path = tmp_path / "html" / f"{slug}.html"
        html_path.parent.mkdir(parents=True, exist_ok=True)
        html_path.write_text(html, encoding="utf-8")
        return Entry(
            slug=slug,
            title=title if title is not None else slug.title(),
            description="",
            tags=tuple(tags),
            created_at=BASE_TIME + timedelta(days=day),
            updated_at=None,
            comments_enabled=True,
            external_discussions=(),
            template_name="blog_entry",
            html_path=html_path,
            associated_files=frozenset(),
            source_path=Path(f"/content/blog/{slug}/content.md"),
        )

    return make
