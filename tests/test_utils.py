from pathlib import Path

import pytest

from slate.utils import is_hidden, is_markdown, is_scratch_file, ordinal, slugify, titleize


def test_slugify():
    assert slugify("Hello, World!") == "hello-world"
    assert slugify("  already-slugged ") == "already-slugged"
    assert slugify("!!!") == ""


def test_titleize():
    assert titleize("getting-started") == "Getting Started"
    assert titleize("my_post.md") == "My Post"
    assert titleize("---") == "Untitled"


def test_path_predicates():
    assert is_markdown(Path("a/POST.MD"))
    assert not is_markdown(Path("a/post.txt"))
    assert is_hidden(Path("blog/.DS_Store"))
    assert not is_hidden(Path(".config/post"))
    assert is_scratch_file(Path("blog/.#content.md"))
    assert is_scratch_file(Path("blog/content.md~"))
    assert is_scratch_file(Path("blog/.content.md.swp"))
    assert not is_scratch_file(Path("blog/content.md"))
    assert not is_scratch_file(Path("blog/post/data.tmp"))


@pytest.mark.parametrize(
    "number, expected",
    [(1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (11, "11th"), (12, "12th"),
     (13, "13th"), (21, "21st"), (22, "22nd"), (101, "101st"), (111, "111th")],
)
def test_ordinal(number, expected):
    assert ordinal(number) == expected
