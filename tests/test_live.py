import logging
import threading
from pathlib import Path

import pytest

from slate.collections import EntryCollection
from slate.errors import MalformedContent
from slate.live import LiveSite, UpdatingSite, _ChangeHandler
from slate.site import Site


class DummyEvent:
    def __init__(self, path, event_type="modified", is_directory=False, dest_path=""):
        self.src_path = str(path)
        self.dest_path = str(dest_path) if dest_path else ""
        self.event_type = event_type
        self.is_directory = is_directory


def site_of(*entries):
    return Site(entries=EntryCollection(entries))


def test_live_site_replace_swaps_snapshot(make_entry):
    old = site_of(make_entry("old"))
    new = site_of(make_entry("new"))
    live = LiveSite(old)
    assert live.read() is old
    assert live.generation == 0

    live.replace(new)
    assert live.read() is new
    assert live.generation == 1


def test_in_flight_read_keeps_old_snapshot(make_entry):
    old = site_of(make_entry("a"), make_entry("b"))
    new = site_of(make_entry("c"))
    live = LiveSite(old)

    snapshot = live.read()
    first_half = [e.slug for e in snapshot.entries[:1]]
    live.replace(new)
    second_half = [e.slug for e in snapshot.entries[1:]]

    assert first_half + second_half == ["a", "b"]
    assert [e.slug for e in live.read().entries] == ["c"]


def test_concurrent_readers_never_see_torn_state(make_entry):
    sites = [
        site_of(*(make_entry(f"{gen}-{i}") for i in range(5))) for gen in range(20)
    ]
    live = LiveSite(sites[0])
    stop = threading.Event()
    errors = []

    def reader():
        last_generation = -1
        while not stop.is_set():
            site = live.read()
            prefixes = {e.slug.split("-")[0] for e in site.entries}
            if len(prefixes) != 1:
                errors.append(f"mixed snapshot: {prefixes}")
            generation = int(prefixes.pop())
            if generation < last_generation:
                errors.append("went back in time")
            last_generation = generation

    readers = [threading.Thread(target=reader) for _ in range(4)]
    for thread in readers:
        thread.start()
    for site in sites[1:]:
        live.replace(site)
    stop.set()
    for thread in readers:
        thread.join()

    assert errors == []
    assert live.read() is sites[-1]
    assert live.generation == 19


def test_from_dir_raises_on_startup_failure(content_root, output_root):
    bad = content_root / "blog" / "bad" / "content.md"
    bad.parent.mkdir()
    bad.write_text("oops", encoding="utf-8")
    with pytest.raises(MalformedContent):
        UpdatingSite.from_dir(content_root, output_root)


def test_rebuild_swaps_in_new_site(write_entry, content_root, output_root):
    write_entry("first")
    updating = UpdatingSite.from_dir(content_root, output_root)
    assert [e.slug for e in updating.read().entries] == ["first"]

    write_entry("second", front_matter="created_at = 2999-01-01T00:00:00Z")
    assert updating.rebuild() is True
    assert [e.slug for e in updating.read().entries] == ["second", "first"]
    assert updating.live.generation == 1


def test_failed_rebuild_keeps_last_good_snapshot(
    write_entry, content_root, output_root, caplog
):
    write_entry("good")
    updating = UpdatingSite.from_dir(content_root, output_root)
    before = updating.read()

    broken = write_entry("broken")
    broken.write_text("no delimiter", encoding="utf-8")
    with caplog.at_level(logging.ERROR, logger="slate.live"):
        assert updating.rebuild() is False
    assert updating.read() is before
    assert updating.live.generation == 0
    assert "Error rebuilding site" in caplog.text
    assert "broken" in caplog.text

    broken.write_text("+++\n+++\nfixed", encoding="utf-8")
    assert updating.rebuild() is True
    assert {e.slug for e in updating.read().entries} == {"good", "broken"}


def test_duplicate_slug_rebuild_leaves_model_untouched(
    write_entry, content_root, output_root
):
    write_entry("a", front_matter='slug = "same"')
    updating = UpdatingSite.from_dir(content_root, output_root)
    before = updating.read()

    write_entry("b", front_matter='slug = "same"')
    assert updating.rebuild() is False
    assert updating.read() is before


def test_failed_rebuild_leaves_previous_html_untouched(
    write_entry, content_root, output_root
):
    edited = write_entry(
        "a", front_matter="created_at = 2022-01-01T00:00:00Z", body="OLD body"
    )
    broken = write_entry("b", front_matter="created_at = 2021-01-01T00:00:00Z")
    updating = UpdatingSite.from_dir(content_root, output_root)
    before = updating.read()

    edited.write_text(
        "+++\ncreated_at = 2022-01-01T00:00:00Z\n+++\nNEW body", encoding="utf-8"
    )
    broken.write_text("no delimiter", encoding="utf-8")
    assert updating.rebuild() is False

    assert updating.read() is before
    assert "OLD body" in before.find("a").read_html()
    assert sorted((output_root / "blog").glob(".gen-*")) == [before.output_dir]


def test_rebuild_prunes_all_but_the_replaced_generation(
    write_entry, content_root, output_root
):
    path = write_entry("post", body="v0")
    updating = UpdatingSite.from_dir(content_root, output_root)
    first = updating.read()

    path.write_text("+++\n+++\nv1", encoding="utf-8")
    assert updating.rebuild() is True
    second = updating.read()
    assert "v0" in first.find("post").read_html()

    path.write_text("+++\n+++\nv2", encoding="utf-8")
    assert updating.rebuild() is True
    third = updating.read()

    assert sorted((output_root / "blog").glob(".gen-*")) == sorted(
        [second.output_dir, third.output_dir]
    )
    assert not first.output_dir.exists()
    assert "v2" in third.find("post").read_html()


def test_startup_build_prunes_stale_generations(write_entry, content_root, output_root):
    write_entry("post")
    stale = output_root / "blog" / ".gen-stale"
    stale.mkdir(parents=True)
    (stale / "post.html").write_text("<p>stale</p>", encoding="utf-8")

    updating = UpdatingSite.from_dir(content_root, output_root)
    assert not stale.exists()
    assert updating.read().output_dir.exists()


def test_rebuilds_are_serialized(monkeypatch, make_entry, tmp_path):
    updating = UpdatingSite(site_of(), tmp_path / "content", tmp_path / "output")
    active = []
    overlaps = []

    def fake_build(*args, **kwargs):
        active.append(1)
        if len(active) > 1:
            overlaps.append(True)
        threading.Event().wait(0.01)
        active.pop()
        return site_of(make_entry("x"))

    monkeypatch.setattr("slate.live.build_site", fake_build)
    threads = [threading.Thread(target=updating.rebuild) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert overlaps == []
    assert updating.live.generation == 5


def test_change_handler_triggers_rebuild(tmp_path):
    updating = UpdatingSite(site_of(), tmp_path / "content", tmp_path / "output")
    calls = []
    updating.rebuild = lambda: calls.append("rebuild")
    handler = _ChangeHandler(updating)

    handler.on_any_event(DummyEvent(tmp_path / "content" / "blog" / "a" / "content.md"))
    handler.on_any_event(
        DummyEvent(tmp_path / "content" / "blog" / "a", "deleted", is_directory=True)
    )
    handler.on_any_event(
        DummyEvent(
            tmp_path / "content" / "blog" / "a.md",
            "moved",
            dest_path=tmp_path / "content" / "blog" / "b.md",
        )
    )
    assert calls == ["rebuild", "rebuild", "rebuild"]


@pytest.mark.parametrize(
    "name, event_type, is_directory",
    [
        ("content.md", "opened", False),
        ("content.md", "closed_no_write", False),
        ("", "modified", True),
        (".content.md.swp", "modified", False),
        ("content.md~", "created", False),
        (".#content.md", "created", False),
    ],
)
def test_change_handler_ignores_noise(tmp_path, name, event_type, is_directory):
    updating = UpdatingSite(site_of(), tmp_path / "content", tmp_path / "output")
    calls = []
    updating.rebuild = lambda: calls.append("rebuild")
    handler = _ChangeHandler(updating)

    path = tmp_path / "content" / "blog" / "a" / name
    handler.on_any_event(DummyEvent(path, event_type, is_directory=is_directory))
    assert calls == []


def test_change_handler_skips_output(tmp_path):
    content_root = tmp_path / "content"
    updating = UpdatingSite(site_of(), content_root, content_root / "_output")
    calls = []
    updating.rebuild = lambda: calls.append("rebuild")
    handler = _ChangeHandler(updating)

    handler.on_any_event(DummyEvent(content_root / "_output" / "blog" / "a.html"))
    assert calls == []
    handler.on_any_event(
        DummyEvent(
            content_root / "_output" / "blog" / "a.html",
            "moved",
            dest_path=content_root / "blog" / "a.md",
        )
    )
    assert calls == ["rebuild"]


def test_change_handler_survives_unexpected_errors(tmp_path, caplog):
    updating = UpdatingSite(site_of(), tmp_path / "content", tmp_path / "output")

    def explode():
        raise RuntimeError("boom")

    updating.rebuild = explode
    handler = _ChangeHandler(updating)
    with caplog.at_level(logging.ERROR, logger="slate.live"):
        handler.on_any_event(DummyEvent(tmp_path / "content" / "blog" / "a.md"))
    assert "Unexpected error" in caplog.text


def test_start_and_stop_own_the_observer(monkeypatch, tmp_path):
    scheduled = []

    class DummyObserver:
        def schedule(self, handler, path, recursive):
            scheduled.append(("schedule", path, recursive))
            self.handler = handler

        def start(self):
            scheduled.append(("start",))

        def stop(self):
            scheduled.append(("stop",))

        def join(self):
            scheduled.append(("join",))

        def is_alive(self):
            return True

    monkeypatch.setattr("slate.live.Observer", DummyObserver)
    content_root = tmp_path / "content"
    updating = UpdatingSite(site_of(), content_root, tmp_path / "output")
    assert not updating.watching

    with updating as active:
        assert active is updating
        assert updating.watching
        updating.start()  # already running; no second observer
    assert scheduled == [
        ("schedule", str(content_root), True),
        ("start",),
        ("stop",),
        ("join",),
    ]
    assert not updating.watching
    updating.stop()


def test_watcher_rebuilds_on_real_edit(write_entry, content_root, output_root):
    write_entry("first")
    updating = UpdatingSite.from_dir(content_root, output_root)
    with updating:
        write_entry("second")
        deadline = threading.Event()
        for _ in range(100):
            if updating.read().find("second") is not None:
                break
            deadline.wait(0.05)
    assert updating.read().find("second") is not None
    assert Path(updating.read().find("second").html_path).exists()
