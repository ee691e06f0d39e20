"""Live site model for Slate.

Keeps the current Site snapshot fresh while a watchdog observer watches the
content root and rebuilds in the background.

Key classes:
- LiveSite: Holds the current snapshot; cheap reads, atomic replace.
- UpdatingSite: Owns a LiveSite together with the observer that feeds it, so
  the watcher lives exactly as long as the model it updates.
- _ChangeHandler: File system event handler that filters noise and triggers
  rebuilds.

Concurrency model: one writer (the observer's dispatch thread running
``rebuild``) and any number of readers. Builds run outside every lock on a
private Site; only the finished snapshot is swapped in.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .build import build_site, prune_generations
from .errors import BuildError
from .renderers import MarkdownRenderer
from .site import Site
from .utils import is_scratch_file

logger = logging.getLogger(__name__)

# Notifications that never correspond to a content change.
NOTICE_EVENT_TYPES = frozenset({"opened", "closed_no_write"})


class LiveSite:
    """Concurrency-safe holder of the current Site snapshot.

    Attributes:
        generation: Number of snapshots swapped in since construction.
    """

    def __init__(self, site: Site):
        self._site = site
        self._generation = 0
        self._lock = threading.Lock()

    def read(self) -> Site:
        """Return the current snapshot.

        A single reference load; never blocks and never does I/O. The returned
        Site is immutable, so callers may keep using it after a replace.
        """
        return self._site

    def replace(self, site: Site) -> None:
        """Atomically make ``site`` the current snapshot.

        The lock is held only for the assignment. Any read starting after this
        returns observes ``site`` or a later snapshot.
        """
        with self._lock:
            self._site = site
            self._generation += 1

    @property
    def generation(self) -> int:
        return self._generation


class UpdatingSite:
    """A LiveSite kept up to date by a filesystem watcher.

    The observer is owned here and stopped by ``stop`` (or on leaving the
    ``with`` block); dropping this object is the only way to stop rebuilds.

    Attributes:
        content_root: Directory being watched and built from.
        output_root: Directory rendered HTML is written to.
        live: The LiveSite serving readers.
    """

    def __init__(
        self,
        site: Site,
        content_root: Path,
        output_root: Path,
        renderer: MarkdownRenderer | None = None,
        legacy_files: bool = True,
    ):
        self.content_root = content_root
        self.output_root = output_root
        self.live = LiveSite(site)
        self._renderer = renderer
        self._legacy_files = legacy_files
        self._rebuild_lock = threading.Lock()
        self._observer: Observer | None = None

    @classmethod
    def from_dir(
        cls,
        content_root: Path,
        output_root: Path,
        renderer: MarkdownRenderer | None = None,
        legacy_files: bool = True,
    ) -> UpdatingSite:
        """Run the startup build and wrap the result.

        There is no earlier snapshot to fall back on, so a failure here is
        raised to the caller rather than logged.

        Raises:
            BuildError: The initial build failed.
        """
        site = build_site(content_root, output_root, renderer, legacy_files)
        prune_generations(output_root, keep=[site.output_dir])
        logger.info("Built site with %d entries", len(site.entries))
        return cls(site, content_root, output_root, renderer, legacy_files)

    def read(self) -> Site:
        return self.live.read()

    def start(self) -> None:
        """Start watching the content root recursively."""
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(_ChangeHandler(self), str(self.content_root), recursive=True)
        observer.start()
        self._observer = observer
        logger.info("Watching %s for changes", self.content_root)

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    @property
    def watching(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def __enter__(self) -> UpdatingSite:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def rebuild(self) -> bool:
        """Rebuild the site and swap it in on success.

        Rebuilds are serialized; an event arriving mid-rebuild waits and then
        triggers a fresh rebuild. On failure the current snapshot stays live.
        Once the new snapshot is live, output generations older than the one
        it replaced are removed.

        Returns:
            True if a new snapshot was swapped in.
        """
        with self._rebuild_lock:
            logger.info("Changes detected, rebuilding site...")
            try:
                site = build_site(
                    self.content_root,
                    self.output_root,
                    self._renderer,
                    self._legacy_files,
                )
            except BuildError as exc:
                logger.error(
                    "Error rebuilding site: %s", exc, exc_info=exc.original_error
                )
                return False
            previous = self.live.read()
            self.live.replace(site)
            # The replaced generation stays for requests still rendering from it.
            prune_generations(
                self.output_root, keep=[site.output_dir, previous.output_dir]
            )
            logger.info("Site rebuilt successfully (%d entries)", len(site.entries))
            return True


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, updating_site: UpdatingSite):
        super().__init__()
        self.updating_site = updating_site

    def on_any_event(self, event: FileSystemEvent) -> None:
        if not self._is_content_change(event):
            return
        try:
            self.updating_site.rebuild()
        except Exception:
            # The observer thread must survive; the previous snapshot stays live.
            logger.exception("Unexpected error while handling %s", event.src_path)

    def _is_content_change(self, event: FileSystemEvent) -> bool:
        if event.event_type in NOTICE_EVENT_TYPES:
            return False
        if event.is_directory and event.event_type == "modified":
            return False
        raw_paths = [event.src_path, getattr(event, "dest_path", "")]
        paths = [Path(os.fsdecode(p)).absolute() for p in raw_paths if p]
        output_root = self.updating_site.output_root.absolute()
        return any(
            not path.is_relative_to(output_root) and not is_scratch_file(path)
            for path in paths
        )
