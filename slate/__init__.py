"""Slate blog engine.

This package ingests a directory of blog content (TOML front matter plus Markdown,
with any associated assets) into an immutable in-memory site model, renders entry
bodies to HTML on disk, and keeps a live snapshot of the model fresh while a
filesystem watcher rebuilds it in the background.

Layout:
- frontmatter / content / site: parsing and building a Site snapshot.
- live: the concurrency-safe holder of the current snapshot and its watcher.
- context: pure view builders (pagination, tags, neighbours) over a snapshot.
- templates / server / cli: the outer surfaces consuming those contexts.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
