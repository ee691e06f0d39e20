"""Writing rendered entry bodies to the output directory.

Entries keep only the path of their rendered HTML, never the HTML itself, so
memory use does not grow with the size of the blog.
"""

from __future__ import annotations

from pathlib import Path

from .errors import RenderIOError


def materialize_html(output_dir: Path, name: str, html: str) -> Path:
    """Write rendered HTML to ``<output_dir>/<name>.html``.

    The output directory is created if missing and any previous file is
    truncated.

    Args:
        output_dir: Directory to write into.
        name: Name of the source unit; ``.html`` is appended.
        html: Rendered HTML body.

    Returns:
        Path of the written file.

    Raises:
        RenderIOError: The directory or file could not be written.
    """
    target = output_dir / f"{name}.html"
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            f.write(html)
    except OSError as exc:
        raise RenderIOError(target, f"could not write rendered HTML: {exc}", exc) from exc
    return target
