"""Command-line interface for Slate.

This module defines the CLI commands using the Click framework.

Commands:
- build: Build the site once and report the result.
- serve: Build, watch for changes and serve the live site.
- new: Scaffold a new blog entry directory.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import click

from . import __version__
from .build import SiteMeta, build_site, load_config, prune_generations, resolve_dir
from .content import BLOG_DIR_NAME, CONTENT_FILE_NAME
from .errors import BuildError
from .frontmatter import FRONT_MATTER_DELIMITER
from .utils import slugify, titleize

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.version_option(version=__version__, prog_name="slate")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
@click.option("-q", "--quiet", is_flag=True, help="Only log warnings and errors")
def cli(verbose: bool, quiet: bool):
    """Slate blog engine."""
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _report_build_error(exc: BuildError, project_root: Path) -> None:
    """Display a user-friendly build failure."""
    path = exc.source_path
    if path is not None:
        try:
            path = path.relative_to(project_root)
        except ValueError:
            pass
    click.echo(click.style("Build failed:", fg="red", bold=True), err=True)
    if path is not None:
        click.echo(click.style(f"  File: {path}", fg="yellow"), err=True)
    click.echo(click.style(f"  Error: {exc.message}", fg="white"), err=True)
    if exc.original_error is not None:
        click.echo(f"  Cause: {exc.original_error}", err=True)


@cli.command()
def build():
    """Build the site into the output directory."""
    project_root = Path.cwd()
    config = load_config(project_root)
    content_root = resolve_dir(project_root, config, "content_dir")
    output_root = resolve_dir(project_root, config, "output_dir")

    try:
        site = build_site(
            content_root, output_root, legacy_files=bool(config.get("legacy_files"))
        )
    except BuildError as exc:
        _report_build_error(exc, project_root)
        raise SystemExit(1) from None
    prune_generations(output_root, keep=[site.output_dir])
    click.echo(f"Built {len(site.entries)} entries into {site.output_dir}")


@cli.command()
@click.option("--host", required=False, help="Interface to bind (overrides slate.yaml)")
@click.option(
    "--port",
    type=int,
    required=False,
    help="Port to run the server on (overrides slate.yaml)",
)
def serve(host: str | None, port: int | None):
    """Serve the site, rebuilding whenever content changes."""
    project_root = Path.cwd()
    config = load_config(project_root)
    from .live import UpdatingSite
    from .server import BlogServer, SiteRouter
    from .templates import TemplateEngine

    # The startup build has no previous snapshot to fall back on.
    try:
        updating = UpdatingSite.from_dir(
            resolve_dir(project_root, config, "content_dir"),
            resolve_dir(project_root, config, "output_dir"),
            legacy_files=bool(config.get("legacy_files")),
        )
    except BuildError as exc:
        _report_build_error(exc, project_root)
        raise SystemExit(1) from None

    router = SiteRouter(
        TemplateEngine(resolve_dir(project_root, config, "templates_dir")),
        SiteMeta.from_config(config),
    )
    server = BlogServer(
        updating,
        router,
        resolve_dir(project_root, config, "static_dir"),
        host=host or str(config.get("host")),
        port=int(port or config.get("port")),
    )
    with updating:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            click.echo("Stopped.")


@cli.command()
@click.argument("name")
@click.option("--title", help="Entry title (defaults to one derived from NAME)")
@click.option("--tag", "tags", multiple=True, help="Tag to add; may be repeated")
def new(name: str, title: str | None, tags: tuple[str, ...]):
    """Scaffold a new entry directory under the blog."""
    project_root = Path.cwd()
    config = load_config(project_root)
    slug = slugify(name)
    if not slug:
        raise click.ClickException(f"Cannot derive an entry name from '{name}'")

    entry_dir = resolve_dir(project_root, config, "content_dir") / BLOG_DIR_NAME / slug
    if entry_dir.exists():
        raise click.ClickException(f"Entry already exists: {entry_dir}")

    entry_dir.mkdir(parents=True)
    content_path = entry_dir / CONTENT_FILE_NAME
    content_path.write_text(
        render_front_matter(title or titleize(slug), list(tags)), encoding="utf-8"
    )
    click.echo(f"Created {content_path.relative_to(project_root)}")


def render_front_matter(title: str, tags: list[str], now: datetime | None = None) -> str:
    """Front matter and an empty body for a new entry."""
    created_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
    tag_list = ", ".join(_toml_string(t) for t in tags)
    lines = [
        FRONT_MATTER_DELIMITER,
        f"title = {_toml_string(title)}",
        f"tags = [{tag_list}]",
        f"created_at = {created_at.isoformat()}",
        FRONT_MATTER_DELIMITER,
        "",
    ]
    return "\n".join(lines)


_TOML_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
}
# DEL, plus characters str.splitlines treats as line breaks.
_ESCAPED_SEPARATORS = "\x7f\x85\u2028\u2029"


def _toml_string(value: str) -> str:
    """Quote ``value`` as a TOML basic string."""
    chars = []
    for char in value:
        if char in _TOML_ESCAPES:
            chars.append(_TOML_ESCAPES[char])
        elif ord(char) < 0x20 or char in _ESCAPED_SEPARATORS:
            chars.append(f"\\u{ord(char):04X}")
        else:
            chars.append(char)
    return '"' + "".join(chars) + '"'


def main():
    """Entry point for the CLI application."""
    cli()
