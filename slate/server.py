"""Development server for Slate.

Serves pages rendered on demand from the live site snapshot:
- Each request reads the snapshot once and uses it for the whole response, so
  a rebuild finishing mid-request never mixes old and new entries.
- Entry assets are served from the entry's own directory.
- Files under ``/static/`` come from the project's static directory.
- Unknown paths render the error template with a 404.

Key classes:
- SiteRouter: Maps a request path to a Response using one Site snapshot.
- BlogServer: Threading HTTP server wired to an UpdatingSite.
- _SiteRequestHandler: HTTP request handler delegating to SiteRouter.
"""

from __future__ import annotations

import functools
import logging
import mimetypes
from collections.abc import Mapping
from dataclasses import dataclass
from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Protocol
from urllib.parse import parse_qs, unquote, urlsplit

from jinja2 import TemplateError

from .build import SiteMeta
from .context import (
    build_about_context,
    build_blog_entry_context,
    build_blog_index_context,
    build_blog_tag_context,
    build_error_context,
    build_index_context,
    build_tags_context,
)
from .site import Site
from .templates import TemplateEngine

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPE = "text/html; charset=utf-8"


class SiteSource(Protocol):
    """Anything that hands out the current Site snapshot."""

    def read(self) -> Site: ...


@dataclass
class Response:
    status: HTTPStatus
    body: bytes
    content_type: str = HTML_CONTENT_TYPE


class SiteRouter:
    """Route dispatch over a single Site snapshot.

    Attributes:
        engine: Template engine used to render pages.
        meta: Site-wide title and description.
    """

    def __init__(self, engine: TemplateEngine, meta: SiteMeta):
        self.engine = engine
        self.meta = meta

    def handle(self, site: Site, path: str, query: Mapping[str, list[str]]) -> Response:
        """Build the response for ``path`` from ``site``.

        Args:
            site: Snapshot to serve from; read once by the caller.
            path: URL path as sent; each segment is percent-decoded on its
                own so an encoded ``/`` stays inside its segment.
            query: Parsed query string.

        Returns:
            The response to send.
        """
        parts = [unquote(p) for p in path.split("/") if p]
        try:
            if not parts:
                return self._page("index", build_index_context(site, self.meta))
            if parts == ["about"]:
                return self._page("about", build_about_context(self.meta))
            if parts[0] != "blog":
                return self.not_found()
            return self._handle_blog(site, parts[1:], query)
        except TemplateError:
            logger.exception("Template error while rendering %s", path)
            return self.error(HTTPStatus.INTERNAL_SERVER_ERROR, "Template error")

    def _handle_blog(
        self, site: Site, parts: list[str], query: Mapping[str, list[str]]
    ) -> Response:
        page = _page_number(query)
        if page is None:
            return self.not_found()

        if not parts:
            context = build_blog_index_context(site, page, self.meta)
            if not context.entries and page > 1:
                return self.not_found()
            return self._page("blog_index", context)

        if parts[0] == "tags":
            if len(parts) == 1:
                return self._page("tags", build_tags_context(site, self.meta))
            if len(parts) != 2:
                return self.not_found()
            tag_context = build_blog_tag_context(site, parts[1], page, self.meta)
            if tag_context is None or not tag_context.entries:
                return self.not_found()
            return self._page("blog_tag", tag_context)

        entry = site.find(parts[0])
        if entry is None:
            return self.not_found()

        if len(parts) > 1:
            associated = entry.associated_file("/".join(parts[1:]))
            if associated is None:
                return self.not_found()
            return _file_response(associated.full_path) or self.not_found()

        try:
            entry_context = build_blog_entry_context(site, entry, self.meta)
        except OSError:
            logger.exception("Could not read rendered content of %s", entry.slug)
            return self.error(
                HTTPStatus.INTERNAL_SERVER_ERROR, "The entry could not be loaded."
            )
        return self._page(entry.template_name, entry_context)

    def not_found(self) -> Response:
        return self.error(HTTPStatus.NOT_FOUND, "There is nothing here.")

    def error(self, status: HTTPStatus, message: str) -> Response:
        context = build_error_context(f"{status.value} {status.phrase}", message, self.meta)
        return self._page("error", context, status)

    def _page(self, template: str, context, status: HTTPStatus = HTTPStatus.OK) -> Response:
        html = self.engine.render(template, context)
        return Response(status=status, body=html.encode("utf-8"))


def _page_number(query: Mapping[str, list[str]]) -> int | None:
    """The 1-based ``page`` query parameter, or None if it is invalid."""
    values = query.get("page")
    if not values:
        return 1
    try:
        page = int(values[0])
    except ValueError:
        return None
    return page if page >= 1 else None


def _file_response(path: Path) -> Response | None:
    try:
        body = path.read_bytes()
    except OSError:
        logger.warning("Could not read associated file %s", path)
        return None
    content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return Response(status=HTTPStatus.OK, body=body, content_type=content_type)


class _SiteRequestHandler(SimpleHTTPRequestHandler):
    """HTTP request handler rendering pages from the live snapshot.

    Attributes:
        site_source: Provides the current Site snapshot.
        router: Builds responses from a snapshot.
    """

    site_source: SiteSource
    router: SiteRouter

    def do_GET(self):
        self._dispatch(send_body=True)

    def do_HEAD(self):
        self._dispatch(send_body=False)

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        # Never expose directory listings.
        self._send(self.router.not_found(), send_body=self.command != "HEAD")
        return None

    def log_message(self, format, *args):
        logger.info("%s - %s", self.address_string(), format % args)

    def _dispatch(self, send_body: bool) -> None:
        split = urlsplit(self.path)
        if split.path.startswith("/static/"):
            self.path = split.path[len("/static") :]
            if send_body:
                super().do_GET()
            else:
                super().do_HEAD()
            return
        site = self.site_source.read()
        response = self.router.handle(site, split.path, parse_qs(split.query))
        self._send(response, send_body)

    def _send(self, response: Response, send_body: bool) -> None:
        self.send_response(response.status)
        self.send_header("Content-type", response.content_type)
        self.send_header("Content-Length", str(len(response.body)))
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        self.end_headers()
        if send_body:
            self.wfile.write(response.body)


class BlogServer:
    """Threading HTTP server serving an UpdatingSite.

    Attributes:
        site_source: Object exposing ``read()`` for the current snapshot.
        router: Route dispatcher.
        static_dir: Directory served under ``/static/``.
        host: Interface to bind.
        port: Port to bind.
    """

    def __init__(
        self,
        site_source: SiteSource,
        router: SiteRouter,
        static_dir: Path,
        host: str = "127.0.0.1",
        port: int = 4000,
    ):
        self.site_source = site_source
        self.router = router
        self.static_dir = static_dir
        self.host = host
        self.port = port
        self._httpd: ThreadingHTTPServer | None = None

    def make_handler(self):
        handler_cls = type(
            "_BoundSiteRequestHandler",
            (_SiteRequestHandler,),
            {"site_source": self.site_source, "router": self.router},
        )
        return functools.partial(handler_cls, directory=str(self.static_dir))

    def serve_forever(self) -> None:  # pragma: no cover - integration path
        self._httpd = ThreadingHTTPServer((self.host, self.port), self.make_handler())
        logger.info("Serving at http://%s:%d", self.host, self.port)
        try:
            self._httpd.serve_forever()
        finally:
            self._httpd.server_close()

    def shutdown(self) -> None:
        if self._httpd is not None:
            self._httpd.shutdown()
