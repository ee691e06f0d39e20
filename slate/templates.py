"""Template rendering engine for Slate.

This module uses Jinja2 to render page contexts to HTML. Templates are looked
up in the project's templates directory first and then in the default theme
shipped with the package, so a project only needs to override what it changes.

Key class:
- TemplateEngine: Loads templates and renders context objects.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .context import BlogEntryContext, _Context, format_datetime, tag_url

__all__ = ["DEFAULT_THEME_DIR", "TEMPLATE_SUFFIX", "TemplateEngine"]

DEFAULT_THEME_DIR = Path(__file__).parent / "themes" / "default"
TEMPLATE_SUFFIX = ".html.jinja"


class TemplateEngine:
    """Template rendering engine using Jinja2.

    Attributes:
        templates_dir: Optional project directory overriding the theme.
        env: Jinja2 environment.
    """

    def __init__(self, templates_dir: Path | None = None):
        """Initialize the template engine.

        Args:
            templates_dir: Project templates; searched before the default theme.
        """
        self.templates_dir = templates_dir
        search_path = [DEFAULT_THEME_DIR]
        if templates_dir is not None and templates_dir.is_dir():
            search_path.insert(0, templates_dir)
        self.env = Environment(
            loader=FileSystemLoader(search_path),
            autoescape=select_autoescape(["html", "xml", "jinja"]),
            enable_async=False,
        )
        self._install_globals()

    def _install_globals(self) -> None:
        """Install global functions in the Jinja environment."""
        self.env.globals["tag_url"] = tag_url
        self.env.globals["pygments_css"] = self._pygments_css
        self.env.filters["datetime"] = format_datetime

    @staticmethod
    def _pygments_css() -> Markup:
        """Return Pygments CSS styles for the .highlight class."""
        from pygments.formatters import HtmlFormatter

        return Markup(HtmlFormatter().get_style_defs(".highlight"))

    def render(self, name: str, context: _Context | dict[str, Any]) -> str:
        """Render the template ``name`` with a context.

        Args:
            name: Template name without suffix, e.g. ``blog_index``.
            context: A context dataclass or a plain mapping.

        Returns:
            Rendered HTML string.

        Raises:
            jinja2.TemplateNotFound: No template with that name exists.
        """
        if isinstance(context, _Context):
            variables = context.to_dict()
        else:
            variables = dict(context)
        if isinstance(context, BlogEntryContext):
            # Rendered Markdown is trusted HTML.
            variables["entry_content"] = Markup(context.entry_content)
        template = self.env.get_template(f"{name}{TEMPLATE_SUFFIX}")
        return template.render(**variables)

    def render_string(self, template: str, context: dict[str, Any]) -> str:
        """Render a template string.

        Args:
            template: Template string to render.
            context: Variables to make available in the template.

        Returns:
            Rendered string.
        """
        tmpl = self.env.from_string(template)
        return tmpl.render(**context)
