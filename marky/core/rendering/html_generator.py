"""
HTML Generator
==============

Assemble a compiled Markdown body into a complete HTML page.
The page template embeds the theme CSS, the feature flags that decide which
client libraries are loaded, and the live-reload bootstrap for previews.
"""

from typing import Dict, Any, Optional
from pathlib import Path
import jinja2

from marky.config.logging import get_logger
from marky.config.settings import Settings, get_settings
from marky.core.errors import FormatError
from marky.core.rendering import assets
from marky.models.schemas import RenderOptions

logger = get_logger(__name__)

PAGE_TEMPLATE = "page.html"


class HTMLGenerator:
    """Jinja2-based page assembler."""

    def __init__(self, settings: Optional[Settings] = None, log: Any = None) -> None:
        self.settings = settings or get_settings()
        self.logger: Any = log or logger.bind(generator="jinja2")
        self._setup_jinja2_environment()

    def _setup_jinja2_environment(self) -> None:
        """Setup Jinja2 template environment."""
        template_dir = Path(__file__).parent / "templates"
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            autoescape=jinja2.select_autoescape(["html", "xml"]),
            undefined=jinja2.StrictUndefined,
            enable_async=True,
        )

    async def assemble(
        self,
        body: str,
        options: RenderOptions,
        style: str,
        title: Optional[str] = None,
    ) -> bytes:
        """
        Substitute a rendered body into the page template.

        Args:
            body: Compiled HTML body
            options: Render options (feature flags)
            style: Resolved, minified theme CSS
            title: Page title; the configured default title when None

        Returns:
            UTF-8 encoded HTML page

        Raises:
            FormatError: If template rendering fails
        """
        try:
            template = self.env.get_template(PAGE_TEMPLATE)
            context = self._prepare_context(body, options, style, title)
            html = await template.render_async(**context)
        except jinja2.TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            self.logger.error("HTML assembly failed", error=error_msg)
            raise FormatError(error_msg) from e

        self.logger.debug("HTML assembly completed", html_length=len(html), live=options.live)
        return html.encode("utf-8")

    def _prepare_context(
        self, body: str, options: RenderOptions, style: str, title: Optional[str]
    ) -> Dict[str, Any]:
        """
        Prepare template rendering context.

        Args:
            body: Compiled HTML body
            options: Render options
            style: Theme CSS
            title: Extracted title, if any

        Returns:
            Template context dictionary
        """
        return {
            "title": title if title is not None else self.settings.default_title,
            "theme": style,
            "highlight": options.highlight,
            "math": options.math,
            "diagrams": options.diagrams,
            "live": options.live,
            "compiled": body,
            "script": assets.client_script(),
            "live_script": assets.live_script() if options.live else "",
        }
