"""
Render Pipeline
===============

Composes the rendering steps for one Document:

    compile markdown -> inline images -> resolve theme -> assemble page -> (print PDF)

``render_body`` produces only the compiled body (what live previews push to
clients); ``render_document`` produces the final artifact bytes.
"""

from typing import Any, Optional

from marky.config.logging import get_logger
from marky.config.settings import Settings, get_settings
from marky.core.rendering.html_generator import HTMLGenerator
from marky.core.rendering.image_inliner import ImageInliner
from marky.core.rendering.markdown_renderer import compile_markdown, extract_title
from marky.core.rendering.pdf_generator import generate_pdf_from_html
from marky.core.themes import ThemeResolver
from marky.models.schemas import Document, OutputFormat

logger = get_logger(__name__)


class RenderPipeline:
    """Renders Documents to bodies and complete artifacts."""

    def __init__(self, settings: Optional[Settings] = None, log: Any = None) -> None:
        self.settings = settings or get_settings()
        self.logger: Any = log or logger.bind(component="render_pipeline")
        self.resolver = ThemeResolver(self.settings, log=self.logger)
        self.generator = HTMLGenerator(self.settings, log=self.logger)

    async def render_body(self, document: Document) -> str:
        """
        Compile a Document to its HTML body, embedding images if requested.

        Raises:
            FetchError, ResourceIOError, FormatError: If image inlining fails
        """
        options = document.options
        body = compile_markdown(document.text, options)

        if options.image_inclusion is not None:
            inliner = ImageInliner(
                options.image_inclusion,
                base_dir=document.base_dir,
                optimize=options.optimize_images,
                timeout=self.settings.fetch_timeout,
                log=self.logger,
            )
            body = await inliner.inline(body)

        return body

    async def render_page(self, document: Document) -> bytes:
        """Render a Document into a complete, themed HTML page."""
        body = await self.render_body(document)
        style = self.resolver.resolve(document.options.theme)
        title = extract_title(document.text)
        return await self.generator.assemble(body, document.options, style, title)

    async def render_document(
        self, document: Document, output_format: OutputFormat = OutputFormat.HTML
    ) -> bytes:
        """
        Render a Document into the requested output format.

        Args:
            document: Document to render
            output_format: HTML page or PDF export

        Returns:
            Artifact bytes

        Raises:
            MarkyError: Any failure along the pipeline
        """
        page = await self.render_page(document)
        if output_format == OutputFormat.PDF:
            page = await generate_pdf_from_html(page.decode("utf-8"), self.settings)

        self.logger.info(
            "Document rendered",
            format=output_format.value,
            theme=document.options.theme.name,
            size=len(page),
        )
        return page


async def render_body(document: Document, settings: Optional[Settings] = None) -> str:
    """Convenience function to compile a Document body."""
    return await RenderPipeline(settings).render_body(document)


async def render_document(
    document: Document,
    output_format: OutputFormat = OutputFormat.HTML,
    settings: Optional[Settings] = None,
) -> bytes:
    """Convenience function to render a Document with a default pipeline."""
    return await RenderPipeline(settings).render_document(document, output_format)
