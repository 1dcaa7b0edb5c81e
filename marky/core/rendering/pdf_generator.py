"""
PDF Generator
=============

Playwright-based PDF export of an assembled HTML page.
Launches a headless Chromium, loads the page and prints it with ``page.pdf()``.
"""

from typing import Optional, Any, Dict
from types import TracebackType

from playwright.async_api import async_playwright, Browser, Page, Playwright

from marky.config.logging import get_logger
from marky.config.settings import Settings, get_settings
from marky.core.errors import FormatError

logger = get_logger(__name__)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]

PDF_OPTIONS: Dict[str, Any] = {
    "format": "A4",
    "print_background": True,
    "margin": {"top": "1cm", "bottom": "1cm", "left": "1cm", "right": "1cm"},
}


class PlaywrightPDFGenerator:
    """Playwright-based PDF generator implementation."""

    def __init__(self, settings: Optional[Settings] = None, log: Any = None):
        self.settings = settings or get_settings()
        self.logger: Any = log or logger.bind(generator="playwright")
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def initialize(self) -> None:
        """Start Playwright and launch the browser."""
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.settings.playwright_headless,
                args=BROWSER_ARGS,
            )
        except Exception as e:
            self.logger.error("Failed to launch browser", error=str(e))
            await self.close()
            raise FormatError(f"Browser initialization failed: {e}") from e

        self.logger.info("PDF generator initialized")

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        self.logger.debug("PDF generator closed")

    async def __aenter__(self) -> "PlaywrightPDFGenerator":
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    async def generate_pdf(self, html_content: str) -> bytes:
        """
        Print an HTML page to PDF.

        Args:
            html_content: Complete HTML page

        Returns:
            PDF document bytes

        Raises:
            FormatError: If the browser fails to load or print the page
        """
        if not self._browser:
            raise FormatError("PDF generator not initialized")

        self.logger.info("Generating PDF from HTML", html_length=len(html_content))

        try:
            page = await self._browser.new_page()
            try:
                await self._configure_page(page)
                await page.set_content(html_content, wait_until="networkidle")
                pdf_bytes = await page.pdf(**PDF_OPTIONS)
            finally:
                await page.close()
        except Exception as e:
            error_msg = f"PDF generation failed: {e}"
            self.logger.error("PDF generation error", error=error_msg)
            raise FormatError(error_msg) from e

        self.logger.info("PDF generation completed", file_size=len(pdf_bytes))
        return pdf_bytes

    async def _configure_page(self, page: Page) -> None:
        """Configure page settings."""
        page.set_default_timeout(self.settings.playwright_timeout)
        await page.emulate_media(media="print")


async def generate_pdf_from_html(html_content: str, settings: Optional[Settings] = None) -> bytes:
    """
    Convenience function to print HTML to PDF with a short-lived browser.

    Args:
        html_content: Complete HTML page
        settings: Optional settings override

    Returns:
        PDF document bytes
    """
    async with PlaywrightPDFGenerator(settings) as generator:
        return await generator.generate_pdf(html_content)
