"""
Image Inliner
=============

Rewrite ``<img src>`` references in a rendered body into self-contained data
URIs so the output has no external image dependencies.

References with a URI scheme are remote and fetched with aiohttp; anything
else is a local path resolved against the document directory. SVG images are
embedded as-is, raster images are re-encoded to PNG with Pillow. A single
failing image aborts the whole pass.
"""

import asyncio
import base64
import io
from pathlib import Path
from typing import Any, Optional, Tuple
from urllib.parse import unquote, urlparse

import aiohttp
from bs4 import BeautifulSoup
from PIL import Image

from marky.config.logging import get_logger
from marky.core.errors import FetchError, FormatError, ResourceIOError
from marky.models.schemas import ImageInclusion

logger = get_logger(__name__)

SVG_MIME = "image/svg+xml"
PNG_MIME = "image/png"


def is_remote(src: str) -> bool:
    """True if the reference carries a URI scheme (``https:``, ``ftp:`` ...)."""
    scheme = urlparse(src).scheme
    # single-letter schemes are Windows drive letters
    return len(scheme) > 1


PNG_MODES = {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}


def to_data_uri(mime: str, data: bytes) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def png_ready(image: Image.Image) -> Image.Image:
    """Convert modes PNG cannot store (CMYK, YCbCr, LAB ...) to RGB or RGBA."""
    if image.mode in PNG_MODES:
        return image
    return image.convert("RGBA" if "A" in image.getbands() else "RGB")


class ImageInliner:
    """Embeds images into a rendered body according to an inclusion policy."""

    def __init__(
        self,
        policy: ImageInclusion,
        base_dir: Optional[Path] = None,
        optimize: bool = False,
        timeout: float = 30.0,
        log: Any = None,
    ) -> None:
        self.policy = policy
        self.base_dir = base_dir or Path.cwd()
        self.optimize = optimize
        self.timeout = timeout
        self.logger: Any = log or logger.bind(component="image_inliner")
        self._session: Optional[aiohttp.ClientSession] = None

    def includes(self, src: str) -> bool:
        """Whether the policy admits this reference."""
        if self.policy == ImageInclusion.ALL:
            return True
        remote = is_remote(src)
        if self.policy == ImageInclusion.REMOTE:
            return remote
        return not remote

    async def inline(self, body: str) -> str:
        """
        Replace every admitted image reference with a data URI.

        Args:
            body: Rendered HTML body

        Returns:
            The body with images embedded; unchanged if nothing was admitted

        Raises:
            FetchError: If a remote image cannot be retrieved
            ResourceIOError: If a local image cannot be read
            FormatError: If an image cannot be decoded or re-encoded
        """
        soup = BeautifulSoup(body, "html.parser")
        replaced = 0

        try:
            for img in soup.find_all("img"):
                src = img.get("src")
                if not src or src.startswith("data:"):
                    continue
                if not self.includes(src):
                    self.logger.debug("Image skipped by policy", src=src, policy=self.policy.value)
                    continue

                img["src"] = await self._embed(src)
                replaced += 1
        finally:
            await self.close()

        if not replaced:
            return body

        self.logger.debug("Images inlined", count=replaced)
        return str(soup)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _embed(self, src: str) -> str:
        if is_remote(src):
            data, content_type = await self._fetch(src)
            name = urlparse(src).path
        else:
            path = self._local_path(src)
            data, content_type = self._read(path), None
            name = path.name

        if name.lower().endswith(".svg") or content_type == SVG_MIME:
            return to_data_uri(SVG_MIME, data)

        return to_data_uri(PNG_MIME, self._encode_png(data, src))

    def _local_path(self, src: str) -> Path:
        path = Path(unquote(urlparse(src).path))
        if path.is_absolute():
            return path
        return self.base_dir / path

    def _read(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise ResourceIOError(f"Cannot read image {path}: {e}") from e

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def _fetch(self, url: str) -> Tuple[bytes, Optional[str]]:
        session = await self._get_session()
        try:
            async with session.get(url) as response:
                response.raise_for_status()
                data = await response.read()
                content_type = response.content_type
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"Failed to fetch image {url}: {e}") from e

        self.logger.debug("Fetched remote image", url=url, size=len(data), content_type=content_type)
        return data, content_type

    def _encode_png(self, data: bytes, src: str) -> bytes:
        """Decode any Pillow-readable raster image and re-encode it as PNG."""
        try:
            with Image.open(io.BytesIO(data)) as image:
                output = io.BytesIO()
                png_ready(image).save(output, format="PNG", optimize=self.optimize)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise FormatError(f"Cannot convert image {src} to PNG: {e}") from e

        png_bytes = output.getvalue()
        if self.optimize:
            self.logger.debug(
                "PNG optimization completed",
                src=src,
                original_size=len(data),
                optimized_size=len(png_bytes),
            )
        return png_bytes
