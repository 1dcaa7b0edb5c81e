"""
Unit Tests for Image Inliner
============================

Inclusion policies, SVG and raster embedding, and failure handling.
"""

import base64
import io

import aiohttp
import pytest
from PIL import Image
from unittest.mock import AsyncMock, Mock, patch

from marky.core.errors import ErrorKind, FetchError, FormatError, ResourceIOError
from marky.core.rendering.image_inliner import ImageInliner, is_remote, png_ready, to_data_uri
from marky.models.schemas import ImageInclusion

from tests.utils.helpers import image_bytes, write_image

SVG = b'<svg xmlns="http://www.w3.org/2000/svg" width="4" height="4"><rect width="4" height="4"/></svg>'
REMOTE_PNG = "https://example.com/remote.png"


def decode_png_uri(uri: str) -> Image.Image:
    prefix = "data:image/png;base64,"
    assert uri.startswith(prefix)
    return Image.open(io.BytesIO(base64.b64decode(uri[len(prefix):])))


def img_sources(html: str):
    from bs4 import BeautifulSoup

    return [img["src"] for img in BeautifulSoup(html, "html.parser").find_all("img")]


@pytest.fixture
def local_svg(tmp_path):
    path = tmp_path / "logo.svg"
    path.write_bytes(SVG)
    return path


class TestHelpers:
    """Test reference classification."""

    @pytest.mark.parametrize(
        "src,expected",
        [
            ("https://example.com/a.png", True),
            ("http://example.com/a.png", True),
            ("ftp://example.com/a.png", True),
            ("img/a.png", False),
            ("./a.png", False),
            ("/abs/a.png", False),
            ("C:/images/a.png", False),
        ],
    )
    def test_is_remote(self, src, expected):
        """Test scheme detection."""
        assert is_remote(src) is expected

    @pytest.mark.parametrize(
        "mode,expected",
        [("CMYK", "RGB"), ("YCbCr", "RGB"), ("RGB", "RGB"), ("LA", "LA"), ("RGBA", "RGBA")],
    )
    def test_png_ready_modes(self, mode, expected):
        """Test only modes PNG cannot store are converted."""
        assert png_ready(Image.new(mode, (1, 1))).mode == expected

    def test_to_data_uri(self):
        """Test data URI encoding."""
        assert to_data_uri("image/svg+xml", b"<svg/>") == "data:image/svg+xml;base64,PHN2Zy8+"


class TestLocalPolicy:
    """Test the local inclusion policy."""

    @pytest.mark.asyncio
    async def test_local_svg_inlined_remote_untouched(self, tmp_path, local_svg):
        """Test a local SVG is embedded and a remote image is left alone."""
        body = f'<p><img src="logo.svg" alt="logo"><img src="{REMOTE_PNG}" alt="r"></p>'
        inliner = ImageInliner(ImageInclusion.LOCAL, base_dir=tmp_path)

        result = await inliner.inline(body)
        sources = img_sources(result)

        assert sources[0] == "data:image/svg+xml;base64," + base64.b64encode(SVG).decode("ascii")
        assert sources[1] == REMOTE_PNG

    @pytest.mark.asyncio
    async def test_raster_reencoded_as_png(self, tmp_path):
        """Test a JPEG is converted to PNG."""
        write_image(tmp_path / "photo.jpg", size=(3, 2), fmt="JPEG")
        inliner = ImageInliner(ImageInclusion.LOCAL, base_dir=tmp_path)

        result = await inliner.inline('<img src="photo.jpg">')

        image = decode_png_uri(img_sources(result)[0])
        assert image.format == "PNG"
        assert image.size == (3, 2)

    @pytest.mark.asyncio
    async def test_cmyk_jpeg_converted(self, tmp_path):
        """Test print-oriented CMYK photos are embedded as RGB PNGs."""
        Image.new("CMYK", (2, 2), (0, 255, 255, 0)).save(tmp_path / "print.jpg", format="JPEG")
        inliner = ImageInliner(ImageInclusion.LOCAL, base_dir=tmp_path)

        result = await inliner.inline('<img src="print.jpg">')

        image = decode_png_uri(img_sources(result)[0])
        assert image.format == "PNG"
        assert image.mode == "RGB"
        assert image.size == (2, 2)

    @pytest.mark.asyncio
    async def test_oversized_image_is_format_error(self, tmp_path, monkeypatch):
        """Test decompression bombs abort the pass as format errors."""
        write_image(tmp_path / "huge.png", size=(8, 8))
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
        inliner = ImageInliner(ImageInclusion.LOCAL, base_dir=tmp_path)

        with pytest.raises(FormatError) as exc_info:
            await inliner.inline('<img src="huge.png">')

        assert exc_info.value.kind == ErrorKind.FORMAT

    @pytest.mark.asyncio
    async def test_optimized_png(self, tmp_path):
        """Test the optimize pass still yields a valid PNG."""
        write_image(tmp_path / "pic.png", size=(8, 8))
        inliner = ImageInliner(ImageInclusion.LOCAL, base_dir=tmp_path, optimize=True)

        result = await inliner.inline('<img src="pic.png">')

        assert decode_png_uri(img_sources(result)[0]).size == (8, 8)

    @pytest.mark.asyncio
    async def test_nested_and_escaped_paths(self, tmp_path):
        """Test subdirectories and percent-encoded names resolve."""
        (tmp_path / "img").mkdir()
        write_image(tmp_path / "img" / "my pic.png")
        inliner = ImageInliner(ImageInclusion.LOCAL, base_dir=tmp_path)

        result = await inliner.inline('<img src="img/my%20pic.png">')

        assert img_sources(result)[0].startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_absolute_path(self, tmp_path, local_svg):
        """Test absolute paths are used verbatim."""
        inliner = ImageInliner(ImageInclusion.LOCAL, base_dir=tmp_path / "elsewhere")

        result = await inliner.inline(f'<img src="{local_svg}">')

        assert img_sources(result)[0].startswith("data:image/svg+xml;base64,")

    @pytest.mark.asyncio
    async def test_data_uri_skipped(self, tmp_path):
        """Test already-inlined images are not touched."""
        body = '<p><img src="data:image/png;base64,AAAA"></p>'
        inliner = ImageInliner(ImageInclusion.ALL, base_dir=tmp_path)

        assert await inliner.inline(body) == body

    @pytest.mark.asyncio
    async def test_body_unchanged_without_matches(self, tmp_path):
        """Test a body with nothing to inline is returned as is."""
        body = f'<p>text</p>\n<p><img src="{REMOTE_PNG}" alt="x" /></p>\n'
        inliner = ImageInliner(ImageInclusion.LOCAL, base_dir=tmp_path)

        assert await inliner.inline(body) == body

    @pytest.mark.asyncio
    async def test_missing_file_aborts(self, tmp_path, local_svg):
        """Test one missing image fails the whole pass."""
        inliner = ImageInliner(ImageInclusion.LOCAL, base_dir=tmp_path)

        with pytest.raises(ResourceIOError) as exc_info:
            await inliner.inline('<img src="logo.svg"><img src="missing.png">')

        assert exc_info.value.kind == ErrorKind.IO

    @pytest.mark.asyncio
    async def test_corrupt_image_aborts(self, tmp_path):
        """Test undecodable images are format errors."""
        (tmp_path / "bad.png").write_bytes(b"definitely not an image")
        inliner = ImageInliner(ImageInclusion.LOCAL, base_dir=tmp_path)

        with pytest.raises(FormatError):
            await inliner.inline('<img src="bad.png">')


class TestRemotePolicy:
    """Test remote fetching with the HTTP layer mocked."""

    @pytest.mark.asyncio
    async def test_remote_fetched_local_untouched(self, tmp_path, local_svg):
        """Test the remote policy only embeds remote images."""
        inliner = ImageInliner(ImageInclusion.REMOTE, base_dir=tmp_path)
        body = f'<img src="logo.svg"><img src="{REMOTE_PNG}">'

        with patch.object(
            inliner, "_fetch", AsyncMock(return_value=(image_bytes(), "image/png"))
        ) as fetch:
            result = await inliner.inline(body)

        fetch.assert_awaited_once_with(REMOTE_PNG)
        sources = img_sources(result)
        assert sources[0] == "logo.svg"
        assert sources[1].startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_remote_svg_by_content_type(self, tmp_path):
        """Test SVGs served without an .svg suffix are embedded raw."""
        inliner = ImageInliner(ImageInclusion.REMOTE, base_dir=tmp_path)

        with patch.object(inliner, "_fetch", AsyncMock(return_value=(SVG, "image/svg+xml"))):
            result = await inliner.inline('<img src="https://example.com/badge">')

        assert img_sources(result)[0] == to_data_uri("image/svg+xml", SVG)

    @pytest.mark.asyncio
    async def test_all_policy(self, tmp_path, local_svg):
        """Test the all policy embeds both kinds."""
        inliner = ImageInliner(ImageInclusion.ALL, base_dir=tmp_path)

        with patch.object(inliner, "_fetch", AsyncMock(return_value=(image_bytes(), None))):
            result = await inliner.inline(f'<img src="logo.svg"><img src="{REMOTE_PNG}">')

        assert all(src.startswith("data:") for src in img_sources(result))

    @pytest.mark.asyncio
    async def test_fetch_failure(self, tmp_path):
        """Test connection errors become fetch errors."""
        inliner = ImageInliner(ImageInclusion.REMOTE, base_dir=tmp_path, timeout=1.0)

        with patch.object(
            aiohttp.ClientSession,
            "get",
            Mock(side_effect=aiohttp.ClientConnectionError("connection refused")),
        ):
            with pytest.raises(FetchError) as exc_info:
                await inliner.inline(f'<img src="{REMOTE_PNG}">')

        assert exc_info.value.kind == ErrorKind.FETCH
        assert inliner._session is None

    def test_policy_gate(self, tmp_path):
        """Test which references each policy admits."""
        local = ImageInliner(ImageInclusion.LOCAL, base_dir=tmp_path)
        remote = ImageInliner(ImageInclusion.REMOTE, base_dir=tmp_path)
        both = ImageInliner(ImageInclusion.ALL, base_dir=tmp_path)

        assert local.includes("a.png") and not local.includes(REMOTE_PNG)
        assert remote.includes(REMOTE_PNG) and not remote.includes("a.png")
        assert both.includes("a.png") and both.includes(REMOTE_PNG)
