"""
Test Helpers
============

Helper functions for common testing operations.
"""

import asyncio
import io
import time
from pathlib import Path
from typing import Callable, List, Tuple

from PIL import Image

from marky.models.schemas import Document


def wait_until(
    condition: Callable[[], bool],
    timeout: float = 5.0,
    interval: float = 0.01,
    error_message: str = "Condition not met within timeout",
) -> None:
    """Block until a condition becomes true."""
    deadline = time.monotonic() + timeout

    while time.monotonic() < deadline:
        if condition():
            return
        time.sleep(interval)

    raise TimeoutError(error_message)


async def wait_for_condition(
    condition: Callable[[], bool],
    timeout: float = 5.0,
    interval: float = 0.01,
    error_message: str = "Condition not met within timeout",
) -> None:
    """Wait for a condition to become true without blocking the event loop."""
    deadline = time.monotonic() + timeout

    while time.monotonic() < deadline:
        if condition():
            return
        await asyncio.sleep(interval)

    raise TimeoutError(error_message)


def image_bytes(size: Tuple[int, int] = (2, 2), fmt: str = "PNG", color: str = "red") -> bytes:
    """Encode a solid-color image."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def write_image(path: Path, size: Tuple[int, int] = (2, 2), fmt: str = "PNG") -> Path:
    """Write a solid-color image file."""
    path.write_bytes(image_bytes(size, fmt))
    return path


class RecordingSink:
    """Sink that remembers every Document it receives."""

    def __init__(self, failures: int = 0, error: Exception = None):
        self.documents: List[Document] = []
        self.attempts = 0
        self.failures = failures
        self.error = error

    async def write(self, document: Document) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            raise self.error
        self.documents.append(document)

    @property
    def texts(self) -> List[str]:
        return [document.text for document in self.documents]
