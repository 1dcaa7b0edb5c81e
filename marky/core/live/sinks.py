"""
Output Sinks
============

Destinations for recompiled Documents. The watcher hands every Document to a
sink; the sink decides what to render and where it goes.

- FileSink: writes the complete page (or PDF) to a file, atomically
- BroadcastSink: publishes the rendered body to preview clients
"""

import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol

from marky.config.logging import get_logger
from marky.core.errors import ResourceIOError
from marky.core.live.broadcaster import Broadcaster
from marky.core.rendering.pipeline import RenderPipeline
from marky.models.schemas import Document, OutputFormat

logger = get_logger(__name__)


class Sink(Protocol):
    """Receives every recompiled Document."""

    async def write(self, document: Document) -> None: ...


def write_atomic(path: Path, data: bytes) -> None:
    """
    Replace ``path`` with ``data`` in one step.

    The bytes go to a temporary file in the same directory which is then
    renamed over the target, so readers never observe a partial file.

    Raises:
        ResourceIOError: If the file cannot be written
    """
    try:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent,prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise ResourceIOError(f"Cannot write {path}: {e}") from e


class FileSink:
    """Renders complete artifacts into a file."""

    def __init__(
        self,
        path: Path,
        pipeline: RenderPipeline,
        output_format: OutputFormat = OutputFormat.HTML,
        log: Any = None,
    ) -> None:
        self.path = path
        self.pipeline = pipeline
        self.output_format = output_format
        self.logger: Any = log or logger.bind(component="file_sink")

    async def write(self, document: Document) -> None:
        data = await self.pipeline.render_document(document, self.output_format)
        write_atomic(self.path, data)
        self.logger.info("Output written", path=str(self.path), size=len(data))


class BroadcastSink:
    """Publishes rendered bodies to live preview clients."""

    def __init__(
        self, broadcaster: Broadcaster, pipeline: RenderPipeline, log: Optional[Any] = None
    ) -> None:
        self.broadcaster = broadcaster
        self.pipeline = pipeline
        self.logger: Any = log or logger.bind(component="broadcast_sink")

    async def write(self, document: Document) -> None:
        body = await self.pipeline.render_body(document)
        version = self.broadcaster.publish(body)
        self.logger.info(
            "Preview updated",
            version=version,
            subscribers=self.broadcaster.subscriber_count,
        )
