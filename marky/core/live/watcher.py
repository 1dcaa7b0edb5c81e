"""
File Watcher
============

Watch one Markdown file and recompile it into a sink whenever its content
changes.

The parent directory is observed non-recursively with watchdog and events are
filtered down to the target file. Editors that save by writing a new file and
renaming it over the old one produce created/moved events rather than
modifications, so those count as changes too. A digest of the last compiled
content suppresses notifications that did not change the bytes.
"""

import asyncio
import hashlib
import os
import queue
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from marky.config.logging import get_logger
from marky.core.errors import MarkyError, ResourceIOError
from marky.core.live.sinks import Sink
from marky.core.rendering.markdown_renderer import decode_source
from marky.models.schemas import Document, RenderOptions

logger = get_logger(__name__)

_STOP = object()


def content_digest(raw: bytes) -> str:
    return hashlib.sha256(raw).hexdigest()


class SourceEventHandler(FileSystemEventHandler):
    """Forwards events that touch the target file to a queue."""

    def __init__(self, target: Path, events: "queue.Queue[Any]") -> None:
        self.target = target
        self.events = events

    def on_modified(self, event: FileSystemEvent) -> None:
        self._offer(event, event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._offer(event, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # only a rename onto the target replaces its content
        self._offer(event, getattr(event, "dest_path", ""))

    def _offer(self, event: FileSystemEvent, path: Any) -> None:
        if event.is_directory or not path:
            return
        if Path(os.fsdecode(path)) == self.target:
            self.events.put(event)


class FileWatcher:
    """Recompiles one source file on every content change."""

    def __init__(
        self,
        path: Path,
        options: RenderOptions,
        sink: Sink,
        log: Any = None,
        observer_factory: Callable[[], Any] = Observer,
    ) -> None:
        self.path = Path(path).resolve()
        self.options = options
        self.sink = sink
        self.logger: Any = log or logger.bind(component="watcher", path=str(self.path))
        self._events: "queue.Queue[Any]" = queue.Queue()
        self.handler = SourceEventHandler(self.path, self._events)
        self._observer_factory = observer_factory
        self._observer: Optional[Any] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._last_digest: Optional[str] = None
        self._pending_digest: Optional[str] = None

    def start(self) -> None:
        """Begin observing the parent directory."""
        if self._observer is not None:
            return
        self._observer = self._observer_factory()
        self._observer.schedule(self.handler, str(self.path.parent), recursive=False)
        self._observer.start()
        self.logger.info("Watching for changes")

    def stop(self) -> None:
        """End ``changes()`` and ``run()``; safe to call from any thread."""
        self._events.put(_STOP)
        if self._observer is not None:
            self._observer.stop()

    def changes(self) -> Iterator[FileSystemEvent]:
        """Yield qualifying file events until ``stop()`` is called."""
        while True:
            event = self._events.get()
            if event is _STOP:
                return
            yield event

    def read_document(self) -> Optional[Document]:
        """
        Read the source file into a Document.

        Returns:
            A new Document, or None if the content has not changed since the
            last successful compile

        Raises:
            ResourceIOError: If the file cannot be read
            EncodingError: If the file is not UTF-8
        """
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise ResourceIOError(f"Cannot read {self.path}: {e}") from e

        digest = content_digest(raw)
        if digest == self._last_digest:
            return None

        document = Document(
            text=decode_source(raw), options=self.options, base_dir=self.path.parent
        )
        self._pending_digest = digest
        return document

    def recompile(self, force: bool = False) -> bool:
        """
        Read, compile and deliver the current contents to the sink.

        Errors are logged and swallowed so the watch loop keeps running.

        Args:
            force: Compile even if the content is unchanged

        Returns:
            True if a Document was delivered to the sink
        """
        if force:
            self._last_digest = None

        try:
            document = self.read_document()
            if document is None:
                self.logger.debug("Content unchanged, skipping")
                return False
            self._run(self.sink.write(document))
        except MarkyError as e:
            self.logger.error("Recompile failed", kind=e.kind.value, error=e.message)
            return False
        except Exception as e:
            self.logger.exception("Unexpected recompile failure", error=str(e))
            return False

        self._last_digest = self._pending_digest
        self.logger.info("Recompiled")
        return True

    def run(self) -> None:
        """
        Blocking watch loop: compile once, then recompile on every change.

        Returns after ``stop()``.
        """
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        try:
            self.start()
            self.recompile(force=True)
            for event in self.changes():
                self.logger.debug("Change detected", event_type=event.event_type)
                self.recompile()
        finally:
            if self._observer is not None:
                self._observer.stop()
                self._observer.join()
                self._observer = None
            asyncio.set_event_loop(None)
            self._loop.close()
            self._loop = None
            self.logger.info("Watcher stopped")

    def _run(self, coro: Any) -> Any:
        if self._loop is None:
            return asyncio.run(coro)
        return self._loop.run_until_complete(coro)
