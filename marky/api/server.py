"""
Preview Server
==============

Serves the preview application with uvicorn on a socket bound up front, so a
port conflict is reported before anything else starts. Shutting the server
down closes the broadcaster first; connected clients receive a close frame
once any in-flight send has finished.
"""

import asyncio
import socket
import threading
import webbrowser
from pathlib import Path
from typing import Any, List, Optional

import uvicorn
from fastapi import FastAPI

from marky.api.main import create_app
from marky.config.logging import get_logger
from marky.config.settings import Settings, get_settings
from marky.core.errors import ResourceIOError
from marky.core.live.broadcaster import Broadcaster
from marky.core.live.sinks import BroadcastSink
from marky.core.live.watcher import FileWatcher
from marky.core.rendering.pipeline import RenderPipeline
from marky.models.schemas import RenderOptions

logger = get_logger(__name__)

# same as uvicorn.Config's default backlog
LISTEN_BACKLOG = 2048


class PreviewUvicornServer(uvicorn.Server):
    """uvicorn server that closes the broadcaster before draining connections."""

    def __init__(self, config: uvicorn.Config, broadcaster: Broadcaster) -> None:
        super().__init__(config)
        self.broadcaster = broadcaster

    async def shutdown(self, sockets: Optional[List[socket.socket]] = None) -> None:
        self.broadcaster.close()
        await super().shutdown(sockets=sockets)


class PreviewServer:
    """Binds, announces and serves one preview application."""

    def __init__(
        self,
        app: FastAPI,
        broadcaster: Broadcaster,
        settings: Optional[Settings] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        log: Any = None,
    ) -> None:
        self.app = app
        self.broadcaster = broadcaster
        self.settings = settings or get_settings()
        self.host = host or self.settings.host
        self.port = self.settings.port if port is None else port
        self.logger: Any = log or logger.bind(component="preview_server")
        self._socket: Optional[socket.socket] = None
        self._server: Optional[PreviewUvicornServer] = None

    @property
    def address(self) -> str:
        host = self.host if ":" not in self.host else f"[{self.host}]"
        return f"http://{host}:{self.port}"

    def bind(self) -> socket.socket:
        """
        Bind the socket and start listening.

        Connections made before uvicorn starts serving wait in the backlog,
        so the address can be opened in a browser right away.

        Returns:
            The bound socket (port 0 is replaced by the assigned port)

        Raises:
            ResourceIOError: If the address cannot be bound
        """
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(LISTEN_BACKLOG)
        except OSError as e:
            sock.close()
            raise ResourceIOError(f"Cannot bind {self.host}:{self.port}: {e}") from e

        self.port = sock.getsockname()[1]
        self._socket = sock
        self.logger.info("Preview server listening", address=self.address)
        return sock

    def open_browser(self) -> bool:
        """Open the preview address in the default browser; failure only warns."""
        try:
            opened = webbrowser.open(self.address)
        except webbrowser.Error as e:
            self.logger.warning("Could not open browser", address=self.address, error=str(e))
            return False

        if not opened:
            self.logger.warning("No browser available", address=self.address)
        return opened

    async def serve(self) -> None:
        """Serve until shutdown (SIGINT/SIGTERM or ``stop()``)."""
        if self._socket is None:
            self.bind()

        config = uvicorn.Config(
            self.app,
            log_config=None,
            log_level=self.settings.log_level.lower(),
            access_log=self.settings.debug,
            ws="websockets",
        )
        self._server = PreviewUvicornServer(config, self.broadcaster)
        await self._server.serve(sockets=[self._socket])

    def stop(self) -> None:
        """Ask the running server to exit."""
        if self._server is not None:
            self._server.should_exit = True


def serve_live(
    path: Path,
    options: RenderOptions,
    settings: Optional[Settings] = None,
    open_browser: Optional[bool] = None,
) -> None:
    """
    Watch ``path`` and serve a live preview of it until interrupted.

    The watcher runs on its own thread and publishes bodies; the server runs
    on the calling thread's event loop.

    Raises:
        ResourceIOError: If the server socket cannot be bound
    """
    settings = settings or get_settings()
    path = Path(path).resolve()

    broadcaster = Broadcaster()
    pipeline = RenderPipeline(settings)
    watcher = FileWatcher(path, options, BroadcastSink(broadcaster, pipeline))
    app = create_app(broadcaster, options, path.parent, settings)

    server = PreviewServer(app, broadcaster, settings)
    server.bind()

    if settings.open_browser if open_browser is None else open_browser:
        server.open_browser()

    thread = threading.Thread(target=watcher.run, name="marky-watcher", daemon=True)
    thread.start()
    try:
        asyncio.run(server.serve())
    finally:
        broadcaster.close()
        watcher.stop()
        thread.join(timeout=5)
