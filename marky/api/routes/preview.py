"""
Preview Routes
==============

Live preview endpoints.

- WebSocket /: pushes every newly published body as one text frame
- GET /: full page with a placeholder body and the live-reload client
"""

import asyncio
from typing import Any

from fastapi import APIRouter, Request, WebSocket
from fastapi.responses import HTMLResponse
from starlette.websockets import WebSocketDisconnect

from marky.config.logging import get_logger
from marky.core.live.broadcaster import BroadcastClosed, Subscriber
from marky.models.schemas import Document

logger = get_logger(__name__)

router = APIRouter(tags=["Preview"])


@router.get("/", response_class=HTMLResponse)
async def placeholder_page(request: Request) -> HTMLResponse:
    """
    Serve the preview page.

    The body is a placeholder; the live client replaces it with the first
    body it receives over the WebSocket.
    """
    state = request.app.state
    document = Document(text=state.settings.placeholder_text, options=state.options)
    page = await state.pipeline.render_page(document)
    return HTMLResponse(content=page, status_code=200)


async def _forward(websocket: WebSocket, subscriber: Subscriber) -> None:
    while True:
        body = await subscriber.next()
        await websocket.send_text(body)


async def _wait_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/")
async def preview_socket(websocket: WebSocket) -> None:
    """
    Stream rendered bodies to one client until it leaves or the server stops.

    Errors end only this client's connection.
    """
    broadcaster = websocket.app.state.broadcaster
    client = f"{websocket.client.host}:{websocket.client.port}" if websocket.client else "unknown"
    log: Any = logger.bind(component="preview_socket", client=client)

    await websocket.accept()
    log.info("Preview client connected", subscribers=broadcaster.subscriber_count + 1)

    with broadcaster.subscribe() as subscriber:
        forward = asyncio.create_task(_forward(websocket, subscriber))
        listen = asyncio.create_task(_wait_disconnect(websocket))
        done, pending = await asyncio.wait({forward, listen}, return_when=asyncio.FIRST_COMPLETED)

        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    if forward in done:
        error = forward.exception()
        if isinstance(error, BroadcastClosed):
            log.info("Broadcaster closed, closing preview client")
            await websocket.close(code=1000)
            return
        if isinstance(error, WebSocketDisconnect):
            log.info("Preview client disconnected")
            return
        log.warning("Preview client send failed", error=str(error))
        return

    listen_error = listen.exception()
    if listen_error is not None and not isinstance(listen_error, WebSocketDisconnect):
        log.warning("Preview client receive failed", error=str(listen_error))
        return
    log.info("Preview client disconnected")
