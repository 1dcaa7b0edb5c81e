"""
FastAPI Application
==================

Live preview application: a WebSocket feed of rendered bodies, a placeholder
page that bootstraps the live client, a health endpoint and static files from
the watched document's directory.
"""

import uuid
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException

from marky.api.routes import health, preview
from marky.config.logging import get_logger
from marky.config.settings import Settings, get_settings
from marky.core.errors import MarkyError
from marky.core.live.broadcaster import Broadcaster
from marky.core.rendering.pipeline import RenderPipeline
from marky.models.schemas import ErrorResponse, RenderOptions

logger = get_logger(__name__)


async def add_request_id(request: Request, call_next) -> JSONResponse:  # type: ignore
    """Add request ID to all requests."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)  # type: ignore
    response.headers["X-Request-ID"] = request_id  # type: ignore

    return response  # type: ignore


async def custom_http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom HTTP exception handler with structured error response."""
    error_response = ErrorResponse(
        error=str(exc.detail),
        error_code=str(exc.status_code),
        details=None,
        request_id=getattr(request.state, "request_id", None),
    )

    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=error_response.request_id,
    )

    return JSONResponse(status_code=exc.status_code, content=error_response.model_dump(mode="json"))


async def marky_exception_handler(request: Request, exc: MarkyError) -> JSONResponse:
    """Render failures while serving a page."""
    error_response = ErrorResponse(
        error=exc.message,
        error_code=exc.kind.value.upper(),
        details=None,
        request_id=getattr(request.state, "request_id", None),
    )

    logger.error(
        "Render error",
        error_code=error_response.error_code,
        error_message=exc.message,
        request_id=error_response.request_id,
    )

    return JSONResponse(status_code=500, content=error_response.model_dump(mode="json"))


def create_app(
    broadcaster: Broadcaster,
    options: RenderOptions,
    root_dir: Path,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Application factory for one preview session.

    Args:
        broadcaster: Source of rendered bodies
        options: Live render options used for the placeholder page
        root_dir: Directory served for every path not handled by a route
        settings: Optional settings override

    Returns:
        FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Live Markdown preview",
        version=settings.app_version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.settings = settings
    app.state.broadcaster = broadcaster
    app.state.options = options
    app.state.pipeline = RenderPipeline(settings)

    app.middleware("http")(add_request_id)
    app.add_exception_handler(HTTPException, custom_http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(MarkyError, marky_exception_handler)  # type: ignore[arg-type]

    app.include_router(health.router)
    app.include_router(preview.router)

    # must come last: the mount matches every remaining path
    app.mount("/", StaticFiles(directory=str(root_dir)), name="static")

    logger.debug("Preview app created", root_dir=str(root_dir), theme=options.theme.name)
    return app
