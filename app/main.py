"""
FastAPI application entrypoint for the SoundWrapped backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.dependencies import get_token_refresh_worker
from app.services.errors import ApiRequestError, SoundWrappedError

logger = logging.getLogger(__name__)


async def handle_soundwrapped_error(request: Request, exc: SoundWrappedError) -> JSONResponse:
    """Render token lifecycle failures as a uniform JSON error body."""
    if isinstance(exc, ApiRequestError):
        logger.warning(
            "Upstream request failed (status=%s): %s", exc.upstream_status, exc
        )
    body = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "status": exc.status_code,
        "error": exc.title,
        "message": str(exc),
        "path": request.url.path,
    }
    return JSONResponse(status_code=exc.status_code, content=body)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    worker = None
    if settings.tokens.refresh_worker_enabled:
        worker = get_token_refresh_worker()
        worker.start()
    try:
        yield
    finally:
        if worker is not None:
            await worker.stop()


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="SoundWrapped",
        version="0.1.0",
        description="SoundCloud listening analytics with managed OAuth tokens.",
        lifespan=lifespan,
    )
    app.add_exception_handler(SoundWrappedError, handle_soundwrapped_error)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
