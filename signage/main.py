from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import logging
import os

import uvicorn

from signage.config import Settings
from signage.exceptions import RenderFailure, StoreCorrupt, StoreUnavailable
from signage.routers import data
from signage.scheduler import create_scheduler, start_scheduler, stop_scheduler
from signage.services.event_cache import EventCache
from signage.services.renderer import EventImageRenderer

logger = logging.getLogger(__name__)


def configure_logging(level: str):
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting room signage server...")
    scheduler = create_scheduler(app.state.settings, app.state.event_cache)
    start_scheduler(scheduler)
    yield
    logger.info("Shutting down...")
    stop_scheduler(scheduler)
    await app.state.renderer.close()


# ──────────────────────────────────────────────
# Error handlers: every failure becomes {"error": ...}
# ──────────────────────────────────────────────

async def store_error_handler(request: Request, exc: Exception):
    logger.error(f"Event store unavailable: {exc}")
    return JSONResponse(status_code=503, content={"error": "Structured events data not available"})


async def render_error_handler(request: Request, exc: RenderFailure):
    logger.error(f"Image rendering failed: {exc}")
    return JSONResponse(status_code=500, content={"error": "Image rendering failed"})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Error processing {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="Room Signage Server",
        description=(
            "Current and next event for a room, rendered as an image "
            "for e-ink door displays."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.event_cache = EventCache(settings.store_path)
    app.state.renderer = EventImageRenderer(settings.timezone, settings.render_timeout_seconds)

    app.add_exception_handler(StoreUnavailable, store_error_handler)
    app.add_exception_handler(StoreCorrupt, store_error_handler)
    app.add_exception_handler(RenderFailure, render_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(data.router, tags=["signage"])

    @app.get("/", tags=["root"])
    async def root():
        return {
            "api": "Room Signage Server",
            "version": "1.0.0",
            "endpoints": ["POST /data"],
            "docs": "/docs",
        }

    @app.get("/health", tags=["root"])
    async def health():
        return {"status": "ok"}

    return app


_settings = Settings.from_env()
configure_logging(_settings.log_level)
app = create_app(_settings)


def run():
    """Console entry point: serve on $PORT (default 3000)."""
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
