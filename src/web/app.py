"""
FastAPI application factory for the detector.

Routes:
- / -> control page (Jinja2)
- /api/* -> start/stop commands, status, detections, stream, snapshot

The detection loop runs as a task on the server's event loop, so commands
and ticks are serialized without locks.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from models.config import Config
from pipeline.engine import DetectionLoop
from .routes import pages, api
from .state import WebState


def create_app(
    loop: DetectionLoop,
    web_state: WebState,
    config: Config,
    autostart: bool = False,
) -> FastAPI:
    """Create the FastAPI app around an existing detection loop."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if autostart:
            logging.info("Autostart enabled, starting detection loop")
            await loop.start()
        yield
        if loop.stop():
            logging.info("Detection loop stopped on shutdown")
        await loop.join()

    app = FastAPI(
        title="Live Detector",
        version="0.1.0",
        description="Live camera object detection overlay",
        lifespan=lifespan,
    )
    app.state.loop = loop
    app.state.web_state = web_state
    app.state.config = config

    app.include_router(api.router, prefix="/api")
    app.include_router(pages.router)

    return app
