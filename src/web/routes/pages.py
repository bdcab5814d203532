"""
Page routes for the detector web interface.

A single control page: live stream, Start/Stop buttons and the status line.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


@router.get("/", response_class=HTMLResponse)
def index(request: Request):
    """Control page."""
    loop = request.app.state.loop
    cfg = request.app.state.config
    return templates.TemplateResponse(
        request,
        "index.html",
        {"status": loop.status(), "cfg": cfg},
    )
