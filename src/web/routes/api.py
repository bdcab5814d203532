from __future__ import annotations

import time
from typing import Iterable

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response, StreamingResponse

from models.status import LoopStatus
from ..api_models import CommandResponse, DetectionsResponse, LoopStatusResponse

router = APIRouter()


def _status_payload(status: LoopStatus) -> dict:
    return status.to_dict()


def _mjpeg_frames(web_state, fps: int) -> Iterable[bytes]:
    """
    Yield MJPEG multipart chunks of the latest rendered surface.

    Frames are only re-sent when the loop has rendered a new one.
    """
    fps = max(1, min(30, int(fps)))
    delay = 1.0 / fps
    last_sent = None
    while True:
        ts = web_state.last_frame_ts
        if ts is not None and ts != last_sent:
            jpg = web_state.get_jpeg()
            if jpg is not None:
                last_sent = ts
                yield b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + jpg + b"\r\n"
        time.sleep(delay)


@router.post("/start", response_model=CommandResponse)
async def start(request: Request):
    """Start the detection loop. A no-op while it is already running."""
    loop = request.app.state.loop
    accepted = await loop.start()
    return {"accepted": accepted, "status": _status_payload(loop.status())}


@router.post("/stop", response_model=CommandResponse)
async def stop(request: Request):
    """Stop the detection loop. A no-op while it is already stopped."""
    loop = request.app.state.loop
    accepted = loop.stop()
    return {"accepted": accepted, "status": _status_payload(loop.status())}


@router.get("/status", response_model=LoopStatusResponse)
async def status(request: Request):
    return _status_payload(request.app.state.loop.status())


@router.get("/detections", response_model=DetectionsResponse)
async def detections(request: Request):
    """Detections drawn in the last completed tick, in display coordinates."""
    loop = request.app.state.loop
    stats = loop.status().stats
    return {
        "detections": [d.to_dict() for d in loop.ctx.last_detections],
        "timestamp": stats.last_frame_ts if stats else None,
    }


@router.get("/snapshot")
def snapshot(request: Request):
    jpg = request.app.state.web_state.get_jpeg()
    if jpg is None:
        raise HTTPException(status_code=404, detail="No frame rendered yet")
    return Response(content=jpg, media_type="image/jpeg")


@router.get("/stream")
def stream(request: Request):
    web_state = request.app.state.web_state
    fps = request.app.state.config.web.stream_fps
    return StreamingResponse(
        _mjpeg_frames(web_state, fps),
        media_type="multipart/x-mixed-replace; boundary=frame",
    )
