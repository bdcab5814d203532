from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class LoopStatsResponse(BaseModel):
    ticks: int = 0
    skipped_ticks: int = 0
    last_detection_count: int = 0
    last_inference_ms: Optional[float] = None
    fps: float = 0.0
    start_time: Optional[float] = None
    last_frame_ts: Optional[float] = None


class LoopStatusResponse(BaseModel):
    """
    Loop status for the control page, polled every second or so.
    """
    state: str = Field(..., description="idle|starting|running|stopping|error")
    message: str = Field("", description="Last status text")
    error: Optional[str] = Field(None, description="Failure description when state is error")
    start_enabled: bool
    stop_enabled: bool
    stats: Optional[LoopStatsResponse] = None


class CommandResponse(BaseModel):
    accepted: bool = Field(..., description="False when the command was a no-op")
    status: LoopStatusResponse


class DetectionResponse(BaseModel):
    x1: float
    y1: float
    x2: float
    y2: float
    score: float
    class_index: int
    label: str


class DetectionsResponse(BaseModel):
    detections: List[DetectionResponse]
    timestamp: Optional[float] = None
