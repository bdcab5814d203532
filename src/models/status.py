"""
Loop state and runtime statistics models.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class LoopState(str, Enum):
    """Lifecycle states of the detection loop."""
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"

    @property
    def start_enabled(self) -> bool:
        """Whether the start control should be enabled in this state."""
        return self in (LoopState.IDLE, LoopState.ERROR)

    @property
    def stop_enabled(self) -> bool:
        """Whether the stop control should be enabled in this state."""
        return self == LoopState.RUNNING


@dataclass
class LoopStats:
    """
    Runtime statistics for the detection loop.

    Attributes:
        ticks: Ticks that ran the full pipeline.
        skipped_ticks: Ticks skipped because the frame was not ready.
        last_detection_count: Detections drawn in the last completed tick.
        last_inference_ms: Duration of the last inference call.
        fps: Smoothed pipeline rate in completed ticks per second.
        start_time: Unix timestamp when the loop entered RUNNING.
        last_frame_ts: Unix timestamp of the last rendered frame.
    """
    ticks: int = 0
    skipped_ticks: int = 0
    last_detection_count: int = 0
    last_inference_ms: Optional[float] = None
    fps: float = 0.0
    start_time: float = field(default_factory=time.time)
    last_frame_ts: Optional[float] = None

    def record_tick(self, detection_count: int, inference_ms: float, now: Optional[float] = None) -> None:
        """Fold one completed tick into the counters."""
        now = time.time() if now is None else now
        if self.last_frame_ts is not None:
            dt = now - self.last_frame_ts
            if dt > 0:
                instant = 1.0 / dt
                self.fps = instant if self.fps == 0.0 else 0.9 * self.fps + 0.1 * instant
        self.ticks += 1
        self.last_detection_count = detection_count
        self.last_inference_ms = inference_ms
        self.last_frame_ts = now

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ticks": self.ticks,
            "skipped_ticks": self.skipped_ticks,
            "last_detection_count": self.last_detection_count,
            "last_inference_ms": self.last_inference_ms,
            "fps": self.fps,
            "start_time": self.start_time,
            "last_frame_ts": self.last_frame_ts,
        }


@dataclass
class LoopStatus:
    """
    Snapshot of the loop for the UI adapter.

    Attributes:
        state: Current loop state.
        message: Last status text shown to the user.
        error: Description of the failure when state is ERROR.
        stats: Runtime counters.
    """
    state: LoopState
    message: str = ""
    error: Optional[str] = None
    stats: Optional[LoopStats] = None

    @property
    def start_enabled(self) -> bool:
        return self.state.start_enabled

    @property
    def stop_enabled(self) -> bool:
        return self.state.stop_enabled

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "state": self.state.value,
            "message": self.message,
            "error": self.error,
            "start_enabled": self.start_enabled,
            "stop_enabled": self.stop_enabled,
            "stats": self.stats.to_dict() if self.stats else None,
        }
