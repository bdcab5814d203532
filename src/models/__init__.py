"""
Typed models for the detector application.

These models provide strong typing for frames, detections, loop status and
configuration. Use the from_dict/to_dict adapters to convert from raw dicts.
"""

from .frame import FrameData
from .detection import Detection, BoundingBox
from .status import LoopState, LoopStats, LoopStatus
from .config import (
    Config,
    CameraConfig,
    ModelConfig,
    DisplayConfig,
    LoopConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "BoundingBox",
    # Status
    "LoopState",
    "LoopStats",
    "LoopStatus",
    # Config
    "Config",
    "CameraConfig",
    "ModelConfig",
    "DisplayConfig",
    "LoopConfig",
    "WebConfig",
]
