"""
Pipeline module for the live detector.

The pipeline runs once per display refresh:
- Frame acquisition from the camera source
- Letterbox preprocessing into the model input
- Inference (external engine)
- Decoding boxes back into display coordinates
- Rendering onto the display surface
"""

from .engine import DetectionLoop, create_loop_from_config
from .display import DisplaySink, WindowDisplay
from .stages import DecodeStage, DecodeStageConfig, PreprocessStage, RenderStage

__all__ = [
    "DetectionLoop",
    "create_loop_from_config",
    "DisplaySink",
    "WindowDisplay",
    "DecodeStage",
    "DecodeStageConfig",
    "PreprocessStage",
    "RenderStage",
]
