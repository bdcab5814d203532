"""
Pipeline stages for the detector.

Each stage handles a specific part of the per-frame pipeline:
- preprocess: frame -> letterboxed planar tensor
- decode: raw model output -> display-space detections
- render: frame + detections -> display surface
"""

from .preprocess import PreprocessStage, PreprocessResult
from .decode import DecodeStage, DecodeStageConfig, resolve_label
from .render import RenderStage, format_label

__all__ = [
    "PreprocessStage",
    "PreprocessResult",
    "DecodeStage",
    "DecodeStageConfig",
    "resolve_label",
    "RenderStage",
    "format_label",
]
