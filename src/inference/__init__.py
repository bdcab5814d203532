"""
Inference layer: backend contract and the ONNX Runtime implementation.
"""

from .backend import (
    DETECTION_FIELDS,
    MAX_DETECTIONS,
    RAW_OUTPUT_LENGTH,
    InferenceBackend,
    expect_raw_detections,
)
from .onnx_backend import OnnxModelConfig, OnnxRuntimeBackend, create_backend_from_config

__all__ = [
    "DETECTION_FIELDS",
    "MAX_DETECTIONS",
    "RAW_OUTPUT_LENGTH",
    "InferenceBackend",
    "expect_raw_detections",
    "OnnxModelConfig",
    "OnnxRuntimeBackend",
    "create_backend_from_config",
]
