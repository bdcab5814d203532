"""
Inference backend interface.

A backend takes one planar float32 tensor [1, 3, S, S] and returns the raw
detection buffer: 300 rows of (x1, y1, x2, y2, score, class), row-major.
Backends may return any array shape; `expect_raw_detections` enforces the
element count so a mismatched model export is reported instead of decoded.
"""

from __future__ import annotations

from typing import Protocol

import numpy as np

from models.errors import InferenceContractViolation


MAX_DETECTIONS = 300
DETECTION_FIELDS = 6
RAW_OUTPUT_LENGTH = MAX_DETECTIONS * DETECTION_FIELDS


class InferenceBackend(Protocol):
    input_name: str
    output_name: str

    async def run(self, tensor: np.ndarray) -> np.ndarray:
        ...


def expect_raw_detections(raw) -> np.ndarray:
    """
    Validate a backend result and return it as a flat float32 array.

    Raises:
        InferenceContractViolation: If the output is missing or does not hold
            exactly MAX_DETECTIONS * DETECTION_FIELDS values.
    """
    if raw is None:
        raise InferenceContractViolation("Inference returned no output")

    arr = np.asarray(raw, dtype=np.float32).reshape(-1)
    if arr.size != RAW_OUTPUT_LENGTH:
        raise InferenceContractViolation(
            f"Expected {RAW_OUTPUT_LENGTH} output values "
            f"({MAX_DETECTIONS}x{DETECTION_FIELDS}), got {arr.size}"
        )
    return arr
