"""
Pure geometry used by the detection pipeline.
"""

from .letterbox import (
    LetterboxTransform,
    compute_letterbox,
    forward_point,
    invert_point,
    round_half_up,
)

__all__ = [
    "LetterboxTransform",
    "compute_letterbox",
    "forward_point",
    "invert_point",
    "round_half_up",
]
