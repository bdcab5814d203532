"""
Letterbox geometry.

Maps an arbitrary source rectangle into a fixed square model input while
preserving aspect ratio, and maps model-space points back into the source.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple


Point = Tuple[float, float]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class LetterboxTransform:
    """
    Scale/padding mapping from a source rectangle to a square target.

    Attributes:
        scale: Uniform scale applied to the source.
        padded_width: Width of the scaled source inside the target.
        padded_height: Height of the scaled source inside the target.
        pad_left: Offset of the scaled source from the left target edge.
        pad_top: Offset of the scaled source from the top target edge.
        target_size: Side length of the square target.
    """
    scale: float
    padded_width: int
    padded_height: int
    pad_left: int
    pad_top: int
    target_size: int

    @property
    def pad_right(self) -> int:
        return self.target_size - self.padded_width - self.pad_left

    @property
    def pad_bottom(self) -> int:
        return self.target_size - self.padded_height - self.pad_top


def compute_letterbox(source_w: int, source_h: int, target_size: int) -> LetterboxTransform:
    """
    Compute the letterbox transform for a source of (source_w, source_h).

    The smaller of the two axis ratios is used so the scaled source always
    fits inside the target. Padding is floored, so when the leftover space is
    odd the right/bottom edge gets the extra pixel.

    Raises:
        ValueError: If any dimension is not positive.
    """
    if source_w <= 0 or source_h <= 0 or target_size <= 0:
        raise ValueError(
            f"Letterbox needs positive dimensions, got source={source_w}x{source_h} "
            f"target={target_size}"
        )

    scale = min(target_size / source_w, target_size / source_h)
    padded_width = round_half_up(source_w * scale)
    padded_height = round_half_up(source_h * scale)
    pad_left = (target_size - padded_width) // 2
    pad_top = (target_size - padded_height) // 2

    return LetterboxTransform(
        scale=scale,
        padded_width=padded_width,
        padded_height=padded_height,
        pad_left=pad_left,
        pad_top=pad_top,
        target_size=target_size,
    )


def forward_point(point: Point, transform: LetterboxTransform) -> Point:
    """Map a source-space point into the letterboxed target."""
    x, y = point
    return (x * transform.scale + transform.pad_left, y * transform.scale + transform.pad_top)


def invert_point(
    point: Point,
    transform: LetterboxTransform,
    source_w: float,
    source_h: float,
) -> Point:
    """
    Map a target-space point back into the source rectangle.

    The result is always clamped to [0, source_w] x [0, source_h]; models
    regularly predict slightly outside the padded region.
    """
    x, y = point
    x = (x - transform.pad_left) / transform.scale
    y = (y - transform.pad_top) / transform.scale
    x = max(0.0, min(float(source_w), x))
    y = max(0.0, min(float(source_h), y))
    return (x, y)
