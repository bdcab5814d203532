"""
Detection models for decoded model output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from algorithms.letterbox import round_half_up


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned box on the display surface, in pixels.

    Use ordered() when the corners come from model output, which does not
    guarantee (x1, y1) is the top-left corner.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple."""
        return (round_half_up(self.x1), round_half_up(self.y1), round_half_up(self.x2), round_half_up(self.y2))

    @classmethod
    def ordered(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        """Create a box whose corners are sorted so x1 <= x2 and y1 <= y2."""
        return cls(x1=min(x1, x2), y1=min(y1, y2), x2=max(x1, x2), y2=max(y1, y2))


@dataclass(frozen=True)
class Detection:
    """
    A single decoded detection, in render-surface pixel coordinates.

    Attributes:
        x1, y1, x2, y2: Box corners on the display surface.
        score: Detection confidence (0-1).
        class_index: Class index predicted by the model.
        label: Resolved class name, if the class table has one.
    """
    x1: float
    y1: float
    x2: float
    y2: float
    score: float
    class_index: int
    label: Optional[str] = None

    @property
    def bbox(self) -> BoundingBox:
        return BoundingBox(self.x1, self.y1, self.x2, self.y2)

    @property
    def display_name(self) -> str:
        """Class name if known, else the raw class index."""
        return self.label if self.label is not None else str(self.class_index)

    @classmethod
    def from_box(
        cls,
        box: BoundingBox,
        score: float,
        class_index: int,
        label: Optional[str] = None,
    ) -> "Detection":
        return cls(
            x1=box.x1,
            y1=box.y1,
            x2=box.x2,
            y2=box.y2,
            score=score,
            class_index=class_index,
            label=label,
        )

    def to_dict(self) -> dict:
        return {
            "x1": self.x1,
            "y1": self.y1,
            "x2": self.x2,
            "y2": self.y2,
            "score": self.score,
            "class_index": self.class_index,
            "label": self.display_name,
        }
