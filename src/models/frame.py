"""
FrameData model for camera frames handed to a detection tick.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class FrameData:
    """
    One captured frame.

    Width and height are measured from the pixel buffer on every access, so a
    source that changes shape between ticks (rotation, a stream renegotiating)
    is never described by stale dimensions.

    Attributes:
        frame: BGR pixels, or None when the source had nothing yet.
        timestamp: Unix timestamp of the capture.
        frame_index: Sequential frame number since the source was opened.
        source: Identifier of the camera/video source.
    """
    frame: Optional[np.ndarray]
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_numpy(
        cls,
        frame: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "FrameData":
        return cls(frame=frame, timestamp=timestamp, frame_index=frame_index, source=source)

    @property
    def width(self) -> int:
        if self.frame is None or self.frame.ndim < 2:
            return 0
        return int(self.frame.shape[1])

    @property
    def height(self) -> int:
        if self.frame is None or self.frame.ndim < 2:
            return 0
        return int(self.frame.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height)"""
        return (self.width, self.height)

    @property
    def is_ready(self) -> bool:
        """False while the source has not produced real dimensions yet."""
        return self.width > 0 and self.height > 0
