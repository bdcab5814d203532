"""
Camera resource interface.

The detection loop owns exactly one source per run: it checks the
environment and opens it on start, reads the current frame once per tick and
closes it on stop or on a fatal error.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Settings shared by every camera source.

    Attributes:
        source_id: Name used in logs and on FrameData (e.g. "main-camera").
        resolution: Requested (width, height); None keeps the device default.
        fps: Requested capture rate; None keeps the device default.
    """
    source_id: str = "default"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None


class ObservationSource(ABC):
    """
    A video-only camera the loop can acquire and release.

    Usage outside the loop:
        with OpenCVSource(config) as source:
            frame_data = source.read()
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Frames read since the last open()."""
        return self._frame_index

    def check_environment(self) -> None:
        """
        Fail fast when this process cannot capture video at all.

        Raises:
            UnsupportedEnvironment: If no capture API is available.
        """

    @abstractmethod
    def open(self) -> None:
        """
        Acquire the device.

        Raises:
            UnsupportedEnvironment: If no capture API is available.
            PermissionDenied: If the device exists but may not be read.
            ResourceUnavailable: If no device could be acquired.
        """

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """Current frame, or None while the device has nothing to give."""

    @abstractmethod
    def close(self) -> None:
        """Release the device. Calling it again is a no-op."""

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
