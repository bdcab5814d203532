"""
Display sinks: where rendered surfaces go.
"""

from __future__ import annotations

import logging
from typing import Protocol

import cv2
import numpy as np

from models.errors import RenderSurfaceUnavailable


class DisplaySink(Protocol):
    def show(self, surface: np.ndarray) -> bool:
        """Present a rendered surface. Returns False when the user asked to quit."""
        ...

    def close(self) -> None:
        ...


class WindowDisplay:
    """OpenCV window. Press 'q' in the window to stop."""

    def __init__(self, title: str = "Detector"):
        self.title = title
        self._opened = False

    def show(self, surface: np.ndarray) -> bool:
        try:
            cv2.imshow(self.title, surface)
            self._opened = True
            key = cv2.waitKey(1) & 0xFF
        except cv2.error as e:
            raise RenderSurfaceUnavailable(f"Cannot show window '{self.title}'", cause=e) from e
        return key != ord("q")

    def close(self) -> None:
        if not self._opened:
            return
        try:
            cv2.destroyWindow(self.title)
        except cv2.error as e:
            logging.warning(f"Error closing window '{self.title}': {e}")
        self._opened = False
