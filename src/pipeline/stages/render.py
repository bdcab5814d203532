"""
Render stage: draw the frame and its detections onto the display surface.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import cv2
import numpy as np

from algorithms.letterbox import round_half_up
from models.detection import Detection
from models.errors import RenderSurfaceUnavailable


# Colors (BGR)
COLOR_BOX = (136, 255, 0)  # #00ff88
COLOR_LABEL_BG = (0, 0, 0)
COLOR_TEXT = (255, 255, 255)

BOX_FILL_ALPHA = 0.15
LABEL_BG_ALPHA = 0.6

FONT = cv2.FONT_HERSHEY_SIMPLEX


def format_label(detection: Detection) -> str:
    """'<class name or index> <score as whole percent>%'."""
    return f"{detection.display_name} {round_half_up(detection.score * 100)}%"


def line_width_for(surface_w: int) -> int:
    return max(2, round_half_up(surface_w / 300))


def font_height_for(surface_w: int) -> int:
    return max(14, round_half_up(surface_w / 40))


def label_height_for(surface_w: int) -> int:
    return max(18, round_half_up(surface_w / 45))


def _blend_rect(surface: np.ndarray, p1: Tuple[int, int], p2: Tuple[int, int], color, alpha: float) -> None:
    """Alpha-blend a solid color into the clipped rectangle p1..p2 in place."""
    h, w = surface.shape[:2]
    x1, y1 = max(0, p1[0]), max(0, p1[1])
    x2, y2 = min(w, p2[0]), min(h, p2[1])
    if x2 <= x1 or y2 <= y1:
        return
    roi = surface[y1:y2, x1:x2]
    fill = np.empty_like(roi)
    fill[:] = color
    surface[y1:y2, x1:x2] = cv2.addWeighted(fill, alpha, roi, 1.0 - alpha, 0)


class RenderStage:
    """
    Draws a frame scaled to the full surface, then one outlined,
    lightly filled box and one label per detection.

    Line width and font size grow with the surface width so overlays stay
    legible on large displays.
    """

    def render(
        self,
        frame: np.ndarray,
        detections: List[Detection],
        display_size: Optional[Tuple[int, int]] = None,
    ) -> np.ndarray:
        """
        Render one tick.

        Args:
            frame: Current BGR source frame.
            detections: Detections already in display coordinates.
            display_size: (width, height) of the surface; defaults to the frame size.

        Returns:
            The rendered BGR surface.

        Raises:
            RenderSurfaceUnavailable: If the surface has no drawable area.
        """
        if display_size is None:
            display_size = (frame.shape[1], frame.shape[0])
        surface_w, surface_h = int(display_size[0]), int(display_size[1])
        if surface_w <= 0 or surface_h <= 0:
            raise RenderSurfaceUnavailable(f"Display surface has no area: {surface_w}x{surface_h}")

        try:
            if (frame.shape[1], frame.shape[0]) == (surface_w, surface_h):
                surface = frame.copy()
            else:
                surface = cv2.resize(frame, (surface_w, surface_h), interpolation=cv2.INTER_LINEAR)
        except cv2.error as e:
            raise RenderSurfaceUnavailable("Failed to draw frame onto display surface", cause=e) from e

        thickness = line_width_for(surface_w)
        font_px = font_height_for(surface_w)
        label_h = label_height_for(surface_w)
        text_thickness = max(1, thickness // 2)
        font_scale = cv2.getFontScaleFromHeight(FONT, font_px, text_thickness)

        for det in detections:
            x1, y1, x2, y2 = det.bbox.as_int_tuple()

            _blend_rect(surface, (x1, y1), (x2, y2), COLOR_BOX, BOX_FILL_ALPHA)
            cv2.rectangle(surface, (x1, y1), (x2, y2), COLOR_BOX, thickness)

            label = format_label(det)
            (tw, _), _ = cv2.getTextSize(label, FONT, font_scale, text_thickness)
            bg_top = max(0, y1 - label_h)
            _blend_rect(surface, (x1, bg_top), (x1 + tw + 10, bg_top + label_h), COLOR_LABEL_BG, LABEL_BG_ALPHA)
            cv2.putText(
                surface,
                label,
                (x1 + 5, max(font_px, y1 - 6)),
                FONT,
                font_scale,
                COLOR_TEXT,
                text_thickness,
                cv2.LINE_AA,
            )

        if detections:
            logging.debug(f"Rendered {len(detections)} detections on {surface_w}x{surface_h}")
        return surface
