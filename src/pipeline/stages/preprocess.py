"""
Preprocess stage: frame -> letterboxed planar model input.

The frame is scaled into a black square of side `input_size` (no cropping,
only padding) and converted to a float32 tensor [1, 3, S, S] with channels
stored R, G, B one after another and values in [0, 1].
"""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from algorithms.letterbox import LetterboxTransform, compute_letterbox


@dataclass
class PreprocessResult:
    """Model input for one tick plus the transform needed to undo it."""
    tensor: np.ndarray
    transform: LetterboxTransform


class PreprocessStage:
    """
    Rasterizes a BGR frame into the model's fixed square input.

    Example:
        stage = PreprocessStage(input_size=512)
        result = stage.process(frame_data.frame, frame_data.width, frame_data.height)
        raw = await backend.run(result.tensor)
    """

    def __init__(self, input_size: int = 512):
        if input_size <= 0:
            raise ValueError(f"input_size must be positive, got {input_size}")
        self.input_size = input_size

    def letterbox(self, frame: np.ndarray, source_w: int, source_h: int):
        """Return the (S, S, 3) uint8 BGR canvas and its transform."""
        size = self.input_size
        transform = compute_letterbox(source_w, source_h, size)

        canvas = np.zeros((size, size, 3), dtype=np.uint8)
        if transform.padded_width > 0 and transform.padded_height > 0:
            resized = cv2.resize(
                _as_bgr(frame),
                (transform.padded_width, transform.padded_height),
                interpolation=cv2.INTER_LINEAR,
            )
            top, left = transform.pad_top, transform.pad_left
            canvas[top:top + transform.padded_height, left:left + transform.padded_width] = resized

        return canvas, transform

    def process(self, frame: np.ndarray, source_w: int, source_h: int) -> PreprocessResult:
        """
        Build the planar input tensor for a frame of (source_w, source_h).

        Callers must skip frames with zero dimensions instead of calling this.
        """
        canvas, transform = self.letterbox(frame, source_w, source_h)

        # BGR -> RGB, HWC -> CHW, add batch axis
        rgb = canvas[:, :, ::-1].astype(np.float32) / 255.0
        tensor = np.ascontiguousarray(rgb.transpose(2, 0, 1)[np.newaxis, ...])

        return PreprocessResult(tensor=tensor, transform=transform)


def _as_bgr(frame: np.ndarray) -> np.ndarray:
    """Drop alpha, expand grayscale; always returns 3 channels."""
    if frame.ndim == 2:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
    if frame.shape[2] == 1:
        return cv2.cvtColor(frame[:, :, 0], cv2.COLOR_GRAY2BGR)
    if frame.shape[2] == 4:
        return np.ascontiguousarray(frame[:, :, :3])
    return frame
