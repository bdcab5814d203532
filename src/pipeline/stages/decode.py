"""
Decode stage: raw model output -> render-surface detections.

Each of the 300 fixed rows is (x1, y1, x2, y2, score, class). Rows under the
confidence threshold are dropped; the rest are mapped out of the letterboxed
model square into the source frame, then scaled onto the display surface.
No deduplication is done here: the model already caps its candidate list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from algorithms.letterbox import LetterboxTransform, invert_point, round_half_up
from inference.backend import DETECTION_FIELDS, expect_raw_detections
from models.config import COORDINATE_FORMATS
from models.detection import BoundingBox, Detection


# Rows with x2 and y2 both at or below this are read as normalized in "auto" mode.
NORMALIZED_LIMIT = 1.5


@dataclass
class DecodeStageConfig:
    """
    Configuration for the decode stage.

    Attributes:
        conf_threshold: Minimum score for a row to be kept.
        class_names: Class table indexed by class index.
        coordinate_format: "auto", "normalized" or "pixel".
    """
    conf_threshold: float = 0.25
    class_names: Sequence[str] = field(default_factory=list)
    coordinate_format: str = "auto"

    def __post_init__(self):
        if self.coordinate_format not in COORDINATE_FORMATS:
            raise ValueError(
                f"coordinate_format must be one of {', '.join(COORDINATE_FORMATS)}, "
                f"got {self.coordinate_format!r}"
            )


def resolve_label(class_index: int, class_names: Sequence[str]) -> Optional[str]:
    """Class name for an index, or None when the table has no entry for it."""
    if 0 <= class_index < len(class_names):
        return class_names[class_index]
    return None


def is_normalized_row(x2: float, y2: float, coordinate_format: str) -> bool:
    if coordinate_format == "normalized":
        return True
    if coordinate_format == "pixel":
        return False
    return x2 <= NORMALIZED_LIMIT and y2 <= NORMALIZED_LIMIT


class DecodeStage:
    """
    Turns the raw detection buffer into a list of Detection objects.

    Example:
        stage = DecodeStage(DecodeStageConfig(conf_threshold=0.25, class_names=["Puente"]))
        detections = stage.decode(raw, transform, 640, 480, 1280, 960)
    """

    def __init__(self, config: DecodeStageConfig):
        self._config = config

    @property
    def config(self) -> DecodeStageConfig:
        return self._config

    def decode(
        self,
        raw,
        transform: LetterboxTransform,
        source_w: int,
        source_h: int,
        display_w: int,
        display_h: int,
        conf_threshold: Optional[float] = None,
    ) -> List[Detection]:
        """
        Decode all rows that meet the confidence threshold.

        Args:
            raw: Flat (or reshapeable) buffer of 300 * 6 values.
            transform: Letterbox used to build this tick's input.
            source_w, source_h: Dimensions of the frame that was preprocessed.
            display_w, display_h: Dimensions of the render surface.
            conf_threshold: Overrides the configured threshold when given.

        Raises:
            InferenceContractViolation: If raw has the wrong number of values.
        """
        threshold = self._config.conf_threshold if conf_threshold is None else conf_threshold
        rows = expect_raw_detections(raw).reshape(-1, DETECTION_FIELDS)

        sx = display_w / source_w
        sy = display_h / source_h
        size = transform.target_size

        detections: List[Detection] = []
        for x1, y1, x2, y2, score, class_raw in rows[rows[:, 4] >= threshold]:
            class_index = round_half_up(float(class_raw))

            if is_normalized_row(x2, y2, self._config.coordinate_format):
                x1, y1, x2, y2 = x1 * size, y1 * size, x2 * size, y2 * size

            p1 = invert_point((float(x1), float(y1)), transform, source_w, source_h)
            p2 = invert_point((float(x2), float(y2)), transform, source_w, source_h)

            box = BoundingBox.ordered(p1[0] * sx, p1[1] * sy, p2[0] * sx, p2[1] * sy)
            detections.append(
                Detection.from_box(
                    box,
                    score=float(score),
                    class_index=class_index,
                    label=resolve_label(class_index, self._config.class_names),
                )
            )

        logging.debug(f"Decoded {len(detections)} detections above {threshold}")
        return detections


def first_rows(raw, count: int = 2) -> List[Tuple[float, ...]]:
    """First `count` rows of a raw buffer, for debug logging."""
    arr = np.asarray(raw, dtype=np.float32).reshape(-1)[: count * DETECTION_FIELDS]
    return [tuple(round(float(v), 4) for v in arr[i:i + DETECTION_FIELDS])
            for i in range(0, arr.size, DETECTION_FIELDS)]
