"""
Tests for the render stage.
"""

import numpy as np
import pytest

from models.detection import Detection
from models.errors import RenderSurfaceUnavailable
from pipeline.stages.render import (
    COLOR_BOX,
    RenderStage,
    font_height_for,
    format_label,
    label_height_for,
    line_width_for,
)


class TestSizing:
    def test_minimums_on_small_surfaces(self):
        assert line_width_for(320) == 2
        assert font_height_for(320) == 14
        assert label_height_for(320) == 18

    def test_grows_with_width(self):
        assert line_width_for(1920) == 6
        assert font_height_for(1920) == 48
        assert label_height_for(1920) == 43


class TestFormatLabel:
    def test_name_and_percent(self):
        det = Detection(0, 0, 10, 10, score=0.873, class_index=0, label="Puente")
        assert format_label(det) == "Puente 87%"

    def test_index_when_unnamed(self):
        det = Detection(0, 0, 10, 10, score=0.5, class_index=4)
        assert format_label(det) == "4 50%"

    def test_percent_rounds_half_up(self):
        det = Detection(0, 0, 10, 10, score=0.125, class_index=0, label="x")
        assert format_label(det) == "x 13%"


class TestRenderStage:
    def test_no_detections_copies_frame(self):
        frame = np.full((120, 160, 3), 40, dtype=np.uint8)
        surface = RenderStage().render(frame, [])

        assert surface.shape == frame.shape
        assert np.array_equal(surface, frame)
        assert surface is not frame

    def test_frame_scaled_to_display_size(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        surface = RenderStage().render(frame, [], display_size=(1280, 960))

        assert surface.shape == (960, 1280, 3)

    def test_box_outline_drawn(self):
        frame = np.zeros((240, 320, 3), dtype=np.uint8)
        det = Detection(100, 100, 200, 200, score=0.9, class_index=0, label="Puente")
        surface = RenderStage().render(frame, [det])

        # Bottom edge of the outline, away from the label
        assert tuple(int(c) for c in surface[200, 150]) == COLOR_BOX

    def test_box_interior_lightly_filled(self):
        frame = np.zeros((240, 320, 3), dtype=np.uint8)
        det = Detection(100, 100, 200, 200, score=0.9, class_index=0)
        surface = RenderStage().render(frame, [det])

        inside = surface[170, 150].astype(int)
        assert 0 < inside[1] < 255
        assert np.array_equal(surface[20, 20], [0, 0, 0])

    def test_label_near_top_edge_stays_on_surface(self):
        frame = np.full((240, 320, 3), 200, dtype=np.uint8)
        det = Detection(10, 0, 120, 80, score=0.9, class_index=0, label="Puente")
        surface = RenderStage().render(frame, [det])

        # Label background is clamped to y=0 and darkens the top of the box
        label_strip = surface[2:16, 15:60].mean()
        interior = surface[50:70, 15:60].mean()
        assert label_strip < interior

    @pytest.mark.parametrize("size", [(0, 480), (640, 0)])
    def test_empty_surface_rejected(self, size):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        with pytest.raises(RenderSurfaceUnavailable):
            RenderStage().render(frame, [], display_size=size)
