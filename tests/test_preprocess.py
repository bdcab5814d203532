"""
Tests for the preprocess stage.
"""

import numpy as np
import pytest

from pipeline.stages.preprocess import PreprocessStage


def _solid(h, w, bgr, channels=3):
    frame = np.zeros((h, w, channels), dtype=np.uint8)
    frame[:, :, :3] = bgr
    return frame


class TestPreprocessStage:
    def test_tensor_shape_and_dtype(self):
        stage = PreprocessStage(input_size=512)
        result = stage.process(_solid(480, 640, (0, 0, 0)), 640, 480)

        assert result.tensor.shape == (1, 3, 512, 512)
        assert result.tensor.dtype == np.float32
        assert result.tensor.flags["C_CONTIGUOUS"]

    def test_values_in_unit_range(self):
        stage = PreprocessStage(input_size=64)
        frame = np.random.default_rng(0).integers(0, 256, size=(48, 64, 3), dtype=np.uint8)
        tensor = stage.process(frame, 64, 48).tensor

        assert tensor.min() >= 0.0
        assert tensor.max() <= 1.0

    def test_planar_rgb_order(self):
        """BGR (255, 0, 0) is blue: only the third plane is lit."""
        stage = PreprocessStage(input_size=64)
        tensor = stage.process(_solid(64, 64, (255, 0, 0)), 64, 64).tensor

        assert tensor[0, 0].max() == pytest.approx(0.0)
        assert tensor[0, 1].max() == pytest.approx(0.0)
        assert tensor[0, 2].min() == pytest.approx(1.0)

    def test_padding_is_black(self):
        stage = PreprocessStage(input_size=512)
        result = stage.process(_solid(480, 640, (255, 255, 255)), 640, 480)
        t = result.transform

        top_bar = result.tensor[0, :, : t.pad_top, :]
        bottom_bar = result.tensor[0, :, t.pad_top + t.padded_height:, :]
        content = result.tensor[0, :, t.pad_top:t.pad_top + t.padded_height, :]

        assert t.pad_top == 64
        assert np.all(top_bar == 0.0)
        assert np.all(bottom_bar == 0.0)
        assert content.min() == pytest.approx(1.0)

    def test_alpha_channel_ignored(self):
        stage = PreprocessStage(input_size=32)
        frame = _solid(32, 32, (0, 255, 0), channels=4)
        frame[:, :, 3] = 7
        tensor = stage.process(frame, 32, 32).tensor

        assert tensor.shape == (1, 3, 32, 32)
        assert tensor[0, 1].min() == pytest.approx(1.0)

    def test_grayscale_frame(self):
        stage = PreprocessStage(input_size=32)
        frame = np.full((16, 32), 255, dtype=np.uint8)
        tensor = stage.process(frame, 32, 16).tensor

        assert tensor.shape == (1, 3, 32, 32)
        assert tensor[0, :, 8:24, :].min() == pytest.approx(1.0)

    def test_rejects_non_positive_input_size(self):
        with pytest.raises(ValueError):
            PreprocessStage(input_size=0)
