"""
Tests for the observation layer.
"""

import threading

import numpy as np
import pytest
from unittest.mock import MagicMock, patch

from models.config import CameraConfig
from models.errors import PermissionDenied, ResourceUnavailable, UnsupportedEnvironment
from models.frame import FrameData
from observation import create_source_from_config
from observation.base import ObservationConfig
from observation.opencv_source import (
    OpenCVSource,
    OpenCVSourceConfig,
    build_transforms,
    check_environment,
)


class TestObservationConfig:
    def test_default_config(self):
        config = ObservationConfig()
        assert config.source_id == "default"
        assert config.resolution is None
        assert config.fps is None


class TestOpenCVSourceConfig:
    def test_from_camera(self):
        camera = CameraConfig.from_dict({
            "device_id": 2,
            "facing": "user",
            "resolution": [1280, 720],
            "fps": 30,
            "rotate": 90,
            "flip_horizontal": True,
        })
        config = OpenCVSourceConfig.from_camera(camera, source_id="main-camera")

        assert config.source_id == "main-camera"
        assert config.device_id == 2
        assert config.facing == "user"
        assert config.resolution == (1280, 720)
        assert config.fps == 30
        assert config.rotate == 90
        assert config.flip_horizontal is True
        assert config.flip_vertical is False

    def test_null_rotate_is_zero(self):
        config = OpenCVSourceConfig.from_camera(CameraConfig.from_dict({"rotate": None}))
        assert config.rotate == 0

    def test_explicit_device_is_only_candidate(self):
        assert OpenCVSourceConfig(device_id=3).candidate_devices() == [3]
        assert OpenCVSourceConfig(device_id="clip.mp4").candidate_devices() == ["clip.mp4"]

    def test_facing_picks_candidates(self):
        assert OpenCVSourceConfig(facing="environment").candidate_devices() == [1, 0]
        assert OpenCVSourceConfig(facing="user").candidate_devices() == [0, 1]


class TestBuildTransforms:
    def test_no_transforms_by_default(self):
        assert build_transforms(OpenCVSourceConfig()) == []

    def test_flip_both_axes(self):
        frame = np.arange(4, dtype=np.uint8).reshape(2, 2, 1).repeat(3, axis=2)
        [flip] = build_transforms(OpenCVSourceConfig(flip_horizontal=True, flip_vertical=True))

        assert flip(frame)[0, 0, 0] == 3

    def test_swap_rb(self):
        frame = np.zeros((2, 2, 3), dtype=np.uint8)
        frame[..., 0] = 255
        [swap] = build_transforms(OpenCVSourceConfig(swap_rb=True))

        out = swap(frame)
        assert out[0, 0].tolist() == [0, 0, 255]
        assert out.flags["C_CONTIGUOUS"]


class TestCheckEnvironment:
    def test_no_camera_backend(self):
        with patch("observation.opencv_source.cv2.videoio_registry.getCameraBackends", return_value=[]):
            with pytest.raises(UnsupportedEnvironment):
                check_environment(OpenCVSourceConfig(device_id=0))

    def test_files_do_not_need_camera_backend(self):
        with patch("observation.opencv_source.cv2.videoio_registry.getCameraBackends", return_value=[]):
            check_environment(OpenCVSourceConfig(device_id="clip.mp4"))


def _capture(opened=True, frame=None):
    cap = MagicMock()
    cap.isOpened.return_value = opened
    cap.read.return_value = (frame is not None, frame)
    cap.get.return_value = 0
    return cap


class TestOpenCVSource:
    def test_falls_back_to_next_candidate(self):
        caps = {1: _capture(opened=False), 0: _capture(opened=True)}
        with patch("observation.opencv_source.check_environment"), \
                patch("observation.opencv_source.os.path.exists", return_value=False), \
                patch("observation.opencv_source.cv2.VideoCapture", side_effect=lambda d: caps[d]):
            source = OpenCVSource(OpenCVSourceConfig(facing="environment"))
            source.open()

        assert source.is_open
        assert source.device == 0
        caps[1].release.assert_called_once()

    def test_no_device_opens(self):
        with patch("observation.opencv_source.check_environment"), \
                patch("observation.opencv_source.os.path.exists", return_value=False), \
                patch("observation.opencv_source.cv2.VideoCapture", return_value=_capture(opened=False)):
            source = OpenCVSource(OpenCVSourceConfig(facing="user"))
            with pytest.raises(ResourceUnavailable):
                source.open()

        assert not source.is_open

    def test_unreadable_device_node(self):
        with patch("observation.opencv_source.check_environment"), \
                patch("observation.opencv_source.os.path.exists", return_value=True), \
                patch("observation.opencv_source.os.access", return_value=False), \
                patch("observation.opencv_source.cv2.VideoCapture") as video_capture:
            source = OpenCVSource(OpenCVSourceConfig(device_id=0))
            with pytest.raises(PermissionDenied):
                source.open()

        video_capture.assert_not_called()

    def test_read_and_transform(self):
        frame = np.zeros((480, 640, 3), dtype=np.uint8)
        frame[0, 0] = (255, 0, 0)
        cap = _capture(frame=frame)
        with patch("observation.opencv_source.check_environment"), \
                patch("observation.opencv_source.cv2.VideoCapture", return_value=cap):
            source = OpenCVSource(OpenCVSourceConfig(device_id="clip.mp4", rotate=90, swap_rb=True))
            source.open()
            data = source.read()

        assert isinstance(data, FrameData)
        assert data.size == (480, 640)
        assert data.frame_index == 1
        assert data.is_ready
        # Top-left pixel lands top-right after a clockwise turn, then R/B swap
        assert tuple(data.frame[0, 479]) == (0, 0, 255)

    def test_read_without_frame_returns_none(self):
        cap = _capture(frame=None)
        with patch("observation.opencv_source.check_environment"), \
                patch("observation.opencv_source.cv2.VideoCapture", return_value=cap):
            source = OpenCVSource(OpenCVSourceConfig(device_id="clip.mp4"))
            source.open()
            assert source.read() is None

    def test_close_is_idempotent(self):
        cap = _capture()
        with patch("observation.opencv_source.check_environment"), \
                patch("observation.opencv_source.cv2.VideoCapture", return_value=cap):
            source = OpenCVSource(OpenCVSourceConfig(device_id="clip.mp4"))
            source.open()
        source.close()
        source.close()

        cap.release.assert_called_once()
        assert not source.is_open
        assert source.read() is None

    def test_close_waits_for_read_in_progress(self):
        reading = threading.Event()
        finish = threading.Event()

        def slow_read():
            reading.set()
            finish.wait(5)
            return True, np.zeros((4, 4, 3), dtype=np.uint8)

        cap = _capture()
        cap.read.side_effect = slow_read
        with patch("observation.opencv_source.check_environment"), \
                patch("observation.opencv_source.cv2.VideoCapture", return_value=cap):
            source = OpenCVSource(OpenCVSourceConfig(device_id="clip.mp4"))
            source.open()

        results = []
        reader = threading.Thread(target=lambda: results.append(source.read()))
        reader.start()
        assert reading.wait(5)

        closer = threading.Thread(target=source.close)
        closer.start()
        closer.join(0.05)
        assert closer.is_alive()
        cap.release.assert_not_called()

        finish.set()
        reader.join(5)
        closer.join(5)
        cap.release.assert_called_once()
        assert results[0].size == (4, 4)


class TestFactory:
    def test_create_source_from_config(self):
        source = create_source_from_config(CameraConfig(facing="user"), source_id="main-camera")
        assert isinstance(source, OpenCVSource)
        assert source.source_id == "main-camera"
        assert not source.is_open
