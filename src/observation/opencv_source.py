"""
OpenCV camera source.

device_id selects what to open:
- int: a camera index
- str: a video file or stream URL
- None: the first camera index that opens, in the order preferred by `facing`

Only video is captured; no audio device is ever opened.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

import cv2
import numpy as np

from models.config import CameraConfig
from models.errors import PermissionDenied, ResourceUnavailable, UnsupportedEnvironment
from models.frame import FrameData
from .base import ObservationSource, ObservationConfig


Device = Union[int, str]
FrameTransform = Callable[[np.ndarray], np.ndarray]

# Camera indexes to try per facing. Dual-camera laptops and phones usually
# enumerate the front sensor first.
FACING_CANDIDATES = {
    "environment": [1, 0],
    "user": [0, 1],
}

ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Capture settings for OpenCVSource.

    Attributes:
        device_id: Camera index, file path or URL; None picks by facing.
        facing: "environment" (rear) or "user" (front), used when device_id is None.
        buffer_size: Capture queue length; 1 keeps the frame current.
        swap_rb: Swap the red and blue channels of every frame.
        rotate: Clockwise rotation in degrees (0, 90, 180 or 270).
        flip_horizontal: Mirror left/right after rotating.
        flip_vertical: Mirror top/bottom after rotating.
    """
    device_id: Optional[Device] = None
    facing: str = "environment"
    buffer_size: int = 1
    swap_rb: bool = False
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_camera(cls, camera: CameraConfig, source_id: str = "camera") -> "OpenCVSourceConfig":
        return cls(
            source_id=source_id,
            resolution=tuple(camera.resolution) if camera.resolution else None,
            fps=camera.fps,
            device_id=camera.device_id,
            facing=camera.facing,
            swap_rb=camera.swap_rb,
            rotate=camera.rotate or 0,
            flip_horizontal=camera.flip_horizontal,
            flip_vertical=camera.flip_vertical,
        )

    def candidate_devices(self) -> List[Device]:
        """Devices to try, most preferred first."""
        if self.device_id is not None:
            return [self.device_id]
        return list(FACING_CANDIDATES.get(self.facing, [0]))


def check_environment(config: OpenCVSourceConfig) -> None:
    """
    Raises:
        UnsupportedEnvironment: If a camera index would be opened but this
            OpenCV build has no camera capture backend.
    """
    wants_camera = any(isinstance(d, int) for d in config.candidate_devices())
    if wants_camera and not cv2.videoio_registry.getCameraBackends():
        raise UnsupportedEnvironment(
            "This OpenCV build has no camera capture backend; use a video file or stream URL"
        )


def _check_device_permission(device: Device) -> None:
    if not isinstance(device, int):
        return
    node = f"/dev/video{device}"
    if os.path.exists(node) and not os.access(node, os.R_OK):
        raise PermissionDenied(f"No permission to read camera device {node}")


def build_transforms(config: OpenCVSourceConfig) -> List[FrameTransform]:
    """Per-frame image fixes in the order they are applied: rotate, flip, swap_rb."""
    transforms: List[FrameTransform] = []

    rotation = ROTATIONS.get(config.rotate)
    if rotation is not None:
        transforms.append(lambda f: cv2.rotate(f, rotation))

    if config.flip_horizontal and config.flip_vertical:
        transforms.append(lambda f: cv2.flip(f, -1))
    elif config.flip_horizontal:
        transforms.append(lambda f: cv2.flip(f, 1))
    elif config.flip_vertical:
        transforms.append(lambda f: cv2.flip(f, 0))

    if config.swap_rb:
        transforms.append(lambda f: np.ascontiguousarray(f[..., ::-1]))

    return transforms


class OpenCVSource(ObservationSource):
    """
    cv2.VideoCapture wrapped as the loop's camera resource.

    Example:
        source = OpenCVSource(OpenCVSourceConfig(facing="environment"))
        source.check_environment()
        source.open()
        frame_data = source.read()
        source.close()
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self.settings = config
        self._capture: Optional[cv2.VideoCapture] = None
        self._device: Optional[Device] = None
        self._transforms = build_transforms(config)
        # read() runs on a worker thread; close() must not release mid-read
        self._lock = threading.Lock()

    def check_environment(self) -> None:
        check_environment(self.settings)

    @property
    def device(self) -> Optional[Device]:
        """The device actually opened, once open."""
        return self._device

    def open(self) -> None:
        if self._is_open:
            return

        check_environment(self.settings)

        failed: List[Device] = []
        for device in self.settings.candidate_devices():
            _check_device_permission(device)
            capture = cv2.VideoCapture(device)
            if capture.isOpened():
                self._capture, self._device = capture, device
                break
            capture.release()
            failed.append(device)
            logging.warning(f"Camera device {device} did not open")

        if self._capture is None:
            raise ResourceUnavailable(f"Could not open any camera device (tried {failed})")

        if isinstance(self._device, int):
            self._apply_capture_settings()

        self._is_open = True
        self._frame_index = 0
        logging.info(
            f"Camera opened: source_id={self.source_id}, device={self._device}, "
            f"facing={self.settings.facing}"
        )

    def _apply_capture_settings(self) -> None:
        """Request resolution/fps on live cameras and log what the driver granted."""
        capture, settings = self._capture, self.settings
        if settings.resolution:
            width, height = settings.resolution
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        if settings.fps:
            capture.set(cv2.CAP_PROP_FPS, settings.fps)
        capture.set(cv2.CAP_PROP_BUFFERSIZE, settings.buffer_size)

        granted = (
            capture.get(cv2.CAP_PROP_FRAME_WIDTH),
            capture.get(cv2.CAP_PROP_FRAME_HEIGHT),
            capture.get(cv2.CAP_PROP_FPS),
        )
        logging.info(f"Camera granted {granted[0]}x{granted[1]} @ {granted[2]} fps")

    def read(self) -> Optional[FrameData]:
        with self._lock:
            if self._capture is None:
                return None
            ok, frame = self._capture.read()
        if not ok or frame is None:
            return None

        for transform in self._transforms:
            frame = transform(frame)

        self._frame_index += 1
        return FrameData.from_numpy(
            frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        with self._lock:
            capture, self._capture = self._capture, None
        if capture is not None:
            capture.release()
            logging.info(f"Camera released: source_id={self.source_id}")
        self._is_open = False
        self._device = None
