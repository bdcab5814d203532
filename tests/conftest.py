"""
Pytest configuration and shared fixtures.
"""

import os
import sys
import time

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from inference.backend import DETECTION_FIELDS, MAX_DETECTIONS  # noqa: E402
from models.frame import FrameData  # noqa: E402
from observation.base import ObservationConfig, ObservationSource  # noqa: E402


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  device_id: null
  facing: "environment"

model:
  path: "assets/best.onnx"
  input_size: 512
  conf_threshold: 0.25
  class_names: ["Puente"]

display:
  resolution: null

loop:
  frame_interval: 0.0333

web:
  port: 5000

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "device_id": 0,
            "facing": "environment",
            "resolution": [640, 480],
            "fps": 30,
        },
        "model": {
            "path": "assets/best.onnx",
            "input_size": 512,
            "conf_threshold": 0.25,
            "class_names": ["Puente"],
            "coordinate_format": "auto",
            "providers": ["CPUExecutionProvider"],
        },
        "display": {"resolution": None},
        "loop": {"frame_interval": 0.0},
        "web": {"host": "127.0.0.1", "port": 5000, "stream_fps": 15},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


def raw_output(rows=None) -> np.ndarray:
    """A 300x6 model output, zero-filled except for the given leading rows."""
    raw = np.zeros((MAX_DETECTIONS, DETECTION_FIELDS), dtype=np.float32)
    for i, row in enumerate(rows or []):
        raw[i] = row
    return raw.reshape(-1)


class FakeSource(ObservationSource):
    """Camera stand-in that returns the same frame on every read."""

    def __init__(self, frame=None, open_error=None, env_error=None):
        super().__init__(ObservationConfig(source_id="fake"))
        self.frame = np.zeros((480, 640, 3), dtype=np.uint8) if frame is None else frame
        self.open_error = open_error
        self.env_error = env_error
        self.open_calls = 0
        self.close_calls = 0

    def check_environment(self) -> None:
        if self.env_error is not None:
            raise self.env_error

    def open(self) -> None:
        self.open_calls += 1
        if self.open_error is not None:
            raise self.open_error
        self._is_open = True

    def read(self):
        if not self._is_open or self.frame is None:
            return None
        self._frame_index += 1
        return FrameData.from_numpy(self.frame, timestamp=time.time(), frame_index=self._frame_index)

    def close(self) -> None:
        self.close_calls += 1
        self._is_open = False


class FakeBackend:
    """Inference stand-in returning a fixed raw buffer."""

    input_name = "images"
    output_name = "output0"

    def __init__(self, output=None, error=None):
        self.output = raw_output() if output is None else output
        self.error = error
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def run(self, tensor):
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.error is not None:
                raise self.error
            return self.output
        finally:
            self.in_flight -= 1


class RecordingDisplay:
    """Display sink that keeps every surface it was shown."""

    def __init__(self, quit_after=None):
        self.surfaces = []
        self.quit_after = quit_after
        self.closed = False

    def show(self, surface) -> bool:
        self.surfaces.append(surface)
        return self.quit_after is None or len(self.surfaces) < self.quit_after

    def close(self) -> None:
        self.closed = True
