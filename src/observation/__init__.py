"""
Observation layer: the camera resource used by the detection loop.
"""

from models.config import CameraConfig

from .base import ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig, check_environment


def create_source_from_config(camera: CameraConfig, source_id: str = "camera") -> ObservationSource:
    """
    Factory: build the camera source from the typed camera config.
    """
    return OpenCVSource(OpenCVSourceConfig.from_camera(camera, source_id=source_id))


__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "check_environment",
    "create_source_from_config",
]
