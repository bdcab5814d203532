"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


COORDINATE_FORMATS = ("auto", "normalized", "pixel")


@dataclass
class CameraConfig:
    """Camera configuration."""
    device_id: Optional[Union[int, str]] = None
    facing: str = "environment"
    resolution: Optional[List[int]] = None
    fps: Optional[int] = None
    swap_rb: bool = False
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id"),
            facing=d.get("facing", "environment"),
            resolution=d.get("resolution"),
            fps=d.get("fps"),
            swap_rb=d.get("swap_rb", False),
            rotate=d.get("rotate", 0) or 0,
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "facing": self.facing,
            "resolution": self.resolution,
            "fps": self.fps,
            "swap_rb": self.swap_rb,
            "rotate": self.rotate,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
        }


@dataclass
class ModelConfig:
    """
    Detection model configuration.

    input_size must match the image size the model was exported with.
    coordinate_format selects how raw box coordinates are read:
    "normalized" (0-1), "pixel" (0-input_size) or "auto" (guess per row).
    """
    path: str = "assets/best.onnx"
    input_size: int = 512
    conf_threshold: float = 0.25
    class_names: List[str] = field(default_factory=lambda: ["Puente"])
    coordinate_format: str = "auto"
    providers: List[str] = field(default_factory=lambda: ["CPUExecutionProvider"])

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            path=d.get("path", "assets/best.onnx"),
            input_size=int(d.get("input_size", 512)),
            conf_threshold=float(d.get("conf_threshold", 0.25)),
            class_names=list(d.get("class_names", ["Puente"])),
            coordinate_format=d.get("coordinate_format", "auto"),
            providers=list(d.get("providers") or ["CPUExecutionProvider"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "input_size": self.input_size,
            "conf_threshold": self.conf_threshold,
            "class_names": list(self.class_names),
            "coordinate_format": self.coordinate_format,
            "providers": list(self.providers),
        }


@dataclass
class DisplayConfig:
    """Render surface configuration. resolution=None follows the source frame."""
    resolution: Optional[List[int]] = None
    window_title: str = "Detector"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DisplayConfig":
        return cls(
            resolution=d.get("resolution"),
            window_title=d.get("window_title", "Detector"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resolution": self.resolution,
            "window_title": self.window_title,
        }


@dataclass
class LoopConfig:
    """Detection loop scheduling."""
    frame_interval: float = 1.0 / 30
    output_log_interval: float = 2.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LoopConfig":
        return cls(
            frame_interval=float(d.get("frame_interval", 1.0 / 30)),
            output_log_interval=float(d.get("output_log_interval", 2.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame_interval": self.frame_interval,
            "output_log_interval": self.output_log_interval,
        }


@dataclass
class WebConfig:
    """Web interface configuration."""
    host: str = "0.0.0.0"
    port: int = 5000
    stream_fps: int = 15

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            host=d.get("host", "0.0.0.0"),
            port=int(d.get("port", 5000)),
            stream_fps=int(d.get("stream_fps", 15)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "stream_fps": self.stream_fps,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/detector.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            model=ModelConfig.from_dict(d.get("model", {}) or {}),
            display=DisplayConfig.from_dict(d.get("display", {}) or {}),
            loop=LoopConfig.from_dict(d.get("loop", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/detector.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "camera": self.camera.to_dict(),
            "model": self.model.to_dict(),
            "display": self.display.to_dict(),
            "loop": self.loop.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
