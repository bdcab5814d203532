"""
Live detector: camera -> ONNX model -> boxes drawn over the video.

Runs either a local OpenCV window or the web control page (default).

Usage:
    python src/main.py --config config/config.yaml
    python src/main.py --display --autostart

Arguments:
    --config: Path to configuration file
    --display: Show detections in an OpenCV window instead of the web page
    --autostart: Start detection immediately instead of waiting for Start
"""

import os
import sys
import argparse
import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

import yaml
import uvicorn

from models.config import COORDINATE_FORMATS, Config
from ops.logging import setup_logging
from pipeline.display import WindowDisplay
from pipeline.engine import create_loop_from_config
from web.app import create_app
from web.state import WebState


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def config_layers(config_path: str) -> List[str]:
    """
    Config files in merge order, lowest priority first:
    `default.yaml` and `config.yaml` next to config_path, then config_path
    itself when it is a different file.
    """
    config_dir = os.path.dirname(config_path)
    layers = [
        os.path.join(config_dir, "default.yaml"),
        os.path.join(config_dir, "config.yaml"),
    ]
    if os.path.abspath(config_path) not in {os.path.abspath(p) for p in layers}:
        layers.append(config_path)
    return layers


def load_config(config_path: str) -> Dict[str, Any]:
    """Deep-merge every existing config layer; exit if any layer is unreadable."""
    merged: Dict[str, Any] = {}
    for path in config_layers(config_path):
        if not os.path.exists(path):
            continue
        try:
            with open(path, "r") as f:
                layer = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logging.error(f"Failed to load configuration from {path}: {e}")
            sys.exit(1)
        if not isinstance(layer, dict):
            logging.error(f"Configuration file {path} must contain a mapping")
            sys.exit(1)
        logging.debug(f"Loaded config layer {path}")
        merged = _deep_merge(merged, layer)
    return merged


def _is_size_pair(value: Any) -> bool:
    return (
        isinstance(value, list)
        and len(value) == 2
        and all(isinstance(x, int) and not isinstance(x, bool) and x > 0 for x in value)
    )


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'model', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get('camera') or {}
    device_id = camera.get('device_id')
    if device_id is not None:
        if isinstance(device_id, bool) or not isinstance(device_id, (int, str)):
            return False, "camera.device_id must be an integer (index), a string (file/URL) or null"
        if isinstance(device_id, int) and device_id < 0:
            return False, "camera.device_id integer must be non-negative"
    if camera.get('facing', 'environment') not in ('environment', 'user'):
        return False, "camera.facing must be one of: environment, user"
    if camera.get('resolution') is not None and not _is_size_pair(camera['resolution']):
        return False, "camera.resolution must be a list of [width, height] positive integers"
    fps = camera.get('fps')
    if fps is not None and (not isinstance(fps, int) or fps <= 0):
        return False, "camera.fps must be a positive integer"
    if camera.get('rotate', 0) not in (0, 90, 180, 270, None):
        return False, "camera.rotate must be one of: 0, 90, 180, 270"

    # Model
    model = config.get('model') or {}
    if not isinstance(model.get('path'), str) or not model.get('path'):
        return False, "model.path is required"
    input_size = model.get('input_size', 512)
    if isinstance(input_size, bool) or not isinstance(input_size, int) or input_size <= 0:
        return False, "model.input_size must be a positive integer"
    conf = model.get('conf_threshold', 0.25)
    if isinstance(conf, bool) or not isinstance(conf, (int, float)) or not (0 <= conf <= 1):
        return False, "model.conf_threshold must be a number between 0 and 1"
    class_names = model.get('class_names', [])
    if not isinstance(class_names, list) or not all(isinstance(n, str) for n in class_names):
        return False, "model.class_names must be a list of strings"
    if model.get('coordinate_format', 'auto') not in COORDINATE_FORMATS:
        return False, f"model.coordinate_format must be one of: {', '.join(COORDINATE_FORMATS)}"
    providers = model.get('providers', ['CPUExecutionProvider'])
    if not isinstance(providers, list) or not providers:
        return False, "model.providers must be a non-empty list"

    # Display
    display = config.get('display') or {}
    if display.get('resolution') is not None and not _is_size_pair(display['resolution']):
        return False, "display.resolution must be a list of [width, height] positive integers"

    # Loop
    loop = config.get('loop') or {}
    interval = loop.get('frame_interval', 1.0 / 30)
    if isinstance(interval, bool) or not isinstance(interval, (int, float)) or interval < 0:
        return False, "loop.frame_interval must be a non-negative number"

    # Web
    web = config.get('web') or {}
    port = web.get('port', 5000)
    if isinstance(port, bool) or not isinstance(port, int) or not (0 < port < 65536):
        return False, "web.port must be an integer between 1 and 65535"

    # Log settings
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


async def run_window(cfg: Config) -> int:
    """Run the loop against an OpenCV window until it stops."""
    display = WindowDisplay(cfg.display.window_title)
    loop = create_loop_from_config(cfg, display=display)
    try:
        if not await loop.start():
            return 1
        await loop.join()
    finally:
        loop.stop()
        display.close()
    return 0 if loop.status().error is None else 1


def run_web(cfg: Config, autostart: bool) -> None:
    """Serve the control page; the loop runs on the server's event loop."""
    web_state = WebState()
    loop = create_loop_from_config(cfg, display=web_state, status_sink=web_state.set_status)
    app = create_app(loop, web_state, cfg, autostart=autostart)
    logging.info(f"Web interface on http://{cfg.web.host}:{cfg.web.port}")
    uvicorn.run(app, host=cfg.web.host, port=cfg.web.port, log_level="info")


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Live camera object detection')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--display', action='store_true',
                        help='Show detections in an OpenCV window instead of the web page')
    parser.add_argument('--autostart', action='store_true',
                        help='Start detection immediately')
    args = parser.parse_args()

    config = load_config(args.config)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    cfg = Config.from_dict(config)

    logging.info("Starting live detector")
    logging.info(
        f"Model: {cfg.model.path} (input {cfg.model.input_size}, conf {cfg.model.conf_threshold}, "
        f"coordinates {cfg.model.coordinate_format})"
    )

    try:
        if args.display:
            sys.exit(asyncio.run(run_window(cfg)))
        run_web(cfg, autostart=args.autostart)
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    finally:
        logging.info("Live detector stopped")


if __name__ == "__main__":
    main()
