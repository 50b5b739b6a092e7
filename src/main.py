"""
Person Watch: announce when a person appears in front of the webcam.

Polls the camera, runs object detection on each frame, speaks a short
announcement when a person enters view and silences it when they leave.
A small FastAPI server exposes status, device selection and a preview.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file
    --no-web: Do not start the web status server
    --log-speech: Log announcements instead of speaking them
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Any, Dict, Optional, Tuple

import uvicorn
import yaml

from errors import ConfigError, DeviceAccessDenied, SpeechFailure, WatchError
from models.config import Config
from ops.logging import setup_logging
from runtime.session import WatchSession, create_session_from_config
from web.app import create_app


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)

    Raises:
        ConfigError: A config file exists but cannot be read or parsed.
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            base_cfg = _read_yaml(base_path)

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            local_cfg = _read_yaml(local_overrides_path)

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            merged = _deep_merge(merged, _read_yaml(config_path))

        return merged
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load configuration: {e}") from e


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Required top-level sections
    required_sections = ['camera', 'detection', 'loop', 'alert', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate camera settings; device_id may be omitted (first camera found)
    camera = config.get('camera') or {}
    device_id = camera.get('device_id')
    if device_id is not None:
        if isinstance(device_id, bool) or not isinstance(device_id, (int, str)):
            return False, "camera.device_id must be an integer (index) or string (path/URL)"
        if isinstance(device_id, int) and device_id < 0:
            return False, "camera.device_id integer must be non-negative"

    resolution = camera.get('resolution')
    if resolution is not None:
        if not isinstance(resolution, list) or len(resolution) != 2:
            return False, "camera.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in resolution):
            return False, "camera.resolution values must be positive integers"

    fps = camera.get('fps')
    if fps is not None and (not isinstance(fps, int) or fps <= 0):
        return False, "camera.fps must be a positive integer"

    # Validate detection settings
    detection = config.get('detection') or {}
    backend = detection.get('backend', 'yolo')
    if backend != 'yolo':
        return False, "detection.backend must be: yolo"
    yolo_cfg = detection.get('yolo') or {}
    if not isinstance(yolo_cfg.get('model'), str) or not yolo_cfg.get('model'):
        return False, "detection.yolo.model is required"
    for key in ('conf_threshold', 'iou_threshold'):
        if key in yolo_cfg:
            value = yolo_cfg[key]
            if not isinstance(value, (int, float)) or not (0 <= value <= 1):
                return False, f"detection.yolo.{key} must be a number between 0 and 1"
    if 'max_detections' in yolo_cfg:
        if not isinstance(yolo_cfg['max_detections'], int) or yolo_cfg['max_detections'] <= 0:
            return False, "detection.yolo.max_detections must be a positive integer"

    # Validate polling cadence
    loop = config.get('loop') or {}
    interval_ms = loop.get('interval_ms', 100)
    if not isinstance(interval_ms, int) or not (50 <= interval_ms <= 2000):
        return False, "loop.interval_ms must be an integer between 50 and 2000"

    # Validate alert settings
    alert = config.get('alert') or {}
    reset_interval_s = alert.get('reset_interval_s', 10)
    if not isinstance(reset_interval_s, (int, float)) or reset_interval_s <= 0:
        return False, "alert.reset_interval_s must be a positive number"
    if 'message' in alert and (not isinstance(alert['message'], str) or not alert['message'].strip()):
        return False, "alert.message must be a non-empty string"

    # Optional speech settings
    speech = config.get('speech') or {}
    if speech.get('backend', 'pyttsx3') not in ('pyttsx3', 'log'):
        return False, "speech.backend must be one of: pyttsx3, log"

    # Optional web settings
    web = config.get('web') or {}
    if 'port' in web and (not isinstance(web['port'], int) or not (0 < web['port'] < 65536)):
        return False, "web.port must be a valid TCP port"

    # Validate log settings
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if str(config['log_level']).upper() not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


async def run(config: Dict[str, Any], web_enabled: bool = True) -> int:
    """
    Run one watch session until interrupted. Returns the process exit code.
    """
    typed = Config.from_dict(config)
    try:
        session: WatchSession = create_session_from_config(typed)
    except (ConfigError, SpeechFailure) as e:
        logging.error(f"Failed to initialise: {e}")
        return 1

    try:
        await session.start()
    except DeviceAccessDenied as e:
        logging.error(str(e))
        await session.stop()
        return 1

    try:
        if web_enabled and typed.web.enabled:
            server = uvicorn.Server(
                uvicorn.Config(
                    create_app(session, config),
                    host=typed.web.host,
                    port=typed.web.port,
                    log_level="info",
                )
            )
            logging.info(f"Web interface starting on {typed.web.host}:{typed.web.port}")
            await server.serve()
        else:
            await asyncio.Event().wait()
    finally:
        await session.stop()
    return 0


def main():
    """Main application function."""
    # Parse command-line arguments
    parser = argparse.ArgumentParser(description='Person Watch - spoken person alerts from a webcam')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--no-web', action='store_true',
                        help='Do not start the web status server')
    parser.add_argument('--log-speech', action='store_true',
                        help='Log announcements instead of speaking them')
    args = parser.parse_args()

    # Load configuration
    try:
        config = load_config(args.config)
    except ConfigError as e:
        logging.error(str(e))
        sys.exit(1)

    if args.log_speech:
        config['speech'] = {**(config.get('speech') or {}), 'backend': 'log'}

    # Validate configuration
    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    # Setup logging
    setup_logging(config['log_path'], config['log_level'])

    logging.info("Starting Person Watch")
    exit_code = 0
    try:
        exit_code = asyncio.run(run(config, web_enabled=not args.no_web))
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    except WatchError as e:
        logging.error(f"Person Watch failed: {e}")
        exit_code = 1
    finally:
        logging.info("Person Watch stopped")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
