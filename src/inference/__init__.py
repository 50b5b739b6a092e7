"""
Detector backends.
"""

from typing import Any, Dict

from errors import ConfigError
from .backend import InferenceBackend
from .cpu_backend import CpuYoloConfig, UltralyticsCpuBackend


def create_detector_from_config(detection_cfg: Dict[str, Any]) -> InferenceBackend:
    """Build the detector selected by ``detection.backend``."""
    backend = detection_cfg.get("backend", "yolo")
    if backend == "yolo":
        return UltralyticsCpuBackend(CpuYoloConfig.from_dict(detection_cfg.get("yolo") or {"model": "yolov8n.pt"}))
    raise ConfigError(f"Unknown detection backend: {backend}")


__all__ = [
    "InferenceBackend",
    "CpuYoloConfig",
    "UltralyticsCpuBackend",
    "create_detector_from_config",
]
