"""
Typed models for the person watch application.

These models are plain dataclasses shared by the observation, detection,
alerting and overlay layers.
"""

from .frame import FrameData
from .detection import (
    BoundingBox,
    DetectedObject,
    DetectionSet,
    EMPTY_DETECTIONS,
    PERSON_CLASS,
    as_detection_set,
)
from .events import AlertState, EnterEvent, ExitEvent, PresenceEvent
from .config import (
    Config,
    CameraConfig,
    DetectionConfig,
    YoloConfig,
    LoopConfig,
    AlertConfig,
    SpeechConfig,
    OverlayConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "BoundingBox",
    "DetectedObject",
    "DetectionSet",
    "EMPTY_DETECTIONS",
    "PERSON_CLASS",
    "as_detection_set",
    # Events
    "AlertState",
    "EnterEvent",
    "ExitEvent",
    "PresenceEvent",
    # Config
    "Config",
    "CameraConfig",
    "DetectionConfig",
    "YoloConfig",
    "LoopConfig",
    "AlertConfig",
    "SpeechConfig",
    "OverlayConfig",
    "WebConfig",
]
