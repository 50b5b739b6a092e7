"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class CameraConfig:
    """Camera configuration. ``device_id`` None means first enumerated device."""
    device_id: Optional[Union[int, str]] = None
    resolution: Optional[List[int]] = None
    fps: Optional[int] = None
    max_retries: int = 3
    probe_max_index: int = 4
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            device_id=d.get("device_id"),
            resolution=d.get("resolution"),
            fps=d.get("fps"),
            max_retries=d.get("max_retries", 3),
            probe_max_index=d.get("probe_max_index", 4),
            rotate=d.get("rotate", 0) or 0,
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "max_retries": self.max_retries,
            "probe_max_index": self.probe_max_index,
            "rotate": self.rotate,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
        }


@dataclass
class YoloConfig:
    """YOLO detector configuration."""
    model: str = "yolov8n.pt"
    conf_threshold: float = 0.5
    iou_threshold: float = 0.45
    max_detections: int = 20
    classes: Optional[List[int]] = None
    class_name_overrides: Optional[Dict[int, str]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "YoloConfig":
        return cls(
            model=d.get("model", "yolov8n.pt"),
            conf_threshold=d.get("conf_threshold", 0.5),
            iou_threshold=d.get("iou_threshold", 0.45),
            max_detections=d.get("max_detections", 20),
            classes=d.get("classes"),
            class_name_overrides=d.get("class_name_overrides"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "model": self.model,
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
            "max_detections": self.max_detections,
        }
        if self.classes is not None:
            d["classes"] = self.classes
        if self.class_name_overrides is not None:
            d["class_name_overrides"] = self.class_name_overrides
        return d


@dataclass
class DetectionConfig:
    """Detection configuration."""
    backend: str = "yolo"
    yolo: YoloConfig = field(default_factory=YoloConfig)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectionConfig":
        return cls(
            backend=d.get("backend", "yolo"),
            yolo=YoloConfig.from_dict(d.get("yolo") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"backend": self.backend, "yolo": self.yolo.to_dict()}


@dataclass
class LoopConfig:
    """Detection polling cadence."""
    interval_ms: int = 100

    @property
    def interval_s(self) -> float:
        return self.interval_ms / 1000.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LoopConfig":
        return cls(interval_ms=d.get("interval_ms", 100))

    def to_dict(self) -> Dict[str, Any]:
        return {"interval_ms": self.interval_ms}


@dataclass
class AlertConfig:
    """Announcement configuration."""
    reset_interval_s: float = 10.0
    message: str = "Person detected"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AlertConfig":
        return cls(
            reset_interval_s=d.get("reset_interval_s", 10.0),
            message=d.get("message", "Person detected"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"reset_interval_s": self.reset_interval_s, "message": self.message}


@dataclass
class SpeechConfig:
    """Speech output configuration. backend is "pyttsx3" or "log"."""
    backend: str = "pyttsx3"
    rate: int = 175
    volume: float = 1.0
    voice: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SpeechConfig":
        return cls(
            backend=d.get("backend", "pyttsx3"),
            rate=d.get("rate", 175),
            volume=d.get("volume", 1.0),
            voice=d.get("voice"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "rate": self.rate,
            "volume": self.volume,
            "voice": self.voice,
        }


@dataclass
class OverlayConfig:
    """Overlay drawing style. color is BGR."""
    color: List[int] = field(default_factory=lambda: [0, 255, 0])
    line_width: int = 2
    font_scale: float = 0.6

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OverlayConfig":
        return cls(
            color=d.get("color", [0, 255, 0]),
            line_width=d.get("line_width", 2),
            font_scale=d.get("font_scale", 0.6),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "color": self.color,
            "line_width": self.line_width,
            "font_scale": self.font_scale,
        }


@dataclass
class WebConfig:
    """Web status server configuration."""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", True),
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    alert: AlertConfig = field(default_factory=AlertConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    overlay: OverlayConfig = field(default_factory=OverlayConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/person_watch.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera") or {}),
            detection=DetectionConfig.from_dict(d.get("detection") or {}),
            loop=LoopConfig.from_dict(d.get("loop") or {}),
            alert=AlertConfig.from_dict(d.get("alert") or {}),
            speech=SpeechConfig.from_dict(d.get("speech") or {}),
            overlay=OverlayConfig.from_dict(d.get("overlay") or {}),
            web=WebConfig.from_dict(d.get("web") or {}),
            log_path=d.get("log_path", "logs/person_watch.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary."""
        return {
            "camera": self.camera.to_dict(),
            "detection": self.detection.to_dict(),
            "loop": self.loop.to_dict(),
            "alert": self.alert.to_dict(),
            "speech": self.speech.to_dict(),
            "overlay": self.overlay.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
