"""
Detection models for object detection results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

PERSON_CLASS = "person"


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in frame-pixel coordinates.

    Attributes:
        x: Left edge x coordinate.
        y: Top edge y coordinate.
        width: Box width in pixels.
        height: Box height in pixels.
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    def as_int_xyxy(self) -> Tuple[int, int, int, int]:
        """Return integer corner coordinates (x1, y1, x2, y2) for drawing."""
        return (int(self.x), int(self.y), int(self.x2), int(self.y2))

    @classmethod
    def from_tuple(cls, t: Sequence[float]) -> "BoundingBox":
        """Create from an (x, y, width, height) sequence."""
        return cls(x=float(t[0]), y=float(t[1]), width=float(t[2]), height=float(t[3]))

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        """Create from corner coordinates."""
        return cls(x=x1, y=y1, width=x2 - x1, height=y2 - y1)


@dataclass(frozen=True)
class DetectedObject:
    """
    A single detection produced for one sampled frame.

    Detections carry no identity across cycles; a fresh set is produced by
    every detection cycle.

    Attributes:
        class_name: Detector class label (e.g. "person", "dog").
        score: Confidence in [0, 1].
        bbox: Bounding box in frame-pixel coordinates.
    """
    class_name: str
    score: float
    bbox: BoundingBox

    @property
    def is_person(self) -> bool:
        return self.class_name == PERSON_CLASS

    @property
    def label(self) -> str:
        """Overlay label, e.g. ``"person (87.3%)"``."""
        return f"{self.class_name} ({self.score * 100:.1f}%)"

    @classmethod
    def from_xywh(
        cls,
        class_name: str,
        score: float,
        x: float,
        y: float,
        w: float,
        h: float,
    ) -> "DetectedObject":
        return cls(class_name=class_name, score=score, bbox=BoundingBox(x, y, w, h))


# Ordered detections for one frame. Order matters only for overlay draw order.
DetectionSet = Tuple[DetectedObject, ...]

EMPTY_DETECTIONS: DetectionSet = ()


def as_detection_set(objects: Iterable[DetectedObject]) -> DetectionSet:
    """Freeze any iterable of detections into a DetectionSet."""
    return tuple(objects)


def class_names(detections: DetectionSet) -> List[str]:
    """Class labels in detection order (duplicates kept)."""
    return [d.class_name for d in detections]
