"""
Detection overlay rendering.

The overlay is a transparent BGRA surface the size of the video frame. Every
DetectionSet triggers a full resize-clear-redraw; nothing from a previous
cycle survives except the surface buffer itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import cv2
import numpy as np

from models.detection import DetectionSet

logger = logging.getLogger(__name__)

# Labels whose box top is at or above this row are pinned here instead.
LABEL_MIN_Y = 10
LABEL_OFFSET_Y = 5


@dataclass(frozen=True)
class OverlayItem:
    """One drawn box and its label."""
    box: Tuple[int, int, int, int]
    label: str
    label_origin: Tuple[int, int]


def label_origin(x: float, y: float) -> Tuple[int, int]:
    """Text baseline origin: just above the box, or pinned near the top edge."""
    return int(x), int(y - LABEL_OFFSET_Y if y > LABEL_MIN_Y else LABEL_MIN_Y)


def plan_overlay(detections: DetectionSet) -> List[OverlayItem]:
    """Draw list for one cycle, in DetectionSet order."""
    items = []
    for det in detections:
        items.append(
            OverlayItem(
                box=det.bbox.as_int_xyxy(),
                label=det.label,
                label_origin=label_origin(det.bbox.x, det.bbox.y),
            )
        )
    return items


class OverlayRenderer:
    """
    Draws bounding boxes and labels onto a frame-sized BGRA surface.

    Example:
        renderer = OverlayRenderer()
        renderer.render(detections, frame_data.width, frame_data.height)
        annotated = renderer.composite(frame_data.frame)
    """

    def __init__(
        self,
        color: Sequence[int] = (0, 255, 0),
        line_width: int = 2,
        font_scale: float = 0.6,
    ):
        self.color = tuple(int(c) for c in color[:3])
        self.line_width = line_width
        self.font_scale = font_scale
        self.font = cv2.FONT_HERSHEY_SIMPLEX
        self._surface = np.zeros((0, 0, 4), dtype=np.uint8)
        self._items: List[OverlayItem] = []

    @property
    def size(self) -> Tuple[int, int]:
        """Current surface (width, height)."""
        return self._surface.shape[1], self._surface.shape[0]

    @property
    def surface(self) -> np.ndarray:
        return self._surface

    @property
    def items(self) -> List[OverlayItem]:
        """Boxes and labels visible after the last render."""
        return list(self._items)

    def _resize(self, width: int, height: int) -> None:
        if (width, height) != self.size:
            logger.debug(f"Overlay resized to {width}x{height}")
            self._surface = np.zeros((height, width, 4), dtype=np.uint8)

    def clear(self) -> None:
        self._surface[:] = 0
        self._items = []

    def render(self, detections: DetectionSet, width: int, height: int) -> List[OverlayItem]:
        """Resize to the frame, wipe, and draw every detection."""
        self._resize(width, height)
        self.clear()

        stroke = self.color + (255,)
        items = plan_overlay(detections)
        for item in items:
            x1, y1, x2, y2 = item.box
            cv2.rectangle(self._surface, (x1, y1), (x2, y2), stroke, self.line_width)
            cv2.putText(
                self._surface, item.label, item.label_origin,
                self.font, self.font_scale, stroke, self.line_width,
            )
        self._items = items
        return items

    def composite(self, frame: np.ndarray) -> np.ndarray:
        """Blend the overlay onto a copy of a BGR frame of the same size."""
        out = frame.copy()
        if self._surface.shape[:2] != frame.shape[:2]:
            return out
        alpha = self._surface[..., 3:4].astype(np.float32) / 255.0
        blended = out.astype(np.float32) * (1.0 - alpha) + self._surface[..., :3].astype(np.float32) * alpha
        return blended.astype(np.uint8)
