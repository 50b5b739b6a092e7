"""
OpenCV-based observation source.

Supports:
- USB webcams (device_id as int, e.g., 0)
- IP camera streams (device_id as URL string)
- Video files (device_id as file path)
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from errors import DeviceAccessDenied
from models.frame import FrameData
from .base import ObservationSource, ObservationConfig

logger = logging.getLogger(__name__)


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV-based observation sources.

    Attributes:
        device_id: Camera index (int), stream URL (str), or file path (str).
        buffer_size: OpenCV capture buffer size (keeps live feeds current).
        max_retries: Attempts before the device is reported inaccessible.
        retry_delay_s: Base delay between attempts, doubled each time.
        rotate: Rotation in degrees (0, 90, 180, 270).
        flip_horizontal: Flip frame horizontally.
        flip_vertical: Flip frame vertically.
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_retries: int = 3
    retry_delay_s: float = 1.0
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_camera_config(
        cls,
        camera_cfg: Dict[str, Any],
        device_id: Union[int, str, None] = None,
        source_id: str = "camera",
    ) -> "OpenCVSourceConfig":
        """
        Adapter: Create OpenCVSourceConfig from the camera config dict.

        Args:
            camera_cfg: Camera configuration dict (from config.yaml).
            device_id: Overrides camera_cfg["device_id"] (e.g. the current
                DeviceSelection).
            source_id: Identifier for this source.
        """
        resolution = camera_cfg.get("resolution")
        if resolution:
            resolution = tuple(resolution)

        if device_id is None:
            device_id = camera_cfg.get("device_id")
        return cls(
            source_id=source_id,
            resolution=resolution,
            fps=camera_cfg.get("fps"),
            device_id=0 if device_id is None else device_id,
            max_retries=camera_cfg.get("max_retries", 3),
            rotate=camera_cfg.get("rotate", 0) or 0,
            flip_horizontal=camera_cfg.get("flip_horizontal", False),
            flip_vertical=camera_cfg.get("flip_vertical", False),
        )


class OpenCVSource(ObservationSource):
    """
    Frame source wrapping cv2.VideoCapture.

    Example:
        config = OpenCVSourceConfig(device_id=0, resolution=(1280, 720))
        with OpenCVSource(config) as source:
            frame_data = source.read()
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def open(self) -> None:
        """Open the capture device. Raises DeviceAccessDenied on failure."""
        if self._is_open:
            return

        self._initialize()
        self._is_open = True
        self._frame_index = 0
        self._last_frame = None
        logger.info(
            f"OpenCVSource opened: source_id={self.source_id}, "
            f"device={self.device_id}, resolution={self._opencv_config.resolution}"
        )

    def rebind(self, device_id: Union[int, str]) -> None:
        """Close the current device and open ``device_id`` instead."""
        if device_id == self.device_id and self._is_open:
            return
        was_open = self._is_open
        self.close()
        self._opencv_config.device_id = device_id
        if was_open:
            self.open()

    def _initialize(self) -> None:
        """Open the capture, retrying with exponential backoff."""
        cfg = self._opencv_config
        attempts = max(1, cfg.max_retries)
        for attempt in range(attempts):
            if attempt > 0:
                wait_time = min(cfg.retry_delay_s * 2 ** (attempt - 1), 10)
                logger.info(f"Retrying camera open (attempt {attempt + 1}/{attempts}) after {wait_time}s")
                time.sleep(wait_time)

            self._cap = cv2.VideoCapture(self.device_id)
            if self._cap.isOpened():
                break
            self._cap.release()
            self._cap = None
            logger.warning(f"Failed to open device {self.device_id}")
        else:
            raise DeviceAccessDenied(
                self.device_id, f"could not be opened after {attempts} attempts"
            )

        if isinstance(self.device_id, int):
            if cfg.resolution:
                w, h = cfg.resolution
                self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
                self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
            if cfg.fps:
                self._cap.set(cv2.CAP_PROP_FPS, cfg.fps)
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, cfg.buffer_size)

    def read(self) -> Optional[FrameData]:
        """Decode the current frame; None when the device yields nothing."""
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            if self.is_file:
                logger.info("End of video file reached")
            else:
                logger.warning(f"Failed to read frame from device {self.device_id}")
            return None

        frame = self._apply_transforms(frame)
        self._frame_index += 1
        frame_data = FrameData(
            frame=frame,
            width=frame.shape[1],
            height=frame.shape[0],
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )
        self._last_frame = frame_data
        return frame_data

    def _apply_transforms(self, frame: np.ndarray) -> np.ndarray:
        """Apply configured image transforms (rotate, flip)."""
        cfg = self._opencv_config

        if cfg.rotate == 90:
            frame = cv2.rotate(frame, cv2.ROTATE_90_CLOCKWISE)
        elif cfg.rotate == 180:
            frame = cv2.rotate(frame, cv2.ROTATE_180)
        elif cfg.rotate == 270:
            frame = cv2.rotate(frame, cv2.ROTATE_90_COUNTERCLOCKWISE)

        if cfg.flip_horizontal or cfg.flip_vertical:
            if cfg.flip_horizontal and cfg.flip_vertical:
                flip_code = -1
            elif cfg.flip_horizontal:
                flip_code = 1
            else:
                flip_code = 0
            frame = cv2.flip(frame, flip_code)

        return frame

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logger.info(f"OpenCVSource closed: source_id={self.source_id}")
        self._is_open = False
        self._last_frame = None
