"""
Video device enumeration and the current camera selection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

import cv2

logger = logging.getLogger(__name__)

DeviceId = Union[int, str]


@dataclass(frozen=True)
class VideoDevice:
    device_id: DeviceId
    label: str

    def to_dict(self) -> dict:
        return {"device_id": self.device_id, "label": self.label}


def enumerate_video_devices(max_index: int = 4) -> List[VideoDevice]:
    """
    Probe OpenCV camera indices ``0..max_index-1``.

    OpenCV has no portable device listing, so each index is opened briefly.
    Devices are labelled "Camera N" (1-based) in index order.
    """
    devices: List[VideoDevice] = []
    for index in range(max_index):
        cap = cv2.VideoCapture(index)
        try:
            if cap.isOpened():
                devices.append(VideoDevice(device_id=index, label=f"Camera {len(devices) + 1}"))
        finally:
            cap.release()
    logger.info(f"Found {len(devices)} video device(s)")
    return devices


class DeviceSelection:
    """
    The currently selected camera.

    The frame source reads it; only the session changes it. Reselecting the
    current device is a no-op.
    """

    def __init__(self, devices: Optional[List[VideoDevice]] = None, current: Optional[DeviceId] = None):
        self._devices: List[VideoDevice] = list(devices or [])
        if current is None and self._devices:
            current = self._devices[0].device_id
        self._current = current

    @property
    def devices(self) -> List[VideoDevice]:
        return list(self._devices)

    @property
    def current(self) -> Optional[DeviceId]:
        return self._current

    def set_devices(self, devices: List[VideoDevice]) -> None:
        self._devices = list(devices)
        if self._current is None and self._devices:
            self.select(self._devices[0].device_id)

    def select(self, device_id: DeviceId) -> bool:
        """
        Select ``device_id``. Returns True if the selection changed.

        Raises:
            KeyError: If devices are known and ``device_id`` is not one of them.
        """
        if self._devices and device_id not in {d.device_id for d in self._devices}:
            raise KeyError(f"Unknown video device: {device_id!r}")
        if device_id == self._current:
            return False
        self._current = device_id
        logger.info(f"Camera selection changed to {device_id!r}")
        return True
