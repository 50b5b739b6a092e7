"""
Observation layer for camera frame sources.

This layer abstracts where frames come from (camera, video file, stream)
from the detection loop. Each source implements the ObservationSource
interface and returns FrameData objects.
"""

from typing import Any, Dict, Optional, Union

from .base import ObservationSource, ObservationConfig
from .devices import DeviceSelection, VideoDevice, enumerate_video_devices
from .opencv_source import OpenCVSource, OpenCVSourceConfig


def create_source_from_config(
    camera_cfg: Dict[str, Any],
    device_id: Optional[Union[int, str]] = None,
    source_id: str = "camera",
) -> ObservationSource:
    """Build the frame source for the configured (or selected) camera."""
    return OpenCVSource(
        OpenCVSourceConfig.from_camera_config(camera_cfg, device_id=device_id, source_id=source_id)
    )


__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "DeviceSelection",
    "VideoDevice",
    "enumerate_video_devices",
    "create_source_from_config",
]
