"""
ObservationSource interface for pluggable video sources.

This defines the contract the detection loop reads frames through:
- USB/CSI cameras
- IP camera streams
- Video files
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.

    Attributes:
        source_id: Identifier reported in FrameData.source.
        resolution: Target resolution as (width, height). None = source default.
        fps: Target frames per second. None = source default.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObservationSource(ABC):
    """
    Abstract base class for frame sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to acquire the device
        3. Call read() to sample the current frame
        4. Call close() to release resources

    A source becomes *ready* once it is open and has decoded at least one
    frame; the detection loop skips cycles until then.

    Can also be used as a context manager:
        with OpenCVSource(config) as source:
            for frame_data in source:
                process(frame_data)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0
        self._last_frame: Optional[FrameData] = None

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def is_ready(self) -> bool:
        """True once the source is open and has produced a frame."""
        return self._is_open and self._last_frame is not None

    @property
    def frame_index(self) -> int:
        """Number of frames read since open."""
        return self._frame_index

    @property
    def last_frame(self) -> Optional[FrameData]:
        """Most recently decoded frame, or None before the first read."""
        return self._last_frame

    @property
    def device_id(self) -> Union[int, str, None]:
        """Physical device this source is bound to, if any."""
        return None

    def rebind(self, device_id: Union[int, str]) -> None:
        """
        Switch to a different physical device.

        The default implementation closes the source; subclasses that read
        from selectable devices override this and reopen.
        """
        self.close()

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the source.

        Raises:
            DeviceAccessDenied: If the device cannot be opened.
        """

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """
        Read the current frame from the source.

        Returns:
            FrameData, or None if no frame is available.
        """

    @abstractmethod
    def close(self) -> None:
        """
        Release the source. Safe to call multiple times.
        """

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        """
        Yield frames until the source is exhausted.

        The source must be open before iterating.
        """
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while True:
            frame_data = self.read()
            if frame_data is None:
                break
            yield frame_data
