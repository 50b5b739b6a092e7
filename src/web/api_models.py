from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field


class LoopStatsModel(BaseModel):
    cycle_count: int
    detection_count: int
    failure_count: int
    consecutive_failures: int
    skipped_not_ready: int
    skipped_busy: int
    last_cycle_s: Optional[float] = None
    last_frame_ts: Optional[float] = None
    cycles_per_second: float


class StatusResponse(BaseModel):
    """
    Session status optimized for frontend polling.
    """
    running: bool = Field(..., description="True while the detection schedule is armed")
    source_ready: bool = Field(..., description="Camera open and producing frames")
    device_id: Optional[Union[int, str]] = None
    alert_state: str = Field(..., description="idle|speaking")
    announcement: Optional[str] = Field(None, description="Text currently being spoken")
    enter_events: int = 0
    exit_events: int = 0
    visible_objects: int = 0
    last_frame_age_s: Optional[float] = None
    uptime_s: Optional[float] = None
    loop: LoopStatsModel
    alerts: Dict[str, int]
    cpu_temp_c: Optional[float] = None
    warnings: List[str] = Field(default_factory=list, description="Active warnings")


class VideoDeviceModel(BaseModel):
    device_id: Union[int, str]
    label: str


class DeviceListResponse(BaseModel):
    current: Optional[Union[int, str]] = None
    devices: List[VideoDeviceModel]


class SelectDeviceRequest(BaseModel):
    device_id: Union[int, str]


class StopAnnouncementResponse(BaseModel):
    ok: bool = True
    interrupted: bool
