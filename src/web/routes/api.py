from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from errors import DeviceAccessDenied
from runtime.session import WatchSession

from ..api_models import (
    DeviceListResponse,
    SelectDeviceRequest,
    StatusResponse,
    StopAnnouncementResponse,
)
from ..services.health_service import HealthService
from ..services.logs_service import LogsService

router = APIRouter()

# A detector that keeps failing for this many cycles is reported.
DETECTOR_FAILING_THRESHOLD = 5


def get_session(request: Request) -> WatchSession:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Watch session not available")
    return session


def get_config(request: Request) -> Dict[str, Any]:
    return getattr(request.app.state, "config", None) or {}


def _compute_warnings(
    last_frame_age_s: Optional[float],
    consecutive_failures: int,
    cpu_temp_c: Optional[float],
) -> list[str]:
    """
    Compute warning flags for the status endpoint.

    Thresholds:
    - camera_stale: last_frame_age_s > 2
    - camera_offline: last_frame_age_s > 10
    - detector_failing: consecutive detector failures >= DETECTOR_FAILING_THRESHOLD
    - temp_high: cpu_temp_c > 80
    """
    warnings = []

    if last_frame_age_s is not None:
        if last_frame_age_s > 10:
            warnings.append("camera_offline")
        elif last_frame_age_s > 2:
            warnings.append("camera_stale")
    else:
        # No frame timestamp means camera never started
        warnings.append("camera_offline")

    if consecutive_failures >= DETECTOR_FAILING_THRESHOLD:
        warnings.append("detector_failing")

    if cpu_temp_c is not None and cpu_temp_c > 80:
        warnings.append("temp_high")

    return warnings


@router.get("/status", response_model=StatusResponse)
def status(session: WatchSession = Depends(get_session)):
    """
    Session status for UI polling: camera freshness, alert state, loop counters.
    """
    snap = session.snapshot()
    cpu_temp_c = HealthService.read_cpu_temp_c()
    snap["cpu_temp_c"] = cpu_temp_c
    snap["warnings"] = _compute_warnings(
        snap["last_frame_age_s"],
        snap["loop"]["consecutive_failures"],
        cpu_temp_c,
    )
    return StatusResponse(**snap)


@router.get("/health")
def health(cfg: Dict[str, Any] = Depends(get_config)):
    return HealthService(cfg=cfg).get_health_summary()


@router.get("/devices", response_model=DeviceListResponse)
async def list_devices(refresh: bool = False, session: WatchSession = Depends(get_session)):
    if refresh:
        devices = await session.refresh_devices()
    else:
        devices = session.selection.devices
    return DeviceListResponse(
        current=session.selection.current,
        devices=[d.to_dict() for d in devices],
    )


@router.post("/devices/select")
async def select_device(req: SelectDeviceRequest, session: WatchSession = Depends(get_session)):
    try:
        changed = await session.select_device(req.device_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DeviceAccessDenied as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"ok": True, "changed": changed, "current": session.selection.current}


@router.post("/alert/stop", response_model=StopAnnouncementResponse)
def stop_announcement(session: WatchSession = Depends(get_session)):
    return StopAnnouncementResponse(interrupted=session.stop_announcement())


@router.get("/logs/tail")
def logs_tail(lines: int = 200, cfg: Dict[str, Any] = Depends(get_config)):
    log_path = cfg.get("log_path")
    return {"path": log_path, "lines": LogsService.tail(log_path, lines=lines)}


@router.get("/frame.jpg")
def frame_jpeg(session: WatchSession = Depends(get_session)):
    jpeg_bytes = session.latest_jpeg()
    if jpeg_bytes is None:
        raise HTTPException(status_code=503, detail="No frame processed yet")

    return StreamingResponse(
        iter([jpeg_bytes]),
        media_type="image/jpeg",
        headers={"Cache-Control": "no-store"},
    )


@router.get("/stream")
async def frame_stream(fps: int = 5, session: WatchSession = Depends(get_session)):
    """
    MJPEG stream of processed frames with the overlay composited.

    Frames come from the detection loop, so the camera is never opened twice.
    """
    fps = max(1, min(30, int(fps)))
    delay = 1.0 / fps

    async def gen():
        while session.is_running:
            jpg = session.latest_jpeg()
            if jpg is not None:
                yield b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + jpg + b"\r\n"
            await asyncio.sleep(delay)

    return StreamingResponse(gen(), media_type="multipart/x-mixed-replace; boundary=frame")
