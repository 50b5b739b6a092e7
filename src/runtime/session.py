"""
Watch session: owns every timer, flag and collaborator for one run.

There is no module-level state. A session is created, started from a
running event loop, and stopped; stopping always stops the detection
schedule, stops the safety valve and cancels in-flight speech.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Union

import cv2

from alerting.controller import AlertController
from alerting.speech import BaseSpeaker, create_speaker_from_config
from inference import create_detector_from_config
from inference.backend import InferenceBackend
from models.config import Config
from models.events import EnterEvent
from models.frame import FrameData
from observation import create_source_from_config
from observation.base import ObservationSource
from observation.devices import DeviceId, DeviceSelection, VideoDevice, enumerate_video_devices
from overlay.renderer import OverlayRenderer
from pipeline.loop import CycleResult, DetectionLoop, DetectionLoopConfig
from pipeline.stages.presence import PresenceTracker

logger = logging.getLogger(__name__)


class WatchSession:
    """
    Wires FrameSource -> DetectionLoop -> {PresenceTracker -> AlertController; OverlayRenderer}.

    Example:
        session = WatchSession(source, detector, speaker)
        await session.start()
        ...
        await session.stop()
    """

    def __init__(
        self,
        source: ObservationSource,
        detector: InferenceBackend,
        speaker: BaseSpeaker,
        selection: Optional[DeviceSelection] = None,
        loop_config: Optional[DetectionLoopConfig] = None,
        reset_interval_s: float = 10.0,
        message: str = "Person detected",
        renderer: Optional[OverlayRenderer] = None,
    ):
        self.source = source
        self.speaker = speaker
        self.selection = selection or DeviceSelection(current=source.device_id)
        self.loop = DetectionLoop(source, detector, loop_config)
        self.tracker = PresenceTracker()
        self.alerts = AlertController(speaker, reset_interval_s=reset_interval_s, message=message)
        self.renderer = renderer or OverlayRenderer()
        self.enter_events = 0
        self.exit_events = 0
        self.start_time: Optional[float] = None
        self._latest_frame: Optional[FrameData] = None
        self._running = False

        self.loop.add_subscriber(self._update_presence)
        self.loop.add_subscriber(self._update_overlay)

    @property
    def is_running(self) -> bool:
        return self._running

    def _update_presence(self, result: CycleResult) -> None:
        # A failed detection says nothing about presence.
        if not result.ok:
            return
        event = self.tracker.update(result.detections)
        if event is None:
            return
        if isinstance(event, EnterEvent):
            self.enter_events += 1
        else:
            self.exit_events += 1
        self.alerts.handle(event)

    def _update_overlay(self, result: CycleResult) -> None:
        self.renderer.render(result.detections, result.frame.width, result.frame.height)
        self._latest_frame = result.frame

    async def start(self) -> None:
        """
        Acquire the camera and arm both schedules.

        Raises:
            DeviceAccessDenied: The camera could not be opened. Nothing is
                started in that case.
        """
        if self._running:
            return
        self.speaker.set_completion_handler(self.alerts.on_speech_finished, asyncio.get_running_loop())
        await asyncio.to_thread(self.source.open)
        self.alerts.start()
        self.loop.start()
        self._running = True
        self.start_time = time.time()
        logger.info(f"Watch session started on device {self.selection.current!r}")

    async def stop(self) -> None:
        """Tear down: stop polling, stop the safety valve, silence speech."""
        self._running = False
        try:
            await self.loop.stop()
        finally:
            try:
                await self.alerts.shutdown()
            finally:
                await asyncio.to_thread(self.source.close)
                try:
                    await asyncio.to_thread(self.speaker.close)
                except Exception as e:
                    logger.warning(f"Error closing speaker: {e}")
                logger.info("Watch session stopped")

    async def select_device(self, device_id: DeviceId) -> bool:
        """
        Switch cameras between cycles. Returns True if the device changed.

        While running, the source is (re)opened on the selected device even
        if an earlier switch was denied and left it closed. Selecting the
        same device again retries it.

        Raises:
            KeyError: Unknown device.
            DeviceAccessDenied: The new device could not be opened.
        """
        changed = self.selection.select(device_id)
        if not changed and (self.source.is_open or not self._running):
            return False
        async with self.loop.cycle_lock:
            await asyncio.to_thread(self.source.rebind, device_id)
            if self._running and not self.source.is_open:
                await asyncio.to_thread(self.source.open)
        return changed

    async def refresh_devices(self, max_index: int = 4) -> List[VideoDevice]:
        devices = await asyncio.to_thread(enumerate_video_devices, max_index)
        # The open device cannot be probed again on some platforms.
        current = self.selection.current
        if current is not None and current not in {d.device_id for d in devices}:
            devices.insert(0, VideoDevice(device_id=current, label=f"Camera {current}"))
        self.selection.set_devices(devices)
        return devices

    def stop_announcement(self) -> bool:
        """Manual "stop announcement" control."""
        return self.alerts.force_reset()

    def latest_frame(self):
        """Last processed frame with the overlay composited, or None."""
        frame_data = self._latest_frame
        if frame_data is None:
            return None
        return self.renderer.composite(frame_data.frame)

    def latest_jpeg(self) -> Optional[bytes]:
        frame = self.latest_frame()
        if frame is None:
            return None
        ok, buf = cv2.imencode(".jpg", frame)
        if not ok:
            return None
        return buf.tobytes()

    def snapshot(self) -> Dict[str, Any]:
        """Status for the web layer. Presence itself is not exposed."""
        now = time.time()
        last_frame_ts = self.loop.stats.last_frame_ts
        return {
            "running": self._running,
            "source_ready": self.source.is_ready,
            "device_id": self.selection.current,
            "alert_state": self.alerts.state.value,
            "announcement": self.alerts.current_text,
            "enter_events": self.enter_events,
            "exit_events": self.exit_events,
            "visible_objects": len(self.renderer.items),
            "last_frame_age_s": (now - last_frame_ts) if last_frame_ts else None,
            "uptime_s": (now - self.start_time) if self.start_time else None,
            "loop": self.loop.stats.to_dict(),
            "alerts": self.alerts.stats.to_dict(),
        }


def create_session_from_config(
    config: Union[Config, Dict[str, Any]],
    detector: Optional[InferenceBackend] = None,
    speaker: Optional[BaseSpeaker] = None,
) -> WatchSession:
    """
    Factory: build a WatchSession from the typed config (or the raw dict).

    When ``camera.device_id`` is unset the first enumerated camera is used.
    """
    cfg = config if isinstance(config, Config) else Config.from_dict(config)

    devices: List[VideoDevice] = []
    if cfg.camera.device_id is None:
        devices = enumerate_video_devices(int(cfg.camera.probe_max_index))
    selection = DeviceSelection(devices, current=cfg.camera.device_id)

    source = create_source_from_config(cfg.camera.to_dict(), device_id=selection.current, source_id="main-camera")
    if detector is None:
        detector = create_detector_from_config(cfg.detection.to_dict())
    if speaker is None:
        speaker = create_speaker_from_config(cfg.speech.to_dict())

    return WatchSession(
        source=source,
        detector=detector,
        speaker=speaker,
        selection=selection,
        loop_config=DetectionLoopConfig(interval_s=cfg.loop.interval_s),
        reset_interval_s=float(cfg.alert.reset_interval_s),
        message=cfg.alert.message,
        renderer=OverlayRenderer(
            color=cfg.overlay.color,
            line_width=int(cfg.overlay.line_width),
            font_scale=float(cfg.overlay.font_scale),
        ),
    )
