"""
Detection loop for the person watch system.

Polls the frame source and the detector at a fixed period and publishes one
CycleResult per completed cycle to the registered subscribers (presence and
alerting, overlay). Cycles never overlap: the scheduler only re-arms after
the current cycle has settled, and run_cycle() refuses to start while
another cycle still holds the cycle lock.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from models.detection import EMPTY_DETECTIONS, DetectionSet
from models.frame import FrameData
from observation.base import ObservationSource
from inference.backend import InferenceBackend
from errors import DetectorFailure

logger = logging.getLogger(__name__)


@dataclass
class DetectionLoopConfig:
    """
    Configuration for the detection loop.

    Attributes:
        interval_s: Target period between cycle starts.
        stats_log_interval: Seconds between status log messages.
    """
    interval_s: float = 0.1
    stats_log_interval: float = 60.0


@dataclass
class LoopStats:
    """Runtime statistics for the detection loop."""
    cycle_count: int = 0
    detection_count: int = 0
    failure_count: int = 0
    consecutive_failures: int = 0
    skipped_not_ready: int = 0
    skipped_busy: int = 0
    last_cycle_s: Optional[float] = None
    last_frame_ts: Optional[float] = None
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)

    def cycles_per_second(self, now: Optional[float] = None) -> float:
        elapsed = (now or time.time()) - self.start_time
        return self.detection_count / elapsed if elapsed > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycle_count": self.cycle_count,
            "detection_count": self.detection_count,
            "failure_count": self.failure_count,
            "consecutive_failures": self.consecutive_failures,
            "skipped_not_ready": self.skipped_not_ready,
            "skipped_busy": self.skipped_busy,
            "last_cycle_s": self.last_cycle_s,
            "last_frame_ts": self.last_frame_ts,
            "cycles_per_second": self.cycles_per_second(),
        }


@dataclass(frozen=True)
class CycleResult:
    """
    Outcome of one detection cycle.

    A failed cycle carries an empty DetectionSet and the detector error.
    """
    frame: FrameData
    detections: DetectionSet
    error: Optional[DetectorFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


CycleSubscriber = Callable[[CycleResult], None]


class DetectionLoop:
    """
    Serialised poll-sample-detect-publish loop.

    Example:
        loop = DetectionLoop(source, detector, DetectionLoopConfig(interval_s=0.1))
        loop.add_subscriber(on_cycle)
        loop.start()
        ...
        await loop.stop()
    """

    def __init__(
        self,
        source: ObservationSource,
        detector: InferenceBackend,
        config: Optional[DetectionLoopConfig] = None,
    ):
        self.source = source
        self.detector = detector
        self.config = config or DetectionLoopConfig()
        self.stats = LoopStats()
        self.cycle_lock = asyncio.Lock()
        self._subscribers: List[CycleSubscriber] = []
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def add_subscriber(self, subscriber: CycleSubscriber) -> None:
        """
        Register a callback invoked with every completed CycleResult.

        Subscribers run synchronously on the event loop in registration order.
        """
        self._subscribers.append(subscriber)

    async def run_cycle(self) -> Optional[CycleResult]:
        """
        Run one detection cycle.

        Returns None when the cycle was skipped: the source is not ready, or
        a previous cycle is still awaiting its detection result.
        """
        if self.cycle_lock.locked():
            self.stats.skipped_busy += 1
            logger.debug("Detection still pending, skipping cycle")
            return None

        async with self.cycle_lock:
            self.stats.cycle_count += 1
            if not self.source.is_open:
                self.stats.skipped_not_ready += 1
                return None

            frame_data = await asyncio.to_thread(self.source.read)
            if frame_data is None:
                self.stats.skipped_not_ready += 1
                return None

            started = time.monotonic()
            result = await self._detect(frame_data)
            self.stats.last_cycle_s = time.monotonic() - started
            self.stats.last_frame_ts = frame_data.timestamp

            self._publish(result)
            return result

    async def _detect(self, frame_data: FrameData) -> CycleResult:
        self.stats.detection_count += 1
        try:
            detections = await asyncio.to_thread(self.detector.detect, frame_data.frame)
        except Exception as e:
            self.stats.failure_count += 1
            self.stats.consecutive_failures += 1
            logger.warning(
                f"Detection failed on frame {frame_data.frame_index} "
                f"({self.stats.consecutive_failures} consecutive): {e}"
            )
            return CycleResult(
                frame=frame_data,
                detections=EMPTY_DETECTIONS,
                error=DetectorFailure(str(e)),
            )

        self.stats.consecutive_failures = 0
        return CycleResult(frame=frame_data, detections=tuple(detections))

    def _publish(self, result: CycleResult) -> None:
        for subscriber in self._subscribers:
            try:
                subscriber(result)
            except Exception as e:
                logger.warning(f"Subscriber error: {e}")

    def start(self) -> None:
        """Arm the polling schedule. Must be called from a running event loop."""
        if self._running:
            return
        self._running = True
        self.stats = LoopStats()
        self._task = asyncio.create_task(self._run(), name="detection-loop")
        logger.info(f"Detection loop started: interval={self.config.interval_s:.3f}s")

    async def stop(self) -> None:
        """Stop the polling schedule and wait for the loop task to finish."""
        self._running = False
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(
            f"Detection loop stopped: cycles={self.stats.cycle_count}, "
            f"failures={self.stats.failure_count}"
        )

    async def _run(self) -> None:
        while self._running:
            started = time.monotonic()
            try:
                await self.run_cycle()
            except Exception as e:
                logger.error(f"Detection cycle error: {e}")
            self._log_periodic_stats()
            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, self.config.interval_s - elapsed))

    def _log_periodic_stats(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logger.info(
                f"Loop stats: cycles={self.stats.cycle_count}, "
                f"detections={self.stats.detection_count}, "
                f"failures={self.stats.failure_count}, "
                f"rate={self.stats.cycles_per_second(now):.1f}/s"
            )
            self.stats.last_stats_log_time = now
