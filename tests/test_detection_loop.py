"""
Tests for the detection loop.
"""

import asyncio
import time

import numpy as np

from errors import DetectorFailure
from models.detection import DetectedObject
from models.frame import FrameData
from observation.base import ObservationConfig, ObservationSource
from pipeline.loop import DetectionLoop, DetectionLoopConfig
from pipeline.stages.presence import PresenceTracker


class StillSource(ObservationSource):
    """Source that returns the same blank frame on every read."""

    def __init__(self, config: ObservationConfig = None, width=64, height=48):
        super().__init__(config or ObservationConfig(source_id="still"))
        self._shape = (height, width, 3)

    def open(self) -> None:
        self._is_open = True

    def read(self):
        if not self._is_open:
            return None
        self._frame_index += 1
        self._last_frame = FrameData(
            frame=np.zeros(self._shape, dtype=np.uint8),
            width=self._shape[1],
            height=self._shape[0],
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )
        return self._last_frame

    def close(self) -> None:
        self._is_open = False


class ScriptedDetector:
    """Returns scripted results in order; an Exception entry is raised."""

    def __init__(self, script):
        self._script = list(script)
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        item = self._script.pop(0) if self._script else ()
        if isinstance(item, Exception):
            raise item
        return item


def _det(class_name, x=0, y=0):
    return DetectedObject.from_xywh(class_name, 0.9, x, y, 10, 10)


def _open_loop(script, **kwargs):
    source = StillSource()
    source.open()
    return DetectionLoop(source, ScriptedDetector(script), DetectionLoopConfig(**kwargs))


class TestRunCycle:
    def test_publishes_detections(self):
        loop = _open_loop([(_det("person"),)])
        seen = []
        loop.add_subscriber(seen.append)

        result = asyncio.run(loop.run_cycle())

        assert result.ok
        assert [d.class_name for d in result.detections] == ["person"]
        assert seen == [result]
        assert loop.stats.detection_count == 1

    def test_skips_when_source_not_open(self):
        source = StillSource()
        detector = ScriptedDetector([])
        loop = DetectionLoop(source, detector)

        assert asyncio.run(loop.run_cycle()) is None
        assert loop.stats.skipped_not_ready == 1
        assert detector.calls == 0

    def test_skips_while_previous_cycle_pending(self):
        loop = _open_loop([])

        async def scenario():
            async with loop.cycle_lock:
                return await loop.run_cycle()

        assert asyncio.run(scenario()) is None
        assert loop.stats.skipped_busy == 1
        assert loop.detector.calls == 0

    def test_detector_failure_yields_empty_result(self):
        loop = _open_loop([RuntimeError("model crashed")])

        result = asyncio.run(loop.run_cycle())

        assert not result.ok
        assert isinstance(result.error, DetectorFailure)
        assert result.detections == ()
        assert loop.stats.failure_count == 1
        assert loop.stats.consecutive_failures == 1

    def test_success_resets_consecutive_failures(self):
        loop = _open_loop([RuntimeError("a"), RuntimeError("b"), ()])

        async def scenario():
            for _ in range(3):
                await loop.run_cycle()

        asyncio.run(scenario())

        assert loop.stats.failure_count == 2
        assert loop.stats.consecutive_failures == 0

    def test_failure_then_person_yields_one_enter(self):
        loop = _open_loop([RuntimeError("timeout"), (_det("person"),), (_det("person"),)])
        tracker = PresenceTracker()
        events = []

        def on_cycle(result):
            if result.ok:
                event = tracker.update(result.detections)
                if event is not None:
                    events.append(event)

        loop.add_subscriber(on_cycle)

        async def scenario():
            for _ in range(3):
                await loop.run_cycle()

        asyncio.run(scenario())

        assert len(events) == 1

    def test_subscriber_error_does_not_stop_others(self):
        loop = _open_loop([(_det("dog"),)])
        seen = []

        def broken(result):
            raise ValueError("boom")

        loop.add_subscriber(broken)
        loop.add_subscriber(seen.append)

        asyncio.run(loop.run_cycle())

        assert len(seen) == 1


class TestSchedule:
    def test_runs_until_stopped(self):
        loop = _open_loop([], interval_s=0.01)

        async def scenario():
            loop.start()
            assert loop.is_running
            await asyncio.sleep(0.1)
            await loop.stop()
            count = loop.stats.detection_count
            await asyncio.sleep(0.05)
            return count

        count = asyncio.run(scenario())

        assert count >= 2
        assert loop.stats.detection_count == count
        assert not loop.is_running

    def test_failures_do_not_end_schedule(self):
        loop = _open_loop([RuntimeError("x")] * 3, interval_s=0.01)

        async def scenario():
            loop.start()
            await asyncio.sleep(0.1)
            await loop.stop()

        asyncio.run(scenario())

        assert loop.stats.failure_count == 3
        assert loop.stats.detection_count > 3

    def test_cycles_never_overlap(self):
        source = StillSource()
        source.open()
        active = []
        overlaps = []

        class SlowDetector:
            def detect(self, frame):
                active.append(1)
                if len(active) > 1:
                    overlaps.append(True)
                time.sleep(0.03)
                active.pop()
                return ()

        loop = DetectionLoop(source, SlowDetector(), DetectionLoopConfig(interval_s=0.005))

        async def scenario():
            loop.start()
            await asyncio.sleep(0.15)
            await loop.stop()

        asyncio.run(scenario())

        assert overlaps == []
        assert loop.stats.detection_count >= 2

    def test_stop_without_start(self):
        loop = _open_loop([])
        asyncio.run(loop.stop())
        assert not loop.is_running
