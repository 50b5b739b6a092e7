"""
Pipeline module for the person watcher.

The pipeline runs one detection cycle at a time:
- Frame acquisition from the observation source
- Detection on a worker thread
- Fan-out of the cycle result to presence tracking and the overlay
"""

from .loop import CycleResult, DetectionLoop, DetectionLoopConfig, LoopStats
from .stages.presence import PresenceTracker, is_person_present, transition

__all__ = [
    "CycleResult",
    "DetectionLoop",
    "DetectionLoopConfig",
    "LoopStats",
    "PresenceTracker",
    "is_person_present",
    "transition",
]
