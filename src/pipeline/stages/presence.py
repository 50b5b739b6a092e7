"""
Presence stage: turns each cycle's detections into person enter/exit edges.

The transition is a pure function of the previous presence flag and the new
DetectionSet. PresenceTracker only holds the flag between cycles; it never
exposes it, callers act on the returned events.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from models.detection import PERSON_CLASS, DetectionSet
from models.events import EnterEvent, ExitEvent, PresenceEvent

logger = logging.getLogger(__name__)


def is_person_present(detections: DetectionSet) -> bool:
    """True iff any detection is labelled "person", wherever it appears."""
    return any(d.class_name == PERSON_CLASS for d in detections)


def other_classes(detections: DetectionSet) -> Tuple[str, ...]:
    """Non-person labels, deduplicated, in first-seen order."""
    seen = {}
    for d in detections:
        if d.class_name != PERSON_CLASS:
            seen.setdefault(d.class_name, None)
    return tuple(seen)


def transition(present: bool, detections: DetectionSet) -> Tuple[bool, Optional[PresenceEvent]]:
    """
    Apply one cycle to the presence flag.

    | prev    | now     | event      |
    |---------|---------|------------|
    | absent  | present | EnterEvent |
    | present | absent  | ExitEvent  |
    | same    | same    | None       |
    """
    now_present = is_person_present(detections)
    if now_present and not present:
        return True, EnterEvent(other_classes=other_classes(detections))
    if present and not now_present:
        return False, ExitEvent()
    return now_present, None


class PresenceTracker:
    """Holds the person-present flag across cycles and emits edge events."""

    def __init__(self):
        self._present = False

    def update(self, detections: DetectionSet) -> Optional[PresenceEvent]:
        self._present, event = transition(self._present, detections)
        if event is not None:
            logger.info(f"Presence edge: {event}")
        return event
