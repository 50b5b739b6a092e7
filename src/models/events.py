"""
Presence edge events and alert states.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union


@dataclass(frozen=True)
class EnterEvent:
    """
    A person appeared after one or more person-free cycles.

    Attributes:
        other_classes: Labels of the accompanying objects in the entering
            frame, deduplicated in first-seen order, "person" excluded.
    """
    other_classes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ExitEvent:
    """No person is visible any more."""


PresenceEvent = Union[EnterEvent, ExitEvent]


class AlertState(str, Enum):
    """States of the announcement state machine."""
    IDLE = "idle"
    SPEAKING = "speaking"
