"""
Pipeline stages for the person watch system.

Each stage consumes the DetectionSet of one cycle:
- presence: person enter/exit edge detection
"""

from .presence import PresenceTracker, is_person_present, other_classes, transition

__all__ = ["PresenceTracker", "is_person_present", "other_classes", "transition"]
