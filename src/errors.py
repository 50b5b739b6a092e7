"""
Error taxonomy for the person watch system.
"""

from __future__ import annotations


class WatchError(Exception):
    """Base class for all person watch errors."""


class ConfigError(WatchError):
    """Configuration is missing or invalid."""


class DeviceAccessDenied(WatchError):
    """
    The camera could not be opened (permission refused, device busy or missing).

    Not retryable without user action; the detection loop never starts.
    """

    def __init__(self, device_id, reason: str = ""):
        self.device_id = device_id
        self.reason = reason
        msg = f"Cannot access camera device {device_id!r}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class DetectorFailure(WatchError):
    """A single detection call failed. Recovered per cycle."""


class SpeechFailure(WatchError):
    """speak() or cancel() raised or is unsupported on this platform."""
