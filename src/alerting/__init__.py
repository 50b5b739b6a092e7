"""
Spoken person alerts: the announcement state machine and speech backends.
"""

from .controller import AlertController, compose_announcement
from .speech import (
    LogSpeaker,
    Pyttsx3Speaker,
    Speaker,
    Utterance,
    create_speaker_from_config,
)

__all__ = [
    "AlertController",
    "compose_announcement",
    "LogSpeaker",
    "Pyttsx3Speaker",
    "Speaker",
    "Utterance",
    "create_speaker_from_config",
]
