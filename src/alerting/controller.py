"""
Announcement state machine.

    IDLE --EnterEvent/speak--> SPEAKING
    SPEAKING --ExitEvent/cancel--> IDLE
    SPEAKING --completion of current utterance--> IDLE
    SPEAKING --safety valve or manual stop/cancel--> IDLE

Everything else is a no-op. In particular a second EnterEvent while
SPEAKING is ignored, so at most one announcement is ever in flight, and a
completion that arrives after a forced reset changes nothing.

The controller is the only caller of Speaker.speak and Speaker.cancel.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from models.events import AlertState, EnterEvent, ExitEvent, PresenceEvent
from .speech import Speaker, Utterance

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Person detected"


def compose_announcement(other_classes: Sequence[str], message: str = DEFAULT_MESSAGE) -> str:
    """
    Build the spoken text for an enter edge.

    >>> compose_announcement([])
    'Person detected'
    >>> compose_announcement(["dog", "backpack"])
    'Person detected, with: dog, backpack'
    """
    if other_classes:
        return f"{message}, with: {', '.join(other_classes)}"
    return message


@dataclass
class AlertStats:
    announcements: int = 0
    ignored_enters: int = 0
    exit_cancels: int = 0
    completions: int = 0
    forced_resets: int = 0
    speech_failures: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


class AlertController:
    """
    Gates spoken announcements to one at a time.

    Example:
        controller = AlertController(speaker, reset_interval_s=10.0)
        controller.start()          # arms the safety valve
        controller.handle(EnterEvent(("dog",)))
        ...
        await controller.shutdown()
    """

    def __init__(
        self,
        speaker: Speaker,
        reset_interval_s: float = 10.0,
        message: str = DEFAULT_MESSAGE,
    ):
        self._speaker = speaker
        self.reset_interval_s = reset_interval_s
        self.message = message
        self._state = AlertState.IDLE
        self._utterance: Optional[Utterance] = None
        self._valve_task: Optional[asyncio.Task] = None
        self.stats = AlertStats()

    @property
    def state(self) -> AlertState:
        return self._state

    @property
    def current_text(self) -> Optional[str]:
        return self._utterance.text if self._utterance else None

    # -- event inputs -----------------------------------------------------

    def handle(self, event: Optional[PresenceEvent]) -> None:
        """Apply a presence edge. None (no edge this cycle) is ignored."""
        if isinstance(event, EnterEvent):
            self._on_enter(event)
        elif isinstance(event, ExitEvent):
            self._on_exit()

    def _on_enter(self, event: EnterEvent) -> None:
        if self._state is AlertState.SPEAKING:
            self.stats.ignored_enters += 1
            logger.debug("Enter while speaking, ignored")
            return

        text = compose_announcement(event.other_classes, self.message)
        try:
            self._utterance = self._speaker.speak(text)
        except Exception as e:
            self.stats.speech_failures += 1
            self._utterance = None
            logger.warning(f"Speech failed, staying idle: {e}")
            return

        self._state = AlertState.SPEAKING
        self.stats.announcements += 1
        logger.info(f"Announcing: {text!r}")

    def _on_exit(self) -> None:
        if self._state is AlertState.IDLE:
            return
        self.stats.exit_cancels += 1
        self._reset("person left")

    def on_speech_finished(self, utterance: Utterance) -> None:
        """
        Completion signal from the speaker.

        Only the utterance currently being spoken can end SPEAKING; late or
        foreign completions are dropped.
        """
        if self._state is not AlertState.SPEAKING or utterance != self._utterance:
            logger.debug(f"Stale speech completion ignored: {utterance.utterance_id}")
            return
        self.stats.completions += 1
        self._state = AlertState.IDLE
        self._utterance = None
        logger.info("Announcement finished")

    def force_reset(self) -> bool:
        """
        Cancel any announcement and return to IDLE.

        Used by the safety valve and by the manual "stop announcement"
        control. Returns True if an announcement was interrupted.
        """
        if self._state is AlertState.IDLE:
            return False
        self.stats.forced_resets += 1
        self._reset("forced reset")
        return True

    def _reset(self, reason: str) -> None:
        self._state = AlertState.IDLE
        self._utterance = None
        self._cancel_speech()
        logger.info(f"Announcement cancelled ({reason})")

    def _cancel_speech(self) -> None:
        try:
            self._speaker.cancel()
        except Exception as e:
            self.stats.speech_failures += 1
            logger.warning(f"Speech cancel failed: {e}")

    # -- safety valve -----------------------------------------------------

    def start(self) -> None:
        """Arm the safety valve. Must be called from a running event loop."""
        if self._valve_task is not None:
            return
        self._valve_task = asyncio.create_task(self._safety_valve(), name="alert-safety-valve")

    async def _safety_valve(self) -> None:
        # Fixed schedule, independent of detection activity.
        while True:
            await asyncio.sleep(self.reset_interval_s)
            if self.force_reset():
                logger.warning(
                    f"Safety valve reset a stuck announcement after {self.reset_interval_s:.0f}s"
                )

    async def stop(self) -> None:
        """Disarm the safety valve."""
        task, self._valve_task = self._valve_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def shutdown(self) -> None:
        """Disarm the safety valve and silence any in-flight speech."""
        try:
            await self.stop()
        finally:
            self._state = AlertState.IDLE
            self._utterance = None
            self._cancel_speech()
