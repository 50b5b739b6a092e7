"""
Tests for the announcement state machine.
"""

import asyncio

import pytest

from alerting.controller import AlertController, compose_announcement
from alerting.speech import BaseSpeaker
from errors import SpeechFailure
from models.events import AlertState, EnterEvent, ExitEvent


class RecordingSpeaker(BaseSpeaker):
    """Speaker that records calls and finishes only when told to."""

    def __init__(self, fail_speak=False, fail_cancel=False):
        super().__init__()
        self.spoken = []
        self.cancels = 0
        self.fail_speak = fail_speak
        self.fail_cancel = fail_cancel

    def speak(self, text):
        if self.fail_speak:
            raise SpeechFailure("no audio device")
        utterance = self._next_utterance(text)
        self.spoken.append(utterance)
        return utterance

    def cancel(self):
        self.cancels += 1
        if self.fail_cancel:
            raise SpeechFailure("stop failed")

    def finish(self, utterance=None):
        self._deliver_completion(utterance or self.spoken[-1])


@pytest.fixture
def speaker():
    return RecordingSpeaker()


@pytest.fixture
def controller(speaker):
    ctl = AlertController(speaker, reset_interval_s=10.0)
    speaker.set_completion_handler(ctl.on_speech_finished)
    return ctl


class TestComposeAnnouncement:
    def test_person_only(self):
        assert compose_announcement(()) == "Person detected"

    def test_with_other_classes(self):
        assert compose_announcement(("dog", "backpack")) == "Person detected, with: dog, backpack"

    def test_custom_message(self):
        assert compose_announcement(("cat",), "Someone is here") == "Someone is here, with: cat"


class TestAlertController:
    def test_enter_speaks_once(self, controller, speaker):
        controller.handle(EnterEvent(("dog",)))

        assert controller.state is AlertState.SPEAKING
        assert [u.text for u in speaker.spoken] == ["Person detected, with: dog"]
        assert controller.current_text == "Person detected, with: dog"

    def test_enter_while_speaking_is_ignored(self, controller, speaker):
        controller.handle(EnterEvent())
        controller.handle(EnterEvent(("cat",)))

        assert len(speaker.spoken) == 1
        assert controller.stats.ignored_enters == 1

    def test_exit_while_speaking_cancels_once(self, controller, speaker):
        controller.handle(EnterEvent())
        controller.handle(ExitEvent())

        assert speaker.cancels == 1
        assert controller.state is AlertState.IDLE

    def test_exit_while_idle_is_noop(self, controller, speaker):
        controller.handle(ExitEvent())

        assert speaker.cancels == 0
        assert controller.state is AlertState.IDLE

    def test_none_event_is_noop(self, controller, speaker):
        controller.handle(None)

        assert speaker.spoken == []
        assert controller.state is AlertState.IDLE

    def test_completion_returns_to_idle(self, controller, speaker):
        controller.handle(EnterEvent())
        speaker.finish()

        assert controller.state is AlertState.IDLE
        assert controller.stats.completions == 1

        controller.handle(EnterEvent())
        assert len(speaker.spoken) == 2

    def test_late_completion_after_forced_reset_is_noop(self, controller, speaker):
        controller.handle(EnterEvent())
        first = speaker.spoken[-1]
        assert controller.force_reset() is True

        controller.handle(EnterEvent(("dog",)))
        assert controller.state is AlertState.SPEAKING

        # The first utterance reports completion after it was superseded.
        speaker.finish(first)

        assert controller.state is AlertState.SPEAKING
        assert controller.current_text == "Person detected, with: dog"
        assert controller.stats.completions == 0

    def test_duplicate_completion_is_noop(self, controller, speaker):
        controller.handle(EnterEvent())
        utterance = speaker.spoken[-1]
        speaker.finish(utterance)
        controller.handle(EnterEvent())
        speaker.finish(utterance)

        assert controller.state is AlertState.SPEAKING
        assert controller.stats.completions == 1

    def test_force_reset_when_idle(self, controller, speaker):
        assert controller.force_reset() is False
        assert speaker.cancels == 0

    def test_speak_failure_stays_idle(self):
        speaker = RecordingSpeaker(fail_speak=True)
        controller = AlertController(speaker)

        controller.handle(EnterEvent())

        assert controller.state is AlertState.IDLE
        assert controller.stats.speech_failures == 1

    def test_cancel_failure_still_idle(self):
        speaker = RecordingSpeaker(fail_cancel=True)
        controller = AlertController(speaker)

        controller.handle(EnterEvent())
        controller.handle(ExitEvent())

        assert controller.state is AlertState.IDLE
        assert controller.stats.speech_failures == 1


class TestSafetyValve:
    def test_valve_resets_stuck_announcement(self, speaker):
        async def scenario():
            controller = AlertController(speaker, reset_interval_s=0.05)
            controller.start()
            controller.handle(EnterEvent())
            assert controller.state is AlertState.SPEAKING

            await asyncio.sleep(0.12)
            state = controller.state
            await controller.shutdown()
            return controller, state

        controller, state = asyncio.run(scenario())

        assert state is AlertState.IDLE
        assert controller.stats.forced_resets >= 1
        assert speaker.cancels >= 1

    def test_valve_is_noop_when_idle(self, speaker):
        async def scenario():
            controller = AlertController(speaker, reset_interval_s=0.02)
            controller.start()
            await asyncio.sleep(0.1)
            await controller.stop()
            return controller

        controller = asyncio.run(scenario())

        assert controller.stats.forced_resets == 0
        assert speaker.cancels == 0

    def test_shutdown_cancels_speech(self, speaker):
        async def scenario():
            controller = AlertController(speaker, reset_interval_s=10.0)
            controller.start()
            controller.handle(EnterEvent())
            await controller.shutdown()
            return controller

        controller = asyncio.run(scenario())

        assert controller.state is AlertState.IDLE
        assert speaker.cancels == 1
