"""
Speech output backends.

A speaker turns announcement text into audio. ``speak`` returns immediately
with an Utterance handle; when that utterance finishes naturally the speaker
delivers it, exactly once, to the registered completion handler on the
asyncio event loop. Cancelled utterances are never reported as completed.

Backends:
- pyttsx3: offline TTS, driven from a dedicated worker thread since the
  engine's run loop blocks.
- log: writes the text to the log and "finishes" after an estimated
  speaking time. Useful on headless machines.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol

import pyttsx3

from errors import ConfigError, SpeechFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Utterance:
    utterance_id: int
    text: str


CompletionHandler = Callable[[Utterance], None]


class Speaker(Protocol):
    def set_completion_handler(
        self, handler: CompletionHandler, loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> None:
        ...

    def speak(self, text: str) -> Utterance:
        ...

    def cancel(self) -> None:
        ...

    def close(self) -> None:
        ...


class BaseSpeaker:
    """Utterance numbering and thread-safe completion delivery."""

    def __init__(self):
        self._handler: Optional[CompletionHandler] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._ids = itertools.count(1)

    def set_completion_handler(
        self, handler: CompletionHandler, loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> None:
        """
        Register where natural completions go.

        With ``loop`` set, the handler is scheduled on that loop from whatever
        thread the backend finishes on; otherwise it is called directly.
        """
        self._handler = handler
        self._loop = loop

    def _next_utterance(self, text: str) -> Utterance:
        return Utterance(utterance_id=next(self._ids), text=text)

    def _deliver_completion(self, utterance: Utterance) -> None:
        if self._handler is None:
            return
        if self._loop is not None:
            if self._loop.is_closed():
                return
            self._loop.call_soon_threadsafe(self._handler, utterance)
        else:
            self._handler(utterance)

    def close(self) -> None:
        self.cancel()

    def cancel(self) -> None:  # pragma: no cover - overridden
        raise NotImplementedError


class LogSpeaker(BaseSpeaker):
    """
    Logs announcements instead of voicing them.

    Completion fires after ``len(words) / words_per_minute`` minutes on the
    running event loop. Without a running loop no completion is delivered.
    """

    def __init__(self, words_per_minute: int = 175):
        super().__init__()
        self.words_per_minute = max(1, words_per_minute)
        self._pending: Optional[asyncio.TimerHandle] = None

    def estimate_duration_s(self, text: str) -> float:
        return len(text.split()) * 60.0 / self.words_per_minute

    def speak(self, text: str) -> Utterance:
        utterance = self._next_utterance(text)
        logger.info(f"[speech] {text}")
        try:
            loop = self._loop or asyncio.get_running_loop()
        except RuntimeError:
            return utterance
        self._cancel_pending()
        self._pending = loop.call_later(
            self.estimate_duration_s(text), self._finish, utterance
        )
        return utterance

    def _finish(self, utterance: Utterance) -> None:
        self._pending = None
        self._deliver_completion(utterance)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def cancel(self) -> None:
        self._cancel_pending()

    def close(self) -> None:
        # May be called off the loop thread; timer handles belong to the loop.
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self._cancel_pending)
        else:
            self._cancel_pending()


class Pyttsx3Speaker(BaseSpeaker):
    """
    pyttsx3 text-to-speech on a dedicated worker thread.

    The engine is created and only ever touched on the worker; ``speak``
    enqueues and ``cancel`` marks every utterance issued so far as cancelled.
    The worker skips cancelled queue items and stops a cancelled utterance
    from the engine's own start/word callbacks.
    """

    def __init__(self, rate: int = 175, volume: float = 1.0, voice: Optional[str] = None,
                 init_timeout_s: float = 5.0):
        super().__init__()
        self.rate = rate
        self.volume = volume
        self.voice = voice
        self._queue: "queue.Queue[Optional[Utterance]]" = queue.Queue()
        self._engine = None
        self._current: Optional[Utterance] = None
        self._lock = threading.Lock()
        self._last_id = 0
        self._cancelled_through = 0
        self._init_error: Optional[BaseException] = None
        self._ready = threading.Event()
        self._thread = threading.Thread(target=self._worker, name="pyttsx3-speaker", daemon=True)
        self._thread.start()
        if not self._ready.wait(timeout=init_timeout_s):
            raise SpeechFailure("pyttsx3 engine did not initialise in time")
        if self._init_error is not None:
            raise SpeechFailure(f"pyttsx3 unavailable: {self._init_error}") from self._init_error

    def _create_engine(self):
        engine = pyttsx3.init()
        engine.setProperty("rate", self.rate)
        engine.setProperty("volume", self.volume)
        if self.voice:
            want = self.voice.lower()
            for v in engine.getProperty("voices") or []:
                if want == v.name.lower() or want in v.name.lower():
                    engine.setProperty("voice", v.id)
                    break
            else:
                logger.warning(f"Voice {self.voice!r} not found, using default")
        engine.connect("started-utterance", self._on_started)
        engine.connect("started-word", self._on_word)
        engine.connect("finished-utterance", self._on_finished)
        return engine

    def _is_cancelled(self, utterance: Utterance) -> bool:
        with self._lock:
            return utterance.utterance_id <= self._cancelled_through

    def _worker(self) -> None:
        try:
            self._engine = self._create_engine()
        except Exception as e:
            self._init_error = e
            self._ready.set()
            return
        self._ready.set()

        while True:
            utterance = self._queue.get()
            if utterance is None:
                break
            if self._is_cancelled(utterance):
                continue
            self._current = utterance
            try:
                self._engine.say(utterance.text, str(utterance.utterance_id))
                self._engine.runAndWait()
            except Exception as e:
                logger.warning(f"Speech playback failed: {e}")
                self._current = None
                # Playback errors count as completion.
                if not self._is_cancelled(utterance):
                    self._deliver_completion(utterance)

    def _stop_if_cancelled(self) -> None:
        # Runs on the worker, inside runAndWait.
        utterance = self._current
        if utterance is None or not self._is_cancelled(utterance):
            return
        try:
            self._engine.stop()
        except Exception as e:
            logger.warning(f"pyttsx3 stop failed: {e}")

    def _on_started(self, name: str) -> None:
        self._stop_if_cancelled()

    def _on_word(self, name: str, location: int, length: int) -> None:
        self._stop_if_cancelled()

    def _on_finished(self, name: str, completed: bool) -> None:
        utterance, self._current = self._current, None
        if utterance is None or name != str(utterance.utterance_id):
            return
        if completed and not self._is_cancelled(utterance):
            self._deliver_completion(utterance)

    def speak(self, text: str) -> Utterance:
        if self._engine is None or not self._thread.is_alive():
            raise SpeechFailure("speech engine is not running")
        utterance = self._next_utterance(text)
        with self._lock:
            self._last_id = utterance.utterance_id
        self._queue.put(utterance)
        return utterance

    def cancel(self) -> None:
        with self._lock:
            self._cancelled_through = self._last_id

    def close(self) -> None:
        try:
            self.cancel()
        finally:
            self._queue.put(None)
            self._thread.join(timeout=2.0)


def create_speaker_from_config(speech_cfg: Dict[str, Any]) -> BaseSpeaker:
    """Build the speaker selected by ``speech.backend``."""
    backend = speech_cfg.get("backend", "pyttsx3")
    rate = int(speech_cfg.get("rate", 175))
    if backend == "log":
        return LogSpeaker(words_per_minute=rate)
    if backend == "pyttsx3":
        return Pyttsx3Speaker(
            rate=rate,
            volume=float(speech_cfg.get("volume", 1.0)),
            voice=speech_cfg.get("voice"),
        )
    raise ConfigError(f"Unknown speech backend: {backend}")
