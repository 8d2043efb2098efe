"""Speech arbitration across per-language voice channels."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
import threading
from typing import Callable, Mapping, Protocol
import uuid

from core.logging import logger, log_utterance
from interaction.state import Language


class SpeechPriority(str, Enum):
    FLUSH = "flush"
    ENQUEUE = "enqueue"


class UtteranceState(str, Enum):
    QUEUED = "queued"
    SPEAKING = "speaking"
    DONE = "done"
    ERRORED = "errored"


def _new_utterance_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Utterance:
    """One piece of text to speak; ``state`` is owned by the arbiter."""

    text: str
    language: Language = Language.ENGLISH
    priority: SpeechPriority = SpeechPriority.FLUSH
    id: str = field(default_factory=_new_utterance_id)
    state: UtteranceState = UtteranceState.QUEUED
    cancelled: bool = False

    @property
    def finished(self) -> bool:
        return self.state in (UtteranceState.DONE, UtteranceState.ERRORED)


UtteranceCallback = Callable[[str], None]


class VoiceEngine(Protocol):
    """Text-to-speech channel for a single language voice."""

    def bind_callbacks(
        self,
        on_start: UtteranceCallback,
        on_done: UtteranceCallback,
        on_error: UtteranceCallback,
    ) -> None:
        ...

    def speak(self, text: str, utterance_id: str) -> bool:
        ...

    def stop(self) -> None:
        ...


class SpeechArbiter:
    """Serialize every spoken output so only one utterance is ever speaking.

    Utterances from all channels share one FIFO. ``FLUSH`` cancels the active
    utterance and everything queued before starting; ``ENQUEUE`` appends and
    never interrupts. Engine callbacks may arrive on any thread.
    """

    def __init__(
        self,
        channels: Mapping[Language, VoiceEngine],
        *,
        fallback_language: Language = Language.ENGLISH,
    ) -> None:
        self._channels = dict(channels)
        self._fallback_language = fallback_language
        self._lock = threading.Lock()
        self._queue: deque[Utterance] = deque()
        self._active: Utterance | None = None
        self._listeners: list[Callable[[Utterance], None]] = []
        for channel in self._channels.values():
            channel.bind_callbacks(self._on_start, self._on_done, self._on_error)

    def add_listener(self, listener: Callable[[Utterance], None]) -> None:
        """Register a callback invoked whenever an utterance changes state."""

        self._listeners.append(listener)

    def speak(self, utterance: Utterance) -> Utterance:
        log_utterance(utterance.priority.value, utterance.text, utterance.language, utterance.id)
        if utterance.priority is SpeechPriority.FLUSH:
            with self._lock:
                to_stop = self._cancel_all_locked()
            # Channels are interrupted before the new utterance becomes visible to the pump.
            self._halt(to_stop)
        with self._lock:
            self._queue.append(utterance)
        self._pump()
        return utterance

    def say(
        self,
        text: str,
        language: Language,
        priority: SpeechPriority = SpeechPriority.FLUSH,
    ) -> Utterance:
        return self.speak(Utterance(text=text, language=language, priority=priority))

    def is_speaking(self) -> bool:
        with self._lock:
            active = self._active
            return active is not None and active.state is UtteranceState.SPEAKING

    def has_pending(self) -> bool:
        with self._lock:
            return self._active is not None or bool(self._queue)

    def active_utterance(self) -> Utterance | None:
        with self._lock:
            return self._active

    def stop_all(self) -> None:
        """Halt every channel and drop everything queued."""

        with self._lock:
            cancelled = self._cancel_all_locked()
        for channel in self._unique_channels():
            try:
                channel.stop()
            except Exception as exc:
                logger.error("[SPEECH] Failed to stop voice channel: %s", exc)
        for utterance in cancelled:
            self._notify(utterance)
        logger.info("[SPEECH] stop_all cancelled %d utterance(s)", len(cancelled))

    def shutdown(self) -> None:
        self.stop_all()
        for channel in self._unique_channels():
            close = getattr(channel, "shutdown", None)
            if callable(close):
                try:
                    close()
                except Exception as exc:
                    logger.error("[SPEECH] Failed to shut down voice channel: %s", exc)

    def _unique_channels(self) -> list[VoiceEngine]:
        seen: list[VoiceEngine] = []
        for channel in self._channels.values():
            if not any(channel is other for other in seen):
                seen.append(channel)
        return seen

    def _channel_for(self, language: Language) -> VoiceEngine | None:
        return self._channels.get(language) or self._channels.get(self._fallback_language)

    def _cancel_all_locked(self) -> list[Utterance]:
        cancelled: list[Utterance] = []
        if self._active is not None:
            cancelled.append(self._active)
            self._active = None
        cancelled.extend(self._queue)
        self._queue.clear()
        for utterance in cancelled:
            utterance.cancelled = True
            utterance.state = UtteranceState.ERRORED
        return cancelled

    def _halt(self, cancelled: list[Utterance]) -> None:
        stopped: list[VoiceEngine] = []
        for utterance in cancelled:
            channel = self._channel_for(utterance.language)
            if channel is None or any(channel is other for other in stopped):
                continue
            stopped.append(channel)
            try:
                channel.stop()
            except Exception as exc:
                logger.error("[SPEECH] Failed to interrupt voice channel: %s", exc)
        for utterance in cancelled:
            self._notify(utterance)

    def _pump(self) -> None:
        while True:
            with self._lock:
                if self._active is not None or not self._queue:
                    return
                utterance = self._queue.popleft()
                self._active = utterance

            channel = self._channel_for(utterance.language)
            started = False
            if channel is None:
                logger.error("[SPEECH] No voice channel for %s", utterance.language.value)
            else:
                try:
                    started = bool(channel.speak(utterance.text, utterance.id))
                except Exception as exc:
                    logger.error("[SPEECH] Voice engine raised while starting %s: %s", utterance.id[:8], exc)

            with self._lock:
                if self._active is not utterance:
                    # Flushed or finished while the engine call was in progress.
                    if not started:
                        continue
                    return
                if started:
                    if utterance.state is UtteranceState.QUEUED:
                        utterance.state = UtteranceState.SPEAKING
                else:
                    utterance.state = UtteranceState.ERRORED
                    self._active = None
            self._notify(utterance)
            if started:
                return
            logger.error("[SPEECH] Failed to start utterance %s", utterance.id[:8])

    def _on_start(self, utterance_id: str) -> None:
        with self._lock:
            active = self._active
            if active is None or active.id != utterance_id:
                return
            if active.state is not UtteranceState.QUEUED:
                return
            active.state = UtteranceState.SPEAKING
        self._notify(active)

    def _on_done(self, utterance_id: str) -> None:
        self._finish(utterance_id, UtteranceState.DONE)

    def _on_error(self, utterance_id: str) -> None:
        self._finish(utterance_id, UtteranceState.ERRORED)

    def _finish(self, utterance_id: str, state: UtteranceState) -> None:
        with self._lock:
            active = self._active
            if active is None or active.id != utterance_id:
                return
            active.state = state
            self._active = None
        if state is UtteranceState.ERRORED:
            logger.warning("[SPEECH] Utterance %s reported an error", utterance_id[:8])
        self._notify(active)
        self._pump()

    def _notify(self, utterance: Utterance) -> None:
        for listener in list(self._listeners):
            try:
                listener(utterance)
            except Exception:
                logger.exception("[SPEECH] Utterance listener failed")
