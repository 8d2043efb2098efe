"""Voice command listening cycle."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from config import load_section
from core.coordinator import CoordinationLoop, ScheduledCall
from core.logging import logger
from interaction.haptics import HapticOutput
from interaction.state import Language, Mode


class ListenError(str, Enum):
    """Speech-to-text failure codes. Every one of them is recoverable."""

    AUDIO = "audio"
    CLIENT = "client"
    PERMISSIONS = "permissions"
    NETWORK = "network"
    NETWORK_TIMEOUT = "network_timeout"
    NO_MATCH = "no_match"
    BUSY = "busy"
    SERVER = "server"
    SPEECH_TIMEOUT = "speech_timeout"
    UNKNOWN = "unknown"

    @property
    def description(self) -> str:
        return _ERROR_DESCRIPTIONS[self]


_ERROR_DESCRIPTIONS = {
    ListenError.AUDIO: "Audio recording error",
    ListenError.CLIENT: "Client side error",
    ListenError.PERMISSIONS: "Insufficient permissions",
    ListenError.NETWORK: "Network error",
    ListenError.NETWORK_TIMEOUT: "Network timeout",
    ListenError.NO_MATCH: "No match found",
    ListenError.BUSY: "Recognition service busy",
    ListenError.SERVER: "Server error",
    ListenError.SPEECH_TIMEOUT: "No speech input",
    ListenError.UNKNOWN: "Unknown error",
}


class SpeechToText(Protocol):
    """Asynchronous speech-to-text: exactly one result or one error per call."""

    def start_listening(
        self,
        language: Language,
        on_result: Callable[[str], None],
        on_error: Callable[[ListenError], None],
    ) -> None:
        ...

    def cancel(self) -> None:
        ...


@dataclass(frozen=True)
class ListenerConfig:
    busy_retry_ms: int = 1000
    error_backoff_ms: int = 1000
    start_failure_retry_ms: int = 3000
    listen_pulse_ms: int = 100
    command_pulse_ms: int = 200

    @classmethod
    def from_config(cls) -> "ListenerConfig":
        section = load_section("listening")
        defaults = cls()
        return cls(
            busy_retry_ms=int(section.get("busy_retry_ms", defaults.busy_retry_ms)),
            error_backoff_ms=int(section.get("error_backoff_ms", defaults.error_backoff_ms)),
            start_failure_retry_ms=int(
                section.get("start_failure_retry_ms", defaults.start_failure_retry_ms)
            ),
            listen_pulse_ms=int(section.get("listen_pulse_ms", defaults.listen_pulse_ms)),
            command_pulse_ms=int(section.get("command_pulse_ms", defaults.command_pulse_ms)),
        )


class VoiceCommandListener:
    """Run one listen attempt at a time, never while speaking or in an emergency.

    All state lives on the coordination loop. Speech-to-text callbacks may
    arrive on any thread and are posted back to the loop.
    """

    def __init__(
        self,
        loop: CoordinationLoop,
        stt: SpeechToText,
        *,
        is_speaking: Callable[[], bool],
        mode_provider: Callable[[], Mode],
        language_provider: Callable[[], Language],
        on_command: Callable[[str], None],
        haptics: HapticOutput | None = None,
        config: ListenerConfig | None = None,
    ) -> None:
        self._loop = loop
        self._stt = stt
        self._is_speaking = is_speaking
        self._mode_provider = mode_provider
        self._language_provider = language_provider
        self._on_command = on_command
        self._haptics = haptics
        self.config = config or ListenerConfig.from_config()
        self._pending: ScheduledCall | None = None
        self._listening = False
        self._paused = False
        self._attempt_seq = 0

    @property
    def is_listening(self) -> bool:
        return self._listening

    @property
    def is_paused(self) -> bool:
        return self._paused

    def has_pending(self) -> bool:
        return self._pending is not None and not self._pending.cancelled

    def schedule(self, delay_ms: int) -> None:
        """Replace any pending attempt with one due after ``delay_ms``."""

        self.cancel_pending()
        try:
            self._pending = self._loop.post_delayed(delay_ms, self._attempt, name="listen-attempt")
        except RuntimeError:
            logger.debug("[LISTEN] Loop stopped; listen attempt not scheduled")
            self._pending = None

    def cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def stop(self) -> None:
        """Cancel the pending attempt and abort an in-progress listen."""

        self.cancel_pending()
        if self._listening:
            self._listening = False
            # Results from the aborted attempt are ignored.
            self._attempt_seq += 1
            try:
                self._stt.cancel()
            except Exception as exc:
                logger.error("[LISTEN] Failed to cancel speech recognizer: %s", exc)

    def pause(self) -> None:
        self._paused = True
        self.stop()

    def resume(self, delay_ms: int = 0) -> None:
        self._paused = False
        if self._mode_provider() is not Mode.EMERGENCY:
            self.schedule(delay_ms)

    def _attempt(self) -> None:
        self._pending = None
        if self._paused or self._mode_provider() is Mode.EMERGENCY:
            return
        if self._listening or self._is_speaking():
            self.schedule(self.config.busy_retry_ms)
            return

        self._attempt_seq += 1
        attempt = self._attempt_seq
        self._listening = True
        try:
            self._stt.start_listening(
                self._language_provider(),
                lambda transcript: self._post(lambda: self._handle_result(attempt, transcript)),
                lambda error: self._post(lambda: self._handle_error(attempt, error)),
            )
        except Exception as exc:
            self._listening = False
            logger.error("[LISTEN] Error starting voice recognition: %s", exc)
            self.schedule(self.config.start_failure_retry_ms)
            return
        self._pulse(self.config.listen_pulse_ms)
        logger.debug("[LISTEN] Listening (attempt %d)", attempt)

    def _post(self, callback: Callable[[], None]) -> None:
        try:
            self._loop.post(callback, name="listen-callback")
        except RuntimeError:
            logger.debug("[LISTEN] Loop stopped; dropping recognizer callback")

    def _handle_result(self, attempt: int, transcript: str) -> None:
        if attempt != self._attempt_seq:
            return
        self._listening = False
        if self._paused:
            return
        text = (transcript or "").strip()
        if not text:
            self._handle_error(attempt, ListenError.NO_MATCH)
            return
        logger.info("[LISTEN] Command received: %s", text)
        self._pulse(self.config.command_pulse_ms)
        self._on_command(text.lower())

    def _handle_error(self, attempt: int, error: ListenError) -> None:
        if attempt != self._attempt_seq:
            return
        self._listening = False
        if not isinstance(error, ListenError):
            error = ListenError.UNKNOWN
        logger.warning("[LISTEN] Speech recognition error: %s", error.description)
        if self._paused:
            return
        self.schedule(self.config.error_backoff_ms)

    def _pulse(self, duration_ms: int) -> None:
        if self._haptics is None:
            return
        try:
            self._haptics.vibrate(duration_ms)
        except Exception as exc:
            logger.error("[LISTEN] Haptic pulse failed: %s", exc)
