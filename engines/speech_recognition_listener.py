"""Speech-to-text through the SpeechRecognition package."""

from __future__ import annotations

import importlib
import importlib.util
import threading
from typing import Any, Callable

from core.logging import logger
from interaction.listener import ListenError
from interaction.state import Language


def _require_speech_recognition() -> Any:
    if importlib.util.find_spec("speech_recognition") is None:
        raise RuntimeError("SpeechRecognition is required for SpeechRecognitionListener")
    return importlib.import_module("speech_recognition")


def map_listen_error(sr: Any, exc: BaseException) -> ListenError:
    """Translate a SpeechRecognition exception into a :class:`ListenError`."""

    if isinstance(exc, sr.WaitTimeoutError):
        return ListenError.SPEECH_TIMEOUT
    if isinstance(exc, sr.UnknownValueError):
        return ListenError.NO_MATCH
    if isinstance(exc, sr.RequestError):
        message = str(exc).lower()
        if "timed out" in message or "timeout" in message:
            return ListenError.NETWORK_TIMEOUT
        if "quota" in message or "server" in message:
            return ListenError.SERVER
        return ListenError.NETWORK
    if isinstance(exc, PermissionError):
        return ListenError.PERMISSIONS
    if isinstance(exc, OSError):
        return ListenError.AUDIO
    return ListenError.UNKNOWN


class SpeechRecognitionListener:
    """Capture one phrase from the microphone per call on a background thread."""

    def __init__(
        self,
        device_index: int | None = None,
        timeout_s: float = 5.0,
        phrase_time_limit_s: float = 5.0,
    ) -> None:
        self._sr = _require_speech_recognition()
        self._recognizer = self._sr.Recognizer()
        self._device_index = device_index
        self._timeout_s = timeout_s
        self._phrase_time_limit_s = phrase_time_limit_s
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._cancelled = threading.Event()

    def start_listening(
        self,
        language: Language,
        on_result: Callable[[str], None],
        on_error: Callable[[ListenError], None],
    ) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                raise RuntimeError("Speech recognizer is busy")
            self._cancelled.clear()
            self._thread = threading.Thread(
                target=self._listen,
                args=(language, on_result, on_error),
                name="speech-recognition",
                daemon=True,
            )
            self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    def _listen(
        self,
        language: Language,
        on_result: Callable[[str], None],
        on_error: Callable[[ListenError], None],
    ) -> None:
        try:
            with self._sr.Microphone(device_index=self._device_index) as source:
                self._recognizer.adjust_for_ambient_noise(source, duration=0.3)
                audio = self._recognizer.listen(
                    source,
                    timeout=self._timeout_s,
                    phrase_time_limit=self._phrase_time_limit_s,
                )
            transcript = self._recognizer.recognize_google(audio, language=language.locale)
        except Exception as exc:
            error = map_listen_error(self._sr, exc)
            logger.debug("[LISTEN] Recognizer raised %s: %s", type(exc).__name__, exc)
            if not self._cancelled.is_set():
                on_error(error)
            return
        if not self._cancelled.is_set():
            on_result(str(transcript))
