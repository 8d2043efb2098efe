"""pyttsx3 voices sharing one engine and one worker thread."""

from __future__ import annotations

import importlib
import importlib.util
import queue
import threading
from typing import Any, Callable

from core.logging import logger
from interaction.state import Language


BASE_RATE_WPM = 200


def _require_pyttsx3() -> Any:
    if importlib.util.find_spec("pyttsx3") is None:
        raise RuntimeError("pyttsx3 is required for Pyttsx3VoiceEngine")
    return importlib.import_module("pyttsx3")


class Pyttsx3Speaker:
    """Own the pyttsx3 engine; it is only touched from the worker thread.

    ``pyttsx3.init()`` hands out one cached engine per driver, so every
    language voice is a view on this speaker and the voice property is
    switched per utterance.
    """

    def __init__(self, rate: float = 0.9) -> None:
        self._pyttsx3 = _require_pyttsx3()
        self.rate = rate
        self._q: queue.Queue[tuple[Pyttsx3VoiceEngine, str, str] | None] = queue.Queue()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._engine: Any = None
        self._current: Pyttsx3VoiceEngine | None = None
        self._voice_ids: dict[Language, str | None] = {}
        self._views: dict[Language, Pyttsx3VoiceEngine] = {}
        self._t = threading.Thread(target=self._worker, name="tts", daemon=True)
        self._t.start()

    def voice(self, language: Language) -> "Pyttsx3VoiceEngine":
        with self._lock:
            view = self._views.get(language)
            if view is None:
                view = Pyttsx3VoiceEngine(self, language)
                self._views[language] = view
            return view

    def submit(self, view: "Pyttsx3VoiceEngine", text: str, utterance_id: str) -> bool:
        if self._stop.is_set() or not self._t.is_alive():
            return False
        self._q.put((view, text, utterance_id))
        return True

    def stop_for(self, view: "Pyttsx3VoiceEngine") -> None:
        """Drop ``view``'s queued text and cut its utterance if it is playing."""

        kept = []
        try:
            while True:
                item = self._q.get_nowait()
                if item is None or item[0] is not view:
                    kept.append(item)
        except queue.Empty:
            pass
        for item in kept:
            self._q.put(item)

        with self._lock:
            playing = self._current is view
        if playing and self._engine is not None:
            try:
                self._engine.stop()
            except Exception as exc:
                logger.error("[TTS] Failed to stop %s voice: %s", view.language.value, exc)

    def shutdown(self) -> None:
        if self._stop.is_set():
            return
        self._stop.set()
        if self._engine is not None:
            try:
                self._engine.stop()
            except Exception as exc:
                logger.error("[TTS] Failed to stop engine: %s", exc)
        self._q.put(None)
        self._t.join(timeout=1.0)

    def _select_voice(self, engine: Any, language: Language) -> str | None:
        if language in self._voice_ids:
            return self._voice_ids[language]
        locale = language.locale.lower().replace("-", "_")
        short = locale.split("_")[0]
        voice_id = None
        for voice in engine.getProperty("voices") or []:
            tags = [str(tag).lower() for tag in getattr(voice, "languages", []) or []]
            tags.append(str(getattr(voice, "id", "")).lower())
            if any(locale in tag.replace("-", "_") or tag.endswith(short) for tag in tags):
                voice_id = str(voice.id)
                break
        if voice_id is None:
            logger.warning("[TTS] No %s voice installed; using the default voice", language.locale)
        self._voice_ids[language] = voice_id
        return voice_id

    def _worker(self) -> None:
        try:
            engine = self._pyttsx3.init()
            engine.setProperty("rate", int(BASE_RATE_WPM * self.rate))
            engine.connect("started-utterance", self._started)
            engine.connect("finished-utterance", self._finished)
            self._engine = engine
        except Exception:
            logger.exception("[TTS] Could not initialize pyttsx3")
            self._stop.set()
            return

        while not self._stop.is_set():
            try:
                item = self._q.get(timeout=0.1)
            except queue.Empty:
                continue
            if item is None:
                break
            view, text, utterance_id = item
            with self._lock:
                self._current = view
            try:
                voice_id = self._select_voice(engine, view.language)
                if voice_id is not None:
                    engine.setProperty("voice", voice_id)
                engine.say(text, utterance_id)
                engine.runAndWait()
            except Exception as exc:
                logger.error("[TTS] Utterance %s failed: %s", utterance_id[:8], exc)
                view.report_error(utterance_id)
            finally:
                with self._lock:
                    self._current = None

    def _started(self, name: str) -> None:
        view = self._current
        if view is not None:
            view.report_start(name)

    def _finished(self, name: str, completed: bool) -> None:
        view = self._current
        if view is None:
            return
        if completed:
            view.report_done(name)
        else:
            view.report_error(name)


class Pyttsx3VoiceEngine:
    """One language voice on a shared ``Pyttsx3Speaker``."""

    def __init__(self, speaker: Pyttsx3Speaker, language: Language) -> None:
        self.speaker = speaker
        self.language = language
        self._on_start: Callable[[str], None] | None = None
        self._on_done: Callable[[str], None] | None = None
        self._on_error: Callable[[str], None] | None = None

    def bind_callbacks(
        self,
        on_start: Callable[[str], None],
        on_done: Callable[[str], None],
        on_error: Callable[[str], None],
    ) -> None:
        self._on_start = on_start
        self._on_done = on_done
        self._on_error = on_error

    def speak(self, text: str, utterance_id: str) -> bool:
        return self.speaker.submit(self, text, utterance_id)

    def stop(self) -> None:
        self.speaker.stop_for(self)

    def shutdown(self) -> None:
        self.speaker.shutdown()

    def report_start(self, utterance_id: str) -> None:
        if self._on_start is not None:
            self._on_start(utterance_id)

    def report_done(self, utterance_id: str) -> None:
        if self._on_done is not None:
            self._on_done(utterance_id)

    def report_error(self, utterance_id: str) -> None:
        if self._on_error is not None:
            self._on_error(utterance_id)
