"""Shared fakes for the assistant test suite."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable

import pytest

from core.coordinator import CoordinationLoop
from interaction.listener import ListenError
from interaction.state import Language
from vision.detections import DetectionBatch
from vision.text_race import ScriptEngine


class FakeClock:
    """Millisecond clock; the loop reads it as seconds."""

    def __init__(self, start_ms: int = 100_000) -> None:
        self._ms = start_ms

    def __call__(self) -> float:
        return self._ms / 1000.0

    def advance(self, ms: int) -> None:
        self._ms += ms

    def now_ms(self) -> int:
        return self._ms


class FakeVoiceEngine:
    """Voice channel that reports start immediately and finishes on demand."""

    def __init__(self, *, accept: bool = True, raise_on_speak: bool = False) -> None:
        self.accept = accept
        self.raise_on_speak = raise_on_speak
        self.spoken: list[tuple[str, str]] = []
        self.stop_calls = 0
        self.current: str | None = None
        self._on_start: Callable[[str], None] | None = None
        self._on_done: Callable[[str], None] | None = None
        self._on_error: Callable[[str], None] | None = None

    def bind_callbacks(self, on_start, on_done, on_error) -> None:
        self._on_start = on_start
        self._on_done = on_done
        self._on_error = on_error

    def speak(self, text: str, utterance_id: str) -> bool:
        if self.raise_on_speak:
            raise RuntimeError("engine offline")
        if not self.accept:
            return False
        self.spoken.append((text, utterance_id))
        self.current = utterance_id
        if self._on_start is not None:
            self._on_start(utterance_id)
        return True

    def stop(self) -> None:
        self.stop_calls += 1
        self.current = None

    def finish(self) -> None:
        utterance_id = self.current
        self.current = None
        if utterance_id is not None and self._on_done is not None:
            self._on_done(utterance_id)

    def fail(self) -> None:
        utterance_id = self.current
        self.current = None
        if utterance_id is not None and self._on_error is not None:
            self._on_error(utterance_id)

    @property
    def texts(self) -> list[str]:
        return [text for text, _ in self.spoken]


class FakeSpeechToText:
    def __init__(self) -> None:
        self.starts: list[Language] = []
        self.cancels = 0
        self.raise_on_start = False
        self._on_result: Callable[[str], None] | None = None
        self._on_error: Callable[[ListenError], None] | None = None

    def start_listening(self, language, on_result, on_error) -> None:
        if self.raise_on_start:
            raise RuntimeError("recognizer unavailable")
        self.starts.append(language)
        self._on_result = on_result
        self._on_error = on_error

    def cancel(self) -> None:
        self.cancels += 1

    def deliver(self, transcript: str) -> None:
        assert self._on_result is not None
        self._on_result(transcript)

    def fail(self, error: ListenError) -> None:
        assert self._on_error is not None
        self._on_error(error)


class FakeHaptics:
    def __init__(self) -> None:
        self.pulses: list[int] = []
        self.patterns: list[list[int]] = []
        self.cancels = 0

    def vibrate(self, duration_ms: int) -> None:
        self.pulses.append(duration_ms)

    def start_pattern(self, pattern_ms) -> None:
        self.patterns.append(list(pattern_ms))

    def cancel(self) -> None:
        self.cancels += 1


class FakeSiren:
    def __init__(self, *, fail_start: bool = False) -> None:
        self.fail_start = fail_start
        self.starts = 0
        self.stops = 0

    def start(self) -> None:
        if self.fail_start:
            raise RuntimeError("no audio device")
        self.starts += 1

    def stop(self) -> None:
        self.stops += 1


class FakeDetector:
    def __init__(self, batch: DetectionBatch | None = None, error: Exception | None = None) -> None:
        self.batch = batch or DetectionBatch()
        self.error = error
        self.calls = 0

    def detect(self, image: Any) -> DetectionBatch:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.batch


class FakeTextEngine:
    """OCR engine returning canned text per script; values may be exceptions or delays."""

    def __init__(self, results: dict[ScriptEngine, Any] | None = None, delays_s: dict[ScriptEngine, float] | None = None) -> None:
        self.results = results or {}
        self.delays_s = delays_s or {}
        self.calls: list[ScriptEngine] = []
        self._lock = threading.Lock()

    def recognize_text(self, image: Any, engine_kind: ScriptEngine) -> str:
        with self._lock:
            self.calls.append(engine_kind)
        delay = self.delays_s.get(engine_kind, 0.0)
        if delay:
            time.sleep(delay)
        value = self.results.get(engine_kind, "")
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def loop(clock: FakeClock) -> CoordinationLoop:
    return CoordinationLoop(clock=clock)


@pytest.fixture
def drain() -> Callable[..., None]:
    """Run a hand-driven loop until ``predicate`` holds (worker threads finish off-loop)."""

    def _drain(loop: CoordinationLoop, predicate: Callable[[], bool], timeout_s: float = 2.0) -> None:
        deadline = time.monotonic() + timeout_s
        while time.monotonic() < deadline:
            loop.run_pending()
            if predicate():
                return
            time.sleep(0.005)
        loop.run_pending()
        assert predicate(), "condition not reached before timeout"

    return _drain


@pytest.fixture
def voices() -> dict[Language, FakeVoiceEngine]:
    return {language: FakeVoiceEngine() for language in Language}


@pytest.fixture
def fakes() -> Any:
    """Expose the fake classes to tests that build their own instances."""

    return type(
        "Fakes",
        (),
        {
            "Clock": FakeClock,
            "VoiceEngine": FakeVoiceEngine,
            "SpeechToText": FakeSpeechToText,
            "Haptics": FakeHaptics,
            "Siren": FakeSiren,
            "Detector": FakeDetector,
            "TextEngine": FakeTextEngine,
        },
    )
