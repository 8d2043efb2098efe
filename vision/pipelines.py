"""Recognition pipelines bound to modes and fed by camera frames."""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Any, Callable, Protocol

from config import load_section
from core.coordinator import CoordinationLoop
from core.logging import logger
from core.rate_gate import RateGate
from core.single_flight import SingleFlightWorker
from interaction.languages import Phrase, guess_text_language, render
from interaction.speech import SpeechArbiter, SpeechPriority
from interaction.state import Language, Mode
from vision.aggregator import DetectionAggregator
from vision.detections import DetectionBatch, OverlayItem
from vision.text_race import DualEngineRace, RaceOutcome


PIPELINE_NAVIGATION = "navigation"
PIPELINE_IDENTIFY = "identify"
PIPELINE_READ = "read"

MODE_PIPELINES = {
    Mode.NAVIGATION: PIPELINE_NAVIGATION,
    Mode.OBJECT_DETECTION: PIPELINE_IDENTIFY,
    Mode.TEXT_RECOGNITION: PIPELINE_READ,
}
PIPELINE_MODES = {pipeline: mode for mode, pipeline in MODE_PIPELINES.items()}

OverlayListener = Callable[[tuple[OverlayItem, ...]], None]
TextListener = Callable[["str | None"], None]


class Detector(Protocol):
    def detect(self, image: Any) -> DetectionBatch:
        ...


@dataclass(frozen=True)
class PipelineConfig:
    detection_interval_ms: int = 1000
    text_interval_ms: int = 3000
    text_timeout_ms: int = 3000
    text_language: str = "auto"

    @classmethod
    def from_config(cls) -> "PipelineConfig":
        section = load_section("pipelines")
        speech = load_section("speech")
        defaults = cls()
        return cls(
            detection_interval_ms=int(
                section.get("detection_interval_ms", defaults.detection_interval_ms)
            ),
            text_interval_ms=int(section.get("text_interval_ms", defaults.text_interval_ms)),
            text_timeout_ms=int(section.get("text_timeout_ms", defaults.text_timeout_ms)),
            text_language=str(speech.get("text_language", defaults.text_language)).lower(),
        )


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class PipelineManager:
    """Route frames to the pipeline bound to the current mode.

    Frames pass the rate gate and the single-flight worker before any
    recognition runs; completions are handled on the coordination loop,
    where stale results are dropped and announcements are submitted.
    """

    def __init__(
        self,
        loop: CoordinationLoop,
        arbiter: SpeechArbiter,
        *,
        detector: Detector | None,
        text_race: DualEngineRace | None,
        mode_provider: Callable[[], Mode],
        language_provider: Callable[[], Language],
        aggregator: DetectionAggregator | None = None,
        config: PipelineConfig | None = None,
        clock_ms: Callable[[], int] | None = None,
    ) -> None:
        self.config = config or PipelineConfig.from_config()
        self._loop = loop
        self._arbiter = arbiter
        self._detector = detector
        self._text_race = text_race
        self._mode_provider = mode_provider
        self._language_provider = language_provider
        self._aggregator = aggregator or DetectionAggregator()
        self._clock_ms = clock_ms or _monotonic_ms
        self._active: str | None = None
        self._overlay: tuple[OverlayItem, ...] = ()
        self._overlay_listeners: list[OverlayListener] = []
        self._text_listeners: list[TextListener] = []
        self.gate = RateGate(
            self.config.detection_interval_ms,
            {
                PIPELINE_NAVIGATION: self.config.detection_interval_ms,
                PIPELINE_IDENTIFY: self.config.detection_interval_ms,
                PIPELINE_READ: self.config.text_interval_ms,
            },
            admission_policy=self._admits,
        )
        self.worker = SingleFlightWorker(dispatch=self._dispatch)

    @property
    def active_pipeline(self) -> str | None:
        return self._active

    @property
    def overlay(self) -> tuple[OverlayItem, ...]:
        return self._overlay

    @property
    def aggregator(self) -> DetectionAggregator:
        return self._aggregator

    def add_overlay_listener(self, listener: OverlayListener) -> None:
        self._overlay_listeners.append(listener)

    def add_text_listener(self, listener: TextListener) -> None:
        self._text_listeners.append(listener)

    def bind(self, mode: Mode) -> str | None:
        """Activate the pipeline for ``mode``; other modes leave none active."""

        pipeline_id = MODE_PIPELINES.get(mode)
        if pipeline_id is None:
            self.unbind()
            return None
        previous = self._active
        self._active = pipeline_id
        self.gate.reset(pipeline_id)
        self._publish_overlay(())
        logger.info("[PIPELINE] Bound %s (was %s)", pipeline_id, previous or "none")
        return pipeline_id

    def unbind(self) -> None:
        if self._active is not None:
            logger.info("[PIPELINE] Unbound %s", self._active)
        self._active = None
        self._publish_overlay(())

    def reset_text_window(self) -> None:
        self.gate.reset(PIPELINE_READ)

    def on_frame(self, image: Any, now_ms: int | None = None) -> bool:
        """Offer a frame; return True when recognition was started for it."""

        pipeline_id = self._active
        if pipeline_id is None:
            return False
        if pipeline_id == PIPELINE_READ and self._arbiter.is_speaking():
            return False
        if self.worker.is_busy(pipeline_id):
            return False
        if not self.gate.try_admit(pipeline_id, now_ms if now_ms is not None else self._clock_ms()):
            return False

        if pipeline_id == PIPELINE_READ:
            if self._text_race is None:
                return False
            race = self._text_race
            timeout_ms = self.config.text_timeout_ms

            def work() -> RaceOutcome:
                return race.resolve_detailed(image, timeout_ms)

            on_complete = self._complete_text
        else:
            if self._detector is None:
                return False
            detector = self._detector

            def work() -> DetectionBatch:
                return detector.detect(image)

            def on_complete(result: Any, error: BaseException | None) -> None:
                self._complete_detection(pipeline_id, result, error)

        submitted = self.worker.submit(pipeline_id, work, on_complete)
        if not submitted:
            logger.debug("[PIPELINE] Dropped frame for busy pipeline %s", pipeline_id)
        return submitted

    def shutdown(self) -> None:
        self._active = None
        self.worker.shutdown(wait=False)
        if self._text_race is not None:
            self._text_race.shutdown()

    def _admits(self, pipeline_id: str) -> bool:
        return pipeline_id == self._active and self._mode_provider() is not Mode.EMERGENCY

    def _dispatch(self, callback: Callable[[], None]) -> None:
        self._loop.post(callback, name="pipeline-completion")

    def _is_stale(self, pipeline_id: str) -> bool:
        return self._active != pipeline_id or self._mode_provider() is not PIPELINE_MODES[pipeline_id]

    def _complete_detection(self, pipeline_id: str, result: Any, error: BaseException | None) -> None:
        if error is not None:
            # Detection failures stay silent so the user is not spammed.
            logger.error("[PIPELINE] Detection failed on %s: %s", pipeline_id, error)
            return
        if self._is_stale(pipeline_id):
            logger.debug("[PIPELINE] Discarding stale %s result", pipeline_id)
            return

        batch = result if isinstance(result, DetectionBatch) else DetectionBatch()
        language = self._language_provider()
        aggregation = self._aggregator.aggregate(
            batch,
            PIPELINE_MODES[pipeline_id],
            self._clock_ms(),
            language,
        )
        self._publish_overlay(aggregation.overlay)
        if aggregation.announcement:
            self._arbiter.say(aggregation.announcement, language, SpeechPriority.FLUSH)

    def _complete_text(self, result: Any, error: BaseException | None) -> None:
        if self._is_stale(PIPELINE_READ):
            logger.debug("[PIPELINE] Discarding stale text result")
            return

        if error is not None or not isinstance(result, RaceOutcome):
            logger.error("[PIPELINE] Text recognition failed: %s", error)
            outcome = RaceOutcome(text=None, failures=1, attempted=1)
        else:
            outcome = result

        language = self._language_provider()
        if outcome.text is None:
            self._publish_text(None)
            phrase = Phrase.TEXT_FAILED if outcome.all_failed else Phrase.NO_TEXT
            self._arbiter.say(render(phrase, language), language, SpeechPriority.FLUSH)
            return

        text = outcome.text.text
        self._publish_text(text)
        voice = self._text_voice(text, language)
        logger.info("[PIPELINE] Recognized text (%s): %s", outcome.text.source_engine.value, text)
        self._arbiter.say(render(Phrase.RECOGNIZED_TEXT, voice, text=text), voice, SpeechPriority.FLUSH)

    def _text_voice(self, text: str, language: Language) -> Language:
        if self.config.text_language == "auto":
            return guess_text_language(text)
        return language

    def _publish_overlay(self, overlay: tuple[OverlayItem, ...]) -> None:
        self._overlay = overlay
        for listener in list(self._overlay_listeners):
            try:
                listener(overlay)
            except Exception:
                logger.exception("[PIPELINE] Overlay listener failed")

    def _publish_text(self, text: str | None) -> None:
        for listener in list(self._text_listeners):
            try:
                listener(text)
            except Exception:
                logger.exception("[PIPELINE] Text listener failed")
