"""Tests for frame routing through the recognition pipelines."""

from __future__ import annotations

import pytest

from interaction.speech import SpeechArbiter
from interaction.state import Language, Mode
from vision.aggregator import AggregatorConfig, DetectionAggregator
from vision.detections import Detection, DetectionBatch
from vision.pipelines import (
    PIPELINE_IDENTIFY,
    PIPELINE_NAVIGATION,
    PIPELINE_READ,
    PipelineConfig,
    PipelineManager,
)
from vision.text_race import DualEngineRace, ScriptEngine


CHAIR_LEFT = DetectionBatch(detections=(Detection("chair", 0.9, (0.05, 0.0, 0.55, 0.9)),))


@pytest.fixture
def rig(loop, clock, voices, fakes):
    status = {"mode": Mode.HOME, "language": Language.ENGLISH}
    detector = fakes.Detector(CHAIR_LEFT)
    text_engine = fakes.TextEngine()
    arbiter = SpeechArbiter(voices)
    manager = PipelineManager(
        loop,
        arbiter,
        detector=detector,
        text_race=DualEngineRace(text_engine),
        mode_provider=lambda: status["mode"],
        language_provider=lambda: status["language"],
        aggregator=DetectionAggregator(AggregatorConfig()),
        config=PipelineConfig(),
        clock_ms=clock.now_ms,
    )

    def activate(mode: Mode) -> None:
        status["mode"] = mode
        manager.bind(mode)

    yield type(
        "Rig",
        (),
        {
            "status": status,
            "detector": detector,
            "text_engine": text_engine,
            "arbiter": arbiter,
            "manager": manager,
            "voices": voices,
            "activate": staticmethod(activate),
        },
    )
    manager.shutdown()


def _idle(manager: PipelineManager, pipeline_id: str):
    return lambda: not manager.worker.is_busy(pipeline_id)


def test_no_bound_pipeline_drops_frames(rig) -> None:
    assert rig.manager.on_frame("frame") is False
    assert rig.detector.calls == 0


def test_navigation_frame_is_announced(rig, loop, drain) -> None:
    overlays = []
    rig.manager.add_overlay_listener(overlays.append)
    rig.activate(Mode.NAVIGATION)

    assert rig.manager.on_frame("frame") is True
    drain(loop, _idle(rig.manager, PIPELINE_NAVIGATION))

    assert rig.voices[Language.ENGLISH].texts == ["chair ahead to the left. "]
    assert len(rig.manager.overlay) == 1
    assert overlays[-1] == rig.manager.overlay


def test_detection_window_limits_admissions(rig, loop, clock, drain) -> None:
    rig.activate(Mode.OBJECT_DETECTION)
    start = clock.now_ms()

    assert rig.manager.on_frame("a", start) is True
    drain(loop, _idle(rig.manager, PIPELINE_IDENTIFY))

    assert rig.manager.on_frame("b", start + 500) is False
    assert rig.manager.on_frame("c", start + 1000) is True
    drain(loop, _idle(rig.manager, PIPELINE_IDENTIFY))
    assert rig.detector.calls == 2


def test_busy_pipeline_refusal_keeps_window_open(rig, loop, clock, drain) -> None:
    rig.activate(Mode.NAVIGATION)
    start = clock.now_ms()

    assert rig.manager.on_frame("a", start) is True
    assert rig.manager.on_frame("b", start + 10) is False
    drain(loop, _idle(rig.manager, PIPELINE_NAVIGATION))

    assert rig.detector.calls == 1


def test_emergency_closes_every_pipeline(rig) -> None:
    rig.activate(Mode.NAVIGATION)
    rig.status["mode"] = Mode.EMERGENCY

    assert rig.manager.on_frame("frame") is False
    assert rig.detector.calls == 0


def test_result_after_mode_change_is_discarded(rig, loop, drain) -> None:
    rig.activate(Mode.NAVIGATION)
    assert rig.manager.on_frame("frame") is True

    rig.status["mode"] = Mode.HOME
    rig.manager.unbind()
    drain(loop, _idle(rig.manager, PIPELINE_NAVIGATION))

    assert rig.voices[Language.ENGLISH].texts == []
    assert rig.manager.overlay == ()


def test_detection_failure_is_silent(rig, loop, drain) -> None:
    rig.detector.error = RuntimeError("model crashed")
    rig.activate(Mode.OBJECT_DETECTION)

    rig.manager.on_frame("frame")
    drain(loop, _idle(rig.manager, PIPELINE_IDENTIFY))

    assert all(voice.texts == [] for voice in rig.voices.values())


def test_identify_empty_frame_says_no_object(rig, loop, drain) -> None:
    rig.detector.batch = DetectionBatch()
    rig.activate(Mode.OBJECT_DETECTION)

    rig.manager.on_frame("frame")
    drain(loop, _idle(rig.manager, PIPELINE_IDENTIFY))

    assert rig.voices[Language.ENGLISH].texts == ["No object detected"]


def test_recognized_text_is_spoken_in_matching_voice(rig, loop, drain) -> None:
    seen = []
    rig.manager.add_text_listener(seen.append)
    rig.text_engine.results = {ScriptEngine.SECONDARY_SCRIPT: "यह एक किताब है"}
    rig.activate(Mode.TEXT_RECOGNITION)

    assert rig.manager.on_frame("page") is True
    drain(loop, _idle(rig.manager, PIPELINE_READ))

    assert seen == ["यह एक किताब है"]
    assert rig.voices[Language.HINDI].texts == ["पहचाना गया पाठ: यह एक किताब है"]


def test_latin_text_uses_english_voice(rig, loop, drain) -> None:
    rig.text_engine.results = {ScriptEngine.PRIMARY_SCRIPT: "EXIT"}
    rig.activate(Mode.TEXT_RECOGNITION)

    rig.manager.on_frame("sign")
    drain(loop, _idle(rig.manager, PIPELINE_READ))

    assert rig.voices[Language.ENGLISH].texts == ["Recognized text: EXIT"]


def test_empty_text_says_no_text_found(rig, loop, drain) -> None:
    seen = []
    rig.manager.add_text_listener(seen.append)
    rig.activate(Mode.TEXT_RECOGNITION)

    rig.manager.on_frame("blank")
    drain(loop, _idle(rig.manager, PIPELINE_READ))

    assert seen == [None]
    assert rig.voices[Language.ENGLISH].texts == ["No text found"]


def test_failed_engines_say_recognition_failed(rig, loop, drain) -> None:
    rig.text_engine.results = {
        ScriptEngine.PRIMARY_SCRIPT: RuntimeError("tesseract"),
        ScriptEngine.SECONDARY_SCRIPT: RuntimeError("tesseract"),
    }
    rig.activate(Mode.TEXT_RECOGNITION)

    rig.manager.on_frame("page")
    drain(loop, _idle(rig.manager, PIPELINE_READ))

    assert rig.voices[Language.ENGLISH].texts == ["Text recognition failed"]


def test_text_frames_skipped_while_speaking(rig) -> None:
    rig.activate(Mode.TEXT_RECOGNITION)
    rig.arbiter.say("Starting text recognition mode.", Language.ENGLISH)

    assert rig.manager.on_frame("page") is False
    assert rig.text_engine.calls == []


def test_text_window_is_three_seconds(rig, loop, clock, drain) -> None:
    rig.activate(Mode.TEXT_RECOGNITION)
    start = clock.now_ms()

    rig.manager.on_frame("a", start)
    drain(loop, _idle(rig.manager, PIPELINE_READ))
    rig.voices[Language.ENGLISH].finish()

    assert rig.manager.on_frame("b", start + 2999) is False
    rig.manager.reset_text_window()
    assert rig.manager.on_frame("c", start + 2999) is True
    drain(loop, _idle(rig.manager, PIPELINE_READ))
