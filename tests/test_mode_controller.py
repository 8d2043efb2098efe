"""Tests for the mode state machine."""

from __future__ import annotations

import pytest

from interaction.speech import SpeechArbiter
from interaction.state import AssistantState, EmergencySource, Language, Mode
from services.mode_controller import (
    ControllerConfig,
    ModeAction,
    ModeController,
    ModeEvent,
    plan_transition,
)


class RecordingPipelines:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def bind(self, mode: Mode) -> None:
        self.calls.append(f"bind:{mode.value}")

    def unbind(self) -> None:
        self.calls.append("unbind")

    def reset_text_window(self) -> None:
        self.calls.append("reset_text")


class RecordingListener:
    def __init__(self) -> None:
        self.scheduled: list[int] = []
        self.stops = 0

    def schedule(self, delay_ms: int) -> None:
        self.scheduled.append(delay_ms)

    def stop(self) -> None:
        self.stops += 1


class RecordingAlarm:
    def __init__(self) -> None:
        self.starts = 0
        self.stops = 0

    def start(self) -> None:
        self.starts += 1

    def stop(self) -> None:
        self.stops += 1


class CountingArbiter(SpeechArbiter):
    def __init__(self, channels) -> None:
        super().__init__(channels)
        self.stop_all_calls = 0

    def stop_all(self) -> None:
        self.stop_all_calls += 1
        super().stop_all()


@pytest.fixture
def harness(voices, loop):
    state = AssistantState()
    arbiter = CountingArbiter(voices)
    pipelines = RecordingPipelines()
    alarm = RecordingAlarm()
    listener = RecordingListener()
    terminated: list[bool] = []
    controller = ModeController(
        state,
        arbiter,
        pipelines,
        alarm,
        loop=loop,
        listener=listener,
        on_terminate=lambda: terminated.append(True),
        config=ControllerConfig(),
    )
    return type(
        "Harness",
        (),
        {
            "state": state,
            "arbiter": arbiter,
            "pipelines": pipelines,
            "alarm": alarm,
            "listener": listener,
            "terminated": terminated,
            "controller": controller,
            "voices": voices,
        },
    )


_PIPELINE_MODES = (Mode.HOME, Mode.OBJECT_DETECTION, Mode.TEXT_RECOGNITION, Mode.NAVIGATION)


@pytest.mark.parametrize("mode", _PIPELINE_MODES)
@pytest.mark.parametrize(
    "event, target",
    [
        (ModeEvent.NAVIGATE, Mode.NAVIGATION),
        (ModeEvent.READ, Mode.TEXT_RECOGNITION),
        (ModeEvent.IDENTIFY, Mode.OBJECT_DETECTION),
    ],
)
def test_pipeline_commands_bind_from_any_regular_mode(mode, event, target) -> None:
    transition = plan_transition(mode, event)

    assert transition.next_mode is target
    assert transition.action is ModeAction.BIND_PIPELINE


@pytest.mark.parametrize("mode", _PIPELINE_MODES)
def test_regular_mode_table(mode) -> None:
    assert plan_transition(mode, ModeEvent.HOME).action is ModeAction.RETURN_HOME
    assert plan_transition(mode, ModeEvent.HOME_BUTTON).next_mode is Mode.HOME
    for event in (ModeEvent.EMERGENCY_VOICE, ModeEvent.EMERGENCY_SENSOR, ModeEvent.SOS_BUTTON):
        transition = plan_transition(mode, event)
        assert transition.next_mode is Mode.EMERGENCY
        assert transition.action is ModeAction.ENTER_EMERGENCY
    assert plan_transition(mode, ModeEvent.STOP).action is ModeAction.REQUEST_TERMINATE
    assert plan_transition(mode, ModeEvent.STOP).next_mode is mode
    assert plan_transition(mode, ModeEvent.LANGUAGE).action is ModeAction.CHANGE_LANGUAGE
    assert plan_transition(mode, ModeEvent.UNRECOGNIZED).action is ModeAction.NOT_UNDERSTOOD
    assert plan_transition(mode, ModeEvent.STOP_EMERGENCY).action is ModeAction.IGNORE


def test_emergency_mode_table() -> None:
    emergency = Mode.EMERGENCY
    for event in (ModeEvent.SOS_BUTTON, ModeEvent.STOP, ModeEvent.STOP_EMERGENCY):
        transition = plan_transition(emergency, event)
        assert transition.next_mode is Mode.HOME
        assert transition.action is ModeAction.EXIT_EMERGENCY
    for event in (ModeEvent.EMERGENCY_VOICE, ModeEvent.EMERGENCY_SENSOR):
        assert plan_transition(emergency, event).action is ModeAction.REASSERT_EMERGENCY
    for event in (
        ModeEvent.NAVIGATE,
        ModeEvent.READ,
        ModeEvent.IDENTIFY,
        ModeEvent.HOME,
        ModeEvent.HOME_BUTTON,
        ModeEvent.UNRECOGNIZED,
    ):
        transition = plan_transition(emergency, event)
        assert transition.next_mode is Mode.EMERGENCY
        assert transition.action is ModeAction.IGNORE
    assert plan_transition(emergency, ModeEvent.LANGUAGE).next_mode is Mode.EMERGENCY


def test_navigate_command_binds_and_announces(harness) -> None:
    harness.controller.handle_command("navigate")

    assert harness.state.mode is Mode.NAVIGATION
    assert harness.pipelines.calls == ["bind:navigate"]
    assert harness.voices[Language.ENGLISH].texts[-1].startswith("Starting navigation mode")
    assert harness.listener.scheduled == [3000]


def test_sensor_emergency_from_navigation_stops_speech_exactly_once(harness) -> None:
    harness.controller.handle_command("navigate")
    harness.arbiter.stop_all_calls = 0

    harness.controller.trigger_emergency(EmergencySource.SENSOR)

    assert harness.arbiter.stop_all_calls == 1
    assert harness.state.mode is Mode.EMERGENCY
    assert harness.state.emergency_source is EmergencySource.SENSOR
    assert harness.pipelines.calls[-1] == "unbind"
    assert harness.alarm.starts == 1
    assert harness.listener.stops == 1
    assert harness.voices[Language.ENGLISH].texts[-1] == "SOS Emergency Mode activated"


def test_voice_sos_does_not_reschedule_listening(harness) -> None:
    harness.controller.handle_command("sos")

    assert harness.state.mode is Mode.EMERGENCY
    assert harness.listener.scheduled == []


def test_stop_in_emergency_returns_home(harness) -> None:
    harness.controller.trigger_emergency(EmergencySource.BUTTON)

    transition = harness.controller.handle_command("stop")

    assert transition.action is ModeAction.EXIT_EMERGENCY
    assert harness.state.mode is Mode.HOME
    assert harness.state.terminate_requested is False
    assert harness.alarm.stops == 1
    assert harness.listener.scheduled == [2000]
    assert harness.voices[Language.ENGLISH].texts[-1] == "SOS Emergency Mode deactivated"


def test_sos_button_toggles_emergency(harness) -> None:
    harness.controller.trigger_emergency(EmergencySource.BUTTON)
    harness.controller.trigger_emergency(EmergencySource.BUTTON)

    assert harness.state.mode is Mode.HOME
    assert harness.alarm.starts == 1
    assert harness.alarm.stops == 1


def test_pipeline_commands_ignored_in_emergency(harness) -> None:
    harness.controller.trigger_emergency(EmergencySource.SENSOR)
    spoken_before = list(harness.voices[Language.ENGLISH].texts)

    harness.controller.handle_command("read")

    assert harness.state.mode is Mode.EMERGENCY
    assert harness.voices[Language.ENGLISH].texts == spoken_before
    assert "bind:read" not in harness.pipelines.calls


def test_same_source_reassert_is_silent(harness) -> None:
    harness.controller.trigger_emergency(EmergencySource.SENSOR)
    spoken = len(harness.voices[Language.ENGLISH].texts)

    harness.controller.trigger_emergency(EmergencySource.SENSOR)
    assert len(harness.voices[Language.ENGLISH].texts) == spoken

    harness.controller.trigger_emergency(EmergencySource.VOICE)
    assert harness.state.emergency_source is EmergencySource.VOICE
    assert len(harness.voices[Language.ENGLISH].texts) == spoken + 1
    assert harness.alarm.starts == 1


def test_stop_outside_emergency_requests_terminate(harness) -> None:
    transition = harness.controller.handle_command("stop")

    assert transition.action is ModeAction.REQUEST_TERMINATE
    assert harness.state.terminate_requested is True
    assert harness.terminated == [True]
    assert harness.listener.scheduled == []
    assert harness.voices[Language.ENGLISH].texts[-1] == "Stopping application"


def test_language_change_switches_voice_and_resets_text_window(harness) -> None:
    harness.controller.handle_command("हिंदी")

    assert harness.state.language is Language.HINDI
    assert "reset_text" in harness.pipelines.calls
    assert harness.voices[Language.HINDI].texts == ["भाषा हिंदी में बदली गई"]


def test_unrecognized_command_reprompts(harness) -> None:
    transition = harness.controller.handle_command("what time is it")

    assert transition.action is ModeAction.NOT_UNDERSTOOD
    assert harness.state.mode is Mode.HOME
    assert harness.voices[Language.ENGLISH].texts[-1].startswith("I didn't understand")
    assert harness.listener.scheduled == [3000]


def test_home_button_rewelcomes_after_delay(harness, loop, clock) -> None:
    harness.controller.handle_command("identify")

    harness.controller.dispatch(ModeEvent.HOME_BUTTON)
    assert harness.state.mode is Mode.HOME
    assert harness.voices[Language.ENGLISH].texts[-1] == "Returning to home mode"

    clock.advance(2001)
    loop.run_pending()

    assert harness.voices[Language.ENGLISH].texts[-1].startswith("Welcome to Visual Assistant")
    assert harness.listener.scheduled[-1] == 5000


def test_emergency_cancels_pending_rewelcome(harness, loop, clock) -> None:
    harness.controller.dispatch(ModeEvent.HOME_BUTTON)
    harness.controller.trigger_emergency(EmergencySource.SENSOR)

    clock.advance(2001)
    loop.run_pending()

    assert harness.state.mode is Mode.EMERGENCY
    assert harness.voices[Language.ENGLISH].texts[-1] == "SOS Emergency Mode activated"
    assert not any(text.startswith("Welcome") for text in harness.voices[Language.ENGLISH].texts)


def test_pipeline_command_cancels_pending_rewelcome(harness, loop, clock) -> None:
    harness.controller.dispatch(ModeEvent.HOME_BUTTON)
    harness.controller.handle_command("navigate")

    clock.advance(2001)
    loop.run_pending()

    assert harness.state.mode is Mode.NAVIGATION
    assert harness.voices[Language.ENGLISH].texts[-1].startswith("Starting navigation mode")


def test_unrecognized_command_keeps_pending_rewelcome(harness, loop, clock) -> None:
    harness.controller.dispatch(ModeEvent.HOME_BUTTON)
    harness.controller.handle_command("what time is it")

    clock.advance(2001)
    loop.run_pending()

    assert harness.voices[Language.ENGLISH].texts[-1].startswith("Welcome to Visual Assistant")


def test_display_listener_follows_mode(harness) -> None:
    seen = []
    harness.controller.add_display_listener(seen.append)

    harness.controller.handle_command("read")

    assert seen[-1].mode is Mode.TEXT_RECOGNITION
    assert seen[-1].mode_label == "READ"
