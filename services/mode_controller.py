"""Mode state machine.

``plan_transition`` is the whole transition table as a pure function; the
``ModeController`` applies the planned action to the assistant's collaborators.
Every method of the controller must run on the coordination loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from config import load_section
from core.coordinator import CoordinationLoop, ScheduledCall
from core.logging import log_mode_transition, logger
from interaction.commands import CommandKind, parse_command
from interaction.languages import Phrase, display_state, render
from interaction.listener import VoiceCommandListener
from interaction.speech import SpeechArbiter, SpeechPriority
from interaction.state import AssistantState, DisplayState, EmergencySource, Language, Mode
from vision.pipelines import PipelineManager


class ModeEvent(str, Enum):
    NAVIGATE = "navigate"
    READ = "read"
    IDENTIFY = "identify"
    HOME = "home"
    EMERGENCY_VOICE = "emergency_voice"
    EMERGENCY_SENSOR = "emergency_sensor"
    SOS_BUTTON = "sos_button"
    HOME_BUTTON = "home_button"
    STOP = "stop"
    STOP_EMERGENCY = "stop_emergency"
    LANGUAGE = "language"
    UNRECOGNIZED = "unrecognized"


class ModeAction(str, Enum):
    BIND_PIPELINE = "bind_pipeline"
    RETURN_HOME = "return_home"
    ENTER_EMERGENCY = "enter_emergency"
    REASSERT_EMERGENCY = "reassert_emergency"
    EXIT_EMERGENCY = "exit_emergency"
    REQUEST_TERMINATE = "request_terminate"
    CHANGE_LANGUAGE = "change_language"
    NOT_UNDERSTOOD = "not_understood"
    IGNORE = "ignore"


@dataclass(frozen=True)
class Transition:
    next_mode: Mode
    action: ModeAction


_COMMAND_EVENTS = {
    CommandKind.NAVIGATE: ModeEvent.NAVIGATE,
    CommandKind.READ: ModeEvent.READ,
    CommandKind.IDENTIFY: ModeEvent.IDENTIFY,
    CommandKind.HOME: ModeEvent.HOME,
    CommandKind.EMERGENCY: ModeEvent.EMERGENCY_VOICE,
    CommandKind.STOP: ModeEvent.STOP,
    CommandKind.LANGUAGE: ModeEvent.LANGUAGE,
    CommandKind.UNRECOGNIZED: ModeEvent.UNRECOGNIZED,
}

_PIPELINE_TARGETS = {
    ModeEvent.NAVIGATE: Mode.NAVIGATION,
    ModeEvent.READ: Mode.TEXT_RECOGNITION,
    ModeEvent.IDENTIFY: Mode.OBJECT_DETECTION,
}

_EVENT_SOURCES = {
    ModeEvent.EMERGENCY_VOICE: EmergencySource.VOICE,
    ModeEvent.EMERGENCY_SENSOR: EmergencySource.SENSOR,
    ModeEvent.SOS_BUTTON: EmergencySource.BUTTON,
}

_START_PHRASES = {
    Mode.NAVIGATION: Phrase.NAVIGATION_STARTED,
    Mode.TEXT_RECOGNITION: Phrase.READING_STARTED,
    Mode.OBJECT_DETECTION: Phrase.IDENTIFY_STARTED,
}


def plan_transition(mode: Mode, event: ModeEvent) -> Transition:
    """Return the next mode and reconfiguration action for ``event``."""

    if mode is Mode.EMERGENCY:
        if event in (ModeEvent.EMERGENCY_VOICE, ModeEvent.EMERGENCY_SENSOR):
            return Transition(Mode.EMERGENCY, ModeAction.REASSERT_EMERGENCY)
        if event in (ModeEvent.SOS_BUTTON, ModeEvent.STOP, ModeEvent.STOP_EMERGENCY):
            return Transition(Mode.HOME, ModeAction.EXIT_EMERGENCY)
        if event is ModeEvent.LANGUAGE:
            return Transition(Mode.EMERGENCY, ModeAction.CHANGE_LANGUAGE)
        return Transition(Mode.EMERGENCY, ModeAction.IGNORE)

    if event in _PIPELINE_TARGETS:
        return Transition(_PIPELINE_TARGETS[event], ModeAction.BIND_PIPELINE)
    if event in (ModeEvent.HOME, ModeEvent.HOME_BUTTON):
        return Transition(Mode.HOME, ModeAction.RETURN_HOME)
    if event in _EVENT_SOURCES:
        return Transition(Mode.EMERGENCY, ModeAction.ENTER_EMERGENCY)
    if event is ModeEvent.STOP:
        return Transition(mode, ModeAction.REQUEST_TERMINATE)
    if event is ModeEvent.LANGUAGE:
        return Transition(mode, ModeAction.CHANGE_LANGUAGE)
    if event is ModeEvent.UNRECOGNIZED:
        return Transition(mode, ModeAction.NOT_UNDERSTOOD)
    return Transition(mode, ModeAction.IGNORE)


class Alarm(Protocol):
    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


@dataclass(frozen=True)
class ControllerConfig:
    after_command_delay_ms: int = 3000
    after_emergency_delay_ms: int = 2000
    home_rewelcome_delay_ms: int = 2000
    after_welcome_listen_ms: int = 5000

    @classmethod
    def from_config(cls) -> "ControllerConfig":
        section = load_section("listening")
        defaults = cls()
        return cls(
            after_command_delay_ms=int(
                section.get("after_command_delay_ms", defaults.after_command_delay_ms)
            ),
            after_emergency_delay_ms=int(
                section.get("after_emergency_delay_ms", defaults.after_emergency_delay_ms)
            ),
            home_rewelcome_delay_ms=int(
                section.get("home_rewelcome_delay_ms", defaults.home_rewelcome_delay_ms)
            ),
            after_welcome_listen_ms=int(
                section.get("after_welcome_listen_ms", defaults.after_welcome_listen_ms)
            ),
        )


DisplayListener = Callable[[DisplayState], None]


class ModeController:
    """Own the assistant state and apply mode transitions."""

    def __init__(
        self,
        state: AssistantState,
        arbiter: SpeechArbiter,
        pipelines: PipelineManager,
        alarm: Alarm,
        *,
        loop: CoordinationLoop | None = None,
        listener: VoiceCommandListener | None = None,
        on_terminate: Callable[[], None] | None = None,
        config: ControllerConfig | None = None,
    ) -> None:
        self.state = state
        self.config = config or ControllerConfig.from_config()
        self._arbiter = arbiter
        self._pipelines = pipelines
        self._alarm = alarm
        self._loop = loop
        self._listener = listener
        self._on_terminate = on_terminate
        self._display_listeners: list[DisplayListener] = []
        self._pending_welcome: ScheduledCall | None = None

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def language(self) -> Language:
        return self.state.language

    def attach_listener(self, listener: VoiceCommandListener) -> None:
        self._listener = listener

    def add_display_listener(self, listener: DisplayListener) -> None:
        self._display_listeners.append(listener)

    def display(self) -> DisplayState:
        return display_state(self.state.mode, self.state.language)

    def welcome(self) -> None:
        """Speak the welcome message and open the first listen cycle."""

        self.state.started = True
        self._announce(Phrase.WELCOME)
        self._notify_display()
        if self.state.mode is not Mode.EMERGENCY and self._listener is not None:
            self._listener.schedule(self.config.after_welcome_listen_ms)

    def handle_command(self, transcript: str) -> Transition:
        command = parse_command(transcript)
        transition = self.dispatch(_COMMAND_EVENTS[command.kind], language=command.language)
        if transition.action in (ModeAction.EXIT_EMERGENCY, ModeAction.REQUEST_TERMINATE):
            return transition
        if self.state.mode is not Mode.EMERGENCY and self._listener is not None:
            self._listener.schedule(self.config.after_command_delay_ms)
        return transition

    def trigger_emergency(self, source: EmergencySource) -> Transition:
        event = {
            EmergencySource.VOICE: ModeEvent.EMERGENCY_VOICE,
            EmergencySource.SENSOR: ModeEvent.EMERGENCY_SENSOR,
            EmergencySource.BUTTON: ModeEvent.SOS_BUTTON,
        }[source]
        return self.dispatch(event)

    def stop_emergency(self) -> Transition:
        return self.dispatch(ModeEvent.STOP_EMERGENCY)

    def dispatch(self, event: ModeEvent, *, language: Language | None = None) -> Transition:
        previous = self.state.mode
        transition = plan_transition(previous, event)
        action = transition.action
        logger.debug("[MODE] %s in %s -> %s", event.value, previous.value, action.value)
        if action not in (ModeAction.IGNORE, ModeAction.NOT_UNDERSTOOD):
            self._cancel_pending_welcome()

        if action is ModeAction.BIND_PIPELINE:
            self._arbiter.stop_all()
            self._pipelines.bind(transition.next_mode)
            self._set_mode(transition.next_mode, reason=event.value)
            self._announce(_START_PHRASES[transition.next_mode])
        elif action is ModeAction.RETURN_HOME:
            self._arbiter.stop_all()
            self._pipelines.unbind()
            self._set_mode(Mode.HOME, reason=event.value)
            self._announce(Phrase.HOME_RETURNED)
            if event is ModeEvent.HOME_BUTTON:
                self._pending_welcome = self._post_delayed(
                    self.config.home_rewelcome_delay_ms, self._rewelcome
                )
        elif action is ModeAction.ENTER_EMERGENCY:
            self._enter_emergency(_EVENT_SOURCES[event], event)
        elif action is ModeAction.REASSERT_EMERGENCY:
            source = _EVENT_SOURCES[event]
            if source is self.state.emergency_source:
                logger.info("[MODE] Emergency already active from %s", source.value)
            else:
                self.state.emergency_source = source
                logger.info("[MODE] Emergency reasserted by %s", source.value)
                self._announce(Phrase.EMERGENCY_ACTIVATED)
        elif action is ModeAction.EXIT_EMERGENCY:
            self._exit_emergency(event)
        elif action is ModeAction.REQUEST_TERMINATE:
            self._announce(Phrase.STOPPING)
            self.state.terminate_requested = True
            logger.info("[MODE] Terminate requested")
            if self._on_terminate is not None:
                self._on_terminate()
        elif action is ModeAction.CHANGE_LANGUAGE:
            self._change_language(language)
        elif action is ModeAction.NOT_UNDERSTOOD:
            self._announce(Phrase.NOT_UNDERSTOOD)
        else:
            logger.debug("[MODE] Ignoring %s while in %s", event.value, previous.value)
        return transition

    def _enter_emergency(self, source: EmergencySource, event: ModeEvent) -> None:
        # The only stop_all on this path; entering emergency skips the regular exit stop.
        self._arbiter.stop_all()
        self._pipelines.unbind()
        if self._listener is not None:
            self._listener.stop()
        try:
            self._alarm.start()
        except Exception as exc:
            logger.error("[EMERGENCY] Failed to start alarm: %s", exc)
        self.state.emergency_source = source
        self._set_mode(Mode.EMERGENCY, reason=event.value)
        self._announce(Phrase.EMERGENCY_ACTIVATED)

    def _exit_emergency(self, event: ModeEvent) -> None:
        try:
            self._alarm.stop()
        except Exception as exc:
            logger.error("[EMERGENCY] Failed to stop alarm: %s", exc)
        self.state.emergency_source = None
        self._set_mode(Mode.HOME, reason=event.value)
        self._announce(Phrase.EMERGENCY_DEACTIVATED)
        if self._listener is not None:
            self._listener.schedule(self.config.after_emergency_delay_ms)

    def _change_language(self, language: Language | None) -> None:
        if language is None:
            self._announce(Phrase.NOT_UNDERSTOOD)
            return
        self.state.language = language
        self._pipelines.reset_text_window()
        logger.info("[MODE] Language changed to %s", language.value)
        self._announce(Phrase.LANGUAGE_CHANGED)
        self._notify_display()

    def _set_mode(self, mode: Mode, *, reason: str) -> None:
        previous = self.state.mode
        self.state.mode = mode
        if previous is not mode:
            log_mode_transition(previous, mode, reason=reason)
        self._notify_display()

    def _announce(self, phrase: Phrase) -> None:
        language = self.state.language
        self._arbiter.say(render(phrase, language), language, SpeechPriority.FLUSH)

    def _rewelcome(self) -> None:
        self._pending_welcome = None
        if self.state.mode is not Mode.HOME:
            logger.debug("[MODE] Skipping welcome; mode is %s", self.state.mode.value)
            return
        self.welcome()

    def _cancel_pending_welcome(self) -> None:
        if self._pending_welcome is not None:
            self._pending_welcome.cancel()
            self._pending_welcome = None

    def _post_delayed(
        self, delay_ms: int, callback: Callable[[], None]
    ) -> ScheduledCall | None:
        if self._loop is None:
            callback()
            return None
        try:
            return self._loop.post_delayed(
                delay_ms, callback, name=getattr(callback, "__name__", "")
            )
        except RuntimeError:
            logger.debug("[MODE] Loop stopped; delayed call dropped")
            return None

    def _notify_display(self) -> None:
        payload = self.display()
        for listener in list(self._display_listeners):
            try:
                listener(payload)
            except Exception:
                logger.exception("[MODE] Display listener failed")
