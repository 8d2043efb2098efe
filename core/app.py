"""Assistant runtime: wires every component around one coordination loop."""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Any, Callable, Mapping

from config import load_section, load_value
from core.coordinator import CoordinationLoop
from core.logging import log_info, logger
from interaction.haptics import HapticOutput, LoggingHaptics
from interaction.languages import Phrase, render
from interaction.listener import SpeechToText, VoiceCommandListener
from interaction.speech import SpeechArbiter, SpeechPriority, VoiceEngine
from interaction.state import AssistantState, DisplayState, EmergencySource, Language, Mode
from services.alarm import EmergencyAlarm, SirenOutput
from services.emergency_trigger import EmergencyTrigger, MotionSample, MotionSensor
from services.mode_controller import ModeController, ModeEvent
from vision.detections import OverlayItem
from vision.pipelines import Detector, PipelineConfig, PipelineManager
from vision.text_race import DualEngineRace, TextEngine


@dataclass(frozen=True)
class AssistantConfig:
    """Startup configuration for the assistant runtime."""

    language: str = "english"
    welcome_delay_ms: int = 1000

    @classmethod
    def from_config(cls) -> "AssistantConfig":
        listening = load_section("listening")
        defaults = cls()
        return cls(
            language=str(load_value("language", defaults.language)),
            welcome_delay_ms=int(listening.get("welcome_delay_ms", defaults.welcome_delay_ms)),
        )


class VisualAssistant:
    """Own the assistant state and the collaborators that act on it.

    Host shells feed frames, motion samples and button presses in from any
    thread; anything that touches mode or language is posted to the loop.
    """

    def __init__(
        self,
        *,
        voices: Mapping[Language, VoiceEngine],
        stt: SpeechToText | None = None,
        detector: Detector | None = None,
        text_engine: TextEngine | None = None,
        motion_sensor: MotionSensor | None = None,
        haptics: HapticOutput | None = None,
        siren: SirenOutput | None = None,
        loop: CoordinationLoop | None = None,
        clock_ms: Callable[[], int] | None = None,
        config: AssistantConfig | None = None,
        pipeline_config: PipelineConfig | None = None,
    ) -> None:
        self.config = config or AssistantConfig.from_config()
        self.loop = loop or CoordinationLoop()
        self.state = AssistantState(language=Language.from_name(self.config.language))
        self.terminate_requested = threading.Event()
        self.haptics = haptics or LoggingHaptics()
        self.arbiter = SpeechArbiter(voices)

        pipeline_config = pipeline_config or PipelineConfig.from_config()
        race = (
            DualEngineRace(text_engine, pipeline_config.text_timeout_ms)
            if text_engine is not None
            else None
        )
        self.pipelines = PipelineManager(
            self.loop,
            self.arbiter,
            detector=detector,
            text_race=race,
            mode_provider=self.get_mode,
            language_provider=self.get_language,
            config=pipeline_config,
            clock_ms=clock_ms,
        )
        self.alarm = EmergencyAlarm(siren, self.haptics)
        self.controller = ModeController(
            self.state,
            self.arbiter,
            self.pipelines,
            self.alarm,
            loop=self.loop,
            on_terminate=self.terminate_requested.set,
        )
        self.listener: VoiceCommandListener | None = None
        if stt is not None:
            self.listener = VoiceCommandListener(
                self.loop,
                stt,
                is_speaking=self.arbiter.is_speaking,
                mode_provider=self.get_mode,
                language_provider=self.get_language,
                on_command=self.controller.handle_command,
                haptics=self.haptics,
            )
            self.controller.attach_listener(self.listener)
        else:
            logger.warning("[APP] No speech-to-text engine; voice commands disabled")

        self.trigger = EmergencyTrigger(
            self._on_shake,
            self.get_mode,
            sensor=motion_sensor,
            on_unavailable=self._on_sensor_unavailable,
        )
        self._sensor_notice_pending = False
        self._started = False
        self._stopped = False

    def start(self, *, run_loop: bool = True) -> None:
        """Register the sensor and schedule the welcome and first listen cycle."""

        if self._started:
            return
        self._started = True
        if run_loop:
            self.loop.start()
        self.trigger.register()
        self.loop.post_delayed(self.config.welcome_delay_ms, self._welcome, name="welcome")
        log_info(f"[APP] Visual assistant started (language={self.state.language.value})")

    def pause(self) -> None:
        self.trigger.unregister()
        if self.listener is not None:
            self._run_on_loop(self.listener.pause)

    def resume(self) -> None:
        self.trigger.register()
        if self.listener is not None:
            self._run_on_loop(self.listener.resume)

    def shutdown(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self.trigger.unregister()
        if self.listener is not None:
            self.listener.stop()
        self.alarm.stop()
        self.arbiter.shutdown()
        self.pipelines.shutdown()
        self.loop.stop()
        logger.info("[APP] Visual assistant shut down")

    def on_frame(self, image: Any, now_ms: int | None = None) -> bool:
        return self.pipelines.on_frame(image, now_ms)

    def on_motion_sample(self, sample: MotionSample) -> bool:
        return self.trigger.on_motion_sample(sample)

    def press_home_button(self) -> None:
        self._run_on_loop(lambda: self.controller.dispatch(ModeEvent.HOME_BUTTON))

    def press_sos_button(self) -> None:
        self._run_on_loop(lambda: self.controller.dispatch(ModeEvent.SOS_BUTTON))

    def get_mode(self) -> Mode:
        return self.state.mode

    def get_language(self) -> Language:
        return self.state.language

    def get_overlay(self) -> tuple[OverlayItem, ...]:
        return self.pipelines.overlay

    def get_display_state(self) -> DisplayState:
        return self.controller.display()

    def add_overlay_listener(self, listener: Callable[[tuple[OverlayItem, ...]], None]) -> None:
        self.pipelines.add_overlay_listener(listener)

    def add_text_listener(self, listener: Callable[["str | None"], None]) -> None:
        self.pipelines.add_text_listener(listener)

    def add_display_listener(self, listener: Callable[[DisplayState], None]) -> None:
        self.controller.add_display_listener(listener)

    def _welcome(self) -> None:
        self.controller.welcome()
        if self._sensor_notice_pending:
            self._sensor_notice_pending = False
            self._speak_sensor_notice()

    def _on_shake(self) -> None:
        self._run_on_loop(lambda: self.controller.trigger_emergency(EmergencySource.SENSOR))

    def _on_sensor_unavailable(self) -> None:
        if not self.state.started:
            self._sensor_notice_pending = True
            return
        self._run_on_loop(self._speak_sensor_notice)

    def _speak_sensor_notice(self) -> None:
        language = self.state.language
        self.arbiter.say(render(Phrase.SENSOR_UNAVAILABLE, language), language, SpeechPriority.ENQUEUE)

    def _run_on_loop(self, callback: Callable[[], Any]) -> None:
        if self.loop.is_coordination_thread():
            callback()
            return
        try:
            self.loop.post(callback)
        except RuntimeError:
            logger.debug("[APP] Loop stopped; dropping request")
