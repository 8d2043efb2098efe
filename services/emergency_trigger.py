"""Shake detection that forces the emergency mode."""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Callable, Protocol

from config import load_section
from core.logging import logger
from interaction.state import Mode


@dataclass(frozen=True)
class MotionSample:
    """Accelerometer reading in m/s^2 with a millisecond timestamp."""

    x: float
    y: float
    z: float
    timestamp_ms: int


class MotionSensor(Protocol):
    def register(self, callback: Callable[[MotionSample], None]) -> None:
        ...

    def unregister(self) -> None:
        ...


@dataclass(frozen=True)
class EmergencyTriggerConfig:
    jerk_threshold: float = 500.0
    jerk_scale: float = 10000.0
    refractory_ms: int = 50000

    @classmethod
    def from_config(cls) -> "EmergencyTriggerConfig":
        section = load_section("emergency")
        defaults = cls()
        return cls(
            jerk_threshold=float(section.get("jerk_threshold", defaults.jerk_threshold)),
            jerk_scale=float(section.get("jerk_scale", defaults.jerk_scale)),
            refractory_ms=int(section.get("refractory_ms", defaults.refractory_ms)),
        )


def compute_jerk(previous: MotionSample, current: MotionSample, scale: float = 10000.0) -> float:
    """Return ``|dx + dy + dz| / dt_ms * scale``; zero when time did not advance."""

    elapsed_ms = current.timestamp_ms - previous.timestamp_ms
    if elapsed_ms <= 0:
        return 0.0
    delta = (current.x - previous.x) + (current.y - previous.y) + (current.z - previous.z)
    return abs(delta) / elapsed_ms * scale


class EmergencyTrigger:
    """Watch the motion stream and request an emergency on a violent shake.

    Only the last accepted sample is kept. Samples that arrive within the
    refractory window of the last accepted one are ignored entirely.
    """

    def __init__(
        self,
        on_trigger: Callable[[], None],
        mode_provider: Callable[[], Mode],
        *,
        sensor: MotionSensor | None = None,
        on_unavailable: Callable[[], None] | None = None,
        config: EmergencyTriggerConfig | None = None,
    ) -> None:
        self.config = config or EmergencyTriggerConfig.from_config()
        self._on_trigger = on_trigger
        self._mode_provider = mode_provider
        self._sensor = sensor
        self._on_unavailable = on_unavailable
        self._previous: MotionSample | None = None
        self._registered = False
        self._unavailable_reported = False
        self._lock = threading.Lock()

    @property
    def registered(self) -> bool:
        return self._registered

    @property
    def previous_sample(self) -> MotionSample | None:
        return self._previous

    def register(self) -> bool:
        """Subscribe to the motion sensor; report its absence once."""

        if self._registered:
            return True
        if self._sensor is None:
            self._report_unavailable("no motion sensor configured")
            return False
        try:
            self._sensor.register(self.on_motion_sample)
        except Exception as exc:
            self._report_unavailable(str(exc))
            return False
        self._registered = True
        logger.info("[EMERGENCY] Motion sensor registered")
        return True

    def unregister(self) -> None:
        if not self._registered or self._sensor is None:
            return
        try:
            self._sensor.unregister()
        except Exception as exc:
            logger.error("[EMERGENCY] Failed to unregister motion sensor: %s", exc)
        self._registered = False

    def on_motion_sample(self, sample: MotionSample) -> bool:
        """Process one sample; return True when an emergency was requested."""

        with self._lock:
            previous = self._previous
            if previous is None:
                self._previous = sample
                return False
            if (sample.timestamp_ms - previous.timestamp_ms) <= self.config.refractory_ms:
                return False
            jerk = compute_jerk(previous, sample, self.config.jerk_scale)
            self._previous = sample

        if jerk <= self.config.jerk_threshold:
            return False
        if self._mode_provider() is Mode.EMERGENCY:
            logger.debug("[EMERGENCY] Shake ignored; emergency already active")
            return False
        logger.warning("[EMERGENCY] Shake detected (jerk=%.1f) - activating SOS", jerk)
        try:
            self._on_trigger()
        except Exception:
            logger.exception("[EMERGENCY] Emergency trigger handler failed")
            return False
        return True

    def _report_unavailable(self, reason: str) -> None:
        logger.warning("[EMERGENCY] Motion sensor unavailable: %s", reason)
        if self._unavailable_reported:
            return
        self._unavailable_reported = True
        if self._on_unavailable is not None:
            try:
                self._on_unavailable()
            except Exception:
                logger.exception("[EMERGENCY] Sensor-unavailable handler failed")
