"""Continuous emergency alarm: looping siren plus a repeating haptic pattern."""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Protocol, Sequence

from config import load_section
from core.logging import log_error, log_info, log_warning, logger
from interaction.haptics import HapticOutput


class SirenOutput(Protocol):
    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


@dataclass(frozen=True)
class AlarmConfig:
    haptic_pattern_ms: tuple[int, ...] = (0, 500, 500)

    @classmethod
    def from_config(cls) -> "AlarmConfig":
        section = load_section("emergency")
        pattern = section.get("haptic_pattern_ms", cls.haptic_pattern_ms)
        try:
            values = tuple(int(value) for value in pattern)
        except (TypeError, ValueError):
            values = cls.haptic_pattern_ms
        return cls(haptic_pattern_ms=values or cls.haptic_pattern_ms)


class EmergencyAlarm:
    """Drive the siren and haptics together; start and stop are idempotent.

    A failure in one output is logged and never blocks the other.
    """

    def __init__(
        self,
        siren: SirenOutput | None,
        haptics: HapticOutput | None,
        config: AlarmConfig | None = None,
    ) -> None:
        self.config = config or AlarmConfig.from_config()
        self._siren = siren
        self._haptics = haptics
        self._active = False
        self._lock = threading.Lock()

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def pattern(self) -> Sequence[int]:
        return self.config.haptic_pattern_ms

    def start(self) -> None:
        with self._lock:
            if self._active:
                return
            self._active = True
        log_warning("[EMERGENCY] Alarm started")
        if self._siren is not None:
            try:
                self._siren.start()
            except Exception as exc:
                log_error(f"[EMERGENCY] Siren failed to start: {exc}")
        if self._haptics is not None:
            try:
                self._haptics.start_pattern(self.config.haptic_pattern_ms)
            except Exception as exc:
                logger.error("[EMERGENCY] Haptic pattern failed to start: %s", exc)

    def stop(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
        if self._siren is not None:
            try:
                self._siren.stop()
            except Exception as exc:
                logger.error("[EMERGENCY] Siren failed to stop: %s", exc)
        if self._haptics is not None:
            try:
                self._haptics.cancel()
            except Exception as exc:
                logger.error("[EMERGENCY] Haptic pattern failed to stop: %s", exc)
        log_info("[EMERGENCY] Alarm stopped", style="bold green")
