"""Haptic output interface and a log-only implementation for hosts without a motor."""

from __future__ import annotations

from typing import Protocol, Sequence

from core.logging import logger


class HapticOutput(Protocol):
    def vibrate(self, duration_ms: int) -> None:
        ...

    def start_pattern(self, pattern_ms: Sequence[int]) -> None:
        ...

    def cancel(self) -> None:
        ...


class LoggingHaptics:
    """Record haptic requests in the log instead of driving a motor."""

    def __init__(self) -> None:
        self.pattern_active = False

    def vibrate(self, duration_ms: int) -> None:
        logger.debug("[HAPTIC] pulse %sms", duration_ms)

    def start_pattern(self, pattern_ms: Sequence[int]) -> None:
        self.pattern_active = True
        logger.info("[HAPTIC] repeating pattern %s", list(pattern_ms))

    def cancel(self) -> None:
        if self.pattern_active:
            logger.info("[HAPTIC] pattern cancelled")
        self.pattern_active = False
