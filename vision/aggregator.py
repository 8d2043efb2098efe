"""Turn raw detections into an overlay and a throttled, deduplicated announcement."""

from __future__ import annotations

from dataclasses import dataclass
import math

from config import load_section
from core.logging import logger
from interaction.languages import Phrase, render, render_object_list, render_obstacle
from interaction.state import Language, Mode
from vision.detections import AggregationResult, Detection, DetectionBatch, OverlayItem


@dataclass(frozen=True)
class AggregatorConfig:
    """Thresholds and timing for detection announcements."""

    confidence_threshold: float = 0.45
    speech_interval_ms: int = 3000
    label_cooldown_ms: int = 10000
    obstacle_area_threshold: float = 0.4
    left_boundary: float = 0.4
    right_boundary: float = 0.6
    max_spoken_objects: int = 3
    cooldown_eviction_factor: int = 0

    @classmethod
    def from_config(cls) -> "AggregatorConfig":
        section = load_section("aggregation")
        defaults = cls()
        return cls(
            confidence_threshold=float(section.get("confidence_threshold", defaults.confidence_threshold)),
            speech_interval_ms=int(section.get("speech_interval_ms", defaults.speech_interval_ms)),
            label_cooldown_ms=int(section.get("label_cooldown_ms", defaults.label_cooldown_ms)),
            obstacle_area_threshold=float(
                section.get("obstacle_area_threshold", defaults.obstacle_area_threshold)
            ),
            left_boundary=float(section.get("left_boundary", defaults.left_boundary)),
            right_boundary=float(section.get("right_boundary", defaults.right_boundary)),
            max_spoken_objects=int(section.get("max_spoken_objects", defaults.max_spoken_objects)),
            cooldown_eviction_factor=int(
                section.get("cooldown_eviction_factor", defaults.cooldown_eviction_factor)
            ),
        )


def classify_direction(center_x: float, left_boundary: float = 0.4, right_boundary: float = 0.6) -> str:
    """Map a normalized horizontal center to ``left``, ``front`` or ``right``."""

    if center_x < left_boundary:
        return "left"
    if center_x > right_boundary:
        return "right"
    return "front"


def confidence_percent(confidence: float) -> int:
    return int(math.floor(float(confidence) * 100.0 + 0.5))


class DetectionAggregator:
    """Filter, classify and deduplicate one frame's detections.

    The per-label cooldown map and the speech throttle belong to this object
    and must only be touched from the coordination loop.
    """

    def __init__(self, config: AggregatorConfig | None = None) -> None:
        self.config = config or AggregatorConfig.from_config()
        self._last_announced_ms: dict[str, int] = {}
        self._last_speech_cycle_ms: int | None = None

    def aggregate(
        self,
        batch: DetectionBatch,
        mode: Mode,
        now_ms: int,
        language: Language = Language.ENGLISH,
    ) -> AggregationResult:
        survivors = [
            detection
            for detection in batch.normalized_detections()
            if float(detection.confidence) >= self.config.confidence_threshold
        ]
        overlay = tuple(
            OverlayItem(box=detection.box, label=detection.label, confidence=float(detection.confidence))
            for detection in survivors
        )

        if not self._claim_speech_cycle(now_ms):
            return AggregationResult(overlay=overlay, announcement=None)

        if mode is Mode.NAVIGATION:
            announcement = self._navigation_announcement(survivors, language)
        elif mode is Mode.OBJECT_DETECTION:
            announcement = self._object_announcement(survivors, now_ms, language)
        else:
            announcement = None

        self._evict_stale(now_ms)
        if announcement:
            logger.debug("[AGGREGATOR] %s announcement: %s", mode.value, announcement)
        return AggregationResult(overlay=overlay, announcement=announcement)

    def last_announced_ms(self, label: str) -> int | None:
        return self._last_announced_ms.get(label)

    def reset(self) -> None:
        self._last_announced_ms.clear()
        self._last_speech_cycle_ms = None

    def _claim_speech_cycle(self, now_ms: int) -> bool:
        last = self._last_speech_cycle_ms
        if last is not None and (now_ms - last) < self.config.speech_interval_ms:
            return False
        self._last_speech_cycle_ms = now_ms
        return True

    def _navigation_announcement(self, survivors: list[Detection], language: Language) -> str | None:
        parts: list[str] = []
        spoken: set[str] = set()
        for detection in survivors:
            if detection.label in spoken:
                continue
            if detection.area <= self.config.obstacle_area_threshold:
                continue
            direction = classify_direction(
                detection.center_x,
                self.config.left_boundary,
                self.config.right_boundary,
            )
            parts.append(render_obstacle(detection.label, direction, language))
            spoken.add(detection.label)
        # Silence in navigation means the path is assumed clear.
        return "".join(parts) if parts else None

    def _object_announcement(
        self,
        survivors: list[Detection],
        now_ms: int,
        language: Language,
    ) -> str | None:
        if not survivors:
            return render(Phrase.NO_OBJECT, language)

        entries: list[str] = []
        spoken: set[str] = set()
        for detection in survivors:
            label = detection.label
            if label in spoken:
                continue
            last = self._last_announced_ms.get(label)
            if last is not None and (now_ms - last) < self.config.label_cooldown_ms:
                continue
            entries.append(
                render(
                    Phrase.OBJECT_ENTRY,
                    language,
                    label=label,
                    percent=confidence_percent(detection.confidence),
                )
            )
            self._last_announced_ms[label] = now_ms
            spoken.add(label)

        if not entries:
            return None
        return render_object_list(entries[: max(1, self.config.max_spoken_objects)], language)

    def _evict_stale(self, now_ms: int) -> None:
        factor = self.config.cooldown_eviction_factor
        if factor <= 0:
            return
        horizon = factor * self.config.label_cooldown_ms
        stale = [label for label, ts in self._last_announced_ms.items() if now_ms - ts > horizon]
        for label in stale:
            del self._last_announced_ms[label]
