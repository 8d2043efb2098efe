"""Detection schemas shared by the detector, aggregator and overlay.

Bounding boxes are ``(left, top, right, bottom)``. A :class:`DetectionBatch`
either carries boxes already normalized to ``[0.0, 1.0]`` or pixel boxes plus
the frame dimensions needed to normalize them.
"""

from __future__ import annotations

from dataclasses import dataclass, field


Box = tuple[float, float, float, float]


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class Detection:
    """Single object detection result."""

    label: str
    confidence: float
    box: Box

    @property
    def width(self) -> float:
        return max(0.0, self.box[2] - self.box[0])

    @property
    def height(self) -> float:
        return max(0.0, self.box[3] - self.box[1])

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def center_x(self) -> float:
        return (self.box[0] + self.box[2]) / 2.0


@dataclass(frozen=True)
class DetectionBatch:
    """Ordered detections for one analyzed frame."""

    detections: tuple[Detection, ...] = ()
    frame_width: int = 1
    frame_height: int = 1
    normalized: bool = True
    timestamp_ms: int = 0

    def normalized_detections(self) -> list[Detection]:
        """Return detections with boxes expressed as fractions of the frame."""

        if self.normalized:
            return [
                Detection(d.label, d.confidence, tuple(_clamp(v) for v in d.box))  # type: ignore[arg-type]
                for d in self.detections
            ]
        width = float(self.frame_width) if self.frame_width > 0 else 1.0
        height = float(self.frame_height) if self.frame_height > 0 else 1.0
        normalized: list[Detection] = []
        for detection in self.detections:
            left, top, right, bottom = detection.box
            normalized.append(
                Detection(
                    label=detection.label,
                    confidence=detection.confidence,
                    box=(
                        _clamp(left / width),
                        _clamp(top / height),
                        _clamp(right / width),
                        _clamp(bottom / height),
                    ),
                )
            )
        return normalized


@dataclass(frozen=True)
class OverlayItem:
    """One box to draw over the preview for the current frame."""

    box: Box
    label: str
    confidence: float


@dataclass(frozen=True)
class AggregationResult:
    """Overlay for the frame plus the announcement to speak, if any."""

    overlay: tuple[OverlayItem, ...] = field(default_factory=tuple)
    announcement: str | None = None
