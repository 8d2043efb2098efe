"""Vision package exports."""

from vision.aggregator import AggregatorConfig, DetectionAggregator
from vision.detections import AggregationResult, Detection, DetectionBatch, OverlayItem
from vision.pipelines import PipelineConfig, PipelineManager
from vision.text_race import DualEngineRace, RaceOutcome, RecognizedText, ScriptEngine

__all__ = [
    "AggregationResult",
    "AggregatorConfig",
    "Detection",
    "DetectionAggregator",
    "DetectionBatch",
    "DualEngineRace",
    "OverlayItem",
    "PipelineConfig",
    "PipelineManager",
    "RaceOutcome",
    "RecognizedText",
    "ScriptEngine",
]
