"""Object detector backed by an ultralytics YOLO model."""

from __future__ import annotations

import importlib
import importlib.util
from typing import Any

from config import load_section
from vision.detections import Detection, DetectionBatch


def _require_ultralytics() -> Any:
    if importlib.util.find_spec("ultralytics") is None:
        raise RuntimeError("ultralytics is required for YoloDetector")
    return importlib.import_module("ultralytics")


class YoloDetector:
    """Run YOLO on one frame and return normalized ``(left, top, right, bottom)`` boxes."""

    def __init__(self, model_path: str | None = None) -> None:
        ultralytics = _require_ultralytics()
        if model_path is None:
            model_path = str(load_section("camera").get("detector_model", "yolov8n.pt"))
        self._model = ultralytics.YOLO(model_path)

    def detect(self, image: Any) -> DetectionBatch:
        results = self._model(image, verbose=False)
        detections: list[Detection] = []
        frame_height, frame_width = 1, 1
        for result in results:
            orig_shape = getattr(result, "orig_shape", None)
            if orig_shape is not None:
                frame_height, frame_width = int(orig_shape[0]), int(orig_shape[1])
            names = result.names
            for box in result.boxes:
                left, top, right, bottom = (float(v) for v in box.xyxyn[0].tolist())
                label = str(names[int(box.cls[0])])
                detections.append(
                    Detection(label=label, confidence=float(box.conf[0]), box=(left, top, right, bottom))
                )
        return DetectionBatch(
            detections=tuple(detections),
            frame_width=frame_width,
            frame_height=frame_height,
            normalized=True,
        )
