"""Camera controller that captures frames and hands them to the assistant."""

from __future__ import annotations

from dataclasses import dataclass
import threading
import time
from typing import Any, Callable

from config import load_section
from core.logging import logger


def _require_camera_deps() -> Any:
    import importlib
    import importlib.util

    if importlib.util.find_spec("cv2") is None:
        raise RuntimeError("opencv-python is required for CameraController")
    return importlib.import_module("cv2")


def millis() -> int:
    return int(time.monotonic() * 1000)


@dataclass(frozen=True)
class CameraConfig:
    device_index: int = 0
    frame_period_ms: int = 100

    @classmethod
    def from_config(cls) -> "CameraConfig":
        section = load_section("camera")
        defaults = cls()
        return cls(
            device_index=int(section.get("device_index", defaults.device_index)),
            frame_period_ms=int(section.get("frame_period_ms", defaults.frame_period_ms)),
        )


FrameHandler = Callable[[Any, int], Any]


class CameraController:
    """Singleton controller for camera capture and the frame loop."""

    _instance: "CameraController | None" = None

    def __init__(self, config: CameraConfig | None = None) -> None:
        if CameraController._instance is not None:
            raise RuntimeError("You cannot create another CameraController class")

        self._cv2 = _require_camera_deps()
        self.config = config or CameraConfig.from_config()
        self._capture: Any = None
        self._frame_handler: FrameHandler | None = None
        self._vision_loop_thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self.vision_loop_index = 0
        self.last_image: Any = None
        CameraController._instance = self

    @classmethod
    def get_instance(cls) -> "CameraController":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def set_frame_handler(self, handler: FrameHandler | None) -> None:
        self._frame_handler = handler

    def open(self) -> None:
        if self._capture is not None:
            return
        capture = self._cv2.VideoCapture(self.config.device_index)
        if not capture.isOpened():
            capture.release()
            raise RuntimeError(f"Camera {self.config.device_index} could not be opened")
        self._capture = capture
        logger.info("[CAMERA] Opened device %s", self.config.device_index)

    def take_image(self) -> Any:
        """Capture one RGB frame, or None when the read fails."""

        if self._capture is None:
            self.open()
        ok, frame = self._capture.read()
        if not ok or frame is None:
            return None
        return self._cv2.cvtColor(frame, self._cv2.COLOR_BGR2RGB)

    def start_vision_loop(self, frame_period_ms: int | None = None) -> None:
        if self._vision_loop_thread is None or not self._vision_loop_thread.is_alive():
            self.open()
            period = self.config.frame_period_ms if frame_period_ms is None else frame_period_ms
            self._stop_event.clear()
            self._vision_loop_thread = threading.Thread(
                target=self._vision_loop,
                args=(max(1, int(period)),),
                name="camera",
                daemon=True,
            )
            self._vision_loop_thread.start()

    def stop_vision_loop(self) -> None:
        if self._vision_loop_thread is not None:
            self._stop_event.set()
            self._vision_loop_thread.join(timeout=2.0)
            if self._vision_loop_thread.is_alive():
                logger.warning("[CAMERA] Control loop did not stop within timeout")
                return
            self._vision_loop_thread = None
            logger.info("[CAMERA] Control loop stopped at index: %s", self.vision_loop_index)
            self.vision_loop_index = 0

    def close(self) -> None:
        self.stop_vision_loop()
        if self._capture is not None:
            self._capture.release()
            self._capture = None

    def _vision_loop(self, period_ms: int) -> None:
        next_frame_time = millis()
        while not self._stop_event.is_set():
            current_time = millis()
            if current_time < next_frame_time:
                time.sleep(min(0.01, (next_frame_time - current_time) / 1000.0))
                continue
            next_frame_time = current_time + period_ms
            self.vision_loop_index += 1
            try:
                image = self.take_image()
                if image is None:
                    logger.warning("[CAMERA] Frame read failed")
                    continue
                self.last_image = image
                handler = self._frame_handler
                if handler is not None:
                    handler(image, current_time)
            except Exception as exc:
                logger.error("[CAMERA] Vision loop error: %s", exc)
