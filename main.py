"""Command-line entry point for the visual assistant runtime."""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import sys
import time

from config import ConfigController
from core.app import AssistantConfig, VisualAssistant
from core.logging import enable_file_logging, logger, set_level
from interaction.state import Language


SHUTDOWN_GRACE_S = 2.0


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Raw command-line arguments.

    Returns:
        Parsed arguments namespace.
    """

    parser = argparse.ArgumentParser(
        description="Run the camera-to-speech visual assistant."
    )
    parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Run diagnostics probes and exit.",
    )
    parser.add_argument(
        "--language",
        type=str,
        choices=[language.value for language in Language],
        help="Override the announcement language for this session.",
    )
    parser.add_argument(
        "--camera-index",
        type=int,
        help="Override the camera device index.",
    )
    return parser.parse_args(argv)


def build_assistant(args: argparse.Namespace) -> tuple[VisualAssistant, object | None]:
    """Create the assistant with every engine adapter that can be loaded."""

    config = ConfigController.get_instance().get_config()
    speech_cfg = config.get("speech") or {}
    rate = float(speech_cfg.get("rate", 0.9))

    voices = {}
    try:
        from engines.pyttsx3_voice import Pyttsx3Speaker

        speaker = Pyttsx3Speaker(rate=rate)
        for language in Language:
            voices[language] = speaker.voice(language)
    except RuntimeError as exc:
        logger.warning("Voice output unavailable: %s", exc)

    stt = None
    try:
        from engines.speech_recognition_listener import SpeechRecognitionListener

        stt = SpeechRecognitionListener()
    except RuntimeError as exc:
        logger.warning("Voice commands unavailable: %s", exc)

    detector = None
    try:
        from engines.yolo_detector import YoloDetector

        detector = YoloDetector()
    except RuntimeError as exc:
        logger.warning("Object detection unavailable: %s", exc)

    text_engine = None
    try:
        from engines.tesseract_ocr import TesseractTextEngine
        from vision.pipelines import PipelineConfig

        text_engine = TesseractTextEngine(timeout_ms=PipelineConfig.from_config().text_timeout_ms)
    except RuntimeError as exc:
        logger.warning("Text recognition unavailable: %s", exc)

    motion_sensor = None
    try:
        from hardware.accelerometer import ICM20948Accelerometer, MotionSensorConfig

        sensor_config = MotionSensorConfig.from_config()
        if sensor_config.enabled:
            motion_sensor = ICM20948Accelerometer(config=sensor_config)
        else:
            logger.info("Motion sensor disabled in config")
    except RuntimeError as exc:
        logger.warning("Motion sensor unavailable: %s", exc)

    siren = None
    try:
        from interaction.siren import SirenPlayer

        siren = SirenPlayer()
    except RuntimeError as exc:
        logger.warning("Siren unavailable: %s", exc)

    assistant_config = AssistantConfig.from_config()
    if args.language:
        assistant_config = replace(assistant_config, language=args.language)

    assistant = VisualAssistant(
        voices=voices,
        stt=stt,
        detector=detector,
        text_engine=text_engine,
        siren=siren,
        motion_sensor=motion_sensor,
        config=assistant_config,
    )

    camera = None
    try:
        from hardware.camera_controller import CameraConfig, CameraController

        camera_config = CameraConfig.from_config()
        if args.camera_index is not None:
            camera_config = replace(camera_config, device_index=args.camera_index)
        camera = CameraController(config=camera_config)
        camera.set_frame_handler(assistant.on_frame)
    except RuntimeError as exc:
        logger.warning("Camera controller unavailable: %s", exc)
    return assistant, camera


def run_diagnostics_cli() -> int:
    from diagnostics.run import default_probes
    from diagnostics.runner import format_results, has_failures, run_diagnostics

    results = run_diagnostics(default_probes())
    print(format_results(results))
    return 1 if has_failures(results) else 0


def main(argv: list[str] | None = None) -> int:
    """Application entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Process exit code.
    """

    if argv is None:
        argv = sys.argv[1:]

    args = parse_args(argv)
    if args.diagnostics:
        return run_diagnostics_cli()

    config = ConfigController.get_instance().get_config()
    set_level(config.get("logging_level", "INFO"))
    if config.get("file_logging_enabled", False):
        log_file_path = Path(str(config.get("log_file", "~/.visual_assistant/assistant.log")))
        enable_file_logging(log_file_path)
        logger.info("Writing logs to %s", log_file_path.expanduser())

    assistant, camera = build_assistant(args)
    try:
        assistant.start()
        if camera is not None:
            logger.info("Starting camera loop...")
            camera.start_vision_loop()
        while not assistant.terminate_requested.wait(timeout=0.5):
            pass
        logger.info("Terminate requested by voice command")
        # Let the goodbye announcement play out.
        time.sleep(SHUTDOWN_GRACE_S)
    except KeyboardInterrupt:
        logger.info("Program terminated by user")
    except Exception as exc:
        logger.exception("An unexpected error occurred: %s", exc)
        return 1
    finally:
        if camera is not None:
            camera.close()
        assistant.shutdown()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
