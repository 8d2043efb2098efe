"""Adapters that bind the assistant to concrete speech, OCR and detection libraries.

Each adapter imports its library lazily and raises ``RuntimeError`` when the
library is not installed.
"""

__all__ = [
    "Pyttsx3Speaker",
    "Pyttsx3VoiceEngine",
    "SpeechRecognitionListener",
    "TesseractTextEngine",
    "YoloDetector",
]


def __getattr__(name: str):
    if name == "Pyttsx3Speaker":
        from engines.pyttsx3_voice import Pyttsx3Speaker

        return Pyttsx3Speaker
    if name == "Pyttsx3VoiceEngine":
        from engines.pyttsx3_voice import Pyttsx3VoiceEngine

        return Pyttsx3VoiceEngine
    if name == "SpeechRecognitionListener":
        from engines.speech_recognition_listener import SpeechRecognitionListener

        return SpeechRecognitionListener
    if name == "TesseractTextEngine":
        from engines.tesseract_ocr import TesseractTextEngine

        return TesseractTextEngine
    if name == "YoloDetector":
        from engines.yolo_detector import YoloDetector

        return YoloDetector
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
