"""Tesseract OCR engine for the primary (Latin) and secondary (Devanagari) scripts."""

from __future__ import annotations

import importlib
import importlib.util
from typing import Any

from vision.text_race import ScriptEngine


SCRIPT_LANGUAGES = {
    ScriptEngine.PRIMARY_SCRIPT: "eng",
    ScriptEngine.SECONDARY_SCRIPT: "hin+mar",
}


def _require_pytesseract() -> Any:
    if importlib.util.find_spec("pytesseract") is None:
        raise RuntimeError("pytesseract is required for TesseractTextEngine")
    return importlib.import_module("pytesseract")


class TesseractTextEngine:
    def __init__(
        self,
        config: str = "--oem 3 --psm 6",
        languages: dict[ScriptEngine, str] | None = None,
        timeout_ms: int = 3000,
    ) -> None:
        self._pytesseract = _require_pytesseract()
        self._config = config
        self._languages = dict(languages or SCRIPT_LANGUAGES)
        self._timeout_s = max(0, timeout_ms) / 1000.0

    def recognize_text(self, image: Any, engine_kind: ScriptEngine) -> str:
        # pytesseract kills the tesseract process and raises RuntimeError past the timeout.
        text = self._pytesseract.image_to_string(
            image,
            lang=self._languages[engine_kind],
            config=self._config,
            timeout=self._timeout_s,
        )
        return " ".join(str(text).split())
