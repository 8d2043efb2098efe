"""Diagnostics routines for the recognition engines."""

from __future__ import annotations

import importlib.util
from typing import Any, Callable

from diagnostics.models import DiagnosticResult, DiagnosticStatus


ENGINE_MODULES = {
    "pytesseract": "text recognition",
    "ultralytics": "object detection",
    "cv2": "camera capture",
}


def probe(find_spec: Callable[[str], Any] | None = None) -> DiagnosticResult:
    """Report which recognition engine libraries are importable."""

    name = "vision"
    lookup = find_spec or importlib.util.find_spec
    missing = [module for module in ENGINE_MODULES if lookup(module) is None]
    if len(missing) == len(ENGINE_MODULES):
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            details="No recognition engines installed; pipelines will stay idle",
            hint="pip install '.[engines]'",
        )
    if missing:
        features = ", ".join(ENGINE_MODULES[module] for module in missing)
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            details=f"Missing engine modules: {', '.join(missing)} ({features} disabled)",
            hint="pip install '.[engines]'",
        )
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details="Detector, OCR and camera libraries available",
    )
