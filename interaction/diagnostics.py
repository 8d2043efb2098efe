"""Diagnostics routines for the speech, listening and siren libraries."""

from __future__ import annotations

import importlib.util
from typing import Any, Callable

from diagnostics.models import DiagnosticResult, DiagnosticStatus


REQUIRED_MODULES = ("numpy",)
OPTIONAL_MODULES = {
    "pyttsx3": "text-to-speech voices",
    "speech_recognition": "voice command listening",
    "pyaudio": "siren playback and microphone capture",
}


def probe(find_spec: Callable[[str], Any] | None = None) -> DiagnosticResult:
    """Report which interaction libraries can be imported.

    Args:
        find_spec: Optional module lookup used for offline testing.

    Returns:
        Diagnostic result indicating interaction readiness.
    """

    name = "interaction"
    lookup = find_spec or importlib.util.find_spec

    missing_required = [module for module in REQUIRED_MODULES if lookup(module) is None]
    if missing_required:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Missing required modules: {', '.join(missing_required)}",
            hint="pip install numpy",
        )

    missing_optional = [module for module in OPTIONAL_MODULES if lookup(module) is None]
    if missing_optional:
        features = ", ".join(OPTIONAL_MODULES[module] for module in missing_optional)
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            details=f"Missing optional modules: {', '.join(missing_optional)} ({features} disabled)",
            hint="pip install '.[audio,engines]'",
        )

    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details="Speech, listening and siren libraries available",
    )
