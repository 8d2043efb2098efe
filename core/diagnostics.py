"""Diagnostics routines for the core subsystem."""

from __future__ import annotations

import importlib.util
import threading

from diagnostics.models import DiagnosticResult, DiagnosticStatus


def probe(timeout_s: float = 1.0) -> DiagnosticResult:
    """Check logging and run one posted call through a coordination loop.

    Returns:
        Diagnostic result indicating core readiness.
    """

    name = "core"
    from core import logging as core_logging
    from core.coordinator import CoordinationLoop

    if core_logging.logger is None:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details="Core logger failed to initialize",
        )

    loop = CoordinationLoop(name="diagnostics-loop")
    done = threading.Event()
    loop.start()
    try:
        loop.post(done.set)
        completed = done.wait(timeout_s)
    finally:
        loop.stop()

    if not completed:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Coordination loop did not run a posted call within {timeout_s:.1f}s",
        )

    rich_available = importlib.util.find_spec("rich") is not None
    logging_details = "Rich logging enabled" if rich_available else "Rich logging not available (fallback)"
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"Coordination loop round trip ok; {logging_details}",
    )
