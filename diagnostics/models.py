"""Models for diagnostics results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DiagnosticStatus(str, Enum):
    """Status for diagnostics checks."""

    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass(frozen=True)
class DiagnosticResult:
    """Result for a single diagnostic check.

    ``hint`` carries an optional remediation line shown under the result.
    """

    name: str
    status: DiagnosticStatus
    details: str
    hint: str | None = None

    @property
    def failed(self) -> bool:
        return self.status is DiagnosticStatus.FAIL
