"""Diagnostics routines for the configuration subsystem."""

from __future__ import annotations

from pathlib import Path

import yaml

from config.controller import SUPPORTED_LANGUAGES
from diagnostics.models import DiagnosticResult, DiagnosticStatus


def probe(base_dir: Path | None = None) -> DiagnosticResult:
    """Validate that the default config exists, parses, and names a known language.

    Args:
        base_dir: Optional base directory for offline testing.

    Returns:
        Diagnostic result indicating config readiness.
    """

    name = "config"
    root_dir = base_dir if base_dir is not None else Path.cwd()
    config_dir = root_dir / "config"
    default_config = config_dir / "default.yaml"
    override_config = config_dir / "override.yaml"

    if not config_dir.exists():
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Config directory missing at {config_dir}",
        )
    if not default_config.exists():
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Missing default config at {default_config}",
        )

    try:
        loaded = [yaml.safe_load(default_config.read_text(encoding="utf-8")) or {}]
        if override_config.exists():
            loaded.append(yaml.safe_load(override_config.read_text(encoding="utf-8")) or {})
    except (OSError, yaml.YAMLError) as exc:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Config unreadable: {exc}",
        )

    if not all(isinstance(item, dict) for item in loaded):
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details="Config files must contain a mapping at the top level",
        )

    language = str(loaded[-1].get("language", loaded[0].get("language", "english"))).lower()
    if language not in SUPPORTED_LANGUAGES:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            details=f"Unsupported language '{language}', English will be used",
            hint=f"Pick one of: {', '.join(SUPPORTED_LANGUAGES)}",
        )

    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"Config files readable at {config_dir} (language={language})",
    )
