"""Tests for config diagnostics."""

from __future__ import annotations

from diagnostics.models import DiagnosticStatus
from config.diagnostics import probe


def _write_config(tmp_path, text: str):
    config_dir = tmp_path / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "default.yaml").write_text(text, encoding="utf-8")
    return config_dir


def test_config_probe_offline(tmp_path) -> None:
    """Config probe should pass with a default config present."""

    _write_config(tmp_path, "{}")

    result = probe(base_dir=tmp_path)
    assert result.status is DiagnosticStatus.PASS


def test_config_probe_missing_directory(tmp_path) -> None:
    result = probe(base_dir=tmp_path)

    assert result.status is DiagnosticStatus.FAIL
    assert "missing" in result.details


def test_config_probe_rejects_non_mapping(tmp_path) -> None:
    _write_config(tmp_path, "- just\n- a list\n")

    assert probe(base_dir=tmp_path).status is DiagnosticStatus.FAIL


def test_config_probe_warns_on_unknown_language(tmp_path) -> None:
    """Override language wins over the default file."""

    config_dir = _write_config(tmp_path, "language: hindi\n")
    (config_dir / "override.yaml").write_text("language: klingon\n", encoding="utf-8")

    result = probe(base_dir=tmp_path)

    assert result.status is DiagnosticStatus.WARN
    assert result.hint is not None
