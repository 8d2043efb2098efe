"""Command-line entry point for running diagnostics."""

from __future__ import annotations

import argparse
from collections.abc import Callable
from pathlib import Path
import tempfile

from config.diagnostics import probe as config_probe
from core.diagnostics import probe as core_probe
from diagnostics.models import DiagnosticResult
from diagnostics.runner import format_results, has_failures, run_diagnostics
from interaction.diagnostics import probe as interaction_probe
from vision.diagnostics import probe as vision_probe


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""

    parser = argparse.ArgumentParser(description="Run diagnostics probes.")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Run probes against a temporary offline directory.",
    )
    parser.add_argument(
        "--base-dir",
        type=Path,
        default=None,
        help="Optional base directory for config diagnostics.",
    )
    return parser.parse_args(argv)


def default_probes(base_dir: Path | None = None) -> list[Callable[[], DiagnosticResult]]:
    """Return the live probe set."""

    def config_probe_with_base() -> DiagnosticResult:
        return config_probe(base_dir=base_dir)

    return [config_probe_with_base, core_probe, interaction_probe, vision_probe]


def offline_probes(tmp_base: Path) -> list[Callable[[], DiagnosticResult]]:
    """Return probes that only touch ``tmp_base`` and pretend every library exists."""

    config_dir = tmp_base / "config"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "default.yaml").write_text("language: english\n", encoding="utf-8")

    def everything_installed(_name: str) -> object:
        return object()

    def config_probe_offline() -> DiagnosticResult:
        return config_probe(base_dir=tmp_base)

    def interaction_probe_offline() -> DiagnosticResult:
        return interaction_probe(find_spec=everything_installed)

    def vision_probe_offline() -> DiagnosticResult:
        return vision_probe(find_spec=everything_installed)

    return [config_probe_offline, core_probe, interaction_probe_offline, vision_probe_offline]


def main(argv: list[str] | None = None) -> int:
    """Run diagnostics and return an exit code."""

    args = parse_args(argv)
    if args.offline and args.base_dir is None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            results = run_diagnostics(offline_probes(Path(tmp_dir)))
    else:
        results = run_diagnostics(default_probes(args.base_dir))

    print(format_results(results))
    return 1 if has_failures(results) else 0


if __name__ == "__main__":
    raise SystemExit(main())
