"""JSON report output."""

from __future__ import annotations

from pathlib import Path

from autosmoke.models.smoke_result import LighthouseResult, SmokeRunResult
from autosmoke.utils.files import write_json_atomic


def generate_json_report(
    run_result: SmokeRunResult,
    output_path: Path,
    lighthouse_results: list[LighthouseResult] | None = None,
) -> None:
    """Write a machine-readable JSON report."""
    report = run_result.model_dump()
    if lighthouse_results:
        report["lighthouse"] = [
            {"route": r.route, "url": r.url, "metrics": r.metrics.model_dump()}
            for r in lighthouse_results
        ]
    write_json_atomic(output_path, report)
