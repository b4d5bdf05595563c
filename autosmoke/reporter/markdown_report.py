"""Markdown report output."""

from __future__ import annotations

from pathlib import Path

from autosmoke.models.smoke_result import LighthouseResult, SmokeRunResult
from autosmoke.utils.files import write_text_atomic

_STATUS_ICONS = {"pass": "✅", "fail": "❌", "error": "💥"}


def render_markdown_report(
    run_result: SmokeRunResult,
    lighthouse_results: list[LighthouseResult] | None = None,
) -> str:
    lines = [
        "# Smoke Test Report",
        "",
        f"- Run: `{run_result.run_id}`",
        f"- Base URL: {run_result.base_url}",
        f"- Started: {run_result.started_at}",
        f"- Duration: {run_result.duration_seconds}s",
        "",
        "| Total | Passed | Failed | Errors |",
        "|---|---|---|---|",
        f"| {run_result.total_routes} | {run_result.passed} | {run_result.failed} | {run_result.errors} |",
        "",
        "## Routes",
        "",
        "| Status | Route | HTTP | Duration |",
        "|---|---|---|---|",
    ]
    for r in run_result.route_results:
        icon = _STATUS_ICONS.get(r.result, r.result)
        status = r.http_status if r.http_status is not None else "-"
        lines.append(f"| {icon} | `{r.route}` | {status} | {r.duration_seconds}s |")

    failing = [r for r in run_result.route_results if r.result != "pass"]
    if failing:
        lines += ["", "## Failures", ""]
        for r in failing:
            lines.append(f"### `{r.route}`")
            lines.append("")
            for reason in r.failures:
                lines.append(f"- {reason}")
            for err in r.console_errors[:5]:
                lines.append(f"- console: `{err}`")
            lines.append("")

    if run_result.skipped_routes:
        lines += ["", "## Skipped dynamic routes", ""]
        lines += [f"- `{path}`" for path in run_result.skipped_routes]

    if lighthouse_results:
        lines += [
            "", "## Lighthouse", "",
            "| Route | Performance | Accessibility | Best Practices | SEO |",
            "|---|---|---|---|---|",
        ]
        for lr in lighthouse_results:
            m = lr.metrics
            lines.append(
                f"| `{lr.route}` | {m.performance:.0%} | {m.accessibility:.0%} "
                f"| {m.best_practices:.0%} | {m.seo:.0%} |"
            )

    return "\n".join(lines).rstrip() + "\n"


def generate_markdown_report(
    run_result: SmokeRunResult,
    output_path: Path,
    lighthouse_results: list[LighthouseResult] | None = None,
) -> None:
    write_text_atomic(output_path, render_markdown_report(run_result, lighthouse_results))
