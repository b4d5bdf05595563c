"""Report generation orchestration."""

from __future__ import annotations

import logging
from pathlib import Path

from autosmoke.models.config import RunnerSettings
from autosmoke.models.smoke_result import LighthouseResult, SmokeRunResult

from .json_report import generate_json_report
from .markdown_report import generate_markdown_report
from .slack import notify_slack

logger = logging.getLogger(__name__)

REPORT_FORMATS = ("markdown", "json")


class Reporter:
    """Writes run reports and sends the optional Slack notification."""

    def __init__(self, settings: RunnerSettings, formats: tuple[str, ...] = REPORT_FORMATS):
        self.settings = settings
        self.formats = formats

    def generate_reports(
        self,
        run_result: SmokeRunResult,
        output_dir: Path = Path("."),
        lighthouse_results: list[LighthouseResult] | None = None,
    ) -> dict[str, str]:
        """Generate all configured report formats. Returns format -> file path."""
        output_dir.mkdir(parents=True, exist_ok=True)
        generated = {}

        if "markdown" in self.formats:
            path = output_dir / "smoke-report.md"
            generate_markdown_report(run_result, path, lighthouse_results)
            generated["markdown"] = str(path)
            logger.info("Markdown report: %s", path)

        if "json" in self.formats:
            path = output_dir / f"smoke-report_{run_result.run_id}.json"
            generate_json_report(run_result, path, lighthouse_results)
            generated["json"] = str(path)
            logger.info("JSON report: %s", path)

        if self.settings.slack_webhook:
            notify_slack(self.settings.slack_webhook, run_result)

        return generated
