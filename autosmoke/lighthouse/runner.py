"""Lighthouse runner — performance audits via the external ``lighthouse`` CLI."""

from __future__ import annotations

import json
import logging
import subprocess
import time
from pathlib import Path

from autosmoke.models.config import RunnerSettings
from autosmoke.models.route import DiscoveredRoute
from autosmoke.models.smoke_result import LighthouseMetrics, LighthouseResult
from autosmoke.url_utils import route_file_stem, route_url
from autosmoke.utils.files import write_json_atomic

logger = logging.getLogger(__name__)

DEFAULT_ROUTE_LIMIT = 5

_LIGHTHOUSE_FLAGS = [
    "--output=json",
    "--preset=desktop",
    "--quiet",
    "--chrome-flags=--headless --no-sandbox --disable-gpu",
    "--throttling-method=simulate",
    "--throttling.rttMs=40",
    "--throttling.throughputKbps=10240",
    "--throttling.cpuSlowdownMultiplier=1",
]


class LighthouseError(RuntimeError):
    pass


def parse_report(report: dict) -> LighthouseMetrics:
    """Extract category scores and core timings from a Lighthouse JSON report."""
    categories = report.get("categories", {})
    audits = report.get("audits", {})

    def _score(key: str) -> float:
        return (categories.get(key) or {}).get("score") or 0.0

    def _numeric(key: str) -> float:
        return (audits.get(key) or {}).get("numericValue") or 0.0

    pwa = categories.get("pwa")
    return LighthouseMetrics(
        performance=_score("performance"),
        accessibility=_score("accessibility"),
        best_practices=_score("best-practices"),
        seo=_score("seo"),
        pwa=pwa.get("score") if pwa else None,
        first_contentful_paint=_numeric("first-contentful-paint"),
        largest_contentful_paint=_numeric("largest-contentful-paint"),
        cumulative_layout_shift=_numeric("cumulative-layout-shift"),
        total_blocking_time=_numeric("total-blocking-time"),
        speed_index=_numeric("speed-index"),
    )


def _average(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


class LighthouseRunner:
    def __init__(self, settings: RunnerSettings, output_dir: Path = Path(".cache") / "lighthouse",
                 command: str = "lighthouse"):
        self.settings = settings
        self.output_dir = output_dir
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.command = command

    def run_for_routes(self, routes: list[DiscoveredRoute]) -> list[LighthouseResult]:
        limit = self.settings.route_limit or DEFAULT_ROUTE_LIMIT
        results = []
        logger.info("Running Lighthouse on %d routes...", min(limit, len(routes)))
        for route in routes[:limit]:
            url = route_url(self.settings.base_url, route.path)
            logger.info("Analyzing %s...", url)
            try:
                result = self.run_for_url(url, route.path)
            except LighthouseError as e:
                logger.error("Failed to analyze %s: %s", route.path, e)
                continue
            results.append(result)
            logger.info("%s: Performance %d%%", route.path, round(result.metrics.performance * 100))
        return results

    def run_for_url(self, url: str, route: str) -> LighthouseResult:
        output_file = self.output_dir / f"{route_file_stem(route)}_lighthouse.json"
        cmd = [self.command, url, *_LIGHTHOUSE_FLAGS, f"--output-path={output_file}"]
        try:
            subprocess.run(cmd, check=True, capture_output=True, text=True)
            with open(output_file) as f:
                report = json.load(f)
        except (OSError, subprocess.CalledProcessError, json.JSONDecodeError) as e:
            raise LighthouseError(f"Lighthouse failed for {url}: {e}") from e

        return LighthouseResult(
            url=url,
            route=route,
            metrics=parse_report(report),
            raw_report=report,
            timestamp=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        )

    def write_summary(self, results: list[LighthouseResult]) -> Path:
        """Write averages and the three worst performers to ``summary.json``."""
        worst = sorted(results, key=lambda r: r.metrics.performance)[:3]
        summary = {
            "totalRoutes": len(results),
            "averageScores": {
                "performance": _average([r.metrics.performance for r in results]),
                "accessibility": _average([r.metrics.accessibility for r in results]),
                "bestPractices": _average([r.metrics.best_practices for r in results]),
                "seo": _average([r.metrics.seo for r in results]),
            },
            "worstPerformers": [
                {
                    "route": r.route,
                    "performance": round(r.metrics.performance * 100),
                    "fcp": round(r.metrics.first_contentful_paint),
                    "lcp": round(r.metrics.largest_contentful_paint),
                }
                for r in worst
            ],
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }
        path = self.output_dir / "summary.json"
        write_json_atomic(path, summary)
        logger.info("Lighthouse summary saved to %s", path)
        return path
