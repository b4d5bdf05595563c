"""Slack notification through an incoming webhook."""

from __future__ import annotations

import logging

import httpx

from autosmoke.models.smoke_result import SmokeRunResult

logger = logging.getLogger(__name__)


def build_slack_message(run_result: SmokeRunResult) -> dict:
    ok = run_result.failed == 0 and run_result.errors == 0
    headline = (
        f"{'✅' if ok else '❌'} Smoke run {run_result.run_id} on {run_result.base_url}: "
        f"{run_result.passed}/{run_result.total_routes} routes passed"
    )
    failing = [r.route for r in run_result.route_results if r.result != "pass"]
    text = headline
    if failing:
        text += "\nFailing: " + ", ".join(f"`{path}`" for path in failing[:10])
    return {"text": text}


def notify_slack(webhook_url: str, run_result: SmokeRunResult, timeout: float = 10.0) -> bool:
    """Post the run summary. Returns False if Slack rejected it."""
    try:
        resp = httpx.post(webhook_url, json=build_slack_message(run_result), timeout=timeout)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Slack notification failed: %s", e)
        return False
    logger.info("Slack notification sent")
    return True
