"""Smoke runner — visits every discovered route with Playwright."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Callable, Optional

from playwright.async_api import Browser, async_playwright

from autosmoke.auth.auth_manager import AuthManager, resolve_auth_settings
from autosmoke.models.config import RunnerSettings, SmokeConfig
from autosmoke.models.route import DiscoveredRoute
from autosmoke.models.smoke_result import RouteResult, SmokeRunResult
from autosmoke.url_utils import route_url
from autosmoke.utils.browser import create_context, launch_browser

from .accessibility import AxeAuditor, blocking_violations
from .demo_flow import run_demo_flow
from .evidence_collector import EvidenceCollector
from .nav_checks import run_nav_checks
from .visual import VisualComparator

logger = logging.getLogger(__name__)

MUST_EXIST_TIMEOUT_MS = 5000

# Navigation checks run from the home page only
NAV_CHECK_ROUTE = "/"

DiffLookup = Callable[[DiscoveredRoute], Optional[str]]


class SmokeRunner:
    """Runs the smoke checks for a set of routes, one browser context per route."""

    def __init__(
        self,
        settings: RunnerSettings,
        smoke_config: SmokeConfig,
        cache_dir: Path = Path(".cache"),
        auth_manager: AuthManager | None = None,
        auditor: AxeAuditor | None = None,
        visual: VisualComparator | None = None,
        diff_lookup: DiffLookup | None = None,
        skip_auth_gated: bool = False,
        nav_checks: bool = False,
    ):
        self.settings = settings
        self.smoke_config = smoke_config
        self.evidence_dir = cache_dir / "evidence"
        self.auth_manager = auth_manager or AuthManager(
            settings, resolve_auth_settings(settings, smoke_config),
        )
        self.auditor = auditor or AxeAuditor(ignore_rules=smoke_config.axe.ignore)
        if visual is None and (settings.visual_mode or smoke_config.visual.enabled):
            visual = VisualComparator(cache_dir / "visual", threshold=smoke_config.visual.threshold)
        self.visual = visual
        self.diff_lookup = diff_lookup
        self.skip_auth_gated = skip_auth_gated
        self.nav_checks = nav_checks
        self.run_id = f"run_{uuid.uuid4().hex[:8]}"

    async def run(self, routes: list[DiscoveredRoute], skipped: list[str] | None = None) -> SmokeRunResult:
        """Run every route and return the aggregated result."""
        started_at = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        start_time = time.time()
        if self.settings.route_limit:
            routes = routes[: self.settings.route_limit]
        logger.info("Starting smoke run %s (%d routes, concurrency %d)",
                    self.run_id, len(routes), self.settings.concurrency)

        async with async_playwright() as p:
            browser = await launch_browser(p)
            try:
                await self.auth_manager.prepare_session(browser)
                if self.skip_auth_gated:
                    routes = await self.auth_manager.skip_auth_gated_routes(browser, routes)

                semaphore = asyncio.Semaphore(max(1, self.settings.concurrency))

                async def _run_one(index: int, route: DiscoveredRoute) -> RouteResult:
                    async with semaphore:
                        logger.info("Checking route [%d/%d]: %s", index + 1, len(routes), route.path)
                        result = await self._run_with_retries(browser, route)
                        logger.info("[%s] %s (%.1fs)", result.result.upper(), route.path, result.duration_seconds)
                        return result

                results = await asyncio.gather(
                    *(_run_one(i, route) for i, route in enumerate(routes))
                )
            finally:
                await browser.close()

        run = SmokeRunResult(
            run_id=self.run_id,
            started_at=started_at,
            completed_at=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            base_url=self.settings.base_url,
            total_routes=len(results),
            passed=sum(1 for r in results if r.result == "pass"),
            failed=sum(1 for r in results if r.result == "fail"),
            errors=sum(1 for r in results if r.result == "error"),
            skipped_routes=list(skipped or []),
            duration_seconds=round(time.time() - start_time, 2),
            route_results=list(results),
        )
        logger.info("Smoke run %s complete: %d passed, %d failed, %d errors",
                    run.run_id, run.passed, run.failed, run.errors)
        return run

    async def _run_with_retries(self, browser: Browser, route: DiscoveredRoute) -> RouteResult:
        attempts = 1 + max(0, self.settings.retries)
        result = None
        for attempt in range(1, attempts + 1):
            result = await self._run_route(browser, route)
            result.attempts = attempt
            if result.result == "pass":
                break
            if attempt < attempts:
                logger.debug("Retrying %s (attempt %d/%d)", route.path, attempt + 1, attempts)
        return result

    async def _run_route(self, browser: Browser, route: DiscoveredRoute) -> RouteResult:
        url = route_url(self.settings.base_url, route.path)
        start = time.time()
        result = RouteResult(route=route.path, url=url, source_file=route.source_file, result="pass")

        context = await create_context(browser, context_options=self.auth_manager.context_options())
        try:
            await self.auth_manager.setup_auth(context)
            page = await context.new_page()
            collector = EvidenceCollector(self.evidence_dir, route.path)
            collector.setup_listeners(page)

            response = await page.goto(url, wait_until="networkidle", timeout=self.settings.timeout)
            result.http_status = response.status if response else None
            if result.http_status != 200:
                result.failures.append(f"Expected HTTP 200, got {result.http_status}")

            for selector in route.config.selectors_to_check:
                try:
                    await page.locator(selector).first.wait_for(state="visible", timeout=MUST_EXIST_TIMEOUT_MS)
                except Exception:
                    result.failures.append(f"Required element not visible: {selector}")

            if route.config.must_not_error:
                if collector.console_errors:
                    result.failures.append(f"{len(collector.console_errors)} console error(s)")
                if collector.page_errors:
                    result.failures.append(f"{len(collector.page_errors)} page error(s)")

            try:
                violations = await self.auditor.audit(page)
            except Exception as e:
                logger.warning("Accessibility audit failed for %s: %s", route.path, e)
                violations = []
            blocking = blocking_violations(violations)
            result.a11y_violations = blocking
            if blocking:
                logger.debug("Accessibility violations on %s: %s",
                             route.path, ", ".join(v.rule_id for v in blocking))
                result.failures.append(f"{len(blocking)} serious/critical accessibility violation(s)")

            screenshot = await collector.take_screenshot(page)
            evidence = collector.build_evidence(
                dom_snapshot=await collector.capture_dom(page),
                url=url,
                screenshot_path=screenshot,
                diff_summary=self.diff_lookup(route) if self.diff_lookup else None,
            )
            result.evidence_path = str(collector.save_evidence(evidence))
            result.screenshot_path = screenshot or None

            if route.config.demo_flow and not result.failures:
                result.demo_flow_results = await run_demo_flow(page, route.config.demo_flow)
                for step in result.demo_flow_results:
                    if step.status == "fail":
                        result.failures.append(
                            f"Demo step {step.step_index} ({step.action} {step.target}) failed: {step.error_message}"
                        )

            if self.visual is not None:
                shot = await collector.take_screenshot(page, full_page=True, label="full")
                if shot:
                    check = self.visual.compare(route.path, Path(shot))
                    result.visual_diff_ratio = check.diff_ratio
                    if not check.passed:
                        result.failures.append(f"Visual regression: {check.message}")

            # Last, since following nav links leaves the route
            if self.nav_checks and route.path == NAV_CHECK_ROUTE and not result.failures:
                result.nav_results = await run_nav_checks(page, timeout=MUST_EXIST_TIMEOUT_MS)
                for nav in result.nav_results:
                    if nav.status == "fail":
                        result.failures.append(
                            f"Navigation check failed ({nav.action} {nav.target}): {nav.error_message}"
                        )

            result.console_errors = list(collector.console_errors)
            result.page_errors = list(collector.page_errors)
            result.network_errors = list(collector.network_errors)
            result.result = "fail" if result.failures else "pass"
        except Exception as e:
            logger.error("Route %s errored: %s", route.path, e)
            result.result = "error"
            result.failures.append(str(e))
        finally:
            await context.close()

        result.duration_seconds = round(time.time() - start, 2)
        return result
