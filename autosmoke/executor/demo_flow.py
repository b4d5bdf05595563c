"""Demo flow runner — plays a route's configured interaction steps."""

from __future__ import annotations

import logging

from playwright.async_api import Page

from autosmoke.models.config import DemoStep
from autosmoke.models.smoke_result import StepResult

logger = logging.getLogger(__name__)


async def run_demo_step(page: Page, step: DemoStep, index: int, timeout: int = 10000) -> list[StepResult]:
    """Run the parts of one demo step in order: click, type, expect_text.

    Stops at the first failing part.
    """
    parts: list[tuple[str, str]] = []
    if step.click:
        parts.append(("click", step.click))
    if step.type:
        parts.append(("type", step.type.selector))
    if step.expect_text:
        parts.append(("expect_text", step.expect_text))

    results = []
    for action, target in parts:
        logger.debug("Demo step %d: %s %s", index, action, target)
        try:
            match action:
                case "click":
                    await page.locator(target).first.click(timeout=timeout)
                case "type":
                    await page.locator(target).first.fill(step.type.text, timeout=timeout)
                case "expect_text":
                    await page.get_by_text(target).first.wait_for(state="visible", timeout=timeout)
        except Exception as e:
            results.append(StepResult(
                step_index=index, action=action, target=target,
                status="fail", error_message=str(e),
            ))
            return results
        results.append(StepResult(step_index=index, action=action, target=target))
    return results


async def run_demo_flow(page: Page, steps: list[DemoStep], timeout: int = 10000) -> list[StepResult]:
    """Run every demo step; stops after the first failure."""
    results: list[StepResult] = []
    for index, step in enumerate(steps):
        step_results = await run_demo_step(page, step, index, timeout=timeout)
        results.extend(step_results)
        if any(r.status == "fail" for r in step_results):
            logger.info("Demo flow stopped at step %d", index)
            break
    return results
