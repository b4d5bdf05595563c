"""Navigation checks — top-nav links and tab widgets on the home page."""

from __future__ import annotations

import logging

from playwright.async_api import Page

from autosmoke.models.smoke_result import StepResult

logger = logging.getLogger(__name__)

TOP_NAV_SELECTOR = '[data-testid="top-nav"]'
TAB_SELECTOR = '[data-testid^="tab-"]'
MAIN_SELECTOR = "main"

MAX_LINKS = 5
MAX_TABS = 5
TAB_SETTLE_MS = 500

_IS_ACTIVE = """el =>
    el.classList.contains('active') ||
    el.getAttribute('aria-selected') === 'true' ||
    el.getAttribute('data-state') === 'active'
"""


def _is_followable(href: str | None) -> bool:
    return bool(href) and href != "#" and not href.startswith("javascript:")


async def check_tabs(page: Page, max_tabs: int = MAX_TABS, timeout: int = 5000) -> list[StepResult]:
    """Click each ``tab-*`` element and check it reports an active state.

    Stops at the first tab that fails.
    """
    tabs = page.locator(TAB_SELECTOR)
    count = min(await tabs.count(), max_tabs)
    results = []
    for i in range(count):
        tab = tabs.nth(i)
        name = await tab.get_attribute("data-testid") or f"tab {i}"
        try:
            await tab.click(timeout=timeout)
            await page.wait_for_timeout(TAB_SETTLE_MS)
            active = await tab.evaluate(_IS_ACTIVE)
        except Exception as e:
            results.append(StepResult(step_index=i, action="tab", target=name,
                                      status="fail", error_message=str(e)))
            break
        if not active:
            results.append(StepResult(step_index=i, action="tab", target=name,
                                      status="fail", error_message="Tab did not become active"))
            break
        logger.debug("Tab %s activated", name)
        results.append(StepResult(step_index=i, action="tab", target=name))
    return results


async def check_top_nav(page: Page, max_links: int = MAX_LINKS, timeout: int = 5000) -> list[StepResult]:
    """Follow the first top-nav links; each must land on a page with visible ``main``.

    Links without a real target (``#``, ``javascript:``) are skipped. Stops
    at the first link that fails.
    """
    nav = page.locator(TOP_NAV_SELECTOR)
    if await nav.count() == 0:
        return []
    links = nav.locator("a")
    count = min(await links.count(), max_links)
    results = []
    for i in range(count):
        link = links.nth(i)
        href = await link.get_attribute("href")
        if not _is_followable(href):
            continue
        try:
            await link.click(timeout=timeout)
            await page.wait_for_load_state("networkidle")
            await page.locator(MAIN_SELECTOR).first.wait_for(state="visible", timeout=timeout)
        except Exception as e:
            results.append(StepResult(step_index=i, action="nav_link", target=href,
                                      status="fail", error_message=str(e)))
            break
        logger.debug("Navigated to %s", href)
        results.append(StepResult(step_index=i, action="nav_link", target=href))
    return results


async def run_nav_checks(page: Page, timeout: int = 5000) -> list[StepResult]:
    """Tabs first, since following links navigates away from the page."""
    results = await check_tabs(page, timeout=timeout)
    if any(r.status == "fail" for r in results):
        return results
    return results + await check_top_nav(page, timeout=timeout)
