"""Browser helpers — launch Chromium and create per-route contexts."""

from __future__ import annotations

from typing import Any, Optional

from playwright.async_api import Browser, BrowserContext, Playwright

DEFAULT_VIEWPORT = {"width": 1280, "height": 720}


async def launch_browser(playwright: Playwright, headless: bool = True) -> Browser:
    return await playwright.chromium.launch(headless=headless)


async def create_context(
    browser: Browser,
    viewport: Optional[dict] = None,
    context_options: Optional[dict[str, Any]] = None,
) -> BrowserContext:
    """Create an isolated browser context.

    Args:
        context_options: Extra ``new_context`` keyword arguments, typically the
            auth options (``storage_state``, ``http_credentials``,
            ``extra_http_headers``) produced by the auth manager.
    """
    kwargs: dict[str, Any] = {
        "viewport": viewport or DEFAULT_VIEWPORT,
        "locale": "en-US",
    }
    kwargs.update(context_options or {})
    return await browser.new_context(**kwargs)
