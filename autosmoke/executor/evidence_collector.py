"""Evidence collector — captures console/page/network errors, DOM and screenshots."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

from playwright.async_api import Page

from autosmoke.models.evidence import Evidence
from autosmoke.url_utils import route_file_stem
from autosmoke.utils.files import write_json_atomic

logger = logging.getLogger(__name__)


class EvidenceCollector:
    """Collects the diagnostic evidence of one route visit."""

    def __init__(self, evidence_dir: Path, route: str):
        self.evidence_dir = evidence_dir
        self.evidence_dir.mkdir(parents=True, exist_ok=True)
        self.route = route
        self.console_errors: list[str] = []
        self.page_errors: list[str] = []
        self.network_errors: list[str] = []

    def setup_listeners(self, page: Page) -> None:
        """Attach console, page error and network listeners to a page."""
        page.on("console", self._on_console)
        page.on("pageerror", lambda error: self.page_errors.append(str(error)))
        page.on("response", self._on_response)
        page.on("requestfailed", lambda request: self.network_errors.append(
            f"{request.method} {request.url} failed: {request.failure or 'unknown error'}"
        ))

    def _on_console(self, msg) -> None:
        if msg.type == "error":
            self.console_errors.append(msg.text)

    def _on_response(self, resp) -> None:
        if resp.status >= 400:
            self.network_errors.append(f"{resp.request.method} {resp.url} -> {resp.status}")

    @property
    def file_stem(self) -> str:
        return route_file_stem(self.route)

    async def take_screenshot(self, page: Page, full_page: bool = False, label: str = "") -> str:
        """Capture a screenshot and return the file path, or "" on failure."""
        name = f"{self.file_stem}_{label}.png" if label else f"{self.file_stem}.png"
        path = self.evidence_dir / name
        try:
            await page.screenshot(path=str(path), full_page=full_page)
            return str(path)
        except Exception as e:
            logger.warning("Screenshot failed for %s: %s", self.route, e)
            return ""

    async def capture_dom(self, page: Page) -> str:
        try:
            return await page.content()
        except Exception as e:
            logger.warning("DOM snapshot failed for %s: %s", self.route, e)
            return ""

    def build_evidence(
        self,
        dom_snapshot: str,
        url: str,
        screenshot_path: str = "",
        diff_summary: Optional[str] = None,
    ) -> Evidence:
        return Evidence(
            dom_snapshot=dom_snapshot,
            console_errors=list(self.console_errors),
            network_errors=list(self.network_errors),
            page_errors=list(self.page_errors),
            screenshot_path=screenshot_path,
            diff_summary=diff_summary,
            route=self.route,
            url=url,
            timestamp=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        )

    def save_evidence(self, evidence: Evidence) -> Path:
        """Write the evidence JSON next to the screenshots."""
        path = self.evidence_dir / f"{self.file_stem}.json"
        write_json_atomic(path, evidence.to_json_dict())
        logger.debug("Evidence for %s written to %s", self.route, path)
        return path
