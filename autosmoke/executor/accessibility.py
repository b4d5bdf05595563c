"""Accessibility audit — runs axe-core inside the page."""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Page

from autosmoke.models.smoke_result import A11yViolation

logger = logging.getLogger(__name__)

AXE_SCRIPT_URL = "https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.10.2/axe.min.js"
AXE_TAGS = ("wcag2a", "wcag2aa")
BLOCKING_IMPACTS = ("critical", "serious")

_RUN_AXE = """async ([tags, disabled]) => {
    const rules = {};
    for (const id of disabled) rules[id] = { enabled: false };
    const result = await axe.run(document, {
        runOnly: { type: 'tag', values: tags },
        rules,
    });
    return result.violations.map(v => ({
        rule_id: v.id,
        impact: v.impact || '',
        description: v.description,
        help_url: v.helpUrl,
        node_count: v.nodes.length,
    }));
}"""


class AxeAuditor:
    """Injects axe-core and reports WCAG A/AA violations."""

    def __init__(
        self,
        ignore_rules: list[str] | None = None,
        script_url: str = AXE_SCRIPT_URL,
        script_path: Optional[str] = None,
    ):
        self.ignore_rules = list(ignore_rules or [])
        self.script_url = script_url
        self.script_path = script_path

    async def _inject(self, page: Page) -> None:
        if self.script_path:
            await page.add_script_tag(path=self.script_path)
        else:
            await page.add_script_tag(url=self.script_url)

    async def audit(self, page: Page) -> list[A11yViolation]:
        await self._inject(page)
        raw = await page.evaluate(_RUN_AXE, [list(AXE_TAGS), self.ignore_rules])
        return [A11yViolation(**v) for v in raw]


def blocking_violations(violations: list[A11yViolation]) -> list[A11yViolation]:
    return [v for v in violations if v.impact in BLOCKING_IMPACTS]
