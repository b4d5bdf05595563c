"""Pattern detectors used by the heuristic proposer.

Each detector is a pure function of the evidence and returns a
``DetectorResult``. ``DETECTORS`` lists them in evaluation order; rationale
strings and steps are accumulated in that order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable

from autosmoke.models.evidence import Evidence
from autosmoke.models.proposal import (
    ClickStep,
    ExpectTextStep,
    ExpectVisibleStep,
    ProposedStep,
    TypeStep,
    WaitStep,
)

CONSOLE_ERRORS_PRESENT = "console_errors_present"
REQUIRED_FIELDS_PRESENT = "required_fields_present"
NO_TEST_IDS = "no_test_ids"
NETWORK_ERRORS_PRESENT = "network_errors_present"

LOADING_WAIT_MS = 2000
DIFF_PREVIEW_CHARS = 100

_CREATE_BUTTON_RE = re.compile(r"button[^>]*>(create|new|add|plus)", re.IGNORECASE)
_SAVE_BUTTON_RE = re.compile(r"button[^>]*>(save|submit|create|confirm)", re.IGNORECASE)

NEXT_PAGE_SELECTOR = (
    '[data-testid="next-page"], .pagination .next, button[aria-label*="next"]'
)
CREATE_BUTTON_SELECTOR = (
    'button:has-text("Create"), button:has-text("New"), button:has-text("Add"), '
    '[data-testid*="create"], [data-testid*="new"], [data-testid*="add"]'
)
TEXT_INPUT_SELECTOR = (
    'input[type="text"]:first, input[name*="name"]:first, input[name*="title"]:first'
)
SAVE_BUTTON_SELECTOR = (
    'button:has-text("Save"), button:has-text("Submit"), button:has-text("Create"), '
    'button[type="submit"]'
)
MAIN_CONTENT_SELECTOR = 'main, .main-content, [data-testid="main"], body > div:first-child'


@dataclass(frozen=True)
class DetectorResult:
    rationale: tuple[str, ...] = ()
    steps: tuple[ProposedStep, ...] = ()
    # Steps placed in front of everything accumulated so far
    prepend_steps: tuple[ProposedStep, ...] = ()
    risk_flags: tuple[str, ...] = ()
    delta: float = 0.0

    @property
    def fired(self) -> bool:
        return bool(self.rationale or self.steps or self.prepend_steps or self.risk_flags or self.delta)


NOTHING = DetectorResult()

Detector = Callable[[Evidence, str], DetectorResult]


def detect_console_errors(evidence: Evidence, dom: str) -> DetectorResult:
    if not evidence.console_errors:
        return NOTHING
    return DetectorResult(
        rationale=("Console errors detected, suggesting error handling verification",),
        steps=(ExpectTextStep(text="error", description="Verify error message is displayed"),),
        risk_flags=(CONSOLE_ERRORS_PRESENT,),
        delta=0.3,
    )


def detect_table(evidence: Evidence, dom: str) -> DetectorResult:
    if "table" not in dom or "tbody" not in dom:
        return NOTHING
    # The header row alone does not count as data
    has_rows = dom.count("<tr") > 1
    if not has_rows:
        return DetectorResult(
            rationale=("Empty table detected, checking for empty state",),
            steps=(ExpectTextStep(text="No data", description="Verify empty state message"),),
            delta=0.2,
        )
    if "next" in dom or "pagination" in dom:
        return DetectorResult(
            rationale=("Table with data detected, checking pagination",),
            steps=(ClickStep(selector=NEXT_PAGE_SELECTOR, description="Test pagination next button"),),
            delta=0.4,
        )
    return DetectorResult(rationale=("Table with data detected, checking pagination",))


def detect_create_flow(evidence: Evidence, dom: str) -> DetectorResult:
    if not _CREATE_BUTTON_RE.search(dom):
        return NOTHING
    steps: list[ProposedStep] = [
        ClickStep(selector=CREATE_BUTTON_SELECTOR, description="Click create/new button"),
    ]
    if "input" in dom and 'type="text"' in dom:
        steps.append(TypeStep(
            selector=TEXT_INPUT_SELECTOR,
            text="Test Item",
            description="Fill in main text field",
        ))
    if _SAVE_BUTTON_RE.search(dom):
        steps.append(ClickStep(selector=SAVE_BUTTON_SELECTOR, description="Submit the form"))
        steps.append(ExpectTextStep(text="created|saved|success", description="Verify success message"))
    return DetectorResult(
        rationale=("Create/New button detected, testing creation flow",),
        steps=tuple(steps),
        delta=0.5,
    )


def detect_required_fields(evidence: Evidence, dom: str) -> DetectorResult:
    if "form" not in dom:
        return NOTHING
    required = dom.count("required")
    if required == 0:
        return NOTHING
    return DetectorResult(
        rationale=(f"Form with {required} required fields detected",),
        risk_flags=(REQUIRED_FIELDS_PRESENT,),
        delta=0.2,
    )


def detect_test_ids(evidence: Evidence, dom: str) -> DetectorResult:
    if "[data-testid" in dom or "data-testid=" in dom:
        return DetectorResult(
            rationale=("Test IDs found, using stable selectors",),
            delta=0.3,
        )
    return DetectorResult(
        rationale=("No test IDs found, using less stable selectors",),
        risk_flags=(NO_TEST_IDS,),
    )


def detect_loading_states(evidence: Evidence, dom: str) -> DetectorResult:
    if "loading" not in dom and "spinner" not in dom:
        return NOTHING
    return DetectorResult(
        rationale=("Loading states detected, adding wait steps",),
        prepend_steps=(WaitStep(timeout=LOADING_WAIT_MS, description="Wait for loading to complete"),),
        delta=0.1,
    )


def detect_network_errors(evidence: Evidence, dom: str) -> DetectorResult:
    if not evidence.network_errors:
        return NOTHING
    return DetectorResult(
        rationale=("Network errors detected in evidence",),
        risk_flags=(NETWORK_ERRORS_PRESENT,),
        delta=-0.2,
    )


DETECTORS: tuple[Detector, ...] = (
    detect_console_errors,
    detect_table,
    detect_create_flow,
    detect_required_fields,
    detect_test_ids,
    detect_loading_states,
    detect_network_errors,
)


def fallback_step() -> ExpectVisibleStep:
    return ExpectVisibleStep(selector=MAIN_CONTENT_SELECTOR, description="Verify main content is visible")


FALLBACK_RATIONALE = "No clear interactions detected, suggesting basic visibility check"


def diff_rationale(diff_summary: str) -> str:
    return "Git diff detected: " + diff_summary[:DIFF_PREVIEW_CHARS] + "..."


@dataclass
class Accumulator:
    """Running state of a proposal while the detectors are folded in."""

    confidence: float
    rationale: list[str] = field(default_factory=list)
    steps: list[ProposedStep] = field(default_factory=list)
    risk_flags: list[str] = field(default_factory=list)

    def apply(self, result: DetectorResult) -> "Accumulator":
        self.rationale.extend(result.rationale)
        self.steps.extend(result.steps)
        if result.prepend_steps:
            self.steps[:0] = result.prepend_steps
        for flag in result.risk_flags:
            if flag not in self.risk_flags:
                self.risk_flags.append(flag)
        self.confidence += result.delta
        return self
