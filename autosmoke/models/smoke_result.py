"""Result data structures produced by the smoke runner and analyzers."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class A11yViolation(BaseModel):
    rule_id: str
    impact: str = ""  # minor, moderate, serious, critical
    description: str = ""
    help_url: str = ""
    node_count: int = 0


class StepResult(BaseModel):
    """Result of one demo flow step or navigation check."""
    step_index: int
    action: str  # click, type, expect_text, tab, nav_link
    target: str = ""
    status: str = "pass"  # pass, fail
    error_message: Optional[str] = None


class RouteResult(BaseModel):
    route: str
    url: str
    source_file: str = ""
    result: str  # pass, fail, error
    http_status: Optional[int] = None
    duration_seconds: float = 0.0
    attempts: int = 1
    failures: list[str] = Field(default_factory=list)
    console_errors: list[str] = Field(default_factory=list)
    page_errors: list[str] = Field(default_factory=list)
    network_errors: list[str] = Field(default_factory=list)
    a11y_violations: list[A11yViolation] = Field(default_factory=list)
    demo_flow_results: list[StepResult] = Field(default_factory=list)
    nav_results: list[StepResult] = Field(default_factory=list)
    evidence_path: Optional[str] = None
    screenshot_path: Optional[str] = None
    visual_diff_ratio: Optional[float] = None


class SmokeRunResult(BaseModel):
    run_id: str
    started_at: str
    completed_at: str
    base_url: str
    total_routes: int = 0
    passed: int = 0
    failed: int = 0
    errors: int = 0
    skipped_routes: list[str] = Field(default_factory=list)
    duration_seconds: float = 0.0
    route_results: list[RouteResult] = Field(default_factory=list)


class LighthouseMetrics(BaseModel):
    performance: float = 0.0
    accessibility: float = 0.0
    best_practices: float = 0.0
    seo: float = 0.0
    pwa: Optional[float] = None
    first_contentful_paint: float = 0.0
    largest_contentful_paint: float = 0.0
    cumulative_layout_shift: float = 0.0
    total_blocking_time: float = 0.0
    speed_index: float = 0.0


class LighthouseResult(BaseModel):
    url: str
    route: str
    metrics: LighthouseMetrics = Field(default_factory=LighthouseMetrics)
    raw_report: dict[str, Any] = Field(default_factory=dict)
    timestamp: str = ""
