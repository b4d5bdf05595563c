"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock, Mock

import pytest

from autosmoke.models.config import RunnerSettings, SmokeConfig
from autosmoke.models.evidence import Evidence


# ============================================================================
# Project layout fixtures
# ============================================================================


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty project root."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def touch(project: Path) -> Callable[..., Path]:
    """Create files (with parents) relative to the project root."""

    def _touch(*relative_paths: str) -> Path:
        for rel in relative_paths:
            path = project / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("export default function Page() { return null }\n")
        return project

    return _touch


@pytest.fixture
def write_config(project: Path) -> Callable[[str], Path]:
    """Write a .smoke.yml into the project root."""

    def _write(content: str) -> Path:
        path = project / ".smoke.yml"
        path.write_text(content)
        return path

    return _write


# ============================================================================
# Configuration fixtures
# ============================================================================


@pytest.fixture
def settings(project: Path) -> RunnerSettings:
    return RunnerSettings(
        base_url="http://localhost:3000",
        concurrency=2,
        project_root=str(project),
        timeout=5000,
        retries=0,
    )


@pytest.fixture
def smoke_config() -> SmokeConfig:
    return SmokeConfig()


# ============================================================================
# Evidence fixtures
# ============================================================================


@pytest.fixture
def make_evidence() -> Callable[..., Evidence]:
    def _make(
        dom: str = "<html><body><main>Hello</main></body></html>",
        console_errors: list[str] | None = None,
        network_errors: list[str] | None = None,
        diff_summary: str | None = None,
        route: str = "/dashboard",
    ) -> Evidence:
        return Evidence(
            dom_snapshot=dom,
            console_errors=console_errors or [],
            network_errors=network_errors or [],
            diff_summary=diff_summary,
            route=route,
            screenshot_path="",
            timestamp="2025-01-01T00:00:00Z",
        )

    return _make


# ============================================================================
# Playwright fakes
# ============================================================================


def make_mock_page(status: int = 200, content: str = "<main>ok</main>"):
    """A page whose sync methods are plain Mocks and async ones AsyncMocks."""
    page = AsyncMock()
    page.url = "http://localhost:3000/"
    page.on = Mock()
    locator = Mock()
    locator.first = Mock()
    locator.first.wait_for = AsyncMock()
    locator.first.click = AsyncMock()
    locator.first.fill = AsyncMock()
    page.locator = Mock(return_value=locator)
    page.get_by_text = Mock(return_value=locator)
    page.goto = AsyncMock(return_value=Mock(status=status))
    page.content = AsyncMock(return_value=content)
    return page


def make_mock_context(page=None):
    ctx = AsyncMock()
    ctx.new_page = AsyncMock(return_value=page or make_mock_page())
    return ctx
