"""Dev runner — starts the app, runs the smoke suite and re-runs it on file changes."""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from pathlib import Path
from typing import Callable, Optional

import httpx

from autosmoke.discovery.route_discovery import APP_ROOT, PAGES_ROOT, ROUTE_EXTENSIONS
from autosmoke.errors import SmokeError
from autosmoke.models.config import CONFIG_FILENAME, RunnerSettings
from autosmoke.models.route import DiscoveredRoute
from autosmoke.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

READY_TIMEOUT_SECONDS = 60.0
READY_POLL_INTERVAL = 2.0
DEBOUNCE_SECONDS = 2.0
WATCH_POLL_INTERVAL = 0.5


def snapshot_watched_files(project_root: Path) -> dict[str, float]:
    """Modification times of route files and the project config."""
    snapshot: dict[str, float] = {}
    for routing_root in (APP_ROOT, PAGES_ROOT):
        root = project_root / routing_root
        if not root.is_dir():
            continue
        for path in root.rglob("*"):
            if "node_modules" in path.parts or ".git" in path.parts:
                continue
            if path.is_file() and path.suffix in ROUTE_EXTENSIONS:
                snapshot[str(path)] = path.stat().st_mtime
    config = project_root / CONFIG_FILENAME
    if config.exists():
        snapshot[str(config)] = config.stat().st_mtime
    return snapshot


def changed_files(before: dict[str, float], after: dict[str, float]) -> list[str]:
    """Files added, removed or modified between two snapshots."""
    changed = {p for p in after if before.get(p) != after[p]}
    changed |= set(before) - set(after)
    return sorted(changed)


def git_diff_summary(project_root: Path, source_file: str) -> Optional[str]:
    """``git diff --stat`` for one file, or None when there is nothing to show.

    ``source_file`` is relative to the current directory (it already carries
    ``project_root``), while git runs inside ``project_root``.
    """
    if not source_file:
        return None
    try:
        proc = subprocess.run(
            ["git", "diff", "--stat", "HEAD", "--", str(Path(source_file).resolve())],
            cwd=project_root, capture_output=True, text=True, check=False,
        )
    except OSError:
        return None
    output = proc.stdout.strip()
    return output or None


def wait_for_app(base_url: str, timeout: float = READY_TIMEOUT_SECONDS,
                 interval: float = READY_POLL_INTERVAL) -> None:
    """Poll ``base_url`` until it answers without a server error."""
    logger.info("Waiting for app at %s", base_url)
    deadline = time.monotonic() + timeout
    last_error = "no response"
    while time.monotonic() < deadline:
        try:
            resp = httpx.get(base_url, timeout=interval, follow_redirects=True)
            if resp.status_code < 500:
                logger.info("App is ready")
                return
            last_error = f"HTTP {resp.status_code}"
        except httpx.HTTPError as e:
            last_error = str(e)
        time.sleep(interval)
    raise SmokeError(f"App failed to start at {base_url}: {last_error}")


class DevRunner:
    """Runs the smoke suite in a watch loop during development."""

    def __init__(
        self,
        settings: RunnerSettings,
        orchestrator_factory: Callable[[RunnerSettings], Orchestrator] = Orchestrator,
        debounce_seconds: float = DEBOUNCE_SECONDS,
    ):
        self.settings = settings
        self.project_root = Path(settings.project_root)
        self.orchestrator_factory = orchestrator_factory
        self.debounce_seconds = debounce_seconds
        self.app_process: subprocess.Popen | None = None
        self._changed: set[str] = set()

    def start_app(self) -> None:
        if not self.settings.dev_start:
            return
        logger.info("Starting app: %s", self.settings.dev_start)
        self.app_process = subprocess.Popen(
            shlex.split(self.settings.dev_start), cwd=self.project_root,
        )

    def _diff_for(self, route: DiscoveredRoute) -> Optional[str]:
        if route.source_file not in self._changed:
            return None
        return git_diff_summary(self.project_root, route.source_file)

    def run_tests(self) -> None:
        # A new orchestrator per run so .smoke.yml edits are picked up
        orchestrator = self.orchestrator_factory(self.settings)
        try:
            run_result, reports = orchestrator.run_smoke(diff_lookup=self._diff_for)
        except SmokeError as e:
            logger.error("Test run failed: %s", e)
            return
        logger.info("%d passed, %d failed, %d errors; report: %s",
                    run_result.passed, run_result.failed, run_result.errors,
                    reports.get("markdown", "-"))

    def watch(self, poll_interval: float = WATCH_POLL_INTERVAL,
              max_runs: Optional[int] = None) -> None:
        """Re-run the suite once changes have been quiet for the debounce window."""
        logger.info("Watching for changes... (Ctrl+C to stop)")
        snapshot = snapshot_watched_files(self.project_root)
        pending: set[str] = set()
        last_change = 0.0
        runs = 0
        while max_runs is None or runs < max_runs:
            time.sleep(poll_interval)
            current = snapshot_watched_files(self.project_root)
            changed = changed_files(snapshot, current)
            snapshot = current
            if changed:
                for path in changed:
                    logger.info("Changed: %s", Path(path).relative_to(self.project_root))
                pending.update(changed)
                last_change = time.monotonic()
                continue
            if pending and time.monotonic() - last_change >= self.debounce_seconds:
                self._changed = pending
                pending = set()
                logger.info("Re-running tests...")
                self.run_tests()
                runs += 1

    def stop_app(self) -> None:
        if self.app_process is None or self.app_process.poll() is not None:
            return
        logger.info("Stopping app process...")
        self.app_process.terminate()
        try:
            self.app_process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            self.app_process.kill()

    def start(self) -> None:
        try:
            self.start_app()
            wait_for_app(self.settings.base_url)
            logger.info("Running initial smoke tests...")
            self.run_tests()
            self.watch()
        except KeyboardInterrupt:
            logger.info("Stopping watcher...")
        finally:
            self.stop_app()
