"""Pipeline orchestrator — coordinates discovery, smoke run, proposals and reports."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Iterator, Optional

from autosmoke.discovery.route_discovery import RouteDiscovery
from autosmoke.executor.smoke_runner import DiffLookup, SmokeRunner
from autosmoke.lighthouse.runner import LighthouseRunner
from autosmoke.models.config import RunnerSettings, SmokeConfig
from autosmoke.models.evidence import load_evidence
from autosmoke.models.proposal import Proposal
from autosmoke.models.route import DiscoveryResult
from autosmoke.models.smoke_result import LighthouseResult, SmokeRunResult
from autosmoke.proposer.proposer import HeuristicProposer, Proposer
from autosmoke.reporter.reporter import Reporter
from autosmoke.utils.files import write_json_atomic

logger = logging.getLogger(__name__)

PROPOSAL_SUFFIX = ".proposal.json"


def proposal_file_name(evidence_file: Path) -> str:
    return evidence_file.stem + PROPOSAL_SUFFIX


def iter_evidence_files(evidence_dir: Path) -> list[Path]:
    """Evidence JSON files in a directory, sorted, excluding proposals."""
    return sorted(
        p for p in evidence_dir.glob("*.json")
        if p.is_file() and not p.name.endswith(PROPOSAL_SUFFIX)
    )


def write_proposal(proposal: Proposal, path: Path) -> None:
    write_json_atomic(path, proposal.to_json_dict())


def propose_batch(
    evidence_dir: Path, output_dir: Path, proposer: Proposer | None = None,
) -> Iterator[tuple[Path, Path, Proposal]]:
    """Propose for every evidence file, yielding (input, output, proposal)."""
    proposer = proposer or HeuristicProposer()
    output_dir.mkdir(parents=True, exist_ok=True)
    for evidence_file in iter_evidence_files(evidence_dir):
        proposal = proposer.propose(load_evidence(evidence_file))
        out_path = output_dir / proposal_file_name(evidence_file)
        write_proposal(proposal, out_path)
        yield evidence_file, out_path, proposal


class Orchestrator:
    """Coordinates the smoke pipeline for one project."""

    def __init__(
        self,
        settings: RunnerSettings,
        smoke_config: SmokeConfig | None = None,
        cache_dir: Path | None = None,
    ):
        self.settings = settings
        self.project_root = Path(settings.project_root)
        self.smoke_config = (
            smoke_config if smoke_config is not None
            else SmokeConfig.load_for_project(self.project_root)
        )
        self.cache_dir = cache_dir or Path(".cache")
        self.discovery = RouteDiscovery(self.project_root, config=self.smoke_config)

    def discover(self) -> DiscoveryResult:
        result = self.discovery.discover()
        path = self.cache_dir / "routes" / "generated.json"
        write_json_atomic(path, [r.model_dump() for r in result.routes])
        logger.info("Discovered %d routes (%d skipped), written to %s",
                    len(result.routes), len(result.skipped), path)
        return result

    def run_smoke(
        self,
        skip_auth_gated: bool = False,
        diff_lookup: Optional[DiffLookup] = None,
        report_dir: Path | None = None,
        nav_checks: bool = False,
    ) -> tuple[SmokeRunResult, dict[str, str]]:
        """Discover routes, run the smoke checks and write reports."""
        start = time.time()
        discovered = self.discover()
        runner = SmokeRunner(
            self.settings,
            self.smoke_config,
            cache_dir=self.cache_dir,
            diff_lookup=diff_lookup,
            skip_auth_gated=skip_auth_gated,
            nav_checks=nav_checks,
        )
        run_result = asyncio.run(
            runner.run(discovered.routes, skipped=[s.path for s in discovered.skipped])
        )
        reports = Reporter(self.settings).generate_reports(
            run_result, output_dir=report_dir or self.project_root,
        )
        logger.info("=== Smoke pipeline complete in %.1fs ===", time.time() - start)
        return run_result, reports

    def run_lighthouse(self) -> list[LighthouseResult]:
        routes = self.discover().routes
        runner = LighthouseRunner(self.settings, output_dir=self.cache_dir / "lighthouse")
        results = runner.run_for_routes(routes)
        runner.write_summary(results)
        return results
