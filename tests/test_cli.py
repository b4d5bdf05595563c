"""Tests for the command-line interface."""

import json
from unittest.mock import patch

from click.testing import CliRunner

from autosmoke.cli import cli
from autosmoke.models.route import DiscoveredRoute, DiscoveryResult, SkippedRoute
from autosmoke.models.smoke_result import SmokeRunResult


def _write_evidence(path, route="/dashboard", **extra):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"domSnapshot": "<main></main>", "route": route, **extra}))
    return path


class TestProposeCommand:
    def test_prints_proposal_json(self, tmp_path):
        evidence = _write_evidence(tmp_path / "e.json", networkErrors=["GET /x -> 500"])
        result = CliRunner().invoke(cli, ["propose", "--evidence", str(evidence)])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["route"] == "/dashboard"
        assert data["confidence"] == 0.1
        assert data["riskFlags"] == ["no_test_ids", "network_errors_present"]

    def test_writes_output_file(self, tmp_path):
        evidence = _write_evidence(tmp_path / "e.json")
        out = tmp_path / "out" / "p.json"
        result = CliRunner().invoke(cli, ["propose", "--evidence", str(evidence), "-o", str(out)])

        assert result.exit_code == 0
        assert json.loads(out.read_text())["route"] == "/dashboard"

    def test_route_mismatch(self, tmp_path):
        evidence = _write_evidence(tmp_path / "e.json")
        result = CliRunner().invoke(cli, ["propose", "--evidence", str(evidence), "--route", "/other"])

        assert result.exit_code == 1
        assert "Route mismatch" in result.output

    def test_missing_evidence(self, tmp_path):
        result = CliRunner().invoke(cli, ["propose", "--evidence", str(tmp_path / "nope.json")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_evidence_required(self):
        result = CliRunner().invoke(cli, ["propose"])
        assert result.exit_code == 2


class TestBatchCommand:
    def test_generates_proposals(self, tmp_path):
        _write_evidence(tmp_path / "ev" / "_a.json", route="/a")
        _write_evidence(tmp_path / "ev" / "_b.json", route="/b", consoleErrors=["x"])
        result = CliRunner().invoke(cli, [
            "batch", "--evidence-dir", str(tmp_path / "ev"), "--output-dir", str(tmp_path / "out"),
        ])

        assert result.exit_code == 0, result.output
        assert "confidence: 10.0%" in result.output
        assert "confidence: 40.0%" in result.output
        assert "Generated 2 proposals" in result.output
        assert (tmp_path / "out" / "_b.proposal.json").exists()

    def test_empty_directory(self, tmp_path):
        result = CliRunner().invoke(cli, ["batch", "--evidence-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert "No evidence files found" in result.output

    def test_missing_directory(self, tmp_path):
        result = CliRunner().invoke(cli, ["batch", "--evidence-dir", str(tmp_path / "missing")])
        assert result.exit_code == 1


class TestDiscoverCommand:
    def test_lists_routes(self, tmp_path):
        discovered = DiscoveryResult(
            routes=[DiscoveredRoute(path="/about", source_file="app/about/page.tsx")],
            skipped=[SkippedRoute(path="/p/[id]", reason="no sample_params provided")],
        )
        with patch("autosmoke.cli.Orchestrator") as mock_orch:
            mock_orch.return_value.discover.return_value = discovered
            result = CliRunner().invoke(cli, ["discover", "-p", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "/about" in result.output
        assert "1 routes, 1 dynamic routes skipped" in result.output


class TestRunCommand:
    def _run_result(self, failed):
        return SmokeRunResult(
            run_id="run_12345678", started_at="t0", completed_at="t1",
            base_url="http://localhost:3000", total_routes=2, passed=2 - failed, failed=failed,
        )

    def test_exit_code_follows_failures(self, tmp_path):
        with patch("autosmoke.cli.Orchestrator") as mock_orch:
            mock_orch.return_value.run_smoke.return_value = (self._run_result(0), {"markdown": "smoke-report.md"})
            ok = CliRunner().invoke(cli, ["run", "-p", str(tmp_path)])
            mock_orch.return_value.run_smoke.return_value = (self._run_result(1), {})
            failing = CliRunner().invoke(cli, ["run", "-p", str(tmp_path)])

        assert ok.exit_code == 0, ok.output
        assert "smoke-report.md" in ok.output
        assert failing.exit_code == 1

    def test_bad_environment(self, tmp_path):
        result = CliRunner().invoke(cli, ["run"], env={"SMOKE_CONCURRENCY": "lots"})
        assert result.exit_code == 1
        assert "SMOKE_CONCURRENCY" in result.output

    def test_nav_flag_passed_through(self, tmp_path):
        with patch("autosmoke.cli.Orchestrator") as mock_orch:
            mock_orch.return_value.run_smoke.return_value = (self._run_result(0), {})
            result = CliRunner().invoke(cli, ["run", "-p", str(tmp_path), "--nav"])

        assert result.exit_code == 0, result.output
        assert mock_orch.return_value.run_smoke.call_args.kwargs["nav_checks"] is True
