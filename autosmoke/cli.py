"""CLI entry point for the smoke runner."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from autosmoke.dev.dev_runner import DevRunner
from autosmoke.errors import SmokeError
from autosmoke.models.config import RunnerSettings
from autosmoke.models.evidence import load_evidence
from autosmoke.orchestrator import Orchestrator, propose_batch, write_proposal
from autosmoke.proposer.proposer import PROPOSERS, get_proposer

console = Console()


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    sys.exit(1)


def _settings(project_root: str | None) -> RunnerSettings:
    settings = RunnerSettings.from_env()
    if project_root:
        settings = settings.model_copy(update={"project_root": project_root})
    return settings


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Route-discovering smoke tests with heuristic follow-up proposals"""
    setup_logging(verbose)


@cli.command()
@click.option("--evidence", "evidence_path", required=True, help="Path to evidence JSON file")
@click.option("--route", default=None, help="Only accept evidence for this route")
@click.option("--output", "-o", default=None, help="Write the proposal here instead of stdout")
@click.option("--proposer", "proposer_name", type=click.Choice(PROPOSERS), default="heuristic",
              show_default=True, help="Proposal engine")
def propose(evidence_path: str, route: str | None, output: str | None, proposer_name: str) -> None:
    """Generate a test proposal from one evidence file."""
    try:
        evidence = load_evidence(evidence_path)
    except SmokeError as e:
        _fail(str(e))

    if route and evidence.route != route:
        _fail(f"Route mismatch: expected {route}, got {evidence.route}")

    proposal = get_proposer(proposer_name).propose(evidence)

    if output:
        try:
            write_proposal(proposal, Path(output))
        except OSError as e:
            _fail(f"Failed to write proposal: {e}")
        console.print(f"[green]Proposal written to {output}[/green]")
    else:
        click.echo(json.dumps(proposal.to_json_dict(), indent=2))


@cli.command()
@click.option("--evidence-dir", default=".cache/evidence", show_default=True,
              help="Directory containing evidence files")
@click.option("--output-dir", default="./proposals", show_default=True,
              help="Output directory for proposals")
@click.option("--proposer", "proposer_name", type=click.Choice(PROPOSERS), default="heuristic",
              show_default=True, help="Proposal engine")
def batch(evidence_dir: str, output_dir: str, proposer_name: str) -> None:
    """Generate proposals for every evidence file in a directory."""
    in_dir = Path(evidence_dir)
    if not in_dir.is_dir():
        _fail(f"Evidence directory not found: {evidence_dir}")

    count = 0
    try:
        for _, out_path, proposal in propose_batch(in_dir, Path(output_dir), get_proposer(proposer_name)):
            count += 1
            console.print(
                f"[green]✓[/green] {proposal.route} → {out_path.name} "
                f"(confidence: {proposal.confidence * 100:.1f}%)"
            )
    except (SmokeError, OSError) as e:
        _fail(f"Failed to generate batch proposals: {e}")

    if count == 0:
        console.print(f"[yellow]No evidence files found in {evidence_dir}[/yellow]")
        return
    console.print(f"\n[bold green]Generated {count} proposals in {output_dir}[/bold green]")


@cli.command()
@click.option("--project-root", "-p", default=None, help="Project to scan (default: PROJECT_ROOT or cwd)")
def discover(project_root: str | None) -> None:
    """List the routes discovered from the project's file layout."""
    try:
        orchestrator = Orchestrator(_settings(project_root))
        result = orchestrator.discover()
    except SmokeError as e:
        _fail(str(e))

    table = Table(title="Discovered Routes")
    table.add_column("Route", style="bold")
    table.add_column("Source")
    table.add_column("Must exist")
    for r in result.routes:
        table.add_row(r.path, r.source_file or "[dim](config)[/dim]", ", ".join(r.config.selectors_to_check))
    console.print(table)
    console.print(f"{len(result.routes)} routes, {len(result.skipped)} dynamic routes skipped")
    for skipped in result.skipped:
        console.print(f"  [yellow]skipped[/yellow] {skipped.path}: {skipped.reason}")


@cli.command()
@click.option("--project-root", "-p", default=None, help="Project to scan (default: PROJECT_ROOT or cwd)")
@click.option("--skip-auth-gated", is_flag=True, help="Skip routes that redirect to a login page")
@click.option("--report-dir", default=None, help="Where to write reports (default: project root)")
@click.option("--nav", "nav_checks", is_flag=True, help="Also check top-nav links and tabs on the home page")
def run(project_root: str | None, skip_auth_gated: bool, report_dir: str | None, nav_checks: bool) -> None:
    """Discover routes and run the smoke suite against BASE_URL."""
    try:
        orchestrator = Orchestrator(_settings(project_root))
        result, reports = orchestrator.run_smoke(
            skip_auth_gated=skip_auth_gated,
            report_dir=Path(report_dir) if report_dir else None,
            nav_checks=nav_checks,
        )
    except SmokeError as e:
        _fail(str(e))

    console.print("\n[bold green]Smoke Run Complete[/bold green]")
    table = Table(title="Results Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Run ID", result.run_id)
    table.add_row("Duration", f"{result.duration_seconds}s")
    table.add_row("Routes", str(result.total_routes))
    table.add_row("Passed", f"[green]{result.passed}[/green]")
    table.add_row("Failed", f"[red]{result.failed}[/red]")
    table.add_row("Errors", f"[red]{result.errors}[/red]")
    table.add_row("Skipped (dynamic)", f"[yellow]{len(result.skipped_routes)}[/yellow]")
    console.print(table)
    for fmt, path in reports.items():
        console.print(f"  {fmt.upper()} report: [blue]{path}[/blue]")

    if result.failed or result.errors:
        sys.exit(1)


@cli.command()
@click.option("--project-root", "-p", default=None, help="Project to scan (default: PROJECT_ROOT or cwd)")
def lighthouse(project_root: str | None) -> None:
    """Run Lighthouse performance audits on discovered routes."""
    try:
        results = Orchestrator(_settings(project_root)).run_lighthouse()
    except SmokeError as e:
        _fail(str(e))
    for r in results:
        console.print(f"  {r.route}: performance [bold]{r.metrics.performance:.0%}[/bold]")
    console.print(f"[green]Analyzed {len(results)} routes[/green]")


@cli.command()
@click.option("--project-root", "-p", default=None, help="Project to watch (default: PROJECT_ROOT or cwd)")
def dev(project_root: str | None) -> None:
    """Start the app (DEV_START), run the suite and re-run it on changes."""
    try:
        DevRunner(_settings(project_root)).start()
    except SmokeError as e:
        _fail(str(e))


if __name__ == "__main__":
    cli()
