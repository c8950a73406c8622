"""CLI entry point for the demo-bank test harness."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from demo_qa.models.config import FrameworkConfig
from demo_qa.models.test_result import RunResult
from demo_qa.orchestrator import Orchestrator
from demo_qa.reporter.reporter import build_summary
from demo_qa.suites.demo_bank import BUILTIN_SUITES, build_suites
from demo_qa.suites.loader import load_suites, save_suites

console = Console()

RESULT_STYLES = {"pass": "green", "fail": "red", "error": "magenta"}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(path: str) -> FrameworkConfig:
    if not Path(path).exists():
        logging.getLogger(__name__).debug("No config at %s, using defaults", path)
        return FrameworkConfig()
    try:
        return FrameworkConfig.load(path)
    except ValidationError as e:
        console.print(f"[red]Invalid config {path}:[/red]\n{escape(str(e))}")
        sys.exit(2)


def _print_results(run_result: RunResult, reports: dict[str, str]) -> None:
    table = Table(title=f"Run {run_result.run_id}")
    table.add_column("Test", style="bold")
    table.add_column("Result")
    table.add_column("Kind")
    table.add_column("Visual")
    table.add_column("Duration")
    for r in run_result.test_results:
        style = RESULT_STYLES.get(r.result, "white")
        visual = ""
        if r.visual_results:
            statuses = [v.status for v in r.visual_results]
            visual = ", ".join(f"{statuses.count(s)} {s}" for s in sorted(set(statuses)))
        table.add_row(r.test_id, f"[{style}]{r.result.upper()}[/{style}]",
                      r.failure_kind or "", visual, f"{r.duration_seconds:.1f}s")
    console.print(table)

    for r in run_result.test_results:
        if r.failure_reason:
            console.print(f"[red]{r.test_id}[/red]: {escape(r.failure_reason)}")

    console.print(build_summary(run_result))
    for fmt, path in reports.items():
        console.print(f"  {fmt.upper()} report: [blue]{path}[/blue]")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Browser tests for the demo banking app"""
    setup_logging(verbose)


@cli.command()
@click.option("--config", "-c", default="demo-qa.json", help="Config file path")
@click.option("--suite", "-s", "suites", multiple=True, default=["all"],
              type=click.Choice([*BUILTIN_SUITES, "all"]), help="Suite to run (repeatable)")
@click.option("--serial", is_flag=True, help="Run cases one at a time")
def run(config: str, suites: tuple[str, ...], serial: bool) -> None:
    """Run built-in suites and exit non-zero if any test failed."""
    cfg = _load_config(config)
    if serial:
        cfg.execution_mode = "serial"
    orchestrator = Orchestrator(cfg)
    results = orchestrator.run_builtin(list(suites))
    run_result = results["run_result"]
    _print_results(run_result, results["reports"])
    sys.exit(0 if run_result.success else 1)


@cli.command()
@click.option("--plan-file", "-p", required=True, help="Path to suite JSON")
@click.option("--config", "-c", default="demo-qa.json", help="Config file path")
def execute(plan_file: str, config: str) -> None:
    """Execute suites from a JSON plan file."""
    cfg = _load_config(config)
    try:
        suites = load_suites(plan_file)
    except FileNotFoundError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(2)
    except ValidationError as e:
        console.print(f"[red]Invalid plan {plan_file}:[/red]\n{escape(str(e))}")
        sys.exit(2)

    results = Orchestrator(cfg).run_suites(suites)
    run_result = results["run_result"]
    _print_results(run_result, results["reports"])
    sys.exit(0 if run_result.success else 1)


@cli.command("list")
@click.option("--config", "-c", default="demo-qa.json", help="Config file path")
def list_suites(config: str) -> None:
    """List built-in suites and their test cases."""
    cfg = _load_config(config)
    for suite in build_suites(cfg, ["all"]):
        console.print(f"[bold]{suite.suite_id}[/bold] — {suite.name}")
        for tc in suite.test_cases:
            console.print(f"  {tc.test_id}: {tc.name} ({len(tc.steps)} steps)")


@cli.command()
@click.option("--suite", "-s", "suites", multiple=True, default=["all"],
              type=click.Choice([*BUILTIN_SUITES, "all"]), help="Suite to export (repeatable)")
@click.option("--output", "-o", default="demo-qa-plan.json", help="Output JSON path")
@click.option("--config", "-c", default="demo-qa.json", help="Config file path")
def export(suites: tuple[str, ...], output: str, config: str) -> None:
    """Write built-in suites to a JSON plan file for editing."""
    cfg = _load_config(config)
    save_suites(build_suites(cfg, list(suites)), output)
    console.print(f"[green]Wrote {output}[/green]")


@cli.command()
@click.option("--base-url", "-u", default="https://demo.applitools.com", help="Site under test")
def init(base_url: str) -> None:
    """Create a default configuration file."""
    config_path = Path("demo-qa.json")
    if config_path.exists():
        if not click.confirm("demo-qa.json already exists. Overwrite?"):
            return

    cfg = FrameworkConfig(base_url=base_url)
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now customize this file and run:")
    console.print("  [blue]demo-qa run[/blue]")
    console.print(f"\nSet [bold]{cfg.site_env_var}[/bold] to any value other than 'original' "
                  "to test the alternate page.")


if __name__ == "__main__":
    cli()
