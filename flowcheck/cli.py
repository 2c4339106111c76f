"""CLI entry point for flowcheck."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from dotenv import find_dotenv, load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from flowcheck.errors import ConfigurationError
from flowcheck.models.config import FrameworkConfig
from flowcheck.models.test_result import PASS
from flowcheck.orchestrator import Orchestrator
from flowcheck.visual.approval import Decision
from flowcheck.visual.baseline_store import PendingSnapshot

console = Console()

DEFAULT_CONFIG = "flowcheck.json"


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_orchestrator(config: str) -> Orchestrator:
    try:
        cfg = FrameworkConfig.load_or_default(config)
    except (ValueError, OSError) as e:
        console.print(f"[red]Could not read {config}: {e}[/red]")
        sys.exit(1)
    return Orchestrator(cfg)


def _parse_parallel(value: str | None) -> int | str | None:
    if value is None or value.lower() == "auto":
        return value
    try:
        return int(value)
    except ValueError:
        raise click.BadParameter(f"expected a number or 'auto', got {value!r}")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Declarative, template-driven UI test runner."""
    load_dotenv(find_dotenv(usecwd=True))
    setup_logging(verbose)


@cli.command()
@click.option("--tag", "-t", "tags", multiple=True, help="Only run configs carrying this tag")
@click.option("--parallel", "-p", default=None, help="Concurrent sessions (a number or 'auto')")
@click.option("--retries", "-r", type=click.IntRange(min=0), default=None, help="Retries per failed test")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def run(tags: tuple[str, ...], parallel: str | None, retries: int | None, config: str) -> None:
    """Run test configs and write reports."""
    concurrency = _parse_parallel(parallel)
    orchestrator = _load_orchestrator(config)
    try:
        results = orchestrator.run_tests(tags=list(tags), concurrency=concurrency, retries=retries)
    except (ConfigurationError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    summary = results["summary"]
    if summary.total == 0:
        console.print("[yellow]No tests found to run.[/yellow]")
        return

    console.print("\n[bold]Run Complete[/bold]")
    table = Table(title="Results Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Total Tests", str(summary.total))
    table.add_row("Passed", f"[green]{summary.passed}[/green]")
    table.add_row("Failed", f"[red]{summary.failed}[/red]")
    table.add_row("Duration", f"{summary.duration_seconds}s")
    console.print(table)

    for fmt, path in results["reports"].items():
        console.print(f"  {fmt.upper()} report: [blue]{path}[/blue]")

    if summary.failed:
        failed = [r for r in summary.results if r.status != PASS]
        for r in failed:
            console.print(f"  [red]FAIL[/red] {escape(r.name)}: {escape(r.error or '')}")
        sys.exit(1)


def _prompt_decision(item: PendingSnapshot) -> Decision:
    console.print(f"\n[bold]{item.snapshot_name}[/bold]")
    console.print(f"  Baseline: {item.baseline_path}")
    console.print(f"  Actual:   {item.actual_path}")
    answer = click.prompt(
        "Decision",
        type=click.Choice([d.value for d in Decision]),
        default=Decision.SKIP.value,
    )
    return Decision(answer)


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def approve(config: str) -> None:
    """Review pending visual changes and approve or reject them."""
    orchestrator = _load_orchestrator(config)
    if not orchestrator.pending_snapshots():
        console.print("[green]No pending visual changes.[/green]")
        return

    outcomes = orchestrator.approve_snapshots(_prompt_decision)
    approved = sum(1 for o in outcomes if o.decision == Decision.APPROVE)
    rejected = sum(1 for o in outcomes if o.decision == Decision.REJECT)
    skipped = len(outcomes) - approved - rejected
    console.print(f"\nApproved {approved}, rejected {rejected}, skipped {skipped}.")


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def validate(config: str) -> None:
    """Check every test config for problems without running anything."""
    orchestrator = _load_orchestrator(config)
    results = orchestrator.validate_configs()
    invalid = {
        **{f"templates/{name}": error for name, error in orchestrator.templates.invalid.items()},
        **orchestrator.configs.invalid,
    }

    has_errors = bool(invalid)
    for file_name, error in invalid.items():
        console.print(f"[red]✗ {file_name}[/red]")
        console.print(f"    [red]error:[/red] {escape(error)}")

    for config_id, result in results.items():
        has_errors = has_errors or not result.valid
        mark = "[green]✓[/green]" if result.valid else "[red]✗[/red]"
        console.print(f"{mark} {config_id}")
        for issue in result.errors:
            console.print(f"    [red]error:[/red] {escape(issue.field)}: {escape(issue.message)}")
        for issue in result.warnings:
            console.print(f"    [yellow]warning:[/yellow] {escape(issue.field)}: {escape(issue.message)}")

    if not results and not invalid:
        console.print("[yellow]No test configs found.[/yellow]")
    if has_errors:
        sys.exit(1)


@cli.command("list")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def list_configs(config: str) -> None:
    """List test configs."""
    configs = _load_orchestrator(config).list_configs()
    if not configs:
        console.print("[yellow]No test configs found.[/yellow]")
        return

    table = Table(title="Test Configs")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Template")
    table.add_column("Tags")
    for c in configs:
        table.add_row(c.id, c.name, c.template_label, ", ".join(c.tags))
    console.print(table)


@cli.command()
@click.argument("config_id")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def delete(config_id: str, config: str) -> None:
    """Delete a test config."""
    if _load_orchestrator(config).delete_config(config_id):
        console.print(f"[green]Deleted {config_id}[/green]")
    else:
        console.print(f"[red]Config not found: {config_id}[/red]")
        sys.exit(1)


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def templates(config: str) -> None:
    """List available templates."""
    found = _load_orchestrator(config).list_templates()
    if not found:
        console.print("[yellow]No templates found.[/yellow]")
        return

    table = Table(title="Templates")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Steps")
    table.add_column("Parameters")
    for t in found:
        table.add_row(t.id, t.name, str(len(t.steps)), ", ".join(p.name for p in t.required_parameters))
    console.print(table)


@cli.command()
def init() -> None:
    """Create a default configuration file and project directories."""
    config_path = Path(DEFAULT_CONFIG)
    if config_path.exists():
        if not click.confirm(f"{DEFAULT_CONFIG} already exists. Overwrite?"):
            return

    cfg = FrameworkConfig()
    cfg.save(config_path)
    for directory in (cfg.templates_dir, cfg.configs_dir, cfg.data_dir, cfg.plugins_dir):
        Path(directory).mkdir(parents=True, exist_ok=True)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nAdd templates and test configs, then run:")
    console.print("  [blue]flowcheck run[/blue]")


if __name__ == "__main__":
    cli()
