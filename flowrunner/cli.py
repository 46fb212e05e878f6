"""CLI entry point for flowrunner."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from flowrunner.errors import StartupError
from flowrunner.executor.step_runner import format_step
from flowrunner.models.config import EnvConfig, GlobalConfig, RunOptions, load_global_config
from flowrunner.models.flow import load_flow
from flowrunner.orchestrator import Orchestrator

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

USAGE = """Usage: flowrunner run <flow-file> [options]
Options:
  --env NAME               local|staging|prod
  --headless/--headed
  --slowmo MS
  --report json
  --verbose, -v            Show detailed debug info on failure"""


def setup_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug: bool) -> None:
    """Declarative browser-flow test runner"""
    setup_logging(debug)


@cli.command()
@click.argument("flow_file", required=False)
@click.option("--env", "-e", default=None, help="Environment name from the config file")
@click.option("--headless/--headed", default=True, help="Run the browser headless (default)")
@click.option("--slowmo", default=0, type=click.IntRange(min=0), help="Slow down actions by MS")
@click.option("--report", type=click.Choice(["json"]), default=None, help="Write a run report")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed debug info on failure")
@click.option("--config", "-c", "config_path", default="config.json", help="Config file path")
@click.option("--screenshots-dir", default="screenshots", help="Failure screenshot directory")
@click.option("--reports-dir", default="reports", help="Report output directory")
def run(
    flow_file: str | None,
    env: str | None,
    headless: bool,
    slowmo: int,
    report: str | None,
    verbose: bool,
    config_path: str,
    screenshots_dir: str,
    reports_dir: str,
) -> None:
    """Run a flow file (.yaml, .yml or .json)."""
    if not flow_file:
        err_console.print(USAGE, markup=False, highlight=False)
        sys.exit(1)

    options = RunOptions(
        flow_file=flow_file,
        env=env,
        headless=headless,
        slowmo=slowmo,
        report=report,
        verbose=verbose,
        screenshots_dir=screenshots_dir,
        reports_dir=reports_dir,
    )

    try:
        global_config = load_global_config(config_path)
        results = Orchestrator(global_config, options, console=err_console).run()
    except StartupError as e:
        err_console.print(f"[red]ERROR: {escape(str(e))}[/red]", highlight=False)
        sys.exit(1)
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        err_console.print(f"[red]FATAL: {escape(str(e))}[/red]", highlight=False)
        sys.exit(1)

    run_report = results["report"]
    if run_report.success:
        console.print("---")
        console.print("[bold green]Flow completed successfully.[/bold green]")
    else:
        console.print("[bold red]Flow failed.[/bold red]")

    table = Table(title="Results Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value")
    table.add_row("Flow", escape(run_report.flow_name))
    table.add_row("Environment", run_report.env)
    table.add_row("Duration", f"{run_report.duration_ms}ms")
    table.add_row("Steps", f"{len(run_report.steps)}/{results['total_steps']}")
    table.add_row("Passed", f"[green]{run_report.passed}[/green]")
    table.add_row("Failed", f"[red]{run_report.failed}[/red]")
    console.print(table)

    for fmt, path in results["reports"].items():
        console.print(f"  {fmt.upper()} report: [blue]{path}[/blue]")

    sys.exit(0 if run_report.success else 1)


@cli.command()
@click.argument("flow_file")
def validate(flow_file: str) -> None:
    """Load a flow file and list its steps without opening a browser."""
    try:
        flow = load_flow(flow_file)
    except StartupError as e:
        err_console.print(f"[red]ERROR: {escape(str(e))}[/red]", highlight=False)
        sys.exit(1)

    console.print(f"[green]Flow loaded:[/green] {escape(flow.name or flow_file)}", highlight=False)
    if flow.config:
        if flow.config.base_url:
            console.print(f"  Base URL: {flow.config.base_url}", highlight=False)
        if flow.config.timeout_ms:
            console.print(f"  Timeout: {flow.config.timeout_ms}ms", highlight=False)
    for i, step in enumerate(flow.steps):
        console.print(f"  {format_step(step, i)}", markup=False, highlight=False)


@cli.command()
@click.option("--base-url", "-u", prompt="Base URL", help="Base URL for the default environment")
@click.option("--env", "-e", default="local", help="Default environment name")
@click.option("--config", "-c", "config_path", default="config.json", help="Config file path")
def init(base_url: str, env: str, config_path: str) -> None:
    """Create a default configuration file."""
    path = Path(config_path)
    if path.exists():
        if not click.confirm(f"{path} already exists. Overwrite?"):
            return

    cfg = GlobalConfig(envs={env: EnvConfig(base_url=base_url)}, default_env=env)
    cfg.save(path)
    console.print(f"[green]Created {path}[/green]")
    console.print("\nYou can now run a flow:")
    console.print("  [blue]flowrunner run flows/login.yaml[/blue]")


if __name__ == "__main__":
    cli()
