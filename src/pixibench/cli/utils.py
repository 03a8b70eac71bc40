"""Shared utilities for CLI commands."""

import sys
from pathlib import Path

import click
from rich.console import Console

from ..actions import annotate_error
from ..io import setup_logging
from ..models import RegressionReport
from ..report import render_console_table

console = Console(stderr=True)


def handle_generic_error(command_name: str, error: Exception) -> None:
    """Print a single-line failure reason and exit non-zero."""
    annotate_error(str(error))
    click.echo(f"❌ {command_name} failed: {error}", err=True)
    sys.exit(1)


def handle_keyboard_interrupt(command_name: str) -> None:
    """Handle keyboard interrupt with consistent formatting."""
    click.echo(f"\n⏹️  {command_name} interrupted by user", err=True)
    sys.exit(1)


def configure_logging(log_level: str, log_dir: Path | None) -> None:
    setup_logging(log_dir, log_level)


def display_report(report: RegressionReport) -> None:
    """Print the comparison as a rich table followed by the verdict."""
    console.print()
    console.print(render_console_table(report))
    if report.overall_regression:
        console.print(
            f"[bold red]❌ Performance regression detected "
            f"(> {report.threshold_percent:g}% slower than baseline)[/bold red]"
        )
    else:
        console.print("[bold green]✅ Performance within acceptable range[/bold green]")


def display_path_info(label: str, path: Path, emoji: str = "📁") -> None:
    """Display path information with consistent formatting."""
    click.echo(f"{emoji} {label}: {path}", err=True)


def logging_options(func):
    """Attach the shared --log-level / --log-dir options to a command."""
    func = click.option(
        "--log-dir",
        type=click.Path(file_okay=False, path_type=Path),
        default=None,
        help="Also write a timestamped log file to this directory",
    )(func)
    func = click.option(
        "--log-level",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
        default="INFO",
        envvar="PIXIBENCH_LOG_LEVEL",
        help="Logging verbosity (default: INFO)",
    )(func)
    return func
