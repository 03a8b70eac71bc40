"""Compare two stored results files without running any benchmark."""

import sys
from pathlib import Path

import click

from ..comparator import TolerancePolicy, compare
from ..config import DEFAULT_REGRESSION_CONFIG
from ..io import load_results
from ..models import Variant
from ..report import render_json, render_markdown
from .utils import configure_logging, display_report, handle_generic_error, logging_options


@click.command("compare")
@click.argument("baseline_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("candidate_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--perf-change",
    "-t",
    type=float,
    default=DEFAULT_REGRESSION_CONFIG.DEFAULT_THRESHOLD_PERCENT,
    help="Allowed slowdown in percent (default: 5)",
)
@click.option(
    "--tolerance",
    type=click.Choice(["fixed", "fps-scaled"]),
    default="fps-scaled",
    help="Tolerance policy (default: fps-scaled)",
)
@click.option("--markdown", is_flag=True, help="Print the Markdown comment body instead of a table")
@click.option("--json", "as_json", is_flag=True, help="Print the comparison as JSON")
@logging_options
def compare_results(
    baseline_file: Path,
    candidate_file: Path,
    perf_change: float,
    tolerance: str,
    markdown: bool,
    as_json: bool,
    log_level: str,
    log_dir: Path | None,
) -> None:
    """Compare CANDIDATE_FILE against BASELINE_FILE and exit 1 on regression."""
    configure_logging(log_level, log_dir)

    try:
        baseline = load_results(baseline_file)
        candidate = load_results(candidate_file, as_variant=Variant.CANDIDATE)
        report = compare(
            baseline,
            candidate,
            perf_change,
            TolerancePolicy(tolerance.replace("-", "_")),
        )
    except Exception as e:
        handle_generic_error("Compare", e)

    if as_json:
        click.echo(render_json(report))
    elif markdown:
        click.echo(render_markdown(report))
    else:
        display_report(report)

    if report.overall_regression:
        sys.exit(1)
