"""Run browser benchmarks and fail on FPS regressions."""

import sys
from pathlib import Path

import click

from ..actions import annotate_error
from ..comparator import TolerancePolicy
from ..config import DEFAULT_REGRESSION_CONFIG, DEFAULT_SANDBOX_CONFIG
from ..orchestrator import ComparisonMode, RunSettings, run_benchmarks
from ..sandbox import IsolationLevel
from .utils import (
    configure_logging,
    display_path_info,
    display_report,
    handle_generic_error,
    handle_keyboard_interrupt,
    logging_options,
)


@click.command()
@click.option(
    "--dist-path",
    type=click.Path(path_type=Path),
    default=Path("dist"),
    envvar="PIXIBENCH_DIST_PATH",
    help="Directory holding the locally built library (default: dist)",
)
@click.option(
    "--benchmark-path",
    type=click.Path(path_type=Path),
    default=Path("benchmarks"),
    envvar="PIXIBENCH_BENCHMARK_PATH",
    help="Root directory searched for index.mjs scenarios (default: benchmarks)",
)
@click.option(
    "--output-file",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    envvar="PIXIBENCH_OUTPUT_FILE",
    help="Write raw results as JSON to this file (overwritten)",
)
@click.option(
    "--baseline-file",
    "-b",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    envvar="PIXIBENCH_BASELINE_FILE",
    help="Results JSON of a previous run to compare against (file modes)",
)
@click.option(
    "--perf-change",
    "-t",
    type=float,
    default=DEFAULT_REGRESSION_CONFIG.DEFAULT_THRESHOLD_PERCENT,
    envvar="PIXIBENCH_PERF_CHANGE",
    help="Allowed slowdown in percent before failing (default: 5)",
)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ComparisonMode]),
    default=ComparisonMode.DEV_VS_LOCAL.value,
    envvar="PIXIBENCH_MODE",
    help="What to compare (default: dev-vs-local)",
)
@click.option(
    "--tolerance",
    type=click.Choice(["fixed", "fps-scaled"]),
    default="fps-scaled",
    help="Fixed threshold, or widen it as baseline FPS drops below 60 (default: fps-scaled)",
)
@click.option(
    "--repeats",
    "-r",
    type=int,
    default=None,
    help="Runs per scenario and variant (default: 3, or 1 in single mode)",
)
@click.option(
    "--timeout-ms",
    type=int,
    default=DEFAULT_SANDBOX_CONFIG.TIMEOUT_MS,
    help="Per-run navigation and completion timeout in ms (default: 60000)",
)
@click.option(
    "--isolation",
    type=click.Choice([i.value for i in IsolationLevel]),
    default=IsolationLevel.PROCESS.value,
    help="Fresh browser process per run, or fresh context in one browser (default: process)",
)
@click.option(
    "--serve-root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    help="Directory served over HTTP; must contain dist and benchmarks (default: .)",
)
@click.option("--url", "scenario_url", default=None, help="Scenario page for single mode")
@click.option("--name", "scenario_name", default="benchmark", help="Scenario name for single mode")
@click.option("--port", type=int, default=None, help="Static server port (default: 8080, 0 = any)")
@click.option(
    "--token",
    default=None,
    envvar="GITHUB_TOKEN",
    help="Token used to post the report on the pull request",
)
@click.option("--no-comment", is_flag=True, help="Never post the report as a PR comment")
@logging_options
def run(
    dist_path: Path,
    benchmark_path: Path,
    output_file: Path | None,
    baseline_file: Path | None,
    perf_change: float,
    mode: str,
    tolerance: str,
    repeats: int | None,
    timeout_ms: int,
    isolation: str,
    serve_root: Path,
    scenario_url: str | None,
    scenario_name: str,
    port: int | None,
    token: str | None,
    no_comment: bool,
    log_level: str,
    log_dir: Path | None,
) -> None:
    """Run benchmark scenarios in isolated browsers and compare FPS.

    Exits with status 1 when a scenario fails to run or when the candidate
    build is slower than the baseline by more than the allowed tolerance.
    """
    configure_logging(log_level, log_dir)

    settings = RunSettings(
        dist_path=dist_path,
        benchmark_path=benchmark_path,
        output_file=output_file,
        baseline_file=baseline_file,
        threshold_percent=perf_change,
        mode=ComparisonMode(mode),
        policy=TolerancePolicy(tolerance.replace("-", "_")),
        repeats=repeats,
        timeout_ms=timeout_ms,
        isolation=IsolationLevel(isolation),
        serve_root=serve_root,
        scenario_url=scenario_url,
        scenario_name=scenario_name,
        port=port,
        token=token,
        post_comment=not no_comment,
    )

    display_path_info("Benchmarks", benchmark_path)
    display_path_info("Dist", dist_path, emoji="📦")

    try:
        outcome = run_benchmarks(settings)
    except KeyboardInterrupt:
        handle_keyboard_interrupt("Benchmark run")
    except Exception as e:
        handle_generic_error("Benchmark run", e)

    if outcome.report is not None:
        display_report(outcome.report)

    if output_file is not None:
        display_path_info("Results saved to", output_file, emoji="💾")

    if outcome.regression_detected:
        message = f"Performance regression > {perf_change:g}% slower than baseline."
        annotate_error(message)
        click.echo(f"❌ {message}", err=True)
        sys.exit(1)
