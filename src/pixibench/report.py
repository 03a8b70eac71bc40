"""Render a regression report as Markdown (for the comment sink) or a rich table."""

from __future__ import annotations

import json

from rich.table import Table

from .config import DEFAULT_REGRESSION_CONFIG
from .models import AggregatedMetric, ComparisonRow, RegressionReport, Trend

REPORT_MARKER = DEFAULT_REGRESSION_CONFIG.REPORT_MARKER

TREND_ARROWS = {
    Trend.DOWN: "🔻",
    Trend.UP: "🔺",
    Trend.NONE: "",
}

MISSING = "n/a"


def format_metric(metric: AggregatedMetric | None) -> str:
    if metric is None or not metric.is_finite:
        return MISSING
    if len(metric.samples) > 1:
        return f"{metric.mean:.2f} ± {metric.stddev:.2f}"
    return f"{metric.mean:.2f}"


def format_change(row: ComparisonRow) -> str:
    if row.diff_percent is None:
        return MISSING
    arrow = TREND_ARROWS[row.trend]
    change = f"{row.diff_percent:.2f}%"
    return f"{change} {arrow}" if arrow else change


def verdict_line(report: RegressionReport) -> str:
    threshold = f"{report.threshold_percent:g}"
    if report.overall_regression:
        names = ", ".join(row.scenario_name for row in report.regressed_rows)
        return (
            f"❌ Performance regression detected (> {threshold}% slower than baseline): {names}"
        )
    return "✅ Performance within acceptable range"


def render_markdown(report: RegressionReport, marker: str = REPORT_MARKER) -> str:
    """Render the report as a Markdown comment body.

    The output depends only on *report*, so posting the same report twice
    produces byte-identical bodies.
    """
    lines = [
        marker,
        f"### {report.title}",
        "",
        "| Name | Metric | Baseline | Candidate | Change |",
        "|:-----|:------:|---------:|----------:|-------:|",
    ]
    for row in report.rows:
        lines.append(
            f"| {row.scenario_name} | FPS | {format_metric(row.baseline)} "
            f"| {format_metric(row.candidate)} | {format_change(row)} |"
        )

    policy_note = (
        "tolerance scaled by baseline FPS relative to 60 fps"
        if report.policy == "fps_scaled"
        else "fixed tolerance"
    )
    lines.extend(
        [
            "",
            f"Threshold: {report.threshold_percent:g}% ({policy_note})",
            "",
            verdict_line(report),
            "",
        ]
    )
    return "\n".join(lines)


def render_json(report: RegressionReport) -> str:
    """Render the report as JSON for other tooling; non-finite values become null."""
    return json.dumps(report.to_dict(), indent=2)


def render_console_table(report: RegressionReport) -> Table:
    """Build a rich table for terminal output."""
    table = Table(title=report.title, show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Baseline FPS", justify="right")
    table.add_column("Candidate FPS", justify="right")
    table.add_column("Δ%", justify="right")
    table.add_column("Allowed", justify="right", style="dim")
    table.add_column("Status")

    status_styles = {
        "regressed": "red",
        "improved": "green",
        "unchanged": "white",
        "incomparable": "yellow",
    }

    for row in report.rows:
        status = row.classification.value
        style = status_styles[status]
        allowed = MISSING if row.allowed_percent is None else f"{row.allowed_percent:.2f}%"
        table.add_row(
            row.scenario_name,
            format_metric(row.baseline),
            format_metric(row.candidate),
            format_change(row),
            allowed,
            f"[{style}]{status.upper()}[/{style}]",
        )
    return table
