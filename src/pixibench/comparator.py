"""Regression comparison between a baseline and a candidate result set.

``diff_percent`` is ``(baseline - candidate) / baseline * 100`` everywhere:
a positive value means the candidate renders fewer frames per second.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Mapping

from .config import DEFAULT_REGRESSION_CONFIG
from .error_handling import log_warning_with_context
from .models import (
    AggregatedMetric,
    Classification,
    ComparisonRow,
    RegressionReport,
    Trend,
)

logger = logging.getLogger(__name__)


class TolerancePolicy(Enum):
    """How the allowed slowdown is derived from the configured threshold."""

    FIXED = "fixed"
    FPS_SCALED = "fps_scaled"


def allowed_percent(
    baseline_mean: float, threshold_percent: float, policy: TolerancePolicy
) -> float:
    """Return the slowdown (in percent) tolerated for a scenario.

    With ``FPS_SCALED`` the tolerance grows as the baseline drops below the
    reference frame rate: 5% at 30 fps allows 10%.
    """
    if policy is TolerancePolicy.FIXED:
        return threshold_percent

    floor = max(baseline_mean, DEFAULT_REGRESSION_CONFIG.MIN_BASELINE_FPS)
    return threshold_percent * (DEFAULT_REGRESSION_CONFIG.REFERENCE_FPS / floor)


def percent_difference(baseline_mean: float, candidate_mean: float) -> float | None:
    """Percent by which the candidate is slower; None when not computable."""
    if not (math.isfinite(baseline_mean) and math.isfinite(candidate_mean)):
        return None
    if baseline_mean == 0:
        return None
    return (baseline_mean - candidate_mean) / baseline_mean * 100


def trend_for(diff_percent: float | None) -> Trend:
    if diff_percent is None or diff_percent == 0:
        return Trend.NONE
    return Trend.DOWN if diff_percent > 0 else Trend.UP


def compare_metrics(
    name: str,
    baseline: AggregatedMetric | None,
    candidate: AggregatedMetric | None,
    threshold_percent: float,
    policy: TolerancePolicy = TolerancePolicy.FPS_SCALED,
) -> ComparisonRow:
    """Compare one scenario; a missing side makes the row incomparable."""
    if baseline is None or candidate is None:
        return ComparisonRow(
            scenario_name=name,
            baseline=baseline,
            candidate=candidate,
            diff_percent=None,
            allowed_percent=None,
            regressed=False,
            trend=Trend.NONE,
            classification=Classification.INCOMPARABLE,
        )

    diff = percent_difference(baseline.mean, candidate.mean)
    if diff is None:
        log_warning_with_context(
            f"{name}: cannot compare results",
            {"baseline_fps": baseline.mean, "candidate_fps": candidate.mean},
            logger=logger,
        )
        return ComparisonRow(
            scenario_name=name,
            baseline=baseline,
            candidate=candidate,
            diff_percent=None,
            allowed_percent=None,
            regressed=False,
            trend=Trend.NONE,
            classification=Classification.INCOMPARABLE,
        )

    allowed = allowed_percent(baseline.mean, threshold_percent, policy)
    regressed = diff > allowed
    if regressed:
        classification = Classification.REGRESSED
    elif -diff > allowed:
        classification = Classification.IMPROVED
    else:
        classification = Classification.UNCHANGED

    return ComparisonRow(
        scenario_name=name,
        baseline=baseline,
        candidate=candidate,
        diff_percent=diff,
        allowed_percent=allowed,
        regressed=regressed,
        trend=trend_for(diff),
        classification=classification,
    )


def compare(
    baseline_by_name: Mapping[str, AggregatedMetric],
    candidate_by_name: Mapping[str, AggregatedMetric],
    threshold_percent: float,
    policy: TolerancePolicy = TolerancePolicy.FPS_SCALED,
    title: str | None = None,
) -> RegressionReport:
    """Compare two result sets scenario by scenario.

    Rows are ordered by scenario name so identical inputs always produce the
    same report.
    """
    names = sorted(set(baseline_by_name) | set(candidate_by_name))
    rows = tuple(
        compare_metrics(
            name,
            baseline_by_name.get(name),
            candidate_by_name.get(name),
            threshold_percent,
            policy,
        )
        for name in names
    )

    report = RegressionReport(
        rows=rows,
        threshold_percent=threshold_percent,
        policy=policy.value,
        title=title or DEFAULT_REGRESSION_CONFIG.REPORT_TITLE,
    )

    for row in report.regressed_rows:
        logger.warning(
            f"🔻 {row.scenario_name}: {row.diff_percent:.2f}% slower "
            f"(allowed {row.allowed_percent:.2f}%)"
        )
    return report
