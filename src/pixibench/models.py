"""Value objects shared by discovery, sampling, comparison and reporting."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class Variant(Enum):
    """One of the two builds being compared."""

    BASELINE = "baseline"
    CANDIDATE = "candidate"

    @property
    def page_name(self) -> str:
        """Harness page served for this variant."""
        return "dev.html" if self is Variant.BASELINE else "local.html"

    @property
    def label(self) -> str:
        return "dev" if self is Variant.BASELINE else "local"


class Trend(Enum):
    """Direction of the candidate relative to the baseline."""

    UP = "up"
    DOWN = "down"
    NONE = "none"


class Classification(Enum):
    """Outcome of comparing one scenario."""

    REGRESSED = "regressed"
    IMPROVED = "improved"
    UNCHANGED = "unchanged"
    INCOMPARABLE = "incomparable"


@dataclass(frozen=True)
class ScenarioEntry:
    """One discovered benchmark scene.

    ``name`` is the scene directory relative to the benchmark root, so two
    scenes in different directories never share a name.
    """

    name: str
    directory_path: Path


@dataclass(frozen=True)
class RunResult:
    """Result of a single sandbox execution."""

    scenario_name: str
    variant: Variant
    fps: float
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(
        cls, scenario_name: str, variant: Variant, payload: dict[str, Any]
    ) -> RunResult:
        """Build a result from the harness payload; a missing fps becomes NaN."""
        return cls(
            scenario_name=scenario_name,
            variant=variant,
            fps=_as_float(payload.get("fps")),
            raw=dict(payload),
        )


@dataclass(frozen=True)
class AggregatedMetric:
    """Summary of every repeat of one (scenario, variant) pair."""

    scenario_name: str
    variant: Variant
    samples: tuple[float, ...]
    mean: float
    stddev: float
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if len(self.samples) < 1:
            raise ValueError(f"{self.scenario_name}: at least one sample is required")

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.mean)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a results-file entry (``fps`` holds the mean)."""
        result = {
            key: value
            for key, value in self.raw.items()
            if key not in ("name", "fps", "variant", "samples", "stddev")
        }
        if "name" in self.raw:
            result["label"] = self.raw["name"]
        result.update(
            {
                "name": self.scenario_name,
                "variant": self.variant.value,
                "fps": self.mean,
                "stddev": self.stddev,
                "samples": list(self.samples),
            }
        )
        return result

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], variant: Variant = Variant.BASELINE
    ) -> AggregatedMetric:
        """Create from a results-file entry (JSON deserialization)."""
        fps = _as_float(data.get("fps"))
        samples = data.get("samples")
        if not isinstance(samples, list) or not samples:
            samples = [fps]
        return cls(
            scenario_name=str(data["name"]),
            variant=variant,
            samples=tuple(_as_float(s) for s in samples),
            mean=fps,
            stddev=_as_float(data.get("stddev", 0.0)),
            raw=dict(data),
        )


@dataclass(frozen=True)
class ComparisonRow:
    """Baseline vs candidate for one scenario name."""

    scenario_name: str
    baseline: AggregatedMetric | None
    candidate: AggregatedMetric | None
    diff_percent: float | None
    allowed_percent: float | None
    regressed: bool
    trend: Trend
    classification: Classification

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.scenario_name,
            "baseline_fps": _finite_mean(self.baseline),
            "candidate_fps": _finite_mean(self.candidate),
            "diff_percent": self.diff_percent,
            "allowed_percent": self.allowed_percent,
            "regressed": self.regressed,
            "trend": self.trend.value,
            "classification": self.classification.value,
        }


@dataclass(frozen=True)
class RegressionReport:
    """Ordered comparison rows plus the overall verdict."""

    rows: tuple[ComparisonRow, ...]
    threshold_percent: float
    policy: str
    title: str = "PixiJS Benchmark Results"

    @property
    def overall_regression(self) -> bool:
        return any(row.regressed for row in self.rows)

    @property
    def regressed_rows(self) -> list[ComparisonRow]:
        return [row for row in self.rows if row.regressed]

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "threshold_percent": self.threshold_percent,
            "policy": self.policy,
            "overall_regression": self.overall_regression,
            "rows": [row.to_dict() for row in self.rows],
        }


def _finite_mean(metric: AggregatedMetric | None) -> float | None:
    if metric is None or not metric.is_finite:
        return None
    return metric.mean


def _as_float(value: Any) -> float:
    """Numeric JSON value as float; null and non-numbers read back as NaN."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return math.nan
    return float(value)
