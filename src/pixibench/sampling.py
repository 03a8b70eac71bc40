"""Repeat a scenario in fresh sandboxes and summarize the samples."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import numpy as np

from .error_handling import ConfigurationError
from .models import AggregatedMetric, Variant
from .sandbox import SandboxRuntime

logger = logging.getLogger(__name__)


def aggregate(
    scenario_name: str,
    variant: Variant,
    samples: Sequence[float],
    raw: dict[str, Any] | None = None,
) -> AggregatedMetric:
    """Summarize samples with their mean and population standard deviation."""
    if len(samples) < 1:
        raise ValueError(f"{scenario_name}: cannot aggregate zero samples")

    values = np.asarray(samples, dtype=float)
    mean = float(np.mean(values))
    stddev = float(np.std(values)) if len(values) > 1 else 0.0

    return AggregatedMetric(
        scenario_name=scenario_name,
        variant=variant,
        samples=tuple(float(v) for v in values),
        mean=mean,
        stddev=stddev,
        raw=dict(raw or {}),
    )


async def sample(
    runtime: SandboxRuntime,
    scenario_name: str,
    variant: Variant,
    url: str,
    repeat_count: int,
    timeout_ms: int | None = None,
) -> AggregatedMetric:
    """Run *url* ``repeat_count`` times, each in a freshly launched sandbox.

    Repeats run strictly one after another and each sandbox is disposed
    before the next one starts. A failing repeat aborts sampling.
    """
    if repeat_count < 1:
        raise ConfigurationError(f"repeat count must be at least 1, got {repeat_count}")

    samples: list[float] = []
    last_raw: dict[str, Any] = {}
    label = f"{scenario_name} [{variant.label}]"

    for i in range(repeat_count):
        logger.info(f"⏱️  Measurement {i + 1}/{repeat_count} for {label}")
        async with runtime.sandbox() as sandbox:
            result = await sandbox.execute(url, scenario_name, variant, timeout_ms)
        samples.append(result.fps)
        last_raw = result.raw
        logger.debug(f"{label} repeat {i + 1}: {result.fps:.2f} fps")

    metric = aggregate(scenario_name, variant, samples, raw=last_raw)
    logger.info(f"📈 {label}: {metric.mean:.2f} ± {metric.stddev:.2f} fps (n={repeat_count})")
    return metric
