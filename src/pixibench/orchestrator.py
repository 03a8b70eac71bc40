"""Orchestration driver: discovery, measurement, comparison and reporting.

The driver owns the static server and the browser runtime for the whole
invocation. Both are released on every exit path, runtime first, and a
failure to release them is only logged so it never hides the real outcome.
"""

from __future__ import annotations

import asyncio
import logging
import math
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from .actions import log_group
from .comparator import TolerancePolicy, compare
from .config import (
    DEFAULT_HARNESS_CONFIG,
    DEFAULT_REGRESSION_CONFIG,
    DEFAULT_SANDBOX_CONFIG,
)
from .discovery import (
    discover_scenarios,
    ensure_harness_pages,
    library_sources,
    scenario_url,
)
from .error_handling import ConfigurationError, ReportSinkError
from .io import load_results, write_results
from .models import AggregatedMetric, RegressionReport, ScenarioEntry, Variant
from .report import render_markdown
from .sampling import sample
from .sandbox import IsolationLevel, SandboxRuntime
from .server import StaticServer
from .sink import CommentSink, GitHubCommentSink, GitHubContext, publish_report

logger = logging.getLogger(__name__)


class ComparisonMode(Enum):
    """Which two result sets get compared."""

    SINGLE_BASELINE_FILE = "single"  # one fixed scenario vs a stored results file
    DEV_VS_LOCAL = "dev-vs-local"  # reference CDN build vs local build, both live
    AVERAGED_REPEATS = "averaged"  # every scenario, N repeats, vs a stored results file

    @property
    def variants(self) -> tuple[Variant, ...]:
        if self is ComparisonMode.DEV_VS_LOCAL:
            return (Variant.BASELINE, Variant.CANDIDATE)
        return (Variant.CANDIDATE,)

    @property
    def title(self) -> str:
        base = DEFAULT_REGRESSION_CONFIG.REPORT_TITLE
        if self is ComparisonMode.DEV_VS_LOCAL:
            return f"{base} (dev CDN vs local dist)"
        return f"{base} (baseline file vs local dist)"


@dataclass
class RunSettings:
    """Inputs of one benchmark invocation."""

    dist_path: Path = Path("dist")
    benchmark_path: Path = Path("benchmarks")
    output_file: Path | None = None
    baseline_file: Path | None = None
    threshold_percent: float = DEFAULT_REGRESSION_CONFIG.DEFAULT_THRESHOLD_PERCENT
    mode: ComparisonMode = ComparisonMode.DEV_VS_LOCAL
    policy: TolerancePolicy = TolerancePolicy.FPS_SCALED
    repeats: int | None = None
    timeout_ms: int = field(default_factory=lambda: DEFAULT_SANDBOX_CONFIG.TIMEOUT_MS)
    isolation: IsolationLevel = IsolationLevel.PROCESS
    serve_root: Path = Path(".")
    scenario_url: str | None = None
    scenario_name: str = "benchmark"
    port: int | None = None
    token: str | None = None
    post_comment: bool = True

    @property
    def effective_repeats(self) -> int:
        if self.repeats is not None:
            return self.repeats
        if self.mode is ComparisonMode.SINGLE_BASELINE_FILE:
            return 1
        return DEFAULT_REGRESSION_CONFIG.DEFAULT_REPEATS

    @property
    def library_path(self) -> Path:
        return Path(self.dist_path) / DEFAULT_HARNESS_CONFIG.LIBRARY_FILE

    def validate(self) -> None:
        """Check required inputs before anything is started.

        Raises:
            ConfigurationError: On the first missing or invalid input
        """
        if not Path(self.dist_path).is_dir():
            raise ConfigurationError(f"dist path not found: {Path(self.dist_path).resolve()}")
        if not self.library_path.is_file():
            raise ConfigurationError(
                f"{self.library_path.name} not found in dist path: {self.library_path.resolve()}"
            )
        if not Path(self.serve_root).is_dir():
            raise ConfigurationError(f"Serve root not found: {self.serve_root}")
        if not math.isfinite(self.threshold_percent) or self.threshold_percent < 0:
            raise ConfigurationError(
                f"perf change threshold must be a non-negative number, got {self.threshold_percent}"
            )
        if self.effective_repeats < 1:
            raise ConfigurationError(f"repeats must be at least 1, got {self.effective_repeats}")
        if self.timeout_ms <= 0:
            raise ConfigurationError(f"timeout must be positive, got {self.timeout_ms} ms")
        if self.mode is ComparisonMode.SINGLE_BASELINE_FILE and not self.scenario_url:
            raise ConfigurationError("single mode needs a scenario URL")


@dataclass
class BenchmarkOutcome:
    """Everything one invocation produced."""

    results: list[AggregatedMetric]
    report: RegressionReport | None = None
    markdown: str | None = None
    comment_status: str | None = None

    @property
    def regression_detected(self) -> bool:
        return self.report is not None and self.report.overall_regression

    @property
    def exit_code(self) -> int:
        return 1 if self.regression_detected else 0


class BenchmarkRunner:
    """Runs one invocation end to end; all measurements are strictly serialized."""

    def __init__(
        self,
        settings: RunSettings,
        sink: CommentSink | None = None,
        runtime_factory: Callable[..., SandboxRuntime] = SandboxRuntime,
        server_factory: Callable[..., StaticServer] = StaticServer,
    ):
        self.settings = settings
        self.sink = sink
        self.runtime_factory = runtime_factory
        self.server_factory = server_factory
        self.results: list[AggregatedMetric] = []
        self.baseline: dict[str, AggregatedMetric] = {}
        self.candidate: dict[str, AggregatedMetric] = {}

    def plan_scenarios(self) -> list[ScenarioEntry]:
        """Discover scenarios and make sure their harness pages exist."""
        s = self.settings
        if s.mode is ComparisonMode.SINGLE_BASELINE_FILE:
            logger.info(f"🎯 Single scenario {s.scenario_name}: {s.scenario_url}")
            return [ScenarioEntry(name=s.scenario_name, directory_path=Path(s.serve_root))]

        with log_group("Ensure benchmark HTML pages"):
            entries = discover_scenarios(Path(s.benchmark_path))
            sources = library_sources(s.dist_path, s.serve_root)
            ensure_harness_pages(entries, sources)
        return entries

    def url_for(self, base_url: str, entry: ScenarioEntry, variant: Variant) -> str:
        s = self.settings
        if s.mode is ComparisonMode.SINGLE_BASELINE_FILE:
            if "://" in s.scenario_url:
                return s.scenario_url
            return f"{base_url.rstrip('/')}/{s.scenario_url.lstrip('/')}"
        return scenario_url(base_url, s.serve_root, entry, variant)

    async def measure(self, runtime: SandboxRuntime, base_url: str, entries: list[ScenarioEntry]) -> None:
        s = self.settings
        with log_group("Run benchmarks"):
            for entry in entries:
                logger.info(f"🎬 Benchmark: {entry.name}")
                for variant in s.mode.variants:
                    metric = await sample(
                        runtime,
                        entry.name,
                        variant,
                        self.url_for(base_url, entry, variant),
                        s.effective_repeats,
                        s.timeout_ms,
                    )
                    self.results.append(metric)
                    target = self.baseline if variant is Variant.BASELINE else self.candidate
                    target[entry.name] = metric

    def load_baseline(self) -> dict[str, AggregatedMetric] | None:
        """Return the baseline side, or None when there is nothing to compare against."""
        s = self.settings
        if s.mode is ComparisonMode.DEV_VS_LOCAL:
            return self.baseline
        if s.baseline_file is None or not Path(s.baseline_file).exists():
            logger.info("ℹ️  No baseline results file found, skipping comparison")
            return None
        return load_results(Path(s.baseline_file))

    def resolve_sink(self) -> CommentSink | None:
        s = self.settings
        if self.sink is not None:
            return self.sink
        if not s.post_comment or not s.token:
            return None
        context = GitHubContext.from_env()
        if context is None:
            logger.info("ℹ️  Not running for a pull request, skipping comment")
            return None
        return GitHubCommentSink(s.token, context)

    async def post_report(self, markdown: str) -> str | None:
        sink = self.resolve_sink()
        if sink is None:
            return None
        try:
            return await asyncio.to_thread(publish_report, sink, markdown)
        except ReportSinkError as e:
            logger.warning(f"⚠️  Could not post benchmark comment: {e}")
            return None

    def log_partial_report(self) -> None:
        """Best effort: show what was fully measured before a fatal error."""
        baseline = self.baseline
        if self.settings.mode is not ComparisonMode.DEV_VS_LOCAL:
            return
        names = set(baseline) & set(self.candidate)
        if not names:
            return
        partial = compare(
            {name: baseline[name] for name in names},
            {name: self.candidate[name] for name in names},
            self.settings.threshold_percent,
            self.settings.policy,
            title=f"{self.settings.mode.title} (partial)",
        )
        logger.error(f"Partial results before failure:\n{render_markdown(partial)}")

    async def run(self) -> BenchmarkOutcome:
        s = self.settings
        s.validate()
        entries = self.plan_scenarios()

        try:
            async with AsyncExitStack() as stack:
                server = stack.enter_context(self.server_factory(Path(s.serve_root), port=s.port))
                runtime = await stack.enter_async_context(
                    self.runtime_factory(isolation=s.isolation)
                )
                await self.measure(runtime, server.base_url, entries)
        except Exception:
            self.log_partial_report()
            raise

        if s.output_file is not None:
            write_results(self.results, Path(s.output_file))

        baseline = self.load_baseline()
        if baseline is None:
            return BenchmarkOutcome(results=list(self.results))

        report = compare(
            baseline, self.candidate, s.threshold_percent, s.policy, title=s.mode.title
        )
        markdown = render_markdown(report)
        comment_status = await self.post_report(markdown)

        if report.overall_regression:
            logger.error(
                f"❌ Performance regression > {s.threshold_percent:g}% slower than baseline."
            )
        else:
            logger.info("✅ No significant regression detected.")

        return BenchmarkOutcome(
            results=list(self.results),
            report=report,
            markdown=markdown,
            comment_status=comment_status,
        )


def run_benchmarks(settings: RunSettings, sink: CommentSink | None = None) -> BenchmarkOutcome:
    """Synchronous entry point used by the CLI."""
    return asyncio.run(BenchmarkRunner(settings, sink=sink).run())
