"""PixiBench: browser rendering benchmarks with FPS regression detection."""

__version__ = "0.1.0"

from .comparator import TolerancePolicy, compare
from .error_handling import (
    ConfigurationError,
    DiscoveryError,
    PixiBenchError,
    ReportSinkError,
    SandboxError,
    SandboxFailure,
    TeardownError,
)
from .models import (
    AggregatedMetric,
    Classification,
    ComparisonRow,
    RegressionReport,
    RunResult,
    ScenarioEntry,
    Trend,
    Variant,
)
from .orchestrator import BenchmarkRunner, ComparisonMode, RunSettings, run_benchmarks

__all__ = [
    "AggregatedMetric",
    "BenchmarkRunner",
    "Classification",
    "ComparisonMode",
    "ComparisonRow",
    "ConfigurationError",
    "DiscoveryError",
    "PixiBenchError",
    "RegressionReport",
    "ReportSinkError",
    "RunResult",
    "RunSettings",
    "SandboxError",
    "SandboxFailure",
    "ScenarioEntry",
    "TeardownError",
    "TolerancePolicy",
    "Trend",
    "Variant",
    "__version__",
    "compare",
    "run_benchmarks",
]
