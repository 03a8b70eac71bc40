"""Configuration settings for PixiBench."""

import os
from dataclasses import dataclass, field


@dataclass
class SandboxConfig:
    """Configuration for the browser sandbox used to run one scenario."""

    # Browser engine launched through Playwright (chromium, firefox, webkit)
    # Override with: PIXIBENCH_BROWSER
    BROWSER: str = "chromium"

    # Run without a visible window. Override with: PIXIBENCH_HEADLESS
    HEADLESS: bool = True

    # Extra command line switches for the browser process.
    # ANGLE keeps WebGL on the GPU path in headless chromium.
    BROWSER_ARGS: list[str] = field(
        default_factory=lambda: ["--use-gl=angle", "--disable-web-security"]
    )

    VIEWPORT_WIDTH: int = 800
    VIEWPORT_HEIGHT: int = 600

    # Navigation and completion-signal timeout per execution.
    # Override with: PIXIBENCH_TIMEOUT_MS
    TIMEOUT_MS: int = 60_000

    # Global the harness page sets once the scenario has finished rendering
    RESULT_GLOBAL: str = "benchmarkResult"

    def __post_init__(self) -> None:
        """Apply environment variable overrides after initialization."""
        browser = os.getenv("PIXIBENCH_BROWSER")
        if browser:
            self.BROWSER = browser

        headless = os.getenv("PIXIBENCH_HEADLESS")
        if headless:
            self.HEADLESS = headless.lower() not in ("0", "false", "no")

        timeout = os.getenv("PIXIBENCH_TIMEOUT_MS")
        if timeout:
            self.TIMEOUT_MS = int(timeout)


@dataclass
class ServerConfig:
    """Configuration for the local static file server."""

    HOST: str = "127.0.0.1"

    # 0 picks a free port. Override with: PIXIBENCH_PORT
    PORT: int = 8080

    def __post_init__(self) -> None:
        port = os.getenv("PIXIBENCH_PORT")
        if port:
            self.PORT = int(port)


@dataclass
class HarnessConfig:
    """Configuration for harness pages synthesized next to each scenario."""

    ENTRY_POINT: str = "index.mjs"

    # Library bundle expected inside the dist directory
    LIBRARY_FILE: str = "pixi.mjs"

    # Import-map specifier the scenarios import the library from
    LIBRARY_SPECIFIER: str = "pixi.js"

    # Reference build loaded by the baseline page.
    # Override with: PIXIBENCH_REFERENCE_SOURCE
    REFERENCE_SOURCE: str = "//cdn.jsdelivr.net/npm/pixi.js@dev/dist/pixi.mjs"

    def __post_init__(self) -> None:
        reference = os.getenv("PIXIBENCH_REFERENCE_SOURCE")
        if reference:
            self.REFERENCE_SOURCE = reference


@dataclass
class RegressionConfig:
    """Configuration for regression detection and reporting."""

    # Percent slowdown tolerated before a scenario counts as regressed
    DEFAULT_THRESHOLD_PERCENT: float = 5.0

    # Frame rate the FPS-scaled tolerance is relative to
    REFERENCE_FPS: float = 60.0

    # Floor applied to the baseline FPS when scaling the tolerance
    MIN_BASELINE_FPS: float = 1.0

    # Repeats per (scenario, variant) in live comparison modes
    DEFAULT_REPEATS: int = 3

    # Marker used to find a previous report in the comment sink
    REPORT_MARKER: str = "<!-- PIXIJS_BENCHMARK_COMMENT -->"

    REPORT_TITLE: str = "PixiJS Benchmark Results"


DEFAULT_SANDBOX_CONFIG = SandboxConfig()
DEFAULT_SERVER_CONFIG = ServerConfig()
DEFAULT_HARNESS_CONFIG = HarnessConfig()
DEFAULT_REGRESSION_CONFIG = RegressionConfig()

# GitHub integration for posting the report on pull requests
GITHUB = {
    "api_url": os.getenv("GITHUB_API_URL", "https://api.github.com"),
    "request_timeout": 30.0,  # Seconds per REST call
    "per_page": 100,  # Comments fetched per page when searching for the marker
}
