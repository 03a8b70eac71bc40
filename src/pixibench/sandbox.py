"""Execution sandbox: load a harness page in an isolated browser and read its result.

The Playwright runtime is a process-wide resource owned by the orchestration
driver. Each execution gets its own browser context; in the default
``IsolationLevel.PROCESS`` mode each sandbox also gets its own browser
process, so no cache, GPU or timer state leaks from one repeat to the next.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

from playwright.async_api import Browser, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .config import DEFAULT_SANDBOX_CONFIG, SandboxConfig
from .error_handling import SandboxError, SandboxFailure, TeardownError
from .models import RunResult, Variant

logger = logging.getLogger(__name__)


class IsolationLevel(Enum):
    """How much state a sandbox shares with the previous one."""

    PROCESS = "process"  # fresh browser process per sandbox
    CONTEXT = "context"  # one shared browser, fresh context per execution


class SandboxRuntime:
    """Process-wide Playwright handle for one invocation."""

    def __init__(
        self,
        config: SandboxConfig | None = None,
        isolation: IsolationLevel = IsolationLevel.PROCESS,
        playwright_factory: Callable[[], Any] = async_playwright,
    ):
        self.config = config or DEFAULT_SANDBOX_CONFIG
        self.isolation = isolation
        self._playwright_factory = playwright_factory
        self._playwright = None
        self._shared_browser: Browser | None = None

    @property
    def started(self) -> bool:
        return self._playwright is not None

    @property
    def shared_browser(self) -> Browser | None:
        return self._shared_browser

    async def start(self) -> SandboxRuntime:
        """Start Playwright (and the shared browser in context isolation)."""
        if self._playwright is not None:
            return self
        try:
            self._playwright = await self._playwright_factory().start()
        except Exception as e:
            raise SandboxError(
                f"Failed to start browser runtime: {e}",
                reason=SandboxFailure.LAUNCH_FAILED,
                cause=e,
            ) from e

        if self.isolation is IsolationLevel.CONTEXT:
            try:
                self._shared_browser = await self.launch_browser()
            except BaseException:
                # __aexit__ never runs when __aenter__ raises
                await self.close()
                raise
        logger.info(
            f"🧭 Browser runtime started ({self.config.BROWSER}, isolation={self.isolation.value})"
        )
        return self

    async def launch_browser(self) -> Browser:
        """Launch a new browser process."""
        if self._playwright is None:
            raise RuntimeError("Browser runtime is not started")
        browser_type = getattr(self._playwright, self.config.BROWSER)
        try:
            return await browser_type.launch(
                headless=self.config.HEADLESS, args=list(self.config.BROWSER_ARGS)
            )
        except PlaywrightError as e:
            raise SandboxError(
                f"Failed to launch {self.config.BROWSER}: {e}",
                reason=SandboxFailure.LAUNCH_FAILED,
                cause=e,
            ) from e

    def sandbox(self) -> BrowserSandbox:
        return BrowserSandbox(self)

    async def close(self) -> None:
        """Release the shared browser and Playwright; never raises."""
        if self._shared_browser is not None:
            browser, self._shared_browser = self._shared_browser, None
            await _close_browser(browser)

        if self._playwright is not None:
            playwright, self._playwright = self._playwright, None
            try:
                await playwright.stop()
                logger.info("🛑 Browser runtime stopped")
            except Exception as e:
                error = TeardownError(f"Failed to stop browser runtime: {e}", cause=e)
                logger.warning(f"⚠️  {error}")

    async def __aenter__(self) -> SandboxRuntime:
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class BrowserSandbox:
    """One isolated sandbox instance; dispose it before starting the next."""

    def __init__(self, runtime: SandboxRuntime):
        self.runtime = runtime
        self.config = runtime.config
        self._browser: Browser | None = None
        self._owns_browser = False
        self.disposed = False

    async def open(self) -> BrowserSandbox:
        if self.runtime.isolation is IsolationLevel.PROCESS:
            self._browser = await self.runtime.launch_browser()
            self._owns_browser = True
        else:
            self._browser = self.runtime.shared_browser
            if self._browser is None:
                raise RuntimeError("Shared browser is not available")
        return self

    async def execute(
        self,
        url: str,
        scenario_name: str,
        variant: Variant,
        timeout_ms: int | None = None,
    ) -> RunResult:
        """Load *url*, wait for the completion signal and return its value.

        Raises:
            SandboxError: When no context or page can be opened, on navigation
                failure, timeout or an unreadable signal
        """
        if self._browser is None or self.disposed:
            raise RuntimeError("Sandbox is not open")

        timeout_ms = timeout_ms or self.config.TIMEOUT_MS
        signal = f"window.{self.config.RESULT_GLOBAL}"
        context_info = {"url": url, "scenario": scenario_name, "variant": variant.value}

        try:
            context = await self._browser.new_context(
                viewport={
                    "width": self.config.VIEWPORT_WIDTH,
                    "height": self.config.VIEWPORT_HEIGHT,
                }
            )
        except PlaywrightError as e:
            raise SandboxError(
                f"Could not open a browser context for {url}: {e}",
                reason=SandboxFailure.LAUNCH_FAILED,
                cause=e,
                context=context_info,
            ) from e

        try:
            try:
                page = await context.new_page()
            except PlaywrightError as e:
                raise SandboxError(
                    f"Could not open a page for {url}: {e}",
                    reason=SandboxFailure.LAUNCH_FAILED,
                    cause=e,
                    context=context_info,
                ) from e
            page.on("pageerror", lambda exc: logger.warning(f"⚠️  Page error in {url}: {exc}"))

            try:
                await page.goto(url, wait_until="load", timeout=timeout_ms)
            except PlaywrightError as e:
                raise SandboxError(
                    f"Navigation to {url} failed: {e}",
                    reason=SandboxFailure.NAVIGATION_FAILED,
                    cause=e,
                    context=context_info,
                ) from e

            try:
                await page.wait_for_function(f"() => {signal}", timeout=timeout_ms)
            except PlaywrightTimeoutError as e:
                raise SandboxError(
                    f"Timed out after {timeout_ms} ms waiting for {signal} on {url}",
                    reason=SandboxFailure.TIMEOUT,
                    cause=e,
                    context=context_info,
                ) from e
            except PlaywrightError as e:
                raise SandboxError(
                    f"Waiting for {signal} on {url} failed: {e}",
                    reason=SandboxFailure.SIGNAL_UNREADABLE,
                    cause=e,
                    context=context_info,
                ) from e

            try:
                payload = await page.evaluate(f"() => {signal}")
            except PlaywrightError as e:
                raise SandboxError(
                    f"Could not read {signal} on {url}: {e}",
                    reason=SandboxFailure.SIGNAL_UNREADABLE,
                    cause=e,
                    context=context_info,
                ) from e

            if not isinstance(payload, dict):
                raise SandboxError(
                    f"{signal} on {url} is not a JSON object: {payload!r}",
                    reason=SandboxFailure.SIGNAL_UNREADABLE,
                    context=context_info,
                )
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"⚠️  Failed to close browser context for {url}: {e}")

        return RunResult.from_payload(scenario_name, variant, payload)

    async def dispose(self) -> None:
        """Close the browser this sandbox launched; never raises."""
        if self.disposed:
            return
        browser, self._browser = self._browser, None
        try:
            if browser is not None and self._owns_browser:
                await _close_browser(browser)
        finally:
            self.disposed = True

    async def __aenter__(self) -> BrowserSandbox:
        try:
            return await self.open()
        except BaseException:
            self.disposed = True
            raise

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()


async def _close_browser(browser: Browser) -> None:
    """Close every context, then the browser; failures are logged as teardown warnings."""
    try:
        for context in list(browser.contexts):
            try:
                await context.close()
            except PlaywrightError as e:
                logger.debug(f"Ignoring context close failure: {e}")
        await browser.close()
    except Exception as e:
        error = TeardownError(f"Failed to close browser: {e}", cause=e)
        logger.warning(f"⚠️  {error}")
