"""Tests for the Playwright execution sandbox."""

import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pixibench.error_handling import SandboxError, SandboxFailure
from pixibench.models import Variant
from pixibench.sandbox import IsolationLevel, SandboxRuntime

URL = "http://bench.test/benchmarks/sprite/local.html"


def execute_once(runtime, url=URL, timeout_ms=None):
    """Run one execution and return (result, sandbox)."""

    async def scenario():
        async with runtime:
            sandbox = runtime.sandbox()
            try:
                async with sandbox:
                    return await sandbox.execute(url, "sprite", Variant.CANDIDATE, timeout_ms), sandbox
            except SandboxError as e:
                e.sandbox = sandbox
                raise

    return asyncio.run(scenario())


class TestExecute:
    """Tests for a single sandbox execution."""

    def test_returns_completion_payload(self, fake_env):
        fake_env.script.payloads[URL] = [{"name": "Sprites", "fps": 59.5, "extra": 1}]

        result, sandbox = execute_once(fake_env.runtime())

        assert result.fps == 59.5
        assert result.raw["name"] == "Sprites"
        assert result.variant is Variant.CANDIDATE
        assert sandbox.disposed
        browser = fake_env.browser_type.launched[0]
        assert browser.closed
        assert all(context.closed for context in browser.created_contexts)
        assert browser.created_contexts[0].viewport == {"width": 800, "height": 600}

    def test_timeout(self, fake_env):
        """Test a missing completion signal fails with TIMEOUT and still disposes."""
        fake_env.script.failures[URL] = ("wait", PlaywrightTimeoutError("Timeout 50ms exceeded."))

        with pytest.raises(SandboxError) as excinfo:
            execute_once(fake_env.runtime(), timeout_ms=50)

        assert excinfo.value.reason is SandboxFailure.TIMEOUT
        assert excinfo.value.sandbox.disposed
        assert fake_env.browser_type.launched[0].closed
        assert excinfo.value.context["url"] == URL

    def test_navigation_failure(self, fake_env):
        fake_env.script.failures[URL] = ("goto", PlaywrightError("net::ERR_CONNECTION_REFUSED"))

        with pytest.raises(SandboxError) as excinfo:
            execute_once(fake_env.runtime())

        assert excinfo.value.reason is SandboxFailure.NAVIGATION_FAILED
        assert "ERR_CONNECTION_REFUSED" in str(excinfo.value)

    def test_unreadable_signal(self, fake_env):
        fake_env.script.failures[URL] = ("evaluate", PlaywrightError("Execution context was destroyed"))

        with pytest.raises(SandboxError) as excinfo:
            execute_once(fake_env.runtime())

        assert excinfo.value.reason is SandboxFailure.SIGNAL_UNREADABLE

    def test_non_object_signal(self, fake_env):
        fake_env.script.payloads[URL] = [True]

        with pytest.raises(SandboxError) as excinfo:
            execute_once(fake_env.runtime())

        assert excinfo.value.reason is SandboxFailure.SIGNAL_UNREADABLE

    def test_launch_failure(self, fake_env):
        async def refuse(**kwargs):
            raise PlaywrightError("Executable doesn't exist")

        fake_env.browser_type.launch = refuse

        with pytest.raises(SandboxError) as excinfo:
            execute_once(fake_env.runtime())

        assert excinfo.value.reason is SandboxFailure.LAUNCH_FAILED
        assert excinfo.value.sandbox.disposed
        assert fake_env.playwright.stopped

    def test_context_creation_failure(self, fake_env):
        """Test a browser that cannot open a context fails as a launch error."""
        launch = fake_env.browser_type.launch

        async def launch_crashed(**kwargs):
            browser = await launch(**kwargs)

            async def refuse(viewport=None):
                raise PlaywrightError("Target page, context or browser has been closed")

            browser.new_context = refuse
            return browser

        fake_env.browser_type.launch = launch_crashed

        with pytest.raises(SandboxError) as excinfo:
            execute_once(fake_env.runtime())

        assert excinfo.value.reason is SandboxFailure.LAUNCH_FAILED
        assert excinfo.value.context["url"] == URL
        assert excinfo.value.sandbox.disposed
        assert fake_env.browser_type.launched[0].closed

    def test_page_creation_failure_closes_context(self, fake_env):
        launch = fake_env.browser_type.launch

        async def launch_without_pages(**kwargs):
            browser = await launch(**kwargs)
            new_context = browser.new_context

            async def context_without_pages(viewport=None):
                context = await new_context(viewport=viewport)

                async def refuse():
                    raise PlaywrightError("Browser has been closed")

                context.new_page = refuse
                return context

            browser.new_context = context_without_pages
            return browser

        fake_env.browser_type.launch = launch_without_pages

        with pytest.raises(SandboxError) as excinfo:
            execute_once(fake_env.runtime())

        assert excinfo.value.reason is SandboxFailure.LAUNCH_FAILED
        browser = fake_env.browser_type.launched[0]
        assert all(context.closed for context in browser.created_contexts)


class TestRuntime:
    """Tests for the process-wide runtime."""

    def test_start_failure(self):
        class Broken:
            async def start(self):
                raise RuntimeError("driver missing")

        runtime = SandboxRuntime(playwright_factory=Broken)

        with pytest.raises(SandboxError) as excinfo:
            asyncio.run(runtime.start())

        assert excinfo.value.reason is SandboxFailure.LAUNCH_FAILED
        assert not runtime.started

    def test_shared_browser_launch_failure_stops_runtime(self, fake_env):
        """Test Playwright is stopped when context isolation cannot launch its browser."""

        async def refuse(**kwargs):
            raise PlaywrightError("no browser")

        fake_env.browser_type.launch = refuse
        runtime = fake_env.runtime(isolation=IsolationLevel.CONTEXT)

        async def scenario():
            async with runtime:
                pass

        with pytest.raises(SandboxError) as excinfo:
            asyncio.run(scenario())

        assert excinfo.value.reason is SandboxFailure.LAUNCH_FAILED
        assert fake_env.playwright.stopped
        assert not runtime.started
        assert runtime.shared_browser is None

    def test_context_isolation_shares_one_browser(self, fake_env):
        """Test context isolation launches once and uses a fresh context per run."""
        fake_env.script.payloads[URL] = [{"fps": 60}]
        runtime = fake_env.runtime(isolation=IsolationLevel.CONTEXT)

        async def scenario():
            async with runtime:
                for _ in range(3):
                    async with runtime.sandbox() as sandbox:
                        await sandbox.execute(URL, "sprite", Variant.CANDIDATE)
                return runtime.shared_browser

        shared = asyncio.run(scenario())

        launched = fake_env.browser_type.launched
        assert len(launched) == 1
        assert shared is launched[0]
        assert len(launched[0].created_contexts) == 3
        assert all(context.closed for context in launched[0].created_contexts)
        assert launched[0].closed
        assert runtime.shared_browser is None
        assert fake_env.playwright.stopped

    def test_close_is_idempotent(self, fake_env):
        runtime = fake_env.runtime()

        async def scenario():
            await runtime.start()
            await runtime.close()
            await runtime.close()

        asyncio.run(scenario())

        assert not runtime.started
