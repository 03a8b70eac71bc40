"""Shared fixtures: an in-process stand-in for Playwright and the comment sink."""

from pathlib import Path

import pytest

from pixibench.error_handling import ReportSinkError
from pixibench.sandbox import IsolationLevel, SandboxRuntime

# ---------------------------------------------------------------------------
# Playwright stand-ins
# ---------------------------------------------------------------------------


class FakeScript:
    """Decides what each URL returns, and where it fails.

    ``payloads`` maps a URL to the payloads returned by successive runs (the
    last one repeats). ``failures`` maps a URL to ``(stage, exception)`` with
    stage one of ``goto``, ``wait`` or ``evaluate``.
    """

    def __init__(self, payloads=None, failures=None):
        self.payloads = {url: list(values) for url, values in (payloads or {}).items()}
        self.failures = dict(failures or {})
        self.visited = []

    def fail(self, url, stage):
        failure = self.failures.get(url)
        if failure is not None and failure[0] == stage:
            raise failure[1]

    def next_payload(self, url):
        values = self.payloads[url]
        return values.pop(0) if len(values) > 1 else values[0]


class FakePage:
    def __init__(self, script):
        self.script = script
        self.url = None
        self.handlers = {}

    def on(self, event, handler):
        self.handlers[event] = handler

    async def goto(self, url, wait_until="load", timeout=None):
        self.url = url
        self.script.visited.append(url)
        self.script.fail(url, "goto")

    async def wait_for_function(self, expression, timeout=None):
        self.script.fail(self.url, "wait")

    async def evaluate(self, expression):
        self.script.fail(self.url, "evaluate")
        return self.script.next_payload(self.url)


class FakeContext:
    def __init__(self, browser, viewport):
        self.browser = browser
        self.viewport = viewport
        self.closed = False

    async def new_page(self):
        return FakePage(self.browser.script)

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, script):
        self.script = script
        self.created_contexts = []
        self.closed = False

    @property
    def contexts(self):
        return [c for c in self.created_contexts if not c.closed]

    async def new_context(self, viewport=None):
        context = FakeContext(self, viewport)
        self.created_contexts.append(context)
        return context

    async def close(self):
        self.closed = True


class FakeBrowserType:
    def __init__(self, script):
        self.script = script
        self.launched = []
        # For each launch: were all earlier browsers already closed?
        self.previous_closed = []

    async def launch(self, headless=True, args=None):
        self.previous_closed.append(all(b.closed for b in self.launched))
        browser = FakeBrowser(self.script)
        self.launched.append(browser)
        return browser


class FakePlaywright:
    def __init__(self, script):
        self.chromium = FakeBrowserType(script)
        self.stopped = False

    async def stop(self):
        self.stopped = True


class FakePlaywrightManager:
    def __init__(self, playwright):
        self.playwright = playwright

    async def start(self):
        return self.playwright


class FakeEnvironment:
    """Bundles a script with the Playwright stand-in it drives."""

    def __init__(self):
        self.script = FakeScript()
        self.playwright = FakePlaywright(self.script)
        self.runtimes = []

    @property
    def browser_type(self):
        return self.playwright.chromium

    def runtime(self, isolation=IsolationLevel.PROCESS, config=None):
        runtime = SandboxRuntime(
            config=config,
            isolation=isolation,
            playwright_factory=lambda: FakePlaywrightManager(self.playwright),
        )
        self.runtimes.append(runtime)
        return runtime


@pytest.fixture
def fake_env():
    return FakeEnvironment()


# ---------------------------------------------------------------------------
# Static server and comment sink stand-ins
# ---------------------------------------------------------------------------


class FakeServer:
    """Records start/stop; serves nothing."""

    instances = []

    def __init__(self, root, host=None, port=None):
        self.root = Path(root)
        self.port = port
        self.started = False
        self.stopped = False
        FakeServer.instances.append(self)

    @property
    def base_url(self):
        return "http://bench.test"

    def __enter__(self):
        self.started = True
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stopped = True


@pytest.fixture
def fake_server():
    FakeServer.instances = []
    yield FakeServer
    FakeServer.instances = []


class InMemorySink:
    """Comment thread kept in a list."""

    def __init__(self, comments=None, fail=False):
        self.comments = [dict(c) for c in (comments or [])]
        self.fail = fail
        self.updates = 0
        self.creates = 0

    def list_comments(self):
        if self.fail:
            raise ReportSinkError("listing comments failed")
        return [dict(c) for c in self.comments]

    def create_comment(self, body):
        self.creates += 1
        comment = {"id": 100 + len(self.comments), "body": body}
        self.comments.append(comment)
        return comment

    def update_comment(self, comment_id, body):
        self.updates += 1
        for comment in self.comments:
            if comment["id"] == comment_id:
                comment["body"] = body
                return comment
        raise ReportSinkError(f"no comment {comment_id}")


@pytest.fixture
def sink():
    return InMemorySink()


@pytest.fixture
def make_sink():
    return InMemorySink


@pytest.fixture
def project(tmp_path):
    """A working tree with a built library and two benchmark scenes."""
    dist = tmp_path / "dist"
    dist.mkdir()
    (dist / "pixi.mjs").write_text("export {};\n")

    benchmarks = tmp_path / "benchmarks"
    for scene in ("sprite", "graphics"):
        scene_dir = benchmarks / scene
        scene_dir.mkdir(parents=True)
        (scene_dir / "index.mjs").write_text("window.benchmarkResult = {};\n")
    return tmp_path
