"""Local static file server the harness pages are loaded from."""

from __future__ import annotations

import functools
import logging
import threading
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from .config import DEFAULT_SERVER_CONFIG
from .error_handling import ConfigurationError, TeardownError

logger = logging.getLogger(__name__)


class _QuietHandler(SimpleHTTPRequestHandler):
    """Request handler that logs through ``logging`` and serves ES modules."""

    extensions_map = {
        **SimpleHTTPRequestHandler.extensions_map,
        ".mjs": "text/javascript",
        ".js": "text/javascript",
        ".wasm": "application/wasm",
    }

    def log_message(self, format, *args):  # noqa: A002
        logger.debug(f"{self.address_string()} - {format % args}")


class StaticServer:
    """Serve a directory over HTTP from a background thread.

    Owned by the orchestration driver for the whole invocation; use it as a
    context manager so it is always shut down.
    """

    def __init__(self, root: Path, host: str | None = None, port: int | None = None):
        self.root = Path(root)
        self.host = host or DEFAULT_SERVER_CONFIG.HOST
        self.port = DEFAULT_SERVER_CONFIG.PORT if port is None else port
        self._httpd: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._httpd is not None

    @property
    def base_url(self) -> str:
        if self._httpd is None:
            raise RuntimeError("Static server is not running")
        host, port = self._httpd.server_address[:2]
        return f"http://{host}:{port}"

    def start(self) -> StaticServer:
        """Bind the socket and start serving."""
        if self._httpd is not None:
            return self
        if not self.root.is_dir():
            raise ConfigurationError(f"Serve root not found: {self.root}")

        handler = functools.partial(_QuietHandler, directory=str(self.root))
        try:
            self._httpd = ThreadingHTTPServer((self.host, self.port), handler)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot start static server on {self.host}:{self.port}: {e}", cause=e
            ) from e
        self._httpd.daemon_threads = True

        self._thread = threading.Thread(
            target=self._httpd.serve_forever, name="StaticServer", daemon=True
        )
        self._thread.start()
        logger.info(f"🌐 Serving {self.root} at {self.base_url}")
        return self

    def stop(self) -> None:
        """Shut the server down; failures are logged, never raised."""
        if self._httpd is None:
            return
        httpd, self._httpd = self._httpd, None
        try:
            httpd.shutdown()
            httpd.server_close()
            if self._thread is not None:
                self._thread.join(timeout=5.0)
            logger.info("🛑 Static server stopped")
        except Exception as e:
            error = TeardownError(f"Failed to stop static server: {e}", cause=e)
            logger.warning(f"⚠️  {error}")
        finally:
            self._thread = None

    def __enter__(self) -> StaticServer:
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
