"""Standardized Error Handling Utilities

Provides the PixiBench error taxonomy and consistent error handling patterns
so every failure reaches the orchestration driver with a clear reason.
"""

from __future__ import annotations

import logging
import traceback
from enum import Enum


class ErrorLevel(Enum):
    """Error severity levels for consistent logging."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class SandboxFailure(Enum):
    """Reasons a sandbox execution can fail."""

    LAUNCH_FAILED = "launch_failed"
    NAVIGATION_FAILED = "navigation_failed"
    TIMEOUT = "timeout"
    SIGNAL_UNREADABLE = "signal_unreadable"


class PixiBenchError(Exception):
    """Base exception class for all PixiBench errors."""

    def __init__(
        self, message: str, cause: Exception | None = None, context: dict | None = None
    ):
        super().__init__(message)
        self.cause = cause
        self.context = context or {}

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.cause:
            return f"{base_msg} (caused by: {self.cause})"
        return base_msg


class ConfigurationError(PixiBenchError):
    """Raised when a required input is missing or invalid."""

    pass


class DiscoveryError(PixiBenchError):
    """Raised when no benchmark scenarios are found where one was required."""

    pass


class SandboxError(PixiBenchError):
    """Raised when a single benchmark execution fails inside the browser sandbox."""

    def __init__(
        self,
        message: str,
        reason: SandboxFailure,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause=cause, context=context)
        self.reason = reason


class ReportSinkError(PixiBenchError):
    """Raised when the external comment sink cannot be listed or written."""

    pass


class TeardownError(PixiBenchError):
    """Raised when the browser runtime or static server cannot be released."""

    pass


def handle_error(
    error: Exception,
    operation: str,
    error_type: type[PixiBenchError] = ConfigurationError,
    level: ErrorLevel = ErrorLevel.ERROR,
    context: dict | None = None,
    logger: logging.Logger | None = None,
    reraise: bool = True,
) -> PixiBenchError | None:
    """Standardized error handling with consistent logging and error transformation.

    Args:
        error: Original exception that occurred
        operation: Description of operation that failed
        error_type: Type of PixiBenchError to raise
        level: Logging level for the error
        context: Additional context information
        logger: Logger to use (defaults to module logger)
        reraise: Whether to reraise the transformed exception

    Returns:
        The transformed error if reraise=False, otherwise None

    Raises:
        PixiBenchError: Transformed error if reraise=True
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    message = f"Failed to {operation}: {error}"

    error_context = dict(context or {})
    error_context.update(
        {
            "operation": operation,
            "original_error_type": type(error).__name__,
        }
    )

    transformed_error = error_type(message, cause=error, context=error_context)

    log_message = f"🚨 {operation.capitalize()} failed: {error}"
    context_str = ", ".join(
        f"{k}={v}" for k, v in error_context.items() if k != "operation"
    )
    if context_str:
        log_message += f" (context: {context_str})"

    log_func = getattr(logger, level.value)
    log_func(log_message)

    if level in [ErrorLevel.ERROR, ErrorLevel.CRITICAL]:
        logger.debug(f"Traceback for {operation}: {traceback.format_exc()}")

    if reraise:
        raise transformed_error from error
    return transformed_error


def log_warning_with_context(
    message: str, context: dict | None = None, logger: logging.Logger | None = None
) -> None:
    """Log a warning with standardized context formatting."""
    if logger is None:
        logger = logging.getLogger(__name__)

    warning_msg = f"⚠️  {message}"
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        warning_msg += f" (context: {context_str})"

    logger.warning(warning_msg)
