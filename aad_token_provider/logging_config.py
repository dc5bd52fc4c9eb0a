r"""
Logging configuration module for the AAD token provider.

Provides a configurable logging setup using the colorlog library, structured
error lines, and per-audience tracking of consecutive refresh failures.
"""

import logging
import os
import sys
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

import colorlog

from . import constants
from .utils import format_duration


@dataclass
class FailureStreak:
    """Consecutive failed refreshes for one audience."""

    count: int = 0
    stale_seconds: int = 0
    error_types: Counter = field(default_factory=Counter)
    alerted: bool = False


class RefreshFailureTracker:
    """Tracks consecutive refresh failures per audience.

    A provider that keeps failing retries once every ``fallback_seconds``, so
    the streak's summed fallback intervals approximate how long callers have
    been handed a stale token. Crossing ``stale_alert_seconds`` alerts once per
    streak; a successful refresh ends the streak.
    """

    def __init__(self, stale_alert_seconds: int | None = None):
        self.streaks: dict[str, FailureStreak] = {}
        self.lock = threading.Lock()
        self.stale_alert_seconds = (
            constants.TOKEN_STALE_ALERT_SECONDS
            if stale_alert_seconds is None
            else stale_alert_seconds
        )

    def record_failure(self, audience: str, error_type: str, fallback_seconds: int) -> bool:
        """Count a failure for ``audience``.

        Returns:
            True exactly once per streak, when it first reaches the alert window.
        """
        with self.lock:
            streak = self.streaks.setdefault(audience, FailureStreak())
            streak.count += 1
            streak.stale_seconds += fallback_seconds
            streak.error_types[error_type] += 1
            if streak.alerted or streak.stale_seconds < self.stale_alert_seconds:
                return False
            streak.alerted = True
            return True

    def record_success(self, audience: str) -> FailureStreak | None:
        """End the streak for ``audience`` and return it, if there was one."""
        with self.lock:
            return self.streaks.pop(audience, None)

    def streak(self, audience: str) -> FailureStreak | None:
        with self.lock:
            return self.streaks.get(audience)

    def clear(self) -> None:
        with self.lock:
            self.streaks.clear()


# Global failure tracker instance
failure_tracker = RefreshFailureTracker()


def log_structured_error(
    error_type: str,
    message: str,
    exception: Exception = None,
    context: dict[str, Any] = None,
    level: int = logging.ERROR,
    logger: logging.Logger | None = None,
) -> None:
    """Log an error with structured context.

    Args:
        error_type: Category of the error (e.g., 'refresh', 'network', 'auth')
        message: Descriptive error message
        exception: The exception that occurred (optional)
        context: Additional context data for debugging
        level: Logging level (default: ERROR)
        logger: Logger to emit on; the root logger when omitted
    """
    target = logger or logging.getLogger()

    structured_message = f"[{error_type.upper()}] {message}"

    if exception:
        structured_message += f" | Exception: {type(exception).__name__}: {str(exception)}"

    if context:
        context_str = " | ".join(f"{k}={v}" for k, v in context.items())
        structured_message += f" | Context: {context_str}"

    target.log(level, structured_message)


def log_refresh_failure(
    audience: str,
    error_type: str,
    message: str,
    exception: Exception,
    fallback_seconds: int,
    context: dict[str, Any] = None,
    logger: logging.Logger | None = None,
) -> None:
    """Log a failed refresh and alert when the audience has been stale too long."""
    log_structured_error(error_type, message, exception=exception, context=context, logger=logger)

    if failure_tracker.record_failure(audience, error_type, fallback_seconds):
        streak = failure_tracker.streak(audience)
        kinds = ", ".join(f"{k}={v}" for k, v in sorted(streak.error_types.items()))
        (logger or logging.getLogger()).critical(
            f"🚨 STALE TOKEN ALERT: audience={audience} failed {streak.count} refreshes in a row "
            f"(~{format_duration(streak.stale_seconds)} without a new token; {kinds})"
        )


def log_refresh_recovered(audience: str, logger: logging.Logger | None = None) -> None:
    """Close the failure streak for ``audience`` after a successful refresh."""
    streak = failure_tracker.record_success(audience)
    if streak is None:
        return
    (logger or logging.getLogger()).info(
        f"✅ Token refresh recovered after {streak.count} failed attempt(s) audience={audience}"
    )


class LoggerConfigurator:
    """Handles logging configuration using colorlog.

    Supports environment variable configuration for log levels.
    """

    def __init__(self, config=None):
        """Initialize the configurator.

        Args:
            config: Optional dict; ``stream`` overrides the stderr handler target.
        """
        self.config = config or {}

    def configure(self):
        """Configure logging with colored output using colorlog.

        Uses environment variables:
        - DEBUG: Set to 'true', '1', or 'yes' for DEBUG level, otherwise INFO
        - AZURE_LOG_LEVEL: Level name for the azure SDK loggers (default WARNING)
        """
        debug_env = os.environ.get("DEBUG", "").lower()
        log_level = logging.DEBUG if debug_env in ("true", "1", "yes") else logging.INFO

        formatter = colorlog.ColoredFormatter(
            "%(asctime)s %(log_color)s%(levelname)-8s%(reset)s %(message_log_color)s%(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "purple",
            },
            secondary_log_colors={
                "message": {
                    "ERROR": "red",
                    "CRITICAL": "purple",
                }
            },
            reset=True,
        )

        handler = logging.StreamHandler(self.config.get("stream", sys.stderr))
        handler.setFormatter(formatter)

        logging.basicConfig(level=log_level, handlers=[handler], format="%(message)s")

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)
        for h in root_logger.handlers:
            h.setFormatter(formatter)

        # azure-core logs every HTTP request and azure-identity each credential in the chain at INFO
        azure_level = logging.getLevelName(os.environ.get("AZURE_LOG_LEVEL", "WARNING").upper())
        if not isinstance(azure_level, int):
            logging.warning(f"Invalid AZURE_LOG_LEVEL='{os.environ.get('AZURE_LOG_LEVEL')}', using WARNING")
            azure_level = logging.WARNING
        logging.getLogger("azure").setLevel(azure_level)
