"""Best-effort telemetry for refresh attempts."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from ..constants import METRIC_TOKEN_REFRESH_TOTAL, SERVICE_TELEMETRY_KEY
from ..utils import format_duration


@dataclass(frozen=True)
class RefreshAttempt:
    """Outcome of a single refresh attempt, as reported to telemetry.

    Attributes:
        success: Whether a new token was obtained.
        error: Failure cause, None on success.
        expires_on: Expiry of the new token (success only).
        next_refresh_at: Absolute time of the next scheduled refresh.
        refresh_duration: Delay until that refresh.
    """

    success: bool
    error: BaseException | None = None
    expires_on: datetime | None = None
    next_refresh_at: datetime | None = None
    refresh_duration: timedelta | None = None

    def attributes(self) -> dict[str, object]:
        """Span attributes describing this attempt."""
        attrs: dict[str, object] = {"is_success": self.success}
        if self.expires_on is not None:
            attrs["token.expiry_timestamp"] = self.expires_on.isoformat()
        if self.next_refresh_at is not None:
            attrs["tokenrefresh.next_refresh_timestamp"] = self.next_refresh_at.isoformat()
        if self.refresh_duration is not None:
            attrs["tokenrefresh.refresh_duration"] = format_duration(self.refresh_duration)
        return attrs


class RefreshTelemetry(Protocol):
    """Sink for refresh attempts; implementations must not block."""

    def record_refresh(self, attempt: RefreshAttempt) -> None: ...  # noqa: D401,E701


class LoggingRefreshTelemetry:
    """Default sink: counts attempts by outcome and logs span attributes.

    Lines go to the ``aad_token_provider`` logger so they can be routed apart
    from the application's own output.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(SERVICE_TELEMETRY_KEY)
        self._lock = threading.Lock()
        self.counts: dict[bool, int] = {True: 0, False: 0}

    def record_refresh(self, attempt: RefreshAttempt) -> None:
        with self._lock:
            self.counts[attempt.success] += 1
            total = self.counts[attempt.success]
        attrs = ", ".join(f"{k}={v}" for k, v in attempt.attributes().items())
        self.logger.debug(
            f"📈 {METRIC_TOKEN_REFRESH_TOTAL}{{is_success={str(attempt.success).lower()}}}={total} ({attrs})"
        )

    @property
    def success_count(self) -> int:
        return self.counts[True]

    @property
    def failure_count(self) -> int:
        return self.counts[False]
