"""Shared types for the auth_token module."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

from ..errors import RefreshFetchError


class SchedulerState(Enum):
    """Lifecycle states of the background refresh scheduler.

    Attributes:
        INITIALIZING: Mandatory first fetch performed during construction.
        WAITING: Sleeping until the next scheduled refresh.
        REFRESHING: Fetching a new token from the credential client.
        TERMINATED: Loop has exited; the last snapshot is served forever.
    """

    INITIALIZING = "initializing"
    WAITING = "waiting"
    REFRESHING = "refreshing"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class AccessToken:
    """Bearer token returned by a credential client.

    Attributes:
        token: Opaque bearer credential.
        expires_on: Absolute, timezone-aware expiry.
    """

    token: str
    expires_on: datetime

    def __post_init__(self) -> None:
        # Naive expiries are treated as UTC so they compare with the clock.
        if self.expires_on.tzinfo is None:
            object.__setattr__(self, "expires_on", self.expires_on.replace(tzinfo=UTC))

    def __repr__(self) -> str:
        return f"AccessToken(token='***', expires_on={self.expires_on.isoformat()})"


@dataclass(frozen=True)
class TokenSnapshot:
    """Immutable view of the provider's token state.

    Replaced as a whole on every refresh, so a reader always sees a token and
    error that belong to the same refresh cycle.

    Attributes:
        token: Most recently fetched token; kept after a failed refresh.
        last_error: Error of the latest attempt, None after a success.
        refresh_duration: Delay until the next scheduled refresh.
        expires_on: Expiry of ``token``, if known.
        refreshed_at: When ``token`` was fetched.
    """

    token: str = ""
    last_error: RefreshFetchError | None = None
    refresh_duration: timedelta = timedelta(0)
    expires_on: datetime | None = None
    refreshed_at: datetime | None = None

    def __repr__(self) -> str:
        return (
            f"TokenSnapshot(token={'***' if self.token else ''!r}, "
            f"last_error={self.last_error!r}, refresh_duration={self.refresh_duration}, "
            f"expires_on={self.expires_on}, refreshed_at={self.refreshed_at})"
        )
