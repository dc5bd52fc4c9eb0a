"""Refresh configuration model and environment loader."""

from __future__ import annotations

import os
from dataclasses import dataclass

from . import constants
from .errors import ConfigurationError


@dataclass(frozen=True)
class RefreshConfig:
    """Immutable refresh policy for a token provider.

    Attributes:
        refresh_percentage: Share (0-100) of the remaining token lifetime to
            spend before refreshing. Larger values refresh earlier.
        fallback_seconds: Delay before the next attempt after a failed refresh.
        terminate_on_failure: Stop the background loop after the first failed
            refresh instead of retrying after ``fallback_seconds``.
        fetch_max_attempts: Attempts per refresh for transient network errors.
    """

    refresh_percentage: int
    fallback_seconds: int = 300
    terminate_on_failure: bool = False
    fetch_max_attempts: int = 3

    def __post_init__(self) -> None:
        if isinstance(self.refresh_percentage, bool) or not isinstance(
            self.refresh_percentage, int
        ):
            raise ConfigurationError(
                f"refresh_percentage must be an integer, got {self.refresh_percentage!r}",
                data={"refresh_percentage": self.refresh_percentage},
            )
        if not 0 <= self.refresh_percentage <= 100:
            raise ConfigurationError(
                f"refresh_percentage must be within [0, 100], got {self.refresh_percentage}",
                data={"refresh_percentage": self.refresh_percentage},
            )
        if self.fallback_seconds <= 0:
            raise ConfigurationError(
                f"fallback_seconds must be positive, got {self.fallback_seconds}",
                data={"fallback_seconds": self.fallback_seconds},
            )
        if self.fetch_max_attempts < 1:
            raise ConfigurationError(
                f"fetch_max_attempts must be at least 1, got {self.fetch_max_attempts}",
                data={"fetch_max_attempts": self.fetch_max_attempts},
            )


def load_refresh_config() -> RefreshConfig:
    """Build a RefreshConfig from the environment-driven constants.

    Returns:
        Validated RefreshConfig.

    Raises:
        ConfigurationError: If any configured value is out of range.
    """
    return RefreshConfig(
        refresh_percentage=constants.AAD_TOKEN_REFRESH_DURATION_PERCENTAGE,
        fallback_seconds=constants.TOKEN_REFRESH_FALLBACK_SECONDS,
        terminate_on_failure=bool(constants.TOKEN_REFRESH_TERMINATE_ON_FAILURE),
        fetch_max_attempts=constants.TOKEN_FETCH_MAX_ATTEMPTS,
    )


def load_audience() -> str:
    """Return the token audience from the ``AUDIENCE`` environment variable.

    Raises:
        ConfigurationError: If the variable is missing or blank.
    """
    audience = os.environ.get("AUDIENCE", "").strip()
    if not audience:
        raise ConfigurationError("AUDIENCE environment variable is not set")
    return audience
