"""
Configuration constants for the AAD token provider

This module contains all configurable constants used throughout the package.
Each tunable can be overridden by setting an environment variable with the same name.
"""

import os
from datetime import timedelta


def _get_env_int(name: str, default: int) -> int:
    """Retrieve an integer value from an environment variable.

    Attempts to parse the environment variable as an integer. If the variable
    is not set or cannot be parsed, logs a warning and returns the default value.

    Args:
        name: The name of the environment variable to read.
        default: The default integer value to return if parsing fails.

    Returns:
        The parsed integer value from the environment, or the default if unavailable.
    """
    value = os.getenv(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            print(
                f"Warning: Invalid integer value for {name}='{value}', using default {default}"
            )
    return default


# Share of the remaining token lifetime to spend before refreshing proactively
AAD_TOKEN_REFRESH_DURATION_PERCENTAGE = _get_env_int(
    "AAD_TOKEN_REFRESH_DURATION_PERCENTAGE", 10
)

# Failure policy
TOKEN_REFRESH_FALLBACK_SECONDS = _get_env_int(
    "TOKEN_REFRESH_FALLBACK_SECONDS", 300
)  # Delay before retrying after a failed background refresh (5m default)
TOKEN_REFRESH_TERMINATE_ON_FAILURE = _get_env_int(
    "TOKEN_REFRESH_TERMINATE_ON_FAILURE", 0
)  # 1 stops the background loop after the first failed refresh
TOKEN_FETCH_MAX_ATTEMPTS = _get_env_int(
    "TOKEN_FETCH_MAX_ATTEMPTS", 3
)  # Attempts per refresh for transient network errors

# Alerting
TOKEN_STALE_ALERT_SECONDS = _get_env_int(
    "TOKEN_STALE_ALERT_SECONDS", 3600
)  # Consecutive failures spanning this long (in fallback intervals) raise one alert

# Scheduling constants (not overridable)
REFRESH_THRESHOLD = timedelta(seconds=10)
FALLBACK_REFRESH = timedelta(minutes=1)

# Telemetry names
SERVICE_TELEMETRY_KEY = "aad_token_provider"
METRIC_TOKEN_REFRESH_TOTAL = "token_refresh_total"
