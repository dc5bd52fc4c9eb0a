"""Token acquisition, scheduling and background refresh."""

from .client import AzureCredentialClient, CredentialClient
from .provider import TokenProvider, create_token_provider
from .refresh_calculator import next_refresh, refresh_delay
from .telemetry import LoggingRefreshTelemetry, RefreshAttempt, RefreshTelemetry
from .types import AccessToken, SchedulerState, TokenSnapshot

__all__ = [
    "AccessToken",
    "AzureCredentialClient",
    "CredentialClient",
    "LoggingRefreshTelemetry",
    "RefreshAttempt",
    "RefreshTelemetry",
    "SchedulerState",
    "TokenProvider",
    "TokenSnapshot",
    "create_token_provider",
    "next_refresh",
    "refresh_delay",
]
