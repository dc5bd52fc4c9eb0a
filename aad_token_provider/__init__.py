"""Background-refreshed Azure AD bearer token provider."""

from .auth_token import (
    AccessToken,
    AzureCredentialClient,
    CredentialClient,
    LoggingRefreshTelemetry,
    RefreshAttempt,
    SchedulerState,
    TokenProvider,
    TokenSnapshot,
    create_token_provider,
    next_refresh,
)
from .config import RefreshConfig, load_audience, load_refresh_config
from .errors import (
    ConfigurationError,
    CredentialCreationError,
    InitialFetchError,
    RefreshFetchError,
    TokenProviderError,
)

__all__ = [
    "AccessToken",
    "AzureCredentialClient",
    "ConfigurationError",
    "CredentialClient",
    "CredentialCreationError",
    "InitialFetchError",
    "LoggingRefreshTelemetry",
    "RefreshAttempt",
    "RefreshConfig",
    "RefreshFetchError",
    "SchedulerState",
    "TokenProvider",
    "TokenProviderError",
    "TokenSnapshot",
    "create_token_provider",
    "load_audience",
    "load_refresh_config",
    "next_refresh",
]
