"""Error types raised or recorded by the token provider."""

from .internal import (
    ConfigurationError,
    CredentialCreationError,
    InitialFetchError,
    NetworkError,
    OAuthError,
    RefreshFetchError,
    TokenProviderError,
)

__all__ = [
    "TokenProviderError",
    "ConfigurationError",
    "CredentialCreationError",
    "InitialFetchError",
    "RefreshFetchError",
    "NetworkError",
    "OAuthError",
]
