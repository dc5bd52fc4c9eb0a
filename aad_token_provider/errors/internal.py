"""Centralized token provider error hierarchy.

Construction-time errors propagate to the caller; background refresh errors
are recorded on the token snapshot and never raised to accessor callers.

Classes:
  TokenProviderError       – Base for all package errors.
  ConfigurationError       – A required dependency or setting is missing/invalid.
  CredentialCreationError  – The credential client could not be constructed.
  InitialFetchError        – The mandatory first token fetch failed.
  RefreshFetchError        – A background refresh failed (recorded, not raised).
  NetworkError             – Transient transport issues (safe to retry).
  OAuthError               – The authority rejected the credentials.
"""

from __future__ import annotations

from collections.abc import Mapping


class TokenProviderError(Exception):
    """Base class for all token provider errors with metadata support.

    Attributes:
        data: Dictionary containing arbitrary structured context data.

    Args:
        message: Descriptive error message.
        data: Optional mapping of additional context data.
    """

    data: dict[str, object]

    def __init__(
        self, message: str, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message)
        # Copy into a plain dict to avoid unexpected mutations from caller.
        self.data = dict(data) if data else {}


class ConfigurationError(TokenProviderError):
    """Raised when audience, config or logger are absent or out of range."""


class CredentialCreationError(TokenProviderError):
    """Raised when the credential client cannot be created."""


class InitialFetchError(TokenProviderError):
    """Raised when the token fetch performed during construction fails.

    The provider is not created and no background task is started.
    """


class RefreshFetchError(TokenProviderError):
    """A background refresh failed.

    Never raised to callers of the accessor: it is stored on the token
    snapshot and returned next to the last known-good token.
    """


class NetworkError(TokenProviderError):
    """Exception raised for network or transport layer errors.

    This includes connection timeouts, resets, or other transient failures
    that may be retried within a single refresh attempt.
    """


class OAuthError(TokenProviderError):
    """Exception raised when the authority rejects the credentials.

    These errors are not suitable for automatic retry within an attempt.
    """


__all__ = [
    "TokenProviderError",
    "ConfigurationError",
    "CredentialCreationError",
    "InitialFetchError",
    "RefreshFetchError",
    "NetworkError",
    "OAuthError",
]
