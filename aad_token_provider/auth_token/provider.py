"""Token provider: construction, accessor and shutdown."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from ..config import RefreshConfig
from ..errors import (
    ConfigurationError,
    CredentialCreationError,
    InitialFetchError,
    RefreshFetchError,
)
from .background_task_manager import BackgroundTaskManager
from .client import AzureCredentialClient, CredentialClient
from .telemetry import LoggingRefreshTelemetry, RefreshTelemetry
from .token_refresher import TokenRefresher
from .types import SchedulerState, TokenSnapshot


def _utc_now() -> datetime:
    return datetime.now(UTC)


class TokenProvider:
    """Keeps one bearer token for ``audience`` continuously refreshed.

    Use :func:`create_token_provider` to build one; it performs the mandatory
    first fetch and starts the background refresh task.

    The token state is an immutable :class:`TokenSnapshot` replaced in a
    single assignment by the background task, so :meth:`get_access_token`
    can be called from any coroutine or thread without locking.
    """

    def __init__(
        self,
        audience: str,
        config: RefreshConfig,
        logger: logging.Logger,
        credential_client: CredentialClient,
        *,
        telemetry: RefreshTelemetry | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        owns_client: bool = False,
    ) -> None:
        self._audience = audience
        self.config = config
        self.logger = logger
        self.credential_client = credential_client
        self.telemetry = telemetry
        self._clock = clock or _utc_now
        self._owns_client = owns_client
        self._snapshot = TokenSnapshot()
        self._state = SchedulerState.INITIALIZING
        self.refresher = TokenRefresher(self)
        self.background = BackgroundTaskManager(self, sleep=sleep)

    @property
    def audience(self) -> str:
        return self._audience

    @property
    def snapshot(self) -> TokenSnapshot:
        return self._snapshot

    @property
    def state(self) -> SchedulerState:
        return self._state

    def get_access_token(self) -> tuple[str, RefreshFetchError | None]:
        """Return the current token and the error of the latest refresh.

        Never blocks and never triggers a refresh. When the latest refresh
        failed, the previous token is returned together with the error; the
        caller decides whether a stale token is acceptable.
        """
        snapshot = self._snapshot
        return snapshot.token, snapshot.last_error

    def now(self) -> datetime:
        return self._clock()

    def _publish(self, snapshot: TokenSnapshot) -> None:
        self._snapshot = snapshot

    def _set_state(self, state: SchedulerState) -> None:
        self._state = state

    async def stop(self) -> None:
        """Cancel the background task, wait for it and release the client."""
        try:
            await self.background.stop()
        finally:
            self._state = SchedulerState.TERMINATED
            if self._owns_client:
                self._owns_client = False
                await self.credential_client.close()

    async def __aenter__(self) -> TokenProvider:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()


async def create_token_provider(
    audience: str,
    config: RefreshConfig,
    logger: logging.Logger,
    *,
    credential_client: CredentialClient | None = None,
    telemetry: RefreshTelemetry | None = None,
    clock: Callable[[], datetime] | None = None,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> TokenProvider:
    """Build a provider, fetch the first token and start background refresh.

    Args:
        audience: Scope requested from the credential client.
        config: Refresh policy.
        logger: Logger used for refresh failure reports.
        credential_client: Token source; an AzureCredentialClient owned by
            the provider is created when omitted.
        telemetry: Sink for refresh attempts; defaults to LoggingRefreshTelemetry.
        clock: Returns the current aware datetime.
        sleep: Coroutine used by the background loop to wait.

    Returns:
        A running TokenProvider holding a valid token.

    Raises:
        ConfigurationError: If audience, config or logger are missing.
        CredentialCreationError: If the default credential client cannot be built.
        InitialFetchError: If the first token fetch fails.
    """
    if not audience or not audience.strip():
        raise ConfigurationError("create_token_provider: audience is required")
    if config is None or logger is None:
        raise ConfigurationError("create_token_provider: required arguments cannot be None")
    if not isinstance(config, RefreshConfig):
        raise ConfigurationError(
            f"create_token_provider: config must be RefreshConfig, got {type(config).__name__}"
        )

    owns_client = credential_client is None
    if credential_client is None:
        try:
            credential_client = AzureCredentialClient()
        except Exception as e:  # noqa: BLE001
            raise CredentialCreationError(f"Failed to create credential client: {e}") from e

    provider = TokenProvider(
        audience,
        config,
        logger,
        credential_client,
        telemetry=telemetry if telemetry is not None else LoggingRefreshTelemetry(),
        clock=clock,
        sleep=sleep,
        owns_client=owns_client,
    )

    if not await provider.refresher.refresh():
        cause = provider.snapshot.last_error
        if owns_client:
            await credential_client.close()
        raise InitialFetchError(
            f"Failed to get access token: {cause.__cause__ if cause else 'unknown error'}",
            data={"audience": audience},
        ) from cause

    await provider.background.start()
    logging.info(f"✅ Token provider ready audience={audience}")
    return provider
