"""Token refresh logic."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from datetime import timedelta
from typing import TYPE_CHECKING

from ..errors import NetworkError, OAuthError, RefreshFetchError
from ..logging_config import log_refresh_failure, log_refresh_recovered, log_structured_error
from ..utils import format_duration, retry_transient
from .refresh_calculator import next_refresh
from .telemetry import RefreshAttempt
from .types import AccessToken, SchedulerState, TokenSnapshot

if TYPE_CHECKING:
    from .provider import TokenProvider


class TokenRefresher:
    """Performs a single refresh and publishes the resulting snapshot."""

    def __init__(
        self,
        provider: TokenProvider,
        *,
        retry_sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.provider = provider
        self._retry_sleep = retry_sleep

    async def refresh(self) -> bool:
        """Fetch a new token from the credential client.

        On success the token, its expiry and the next refresh duration are
        published and any previous error is cleared. On failure, including a
        token that cannot be scheduled, the previous token is kept, the error
        is recorded next to it and the fallback duration is scheduled.

        Returns:
            True if a new token was obtained, False otherwise.
        """
        try:
            access_token = await retry_transient(
                self._fetch,
                self.provider.config.fetch_max_attempts,
                sleep=self._retry_sleep or asyncio.sleep,
            )
            self._apply_success(access_token)
        except Exception as e:  # noqa: BLE001
            self._apply_failure(e)
            return False
        return True

    async def _fetch(self) -> AccessToken:
        return await self.provider.credential_client.get_token(self.provider.audience)

    def _apply_success(self, access_token: AccessToken) -> None:
        """Publish a fresh snapshot for a successfully fetched token.

        Args:
            access_token: Token returned by the credential client.
        """
        provider = self.provider
        now = provider.now()
        next_at = next_refresh(
            now, access_token.expires_on, provider.config.refresh_percentage
        )
        duration = next_at - now
        provider._publish(
            TokenSnapshot(
                token=access_token.token,
                last_error=None,
                refresh_duration=duration,
                expires_on=access_token.expires_on,
                refreshed_at=now,
            )
        )
        log_refresh_recovered(provider.audience, provider.logger)
        lifetime = format_duration(access_token.expires_on - now)
        logging.info(
            f"🔄 Token refreshed (lifetime {lifetime}) audience={provider.audience} next_refresh_in={format_duration(duration)}"
        )
        self._report(
            RefreshAttempt(
                success=True,
                expires_on=access_token.expires_on,
                next_refresh_at=next_at,
                refresh_duration=duration,
            )
        )

    def _apply_failure(self, error: Exception) -> None:
        """Record a failed refresh while keeping the last known-good token.

        Args:
            error: Exception raised while fetching or scheduling the token.
        """
        provider = self.provider
        now = provider.now()
        duration = timedelta(seconds=provider.config.fallback_seconds)
        provider._publish(
            replace(provider.snapshot, last_error=self._wrap(error), refresh_duration=duration)
        )

        if provider.state is SchedulerState.INITIALIZING:
            message = "Failed to get initial access token"
        elif provider.config.terminate_on_failure:
            message = "Failed to refresh token, background refresh stops"
        else:
            message = f"Failed to refresh token, retry in {format_duration(duration)}"
        log_refresh_failure(
            audience=provider.audience,
            error_type=self._error_type(error),
            message=message,
            exception=error,
            fallback_seconds=provider.config.fallback_seconds,
            context={
                "audience": provider.audience,
                "attempts": provider.config.fetch_max_attempts,
            },
            logger=provider.logger,
        )
        self._report(
            RefreshAttempt(
                success=False,
                error=error,
                next_refresh_at=now + duration,
                refresh_duration=duration,
            )
        )

    @staticmethod
    def _error_type(error: Exception) -> str:
        if isinstance(error, OAuthError):
            return "auth"
        if isinstance(error, NetworkError):
            return "network"
        return "refresh"

    def _report(self, attempt: RefreshAttempt) -> None:
        """Hand the attempt to the telemetry sink; sink failures are ignored."""
        telemetry = self.provider.telemetry
        if telemetry is None:
            return
        try:
            telemetry.record_refresh(attempt)
        except Exception as e:  # noqa: BLE001
            logging.debug(f"⚠️ Telemetry sink error ignored: {type(e).__name__}: {e}")

    def record_crash(self, error: Exception) -> None:
        """Publish an exception that ended the background loop.

        The last token stays available; the error tells callers that no
        further refresh will happen.
        """
        provider = self.provider
        provider._publish(replace(provider.snapshot, last_error=self._wrap(error)))
        log_structured_error(
            error_type="internal",
            message="Background token refresh stopped unexpectedly",
            exception=error,
            context={"audience": provider.audience},
            logger=provider.logger,
        )

    def _wrap(self, error: Exception) -> RefreshFetchError:
        recorded = RefreshFetchError(
            f"Failed to refresh token: {error}",
            data={"audience": self.provider.audience, "cause": type(error).__name__},
        )
        recorded.__cause__ = error
        return recorded
