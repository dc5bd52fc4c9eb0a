"""
Unit tests for TokenRefresher.
"""

import logging
from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from aad_token_provider.auth_token.provider import TokenProvider
from aad_token_provider.auth_token.telemetry import RefreshAttempt
from aad_token_provider.auth_token.token_refresher import TokenRefresher
from aad_token_provider.auth_token.types import SchedulerState, TokenSnapshot
from aad_token_provider.config import RefreshConfig
from aad_token_provider.errors import NetworkError, OAuthError, RefreshFetchError
from tests.fixtures.token_fixtures import AUDIENCE, T0, FakeClock, FakeCredentialClient, make_token


class TestTokenRefresher:
    """Test class for TokenRefresher functionality."""

    def setup_method(self):
        """Setup method called before each test."""
        self.clock = FakeClock()
        self.client = FakeCredentialClient(make_token("token-1"))
        self.telemetry = Mock()
        self.logger = logging.getLogger("tests.refresher")
        self.provider = self._provider(RefreshConfig(refresh_percentage=80, fetch_max_attempts=1))
        self.refresher = self.provider.refresher

    def _provider(self, config):
        return TokenProvider(
            AUDIENCE,
            config,
            self.logger,
            self.client,
            telemetry=self.telemetry,
            clock=self.clock,
        )

    @pytest.mark.asyncio
    async def test_refresh_success_publishes_snapshot(self):
        """Test a successful refresh stores token, expiry and next duration."""
        result = await self.refresher.refresh()

        assert result is True
        snapshot = self.provider.snapshot
        assert snapshot.token == "token-1"
        assert snapshot.last_error is None
        assert snapshot.expires_on == T0 + timedelta(minutes=100)
        assert snapshot.refreshed_at == T0
        assert snapshot.refresh_duration == timedelta(minutes=20)
        assert self.client.calls == [(AUDIENCE,)]

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_previous_token(self):
        """Test a failed refresh keeps the token and records the error."""
        await self.refresher.refresh()
        self.client.responses = [RuntimeError("authority down")]

        result = await self.refresher.refresh()

        assert result is False
        token, error = self.provider.get_access_token()
        assert token == "token-1"
        assert isinstance(error, RefreshFetchError)
        assert isinstance(error.__cause__, RuntimeError)
        assert "authority down" in str(error)
        assert error.data["audience"] == AUDIENCE
        assert self.provider.snapshot.refresh_duration == timedelta(seconds=300)

    @pytest.mark.asyncio
    async def test_refresh_success_clears_previous_error(self):
        """Test the next successful refresh clears the recorded error."""
        self.client.responses = [RuntimeError("boom"), make_token("token-2")]
        await self.refresher.refresh()
        assert self.provider.get_access_token()[1] is not None

        await self.refresher.refresh()

        assert self.provider.get_access_token() == ("token-2", None)

    @pytest.mark.asyncio
    async def test_refresh_failure_uses_configured_fallback(self):
        """Test the fallback duration comes from the config."""
        provider = self._provider(RefreshConfig(refresh_percentage=50, fallback_seconds=42, fetch_max_attempts=1))
        self.client.responses = [RuntimeError("boom")]

        await provider.refresher.refresh()

        assert provider.snapshot.refresh_duration == timedelta(seconds=42)

    @pytest.mark.asyncio
    async def test_refresh_failure_logs_structured_error(self, caplog):
        """Test a failed background refresh logs on the provider logger."""
        self.provider._set_state(SchedulerState.REFRESHING)
        self.client.responses = [OAuthError("no credential available")]

        with caplog.at_level(logging.ERROR, logger="tests.refresher"):
            await self.refresher.refresh()

        messages = [r.getMessage() for r in caplog.records if r.name == "tests.refresher"]
        assert any(
            m.startswith("[AUTH] Failed to refresh token, retry in 5m 0s") and "OAuthError" in m
            for m in messages
        )

    @pytest.mark.asyncio
    async def test_initial_failure_log_message(self, caplog):
        """Test failures during initialization are logged as initial fetch failures."""
        self.client.responses = [RuntimeError("boom")]

        with caplog.at_level(logging.ERROR, logger="tests.refresher"):
            await self.refresher.refresh()

        assert any("Failed to get initial access token" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_refresh_reports_telemetry(self):
        """Test success and failure attempts reach the telemetry sink."""
        await self.refresher.refresh()
        self.client.responses = [NetworkError("reset")]
        await self.refresher.refresh()

        attempts = [call.args[0] for call in self.telemetry.record_refresh.call_args_list]
        assert [a.success for a in attempts] == [True, False]
        assert isinstance(attempts[0], RefreshAttempt)
        assert attempts[0].next_refresh_at == T0 + timedelta(minutes=20)
        assert attempts[0].expires_on == T0 + timedelta(minutes=100)
        assert isinstance(attempts[1].error, NetworkError)
        assert attempts[1].next_refresh_at == T0 + timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_telemetry_failure_is_ignored(self):
        """Test a failing telemetry sink never breaks the refresh."""
        self.telemetry.record_refresh.side_effect = RuntimeError("exporter down")

        result = await self.refresher.refresh()

        assert result is True
        assert self.provider.get_access_token() == ("token-1", None)

    @pytest.mark.asyncio
    async def test_refresh_without_telemetry(self):
        """Test refresh works when no telemetry sink is configured."""
        self.provider.telemetry = None

        assert await self.refresher.refresh() is True

    @pytest.mark.asyncio
    async def test_transient_network_error_is_retried(self):
        """Test NetworkError is retried within a single refresh."""
        provider = self._provider(RefreshConfig(refresh_percentage=80, fetch_max_attempts=3))
        retry_sleep = AsyncMock()
        refresher = TokenRefresher(provider, retry_sleep=retry_sleep)
        self.client.responses = [NetworkError("reset"), NetworkError("reset"), make_token("token-3")]

        result = await refresher.refresh()

        assert result is True
        assert provider.get_access_token() == ("token-3", None)
        assert len(self.client.calls) == 3
        assert retry_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_transient_errors_exhaust_attempts(self):
        """Test the last NetworkError is recorded when attempts run out."""
        provider = self._provider(RefreshConfig(refresh_percentage=80, fetch_max_attempts=2))
        refresher = TokenRefresher(provider, retry_sleep=AsyncMock())
        self.client.responses = [NetworkError("reset")]

        result = await refresher.refresh()

        assert result is False
        assert isinstance(provider.snapshot.last_error.__cause__, NetworkError)
        assert len(self.client.calls) == 2

    @pytest.mark.asyncio
    async def test_oauth_error_is_not_retried(self):
        """Test authentication failures are not retried."""
        provider = self._provider(RefreshConfig(refresh_percentage=80, fetch_max_attempts=3))
        refresher = TokenRefresher(provider, retry_sleep=AsyncMock())
        self.client.responses = [OAuthError("denied")]

        assert await refresher.refresh() is False
        assert len(self.client.calls) == 1

    @pytest.mark.asyncio
    async def test_short_lived_token_schedules_fallback(self):
        """Test a token expiring within 10 seconds is refreshed again in one minute."""
        self.client.responses = [make_token("short", lifetime=timedelta(seconds=5))]

        await self.refresher.refresh()

        assert self.provider.snapshot.refresh_duration == timedelta(minutes=1)

    @pytest.mark.asyncio
    async def test_failure_before_any_success_keeps_empty_token(self):
        """Test the empty initial snapshot survives a failed first attempt."""
        self.client.responses = [RuntimeError("boom")]

        await self.refresher.refresh()

        snapshot = self.provider.snapshot
        assert isinstance(snapshot, TokenSnapshot)
        assert snapshot.token == ""
        assert snapshot.last_error is not None

    @pytest.mark.asyncio
    async def test_unschedulable_token_is_recorded_as_failure(self):
        """Test an error while scheduling a fetched token keeps the old token and records it."""
        await self.refresher.refresh()
        # Naive clock against an aware expiry cannot be compared
        self.provider._clock = lambda: T0.replace(tzinfo=None)
        self.client.responses = [make_token("token-2")]

        result = await self.refresher.refresh()

        assert result is False
        token, error = self.provider.get_access_token()
        assert token == "token-1"
        assert isinstance(error.__cause__, TypeError)
        assert self.provider.snapshot.refresh_duration == timedelta(seconds=300)

    @pytest.mark.asyncio
    async def test_percentage_100_schedules_one_minute(self):
        """Test a refresh percentage of 100 never schedules an immediate re-fetch."""
        provider = self._provider(RefreshConfig(refresh_percentage=100, fetch_max_attempts=1))

        assert await provider.refresher.refresh() is True

        assert provider.snapshot.refresh_duration == timedelta(minutes=1)

    @pytest.mark.asyncio
    async def test_success_after_failures_logs_recovery(self, caplog):
        """Test the first success after failures reports how many attempts failed."""
        self.client.responses = [RuntimeError("boom"), RuntimeError("boom"), make_token("token-2")]
        await self.refresher.refresh()
        await self.refresher.refresh()

        with caplog.at_level(logging.INFO, logger="tests.refresher"):
            await self.refresher.refresh()

        assert any(
            r.name == "tests.refresher" and "recovered after 2 failed attempt(s)" in r.getMessage()
            for r in caplog.records
        )

    @pytest.mark.asyncio
    async def test_repeated_failures_raise_stale_alert(self, monkeypatch, caplog):
        """Test failures spanning the alert window at the fallback cadence alert once."""
        monkeypatch.setattr("aad_token_provider.logging_config.failure_tracker.stale_alert_seconds", 600)
        await self.refresher.refresh()
        self.client.responses = [NetworkError("reset")]

        with caplog.at_level(logging.CRITICAL, logger="tests.refresher"):
            for _ in range(3):
                await self.refresher.refresh()

        alerts = [r.getMessage() for r in caplog.records if r.levelno == logging.CRITICAL]
        assert len(alerts) == 1
        assert f"audience={AUDIENCE} failed 2 refreshes in a row" in alerts[0]

    def test_record_crash_publishes_error_and_keeps_token(self, caplog):
        """Test an error that ended the loop is visible to callers and logged."""
        self.provider._publish(TokenSnapshot(token="token-1", refresh_duration=timedelta(minutes=20)))

        with caplog.at_level(logging.ERROR, logger="tests.refresher"):
            self.refresher.record_crash(ValueError("bad state"))

        token, error = self.provider.get_access_token()
        assert token == "token-1"
        assert isinstance(error, RefreshFetchError)
        assert isinstance(error.__cause__, ValueError)
        assert self.provider.snapshot.refresh_duration == timedelta(minutes=20)
        assert caplog.records[-1].getMessage().startswith(
            "[INTERNAL] Background token refresh stopped unexpectedly | Exception: ValueError: bad state"
        )
