"""
Unit tests for retry utilities.
"""

from unittest.mock import AsyncMock

import pytest

from aad_token_provider.errors import NetworkError, OAuthError
from aad_token_provider.utils.retry import retry_transient


class TestRetryTransient:
    """Test class for retry_transient functionality."""

    def setup_method(self):
        self.sleep = AsyncMock()

    @pytest.mark.asyncio
    async def test_success_first_attempt(self) -> None:
        """Test successful operation on first attempt."""
        async def operation() -> str:
            return "success"

        assert await retry_transient(operation, max_attempts=3, sleep=self.sleep) == "success"
        self.sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_success_after_network_errors(self) -> None:
        """Test successful operation after transient failures."""
        attempts = 0

        async def operation() -> str:
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                raise NetworkError("reset")
            return "success"

        assert await retry_transient(operation, max_attempts=3, sleep=self.sleep) == "success"
        assert attempts == 3
        assert self.sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_attempts_reraise_last_error(self) -> None:
        """Test the last NetworkError surfaces unchanged."""
        attempts = 0

        async def operation() -> str:
            nonlocal attempts
            attempts += 1
            raise NetworkError(f"reset {attempts}")

        with pytest.raises(NetworkError, match="reset 2"):
            await retry_transient(operation, max_attempts=2, sleep=self.sleep)
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_non_transient_error_not_retried(self) -> None:
        """Test errors other than NetworkError propagate immediately."""
        operation = AsyncMock(side_effect=OAuthError("denied"))

        with pytest.raises(OAuthError):
            await retry_transient(operation, max_attempts=5, sleep=self.sleep)
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_single_attempt_disables_retry(self) -> None:
        operation = AsyncMock(side_effect=NetworkError("reset"))

        with pytest.raises(NetworkError):
            await retry_transient(operation, max_attempts=1, sleep=self.sleep)
        assert operation.await_count == 1
        self.sleep.assert_not_awaited()
