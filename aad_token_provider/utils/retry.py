"""Retry utilities for asynchronous token fetches using Tenacity."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..errors import NetworkError

T = TypeVar("T")


async def retry_transient(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run an async operation, retrying transient network errors with backoff.

    Only NetworkError is retried; any other exception propagates on the first
    occurrence. When attempts are exhausted the last NetworkError is re-raised
    unchanged so callers can wrap it in their own error type.

    Args:
        operation: Zero-argument coroutine function to execute.
        max_attempts: Maximum number of attempts (1 disables retry).
        sleep: Coroutine used to wait between attempts.

    Returns:
        The result of the first successful attempt.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, max=30),
        retry=retry_if_exception_type(NetworkError),
        sleep=sleep,
        reraise=True,
    )
    return await retrying(operation)
