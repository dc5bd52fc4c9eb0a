"""Refresh schedule computation."""

from __future__ import annotations

from datetime import datetime, timedelta

from ..constants import FALLBACK_REFRESH, REFRESH_THRESHOLD


def next_refresh(now: datetime, expires_at: datetime, percentage: int) -> datetime:
    """Return the absolute time at which the token should be refreshed.

    ``percentage`` is the share of the remaining lifetime spent before
    refreshing: 80 refreshes after 80% of it has elapsed. 0 lands on expiry
    and 100 lands on ``now``; neither is a usable schedule, so both fall back.

    Tokens that are already expired, or that expire within the 10 second
    threshold, are retried after one minute. So is any candidate that is not
    strictly between ``now`` and expiry.

    Args:
        now: Current time; injected so the computation stays pure.
        expires_at: Absolute expiry of the token.
        percentage: Refresh percentage in [0, 100].

    Returns:
        Absolute timestamp of the next refresh, always after ``now``.
    """
    remaining = expires_at - now
    candidate = now + remaining * (100 - percentage) / 100
    threshold = now - REFRESH_THRESHOLD

    if candidate < threshold or remaining <= REFRESH_THRESHOLD:
        return now + FALLBACK_REFRESH
    if now < candidate < expires_at:
        return candidate
    return now + FALLBACK_REFRESH


def refresh_delay(now: datetime, expires_at: datetime, percentage: int) -> timedelta:
    """Relative form of next_refresh(); always positive."""
    return next_refresh(now, expires_at, percentage) - now
