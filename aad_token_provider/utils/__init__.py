"""Utility functions package for the token provider.

Exposed functions:
    format_duration: Formats time durations into human-readable strings.
    retry_transient: Retries an async operation on transient network errors.
"""

from .helpers import format_duration
from .retry import retry_transient

__all__ = ["format_duration", "retry_transient"]
