"""
Retry policy for outbound diagnosis requests.
"""

from dataclasses import dataclass
from typing import Callable, Optional

RETRYABLE_CLIENT_STATUSES = frozenset({429})


def exponential_backoff(base_ms: int = 1000, max_ms: int = 5000) -> Callable[[int], float]:
    """Delay in seconds after failed ``attempt`` (1-based): min(base * 2^(n-1), max)."""

    def backoff(attempt: int) -> float:
        return min(base_ms * 2 ** (attempt - 1), max_ms) / 1000.0

    return backoff


def default_retry_predicate(status: Optional[int]) -> bool:
    """Network errors (status None), 429 and 5xx are retried."""
    if status is None:
        return True
    return status in RETRYABLE_CLIENT_STATUSES or status >= 500


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_fn: Callable[[int], float] = exponential_backoff()
    retry_predicate: Callable[[Optional[int]], bool] = default_retry_predicate

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_attempts,
            backoff_fn=exponential_backoff(settings.base_backoff_ms, settings.max_backoff_ms),
        )
