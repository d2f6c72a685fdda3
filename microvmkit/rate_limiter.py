"""Builders for token buckets and rate limiters."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Callable, Union

from .models import RateLimiter, TokenBucket

RateLimiterOption = Callable[[RateLimiter], None]

_NANOS_PER_MILLI = 1_000_000


def _to_nanoseconds(duration: Union[timedelta, int, float]) -> int:
    if isinstance(duration, timedelta):
        micros = (duration.days * 86_400 + duration.seconds) * 1_000_000 + duration.microseconds
        return micros * 1_000
    if isinstance(duration, (int, float)) and not isinstance(duration, bool):
        return round(duration * 1_000_000_000)
    raise TypeError(f"duration must be a timedelta or a number of seconds, not {type(duration).__name__}")


def _truncating_div(value: int, divisor: int) -> int:
    quotient = abs(value) // divisor
    return -quotient if value < 0 else quotient


@dataclass(frozen=True)
class TokenBucketBuilder:
    """Immutable builder for a :class:`TokenBucket`; each step returns a new builder."""

    _bucket: TokenBucket = field(default_factory=TokenBucket)

    def with_bucket_size(self, size: int) -> "TokenBucketBuilder":
        """Return a builder with the bucket capacity set."""
        return TokenBucketBuilder(replace(self._bucket, size=size))

    def with_refill_duration(self, duration: Union[timedelta, int, float]) -> "TokenBucketBuilder":
        """Return a builder with the refill time set, truncated to whole milliseconds.

        ``duration`` is a ``timedelta`` or a number of seconds.
        """
        millis = _truncating_div(_to_nanoseconds(duration), _NANOS_PER_MILLI)
        return TokenBucketBuilder(replace(self._bucket, refill_time=millis))

    def with_initial_size(self, size: int) -> "TokenBucketBuilder":
        """Return a builder with the one-time initial burst set."""
        return TokenBucketBuilder(replace(self._bucket, one_time_burst=size))

    def build(self) -> TokenBucket:
        """Return a fresh token bucket with the configured values."""
        return replace(self._bucket)


def new_rate_limiter(bandwidth: TokenBucket, ops: TokenBucket, *args: RateLimiterOption) -> RateLimiter:
    """Create a rate limiter from copies of the two buckets, then apply each option in order."""
    limiter = RateLimiter(bandwidth=replace(bandwidth), ops=replace(ops))
    for option in args:
        option(limiter)
    return limiter