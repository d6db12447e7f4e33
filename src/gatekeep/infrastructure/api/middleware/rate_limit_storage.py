"""In-memory token buckets for rate limiting.

Buckets live in the process, so each worker enforces its own limit.
"""

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable


@dataclass
class TokenBucket:
    tokens: float
    last_updated: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one attempt to take a token."""

    allowed: bool
    remaining: int
    retry_after: float


class RateLimitStorage:
    """Thread-safe token buckets keyed by client address."""

    def __init__(
        self,
        stale_after: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize storage.

        Args:
            stale_after: Seconds without traffic after which a bucket is dropped.
            clock: Monotonic time source, in seconds.
        """
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = Lock()
        self._stale_after = stale_after
        self._clock = clock
        self._last_cleanup = clock()

    def consume(self, key: str, rate_per_minute: int, burst: int) -> RateLimitDecision:
        """Take one token from the bucket for ``key``.

        The bucket holds at most ``burst`` tokens and refills at
        ``rate_per_minute``, so a fresh client may send ``burst`` requests at
        once and then ``rate_per_minute`` per minute.
        """
        now = self._clock()
        per_second = rate_per_minute / 60.0
        capacity = float(max(1, burst))

        with self._lock:
            if now - self._last_cleanup > self._stale_after:
                self._drop_stale(now)

            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(tokens=capacity, last_updated=now)
                self._buckets[key] = bucket
            else:
                refill = (now - bucket.last_updated) * per_second
                bucket.tokens = min(capacity, bucket.tokens + refill)
                bucket.last_updated = now

            if bucket.tokens >= 1.0:
                bucket.tokens -= 1.0
                return RateLimitDecision(True, int(bucket.tokens), 0.0)
            return RateLimitDecision(False, 0, (1.0 - bucket.tokens) / per_second)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def _drop_stale(self, now: float) -> None:
        stale = [k for k, b in self._buckets.items() if now - b.last_updated > self._stale_after]
        for key in stale:
            del self._buckets[key]
        self._last_cleanup = now
