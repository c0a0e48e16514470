"""
Client-side rate limiting per endpoint class.

Coinbase Pro documents limits per group of endpoints (for example the
accounts endpoints allow 25 requests per second, bursting to 50). Each
endpoint class gets its own token bucket; all buckets of one client are
held by a RateLimiter and are safe to use from several threads.
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from .errors import RateLimited


logger = logging.getLogger(__name__)


class RateLimitPolicy(Enum):
    """What to do when no token is available."""

    FAIL_FAST = "fail_fast"
    BLOCK = "block"


@dataclass(frozen=True)
class RateLimitSpec:
    """Sustained rate (requests/second) and burst size for an endpoint class."""

    rate: float
    burst: int

    def __post_init__(self):
        if self.rate <= 0:
            raise ValueError(f"rate must be positive, got {self.rate}")
        if self.burst < 1:
            raise ValueError(f"burst must be at least 1, got {self.burst}")


DEFAULT_LIMITS: Dict[str, RateLimitSpec] = {
    "accounts": RateLimitSpec(rate=25, burst=50),
    "private": RateLimitSpec(rate=15, burst=30),
    "public": RateLimitSpec(rate=10, burst=15),
}


class TokenBucket:
    """Thread-safe token bucket."""

    def __init__(self, rate: float, burst: int, clock: Optional[Callable[[], float]] = None):
        """
        Args:
            rate: tokens added per second
            burst: bucket capacity; the bucket starts full
            clock: monotonic time source in seconds (defaults to time.monotonic)
        """
        self.rate = float(rate)
        self.burst = burst
        self._clock = clock or time.monotonic
        self._tokens = float(burst)
        self._last_refill = self._clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
            self._last_refill = now

    def try_acquire(self) -> float:
        """
        Take one token if available.

        Returns:
            0.0 when a token was taken, otherwise the seconds until one will be
            available (nothing is consumed in that case)
        """
        with self._lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return 0.0
            return (1.0 - self._tokens) / self.rate

    @property
    def tokens(self) -> float:
        """Tokens currently available."""
        with self._lock:
            self._refill()
            return self._tokens


class RateLimiter:
    """Holds one TokenBucket per endpoint class and applies the policy."""

    def __init__(self, limits: Optional[Dict[str, RateLimitSpec]] = None,
                 policy: RateLimitPolicy = RateLimitPolicy.FAIL_FAST,
                 clock: Optional[Callable[[], float]] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.policy = policy
        self._sleep = sleep
        self.limits = dict(DEFAULT_LIMITS if limits is None else limits)
        self._buckets = {
            name: TokenBucket(spec.rate, spec.burst, clock=clock)
            for name, spec in self.limits.items()
        }

    @property
    def endpoint_classes(self):
        return sorted(self._buckets)

    def bucket(self, endpoint_class: str) -> TokenBucket:
        try:
            return self._buckets[endpoint_class]
        except KeyError:
            raise ValueError(f"Unknown endpoint class: {endpoint_class}") from None

    def acquire(self, endpoint_class: str, path: Optional[str] = None) -> None:
        """
        Consume one token for ``endpoint_class``.

        Under FAIL_FAST an empty bucket raises RateLimited. Under BLOCK the call
        sleeps (without holding the bucket lock) until a token is taken.

        Raises:
            RateLimited: bucket empty and policy is FAIL_FAST
            ValueError: unknown endpoint class
        """
        bucket = self.bucket(endpoint_class)
        while True:
            wait = bucket.try_acquire()
            if wait == 0.0:
                return
            if self.policy is RateLimitPolicy.FAIL_FAST:
                logger.warning(f"Rate limit budget exhausted for '{endpoint_class}', "
                               f"retry in {wait:.3f}s")
                raise RateLimited(
                    f"Rate limit exceeded for endpoint class '{endpoint_class}'",
                    endpoint_class=endpoint_class,
                    retry_after=wait,
                    path=path,
                )
            logger.debug(f"Rate limit reached for '{endpoint_class}', waiting {wait:.3f}s")
            self._sleep(wait)
