"""
Rate Limiter - in-memory fixed window request counting.

Each limiter instance guards one route class ("insights", "insights_post",
"insights_get", ...). Counters are keyed by (route class, client identity,
window start) where window start = floor(now / window_ms) * window_ms.

Design:
- Fixed windows (cheap, predictable reset times)
- One lock per limiter so concurrent increments are never lost
- Opportunistic cleanup: once the bucket map grows past max_buckets,
  buckets from past windows are dropped. Growth inside a single window is
  not bounded.

Usage:
    limiter = RateLimiter("insights_post", window_ms=600_000, max_requests=10)

    allowed, info = limiter.check_rate_limit(client_id)
    if not allowed:
        raise InsightsRateLimitError(..., retry_after=info["retry_after"])
"""

import math
import threading
import time
from collections.abc import Callable

from mhp.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

BucketKey = tuple[str, str, int]


def _now_ms() -> float:
    return time.time() * 1000


class RateLimiter:
    """
    Fixed window rate limiter for a single route class.

    Example:
        With window_ms=60000 and max_requests=3, the 4th request from one
        client between 10:00:00 and 10:00:59 is rejected; the first request
        at 10:01:00 starts a new window and is allowed.
    """

    def __init__(
        self,
        route_class: str,
        window_ms: int,
        max_requests: int,
        max_buckets: int = 5000,
        clock: Callable[[], float] = _now_ms,
    ):
        """
        Initialize rate limiter.

        Args:
            route_class: Name of the route class this limiter guards
            window_ms: Window length in milliseconds
            max_requests: Requests allowed per client per window
            max_buckets: Bucket count that triggers cleanup of past windows
            clock: Returns the current time in milliseconds
        """
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        self.route_class = route_class
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.max_buckets = max_buckets
        self._clock = clock
        self._buckets: dict[BucketKey, int] = {}
        self._lock = threading.Lock()

    def window_start(self, now_ms: float) -> int:
        return int(math.floor(now_ms / self.window_ms) * self.window_ms)

    def check_rate_limit(self, client_id: str, now_ms: float | None = None) -> tuple[bool, dict]:
        """
        Count one request for `client_id` and decide whether it may proceed.

        Returns:
            Tuple of (allowed: bool, info: dict)
            - info: limit, remaining, retry_after (seconds, >= 1 when rejected)
        """
        now = self._clock() if now_ms is None else now_ms
        window_start = self.window_start(now)
        key = (self.route_class, client_id or "unknown", window_start)

        with self._lock:
            count = self._buckets.get(key, 0) + 1
            self._buckets[key] = count
            if len(self._buckets) > self.max_buckets:
                self._prune_locked(window_start)

        reset_in_ms = window_start + self.window_ms - now
        retry_after = max(1, math.ceil(reset_in_ms / 1000))

        if count > self.max_requests:
            return False, self._create_info_dict(
                allowed=False,
                remaining=0,
                retry_after=retry_after,
            )

        return True, self._create_info_dict(
            allowed=True,
            remaining=max(0, self.max_requests - count),
            retry_after=retry_after,
        )

    def prune(self, now_ms: float | None = None) -> int:
        """Drop buckets that do not belong to the current window."""
        now = self._clock() if now_ms is None else now_ms
        with self._lock:
            return self._prune_locked(self.window_start(now))

    def _prune_locked(self, current_window_start: int) -> int:
        stale = [key for key in self._buckets if key[2] != current_window_start]
        for key in stale:
            del self._buckets[key]
        if stale:
            logger.debug(
                "Pruned rate limit buckets",
                route_class=self.route_class,
                removed=len(stale),
                remaining=len(self._buckets),
            )
        return len(stale)

    @property
    def bucket_count(self) -> int:
        return len(self._buckets)

    def _create_info_dict(self, allowed: bool, remaining: int, retry_after: int) -> dict:
        return {
            "allowed": allowed,
            "route_class": self.route_class,
            "limit": self.max_requests,
            "remaining": remaining,
            "retry_after": retry_after,
            "window_seconds": self.window_ms / 1000,
        }


class InsightsRateLimiters:
    """
    The three limiters applied cumulatively to /insights requests, plus the
    separate "stress" limiter for /stress.
    """

    def __init__(
        self,
        limits: dict,
        max_buckets: int = 5000,
        enabled: bool = True,
        clock: Callable[[], float] = _now_ms,
    ):
        self.enabled = enabled
        self.any_request = RateLimiter(
            "insights", max_buckets=max_buckets, clock=clock, **limits["insights"]
        )
        self.post = RateLimiter(
            "insights_post", max_buckets=max_buckets, clock=clock, **limits["insights_post"]
        )
        self.get = RateLimiter(
            "insights_get", max_buckets=max_buckets, clock=clock, **limits["insights_get"]
        )
        self.stress = RateLimiter(
            "stress", max_buckets=max_buckets, clock=clock, **limits["stress"]
        )

    def limiters_for(self, method: str) -> list[RateLimiter]:
        """The limiters a request with `method` must pass, broadest first."""
        limiters = [self.any_request]
        method = method.upper()
        if method == "POST":
            limiters.append(self.post)
        elif method == "GET":
            limiters.append(self.get)
        return limiters

    def all_limiters(self) -> list[RateLimiter]:
        return [self.any_request, self.post, self.get, self.stress]
