"""Per-client sliding-window rate limiting.

Two backends share one contract:

* ``MemoryRateLimiter`` keeps recent request timestamps per client in this
  process. Counts are per instance; several workers each enforce the limit
  on their own share of the traffic.
* ``RedisRateLimiter`` counts hits per ``(client, window bucket)`` with an
  atomic ``INCR`` so every instance sees the same total. Buckets are fixed
  windows, which approximates the rolling window.
"""

import logging
import math
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Protocol

import redis

from src.config import Settings

logger = logging.getLogger(__name__)

ANONYMOUS_CLIENT = "anonymous"

# Idle identifiers are swept at most this often
CLEANUP_INTERVAL_MS = 60_000


@dataclass(frozen=True)
class RateLimitPolicy:
    """At most ``max_requests`` admitted calls per ``window_ms``."""

    window_ms: int
    max_requests: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at_ms: int
    retry_after_ms: int | None = None

    @property
    def retry_after_seconds(self) -> int:
        return math.ceil((self.retry_after_ms or 0) / 1000)


RATE_LIMIT_PRESETS: dict[str, RateLimitPolicy] = {
    # Brute-force protection for login and setup
    "auth": RateLimitPolicy(window_ms=15 * 60_000, max_requests=5),
    "write": RateLimitPolicy(window_ms=60_000, max_requests=30),
    "read": RateLimitPolicy(window_ms=60_000, max_requests=100),
    "upload": RateLimitPolicy(window_ms=60_000, max_requests=10),
    "contact": RateLimitPolicy(window_ms=60 * 60_000, max_requests=5),
    "comment": RateLimitPolicy(window_ms=60_000, max_requests=3),
}


class RateLimitUnavailableError(Exception):
    """The shared counter store failed and the limiter is configured fail-closed."""


class RateLimiter(Protocol):
    def check(self, identifier: str, policy: RateLimitPolicy) -> RateLimitResult: ...


def _now_ms() -> int:
    return int(time.time() * 1000)


def get_client_identifier(headers: Mapping[str, str]) -> str:
    """Identify the caller from proxy headers.

    Uses the first address of ``X-Forwarded-For`` (the original client),
    then ``X-Real-IP``, then a shared anonymous bucket.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return ANONYMOUS_CLIENT


class MemoryRateLimiter:
    """In-process sliding window over request timestamps.

    Each key stores the window it was last checked with. The periodic sweep
    prunes every key by its own window.
    """

    def __init__(self, clock: Callable[[], int] = _now_ms) -> None:
        self._clock = clock
        self._requests: dict[str, tuple[int, list[int]]] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    def check(self, identifier: str, policy: RateLimitPolicy) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            window_start = now - policy.window_ms
            self._cleanup(now)

            _, history = self._requests.get(identifier, (policy.window_ms, []))
            timestamps = [ts for ts in history if ts > window_start]
            reset_at = (timestamps[0] if timestamps else now) + policy.window_ms

            if len(timestamps) >= policy.max_requests:
                self._requests[identifier] = (policy.window_ms, timestamps)
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at_ms=reset_at,
                    retry_after_ms=max(0, timestamps[0] + policy.window_ms - now),
                )

            timestamps.append(now)
            self._requests[identifier] = (policy.window_ms, timestamps)
            return RateLimitResult(
                allowed=True,
                remaining=policy.max_requests - len(timestamps),
                reset_at_ms=reset_at,
            )

    def reset(self) -> None:
        with self._lock:
            self._requests.clear()

    def _cleanup(self, now: int) -> None:
        """Drop identifiers with no recent requests. Caller holds the lock."""
        if now - self._last_cleanup < CLEANUP_INTERVAL_MS:
            return
        self._last_cleanup = now
        for key, (window_ms, history) in list(self._requests.items()):
            valid = [ts for ts in history if ts > now - window_ms]
            if valid:
                self._requests[key] = (window_ms, valid)
            else:
                del self._requests[key]


class RedisRateLimiter:
    """Fixed-bucket counter shared by every instance through Redis."""

    def __init__(
        self,
        client: redis.Redis,
        fail_open: bool = True,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.client = client
        self.fail_open = fail_open
        self._clock = clock

    def check(self, identifier: str, policy: RateLimitPolicy) -> RateLimitResult:
        now = self._clock()
        bucket = now // policy.window_ms
        key = f"ratelimit:{identifier}:{bucket}"
        reset_at = (bucket + 1) * policy.window_ms

        try:
            count = int(self.client.incr(key))
            if count == 1:
                self.client.pexpire(key, policy.window_ms)
        except redis.RedisError as e:
            if not self.fail_open:
                raise RateLimitUnavailableError(str(e)) from e
            # Fail open: an unreachable counter store must not take the site down
            logger.warning(f"Rate limit store unavailable, admitting {identifier}: {e}")
            return RateLimitResult(
                allowed=True, remaining=policy.max_requests, reset_at_ms=reset_at
            )

        if count > policy.max_requests:
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at_ms=reset_at,
                retry_after_ms=max(0, reset_at - now),
            )

        return RateLimitResult(
            allowed=True,
            remaining=max(0, policy.max_requests - count),
            reset_at_ms=reset_at,
        )


def build_rate_limiter(settings: Settings) -> RateLimiter:
    """Create the limiter selected by configuration."""
    if settings.rate_limit_backend == "redis":
        logger.info("Using Redis-backed rate limiter")
        return RedisRateLimiter(
            redis.from_url(settings.redis_url),
            fail_open=settings.rate_limit_fail_open,
        )
    logger.info("Using in-memory rate limiter (per-process counts)")
    return MemoryRateLimiter()


def resolve_policy(preset: str, settings: Settings) -> RateLimitPolicy:
    """Named preset, or the configured default for ``"default"``."""
    if preset == "default":
        return RateLimitPolicy(
            window_ms=settings.rate_limit_window_ms,
            max_requests=settings.rate_limit_max_requests,
        )
    return RATE_LIMIT_PRESETS[preset]
