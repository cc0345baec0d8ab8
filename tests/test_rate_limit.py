"""Tests for the sliding-window and Redis-backed rate limiters."""

from unittest.mock import MagicMock

import pytest
import redis

from src.services.rate_limit import (
    RATE_LIMIT_PRESETS,
    MemoryRateLimiter,
    RateLimitPolicy,
    RateLimitUnavailableError,
    RedisRateLimiter,
    get_client_identifier,
)


class FakeClock:
    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now


POLICY = RateLimitPolicy(window_ms=60_000, max_requests=3)


def test_presets_match_documented_limits():
    assert RATE_LIMIT_PRESETS["auth"] == RateLimitPolicy(window_ms=900_000, max_requests=5)
    assert RATE_LIMIT_PRESETS["comment"].max_requests == 3
    assert RATE_LIMIT_PRESETS["contact"].window_ms == 3_600_000


def test_client_identifier_prefers_first_forwarded_address():
    headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1", "x-real-ip": "10.0.0.2"}
    assert get_client_identifier(headers) == "203.0.113.7"


def test_client_identifier_falls_back_to_real_ip_then_anonymous():
    assert get_client_identifier({"x-real-ip": "198.51.100.4"}) == "198.51.100.4"
    assert get_client_identifier({}) == "anonymous"


def test_memory_limiter_rejects_after_max_requests():
    clock = FakeClock()
    limiter = MemoryRateLimiter(clock=clock)

    results = [limiter.check("client", POLICY) for _ in range(3)]
    assert all(r.allowed for r in results)
    assert [r.remaining for r in results] == [2, 1, 0]

    rejected = limiter.check("client", POLICY)
    assert not rejected.allowed
    assert rejected.remaining == 0
    assert rejected.retry_after_ms == 60_000
    assert rejected.retry_after_seconds == 60


def test_memory_limiter_window_slides():
    """Each admission only counts while it is inside the trailing window."""
    clock = FakeClock()
    limiter = MemoryRateLimiter(clock=clock)

    limiter.check("client", POLICY)
    clock.now += 20_000
    limiter.check("client", POLICY)
    limiter.check("client", POLICY)
    assert not limiter.check("client", POLICY).allowed

    # The first request leaves the window; exactly one slot opens
    clock.now += 40_001
    assert limiter.check("client", POLICY).allowed
    assert not limiter.check("client", POLICY).allowed


def test_memory_limiter_never_admits_more_than_max_in_any_window():
    clock = FakeClock()
    limiter = MemoryRateLimiter(clock=clock)
    admitted = []

    for _ in range(200):
        if limiter.check("client", POLICY).allowed:
            admitted.append(clock.now)
        clock.now += 7_000

    for ts in admitted:
        in_window = [t for t in admitted if ts - POLICY.window_ms < t <= ts]
        assert len(in_window) <= POLICY.max_requests


def test_short_window_sweep_keeps_longer_histories():
    """A sweep triggered by a 60s preset must not forget auth attempts."""
    clock = FakeClock()
    limiter = MemoryRateLimiter(clock=clock)
    auth = RATE_LIMIT_PRESETS["auth"]

    for _ in range(auth.max_requests):
        assert limiter.check("auth:1.2.3.4", auth).allowed

    clock.now += 61_000
    assert limiter.check("read:1.2.3.4", RATE_LIMIT_PRESETS["read"]).allowed

    assert not limiter.check("auth:1.2.3.4", auth).allowed


def test_presets_sharing_one_limiter_never_exceed_their_windows():
    clock = FakeClock()
    limiter = MemoryRateLimiter(clock=clock)
    admitted = {name: [] for name in RATE_LIMIT_PRESETS}

    # Interleave every preset for the same client over several hours
    for step in range(2_000):
        for name, policy in RATE_LIMIT_PRESETS.items():
            if step % (len(name) + 1) == 0 and limiter.check(f"{name}:client", policy).allowed:
                admitted[name].append(clock.now)
        clock.now += 9_000

    for name, policy in RATE_LIMIT_PRESETS.items():
        times = admitted[name]
        assert times
        for ts in times:
            in_window = [t for t in times if ts - policy.window_ms < t <= ts]
            assert len(in_window) <= policy.max_requests, name


def test_memory_limiter_keys_are_independent():
    limiter = MemoryRateLimiter(clock=FakeClock())
    for _ in range(3):
        limiter.check("a", POLICY)
    assert not limiter.check("a", POLICY).allowed
    assert limiter.check("b", POLICY).allowed


def test_memory_limiter_reset_clears_counts():
    limiter = MemoryRateLimiter(clock=FakeClock())
    for _ in range(4):
        limiter.check("client", POLICY)
    limiter.reset()
    assert limiter.check("client", POLICY).allowed


def test_redis_limiter_sets_expiry_on_first_hit():
    client = MagicMock()
    client.incr.return_value = 1
    limiter = RedisRateLimiter(client, clock=FakeClock(120_000))

    result = limiter.check("1.2.3.4", POLICY)

    assert result.allowed
    assert result.remaining == 2
    client.incr.assert_called_once_with("ratelimit:1.2.3.4:2")
    client.pexpire.assert_called_once_with("ratelimit:1.2.3.4:2", 60_000)


def test_redis_limiter_rejects_over_limit():
    client = MagicMock()
    client.incr.return_value = 4
    limiter = RedisRateLimiter(client, clock=FakeClock(130_000))

    result = limiter.check("1.2.3.4", POLICY)

    assert not result.allowed
    assert result.reset_at_ms == 180_000
    assert result.retry_after_ms == 50_000
    client.pexpire.assert_not_called()


def test_redis_limiter_fails_open():
    client = MagicMock()
    client.incr.side_effect = redis.ConnectionError("connection refused")
    limiter = RedisRateLimiter(client, fail_open=True, clock=FakeClock())

    assert limiter.check("1.2.3.4", POLICY).allowed


def test_redis_limiter_can_fail_closed():
    client = MagicMock()
    client.incr.side_effect = redis.ConnectionError("connection refused")
    limiter = RedisRateLimiter(client, fail_open=False, clock=FakeClock())

    with pytest.raises(RateLimitUnavailableError):
        limiter.check("1.2.3.4", POLICY)


def test_rate_limited_endpoint_returns_headers(client):
    for _ in range(3):
        response = client.post(
            "/api/comments",
            json={"post_id": 999, "name": "Ann", "content": "A perfectly fine comment."},
        )
        assert response.status_code == 404

    response = client.post(
        "/api/comments",
        json={"post_id": 999, "name": "Ann", "content": "A perfectly fine comment."},
    )
    assert response.status_code == 429
    assert response.headers["X-RateLimit-Limit"] == "3"
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert int(response.headers["Retry-After"]) > 0


def test_rate_limit_is_per_client(client):
    for _ in range(3):
        client.post(
            "/api/comments",
            headers={"X-Forwarded-For": "203.0.113.1"},
            json={"post_id": 999, "name": "Ann", "content": "A perfectly fine comment."},
        )

    response = client.post(
        "/api/comments",
        headers={"X-Forwarded-For": "203.0.113.2"},
        json={"post_id": 999, "name": "Ann", "content": "A perfectly fine comment."},
    )
    assert response.status_code == 404
