import pytest

from mhp.middleware.rate_limiter import InsightsRateLimiters, RateLimiter


def test_fourth_request_in_window_is_rejected():
    limiter = RateLimiter("insights_post", window_ms=60_000, max_requests=3)
    now = 5 * 60_000 + 15_000

    results = [limiter.check_rate_limit("1.2.3.4", now_ms=now) for _ in range(4)]

    assert [allowed for allowed, _ in results] == [True, True, True, False]
    assert results[2][1]["remaining"] == 0
    assert results[3][1]["retry_after"] == 45


def test_next_window_starts_fresh():
    limiter = RateLimiter("insights_post", window_ms=60_000, max_requests=3)
    for _ in range(4):
        limiter.check_rate_limit("1.2.3.4", now_ms=59_000)

    allowed, info = limiter.check_rate_limit("1.2.3.4", now_ms=60_000)

    assert allowed is True
    assert info["remaining"] == 2


def test_retry_after_is_at_least_one_second():
    limiter = RateLimiter("insights", window_ms=1000, max_requests=1)
    limiter.check_rate_limit("c", now_ms=10_999.5)

    allowed, info = limiter.check_rate_limit("c", now_ms=10_999.9)

    assert allowed is False
    assert info["retry_after"] == 1


def test_clients_are_counted_separately():
    limiter = RateLimiter("insights", window_ms=60_000, max_requests=1)

    assert limiter.check_rate_limit("a", now_ms=0)[0] is True
    assert limiter.check_rate_limit("b", now_ms=0)[0] is True
    assert limiter.check_rate_limit("a", now_ms=0)[0] is False


def test_past_windows_pruned_past_high_water_mark():
    limiter = RateLimiter("insights", window_ms=1000, max_requests=5, max_buckets=2)
    limiter.check_rate_limit("a", now_ms=0)
    limiter.check_rate_limit("b", now_ms=0)
    assert limiter.bucket_count == 2

    limiter.check_rate_limit("c", now_ms=1500)

    assert limiter.bucket_count == 1


def test_uses_injected_clock():
    now = {"ms": 0.0}
    limiter = RateLimiter("insights", window_ms=1000, max_requests=1, clock=lambda: now["ms"])

    assert limiter.check_rate_limit("a")[0] is True
    assert limiter.check_rate_limit("a")[0] is False
    now["ms"] = 1000.0
    assert limiter.check_rate_limit("a")[0] is True


def test_window_must_be_positive():
    with pytest.raises(ValueError):
        RateLimiter("insights", window_ms=0, max_requests=1)


def test_limiters_for_method():
    limits = {
        "insights": {"window_ms": 1000, "max_requests": 10},
        "insights_post": {"window_ms": 1000, "max_requests": 2},
        "insights_get": {"window_ms": 1000, "max_requests": 5},
        "stress": {"window_ms": 1000, "max_requests": 3},
    }
    limiters = InsightsRateLimiters(limits)

    assert limiters.limiters_for("post") == [limiters.any_request, limiters.post]
    assert limiters.limiters_for("GET") == [limiters.any_request, limiters.get]
    assert limiters.limiters_for("OPTIONS") == [limiters.any_request]
    assert limiters.stress not in limiters.limiters_for("POST")
    assert limiters.all_limiters() == [
        limiters.any_request,
        limiters.post,
        limiters.get,
        limiters.stress,
    ]
