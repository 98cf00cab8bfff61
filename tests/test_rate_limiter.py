"""Property-based tests for the fixed-window rate limiter."""

import pytest
from hypothesis import given, strategies as st

from achievement_aggregator.services.errors import RateLimitExceeded
from achievement_aggregator.services.rate_limiter import RateLimiterService


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@given(
    max_requests=st.integers(min_value=1, max_value=30),
    window_ms=st.integers(min_value=1, max_value=120).map(lambda seconds: seconds * 1000),
)
def test_request_after_quota_is_rejected_until_window_elapses(max_requests: int, window_ms: int) -> None:
    """N admissions per window; the (N+1)-th is rejected; a new window starts at 1."""
    clock = FakeClock()
    limiter = RateLimiterService("test", window_ms=window_ms, max_requests=max_requests, clock=clock)

    for _ in range(max_requests):
        assert limiter.check("10.0.0.1").allowed

    rejected = limiter.check("10.0.0.1")
    assert not rejected.allowed
    assert rejected.remaining == 0
    assert rejected.retry_after is not None and rejected.retry_after >= 1

    clock.now += window_ms / 1000
    fresh = limiter.check("10.0.0.1")
    assert fresh.allowed
    assert fresh.remaining == max_requests - 1


@given(st.lists(st.sampled_from(["a", "b", "c"]), max_size=40))
def test_keys_are_counted_independently(keys: list[str]) -> None:
    limiter = RateLimiterService("test", window_ms=60_000, max_requests=5, clock=FakeClock())
    seen: dict[str, int] = {}

    for key in keys:
        seen[key] = seen.get(key, 0) + 1
        assert limiter.check(key).allowed is (seen[key] <= 5)


def test_remaining_counts_down() -> None:
    limiter = RateLimiterService("test", window_ms=60_000, max_requests=3, clock=FakeClock())

    assert [limiter.check("k").remaining for _ in range(3)] == [2, 1, 0]


def test_retry_after_reports_time_left_in_window() -> None:
    clock = FakeClock(1000.0)
    limiter = RateLimiterService("test", window_ms=60_000, max_requests=1, clock=clock)

    limiter.check("k")
    clock.now = 1015.5
    decision = limiter.check("k")

    assert not decision.allowed
    assert decision.retry_after == 45
    assert decision.reset_at == 1060


def test_window_not_reset_just_before_it_elapses() -> None:
    clock = FakeClock(1000.0)
    limiter = RateLimiterService("test", window_ms=10_000, max_requests=1, clock=clock)

    limiter.check("k")
    clock.now = 1009.999
    assert not limiter.check("k").allowed


def test_stale_windows_are_purged_on_check() -> None:
    clock = FakeClock(1000.0)
    limiter = RateLimiterService("test", window_ms=10_000, max_requests=5, clock=clock)

    for key in ("a", "b", "c"):
        limiter.check(key)
    assert limiter.active_keys() == 3

    clock.now += 10
    limiter.check("d")
    assert limiter.active_keys() == 1


def test_limiters_do_not_share_state() -> None:
    clock = FakeClock()
    games = RateLimiterService("games", window_ms=60_000, max_requests=1, clock=clock)
    achievements = RateLimiterService("achievements", window_ms=60_000, max_requests=1, clock=clock)

    assert games.check("k").allowed
    assert achievements.check("k").allowed
    assert not games.check("k").allowed


def test_anonymous_client_is_admitted_untracked() -> None:
    limiter = RateLimiterService("test", window_ms=60_000, max_requests=1, clock=FakeClock())

    assert limiter.check(None).allowed
    assert limiter.check("").allowed
    assert limiter.active_keys() == 0


def test_headers() -> None:
    clock = FakeClock(1000.0)
    limiter = RateLimiterService("test", window_ms=60_000, max_requests=2, clock=clock)

    assert limiter.check("k").headers() == {
        "X-RateLimit-Limit": "2",
        "X-RateLimit-Remaining": "1",
        "X-RateLimit-Reset": "1060",
    }
    limiter.check("k")
    assert limiter.check("k").headers()["Retry-After"] == "60"


def test_enforce_raises_with_retry_after() -> None:
    limiter = RateLimiterService("test", window_ms=60_000, max_requests=1, clock=FakeClock(1000.0))

    limiter.enforce("k")
    with pytest.raises(RateLimitExceeded) as exc_info:
        limiter.enforce("k")

    assert exc_info.value.retry_after == 60
    assert exc_info.value.status_code == 429


@pytest.mark.parametrize("window_ms,max_requests", [(0, 5), (1000, 0)])
def test_invalid_settings_are_rejected(window_ms: int, max_requests: int) -> None:
    with pytest.raises(ValueError):
        RateLimiterService("test", window_ms=window_ms, max_requests=max_requests)
