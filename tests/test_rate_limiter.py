"""
Unit tests for the per-client rate limiter.
"""

from conftest import FakeClock

from menuchat.core.errors import ErrorKind
from menuchat.core.rate_limiter import RateLimiter


def test_requests_up_to_limit_pass() -> None:
    limiter = RateLimiter(limit=3, window_ms=60_000, clock=FakeClock())
    assert [limiter.check("a") for _ in range(3)] == [None, None, None]


def test_exceeding_call_fails_with_retry_after() -> None:
    clock = FakeClock()
    limiter = RateLimiter(limit=3, window_ms=60_000, clock=clock)
    for _ in range(3):
        assert limiter.check("a") is None
    clock.advance(20_500)
    failure = limiter.check("a")
    assert failure is not None
    assert failure.kind is ErrorKind.RATE_LIMIT
    assert failure.status_code == 429
    # 39.5s left in the window, rounded up
    assert failure.retry_after_seconds == 40


def test_retry_after_is_at_least_one_second() -> None:
    clock = FakeClock()
    limiter = RateLimiter(limit=1, window_ms=1_000, clock=clock)
    limiter.check("a")
    clock.advance(1_000)
    failure = limiter.check("a")
    assert failure is not None
    assert failure.retry_after_seconds == 1


def test_over_limit_calls_still_count() -> None:
    limiter = RateLimiter(limit=2, window_ms=60_000, clock=FakeClock())
    for _ in range(5):
        limiter.check("a")
    assert limiter.get("a").count == 5


def test_window_resets_after_elapsed() -> None:
    clock = FakeClock()
    limiter = RateLimiter(limit=2, window_ms=60_000, clock=clock)
    for _ in range(3):
        limiter.check("a")
    clock.advance(60_001)
    assert limiter.check("a") is None
    assert limiter.get("a").count == 1


def test_clients_are_independent() -> None:
    limiter = RateLimiter(limit=1, window_ms=60_000, clock=FakeClock())
    assert limiter.check("a") is None
    assert limiter.check("a") is not None
    assert limiter.check("b") is None


def test_prune_drops_elapsed_windows_only() -> None:
    clock = FakeClock()
    limiter = RateLimiter(limit=5, window_ms=60_000, clock=clock)
    limiter.check("old")
    clock.advance(30_000)
    limiter.check("new")
    clock.advance(30_001)
    assert limiter.prune() == 1
    assert limiter.get("old") is None
    assert limiter.get("new") is not None
