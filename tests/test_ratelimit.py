import pytest

from doggy_watch.core.ratelimit import DEFAULT_COOLDOWN, RateLimiter


def test_cooldown_window(ticker):
    limiter = RateLimiter(30, clock=ticker)
    assert limiter.retry_after(1) == 0.0
    assert not limiter.is_limited(1)

    limiter.touch(1)
    ticker.advance(12)
    assert limiter.retry_after(1) == pytest.approx(18)
    assert limiter.is_limited(1)
    assert not limiter.is_limited(2)

    ticker.advance(18)
    assert limiter.retry_after(1) == 0.0


def test_touch_overwrites_entry(ticker):
    limiter = RateLimiter(clock=ticker)
    assert limiter.cooldown == DEFAULT_COOLDOWN
    limiter.touch(1)
    ticker.advance(29)
    limiter.touch(1)
    ticker.advance(29)
    assert limiter.is_limited(1)
    assert len(limiter) == 1
