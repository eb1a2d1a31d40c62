"""
Fixed-window limiter tests with a hand-driven clock.
"""

from roomkeeper.services.rate_limit_service import FixedWindowRateLimiter


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def test_allows_up_to_max_then_denies():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(clock=clock)

    results = [limiter.hit("auth:1.2.3.4", 3, 60) for _ in range(3)]
    assert all(r.allowed for r in results)
    assert [r.remaining for r in results] == [2, 1, 0]

    denied = limiter.hit("auth:1.2.3.4", 3, 60)
    assert not denied.allowed
    assert denied.retry_after_seconds == 60


def test_retry_after_rounds_up():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(clock=clock)
    limiter.hit("k", 1, 10)

    clock.advance(9.5)
    denied = limiter.hit("k", 1, 10)

    assert not denied.allowed
    assert denied.retry_after_seconds == 1


def test_window_resets():
    clock = FakeClock()
    limiter = FixedWindowRateLimiter(clock=clock)
    limiter.hit("k", 1, 10)
    assert not limiter.hit("k", 1, 10).allowed

    clock.advance(10)

    assert limiter.hit("k", 1, 10).allowed


def test_keys_are_independent():
    limiter = FixedWindowRateLimiter(clock=FakeClock())
    limiter.hit("auth:a", 1, 60)

    assert not limiter.hit("auth:a", 1, 60).allowed
    assert limiter.hit("auth:b", 1, 60).allowed


def test_reset():
    limiter = FixedWindowRateLimiter(clock=FakeClock())
    limiter.hit("a", 1, 60)
    limiter.hit("b", 1, 60)

    limiter.reset("a")
    assert limiter.hit("a", 1, 60).allowed
    assert not limiter.hit("b", 1, 60).allowed

    limiter.reset()
    assert limiter.hit("b", 1, 60).allowed
