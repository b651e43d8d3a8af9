from __future__ import annotations

import threading

import pytest

from multiapi.errors import RateLimitExceededError
from multiapi.ratelimit import FixedWindowRateLimiter, RateLimitPolicy, default_policies


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _limiter(clock: FakeClock) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        {
            "x": RateLimitPolicy(max_requests=5, window_s=60.0),
            "finance": RateLimitPolicy(max_requests=2, window_s=60.0),
            "weather": RateLimitPolicy(max_requests=2, window_s=60.0),
        },
        clock=clock,
    )


def test_sixth_call_in_window_fails_with_wait_time():
    clock = FakeClock()
    limiter = _limiter(clock)

    for _ in range(5):
        limiter.check_limit("x")

    clock.advance(10)
    with pytest.raises(RateLimitExceededError) as excinfo:
        limiter.check_limit("x")

    assert excinfo.value.category == "x"
    assert excinfo.value.retry_after_s == 50
    assert excinfo.value.retry_after_s <= 60
    assert "Please wait 50 seconds" in str(excinfo.value)


def test_failed_check_does_not_consume_quota():
    clock = FakeClock()
    limiter = _limiter(clock)
    for _ in range(5):
        limiter.check_limit("x")

    for _ in range(3):
        with pytest.raises(RateLimitExceededError):
            limiter.check_limit("x")

    assert limiter.remaining("x") == 0


def test_window_rollover_resets_count_to_one():
    clock = FakeClock()
    limiter = _limiter(clock)
    for _ in range(5):
        limiter.check_limit("x")

    clock.advance(60.001)
    limiter.check_limit("x")

    assert limiter.remaining("x") == 4


def test_wait_time_rounds_up_to_whole_seconds():
    clock = FakeClock()
    limiter = _limiter(clock)
    for _ in range(5):
        limiter.check_limit("x")

    clock.advance(59.2)
    with pytest.raises(RateLimitExceededError) as excinfo:
        limiter.check_limit("x")
    assert excinfo.value.retry_after_s == 1


def test_categories_are_independent():
    clock = FakeClock()
    limiter = _limiter(clock)
    limiter.check_limit("finance")
    limiter.check_limit("finance")
    with pytest.raises(RateLimitExceededError):
        limiter.check_limit("finance")

    limiter.check_limit("weather")
    assert limiter.remaining("weather") == 1


def test_unknown_category_is_unbounded_and_warns(caplog):
    limiter = _limiter(FakeClock())
    with caplog.at_level("WARNING", logger="multiapi.ratelimit"):
        for _ in range(50):
            limiter.check_limit("crypto")

    assert "No rate limit configured for crypto" in caplog.text
    assert limiter.remaining("crypto") is None


def test_remaining_is_read_only_projection():
    clock = FakeClock()
    limiter = _limiter(clock)

    assert limiter.remaining("x") == 5
    limiter.check_limit("x")
    limiter.check_limit("x")
    assert limiter.remaining("x") == 3

    clock.advance(61)
    assert limiter.remaining("x") == 5
    # Rolling the window over in remaining() must not reset the stored window.
    clock.now -= 61
    assert limiter.remaining("x") == 3


def test_reset_single_category_and_all():
    limiter = _limiter(FakeClock())
    limiter.check_limit("x")
    limiter.check_limit("weather")

    limiter.reset("x")
    assert limiter.remaining("x") == 5
    assert limiter.remaining("weather") == 1

    limiter.reset()
    assert limiter.remaining("weather") == 2


def test_concurrent_checks_never_exceed_quota():
    limiter = FixedWindowRateLimiter({"news": RateLimitPolicy(max_requests=100, window_s=60.0)})
    admitted = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(50):
            try:
                limiter.check_limit("news")
            except RateLimitExceededError:
                continue
            with lock:
                admitted.append(1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(admitted) == 100
    assert limiter.remaining("news") == 0


def test_default_policies_give_finance_a_tighter_quota():
    policies = default_policies(max_requests=100, window_s=60.0)
    assert set(policies) == {"weather", "finance", "news"}
    assert policies["finance"].max_requests == 5
    assert policies["weather"].max_requests == 100


def test_policy_validation():
    with pytest.raises(ValueError):
        RateLimitPolicy(max_requests=-1)
    with pytest.raises(ValueError):
        RateLimitPolicy(window_s=0)
