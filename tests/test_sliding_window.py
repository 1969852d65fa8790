"""Unit tests for the sliding window log algorithm and its keyed limiter."""

import pytest

from keyrate.adapters.rate_limit.factory import new_sliding_window_limiter
from keyrate.adapters.rate_limit.sliding_window import SlidingWindowLimiter
from keyrate.core.clock import FakeClock
from keyrate.core.errors import ConfigurationError


def test_admits_up_to_window_size(clock: FakeClock) -> None:
    limiter = new_sliding_window_limiter(3, 1000, clock=clock)

    for t in (0, 10, 20):
        clock.set(t)
        assert limiter.allow("u") is True

    clock.set(30)
    assert limiter.allow("u") is False


def test_oldest_entry_expires(clock: FakeClock) -> None:
    limiter = new_sliding_window_limiter(3, 1000, clock=clock)
    for t in (0, 10, 20, 30):
        clock.set(t)
        limiter.allow("u")

    clock.set(1001)

    assert limiter.allow("u") is True
    assert limiter.allow("u") is False


def test_entry_exactly_at_limit_is_still_counted() -> None:
    algorithm = SlidingWindowLimiter(1, 1000)
    window = algorithm.new_state(0)
    assert algorithm.admit(window, 0) is True

    assert algorithm.admit(window, 1000) is False
    assert algorithm.admit(window, 1001) is True


def test_denial_leaves_log_unchanged() -> None:
    algorithm = SlidingWindowLimiter(2, 1000)
    window = algorithm.new_state(0)
    algorithm.admit(window, 0)
    algorithm.admit(window, 5)

    assert algorithm.admit(window, 10) is False
    assert list(window.timestamps) == [0, 5]


def test_eviction_removes_only_stale_prefix() -> None:
    algorithm = SlidingWindowLimiter(10, 100)
    window = algorithm.new_state(0)
    for t in (0, 20, 40, 60, 90):
        algorithm.admit(window, t)

    removed = algorithm.evict_expired(window, 170)

    assert removed == 4
    assert list(window.timestamps) == [90]


def test_log_never_exceeds_window_size() -> None:
    algorithm = SlidingWindowLimiter(3, 50)
    window = algorithm.new_state(0)

    for t in range(0, 400, 7):
        algorithm.admit(window, t)
        assert len(window.timestamps) <= 3


def test_backward_clock_keeps_log_ordered() -> None:
    algorithm = SlidingWindowLimiter(3, 1000)
    window = algorithm.new_state(0)
    algorithm.admit(window, 500)

    assert algorithm.admit(window, 100) is True
    assert list(window.timestamps) == [500, 500]


def test_keys_are_isolated(clock: FakeClock) -> None:
    limiter = new_sliding_window_limiter(1, 1000, clock=clock)

    assert limiter.allow("k1") is True
    assert limiter.allow("k1") is False

    assert limiter.allow("k2") is True


def test_defaults() -> None:
    algorithm = SlidingWindowLimiter()

    assert algorithm.window_size == 5
    assert algorithm.time_limit_ms == 10_000


@pytest.mark.parametrize(
    "kwargs",
    [
        {"window_size": 0, "time_limit_ms": 1000},
        {"window_size": -1, "time_limit_ms": 1000},
        {"window_size": 3, "time_limit_ms": 0},
        {"window_size": 3, "time_limit_ms": -10},
        {"window_size": 3, "time_limit_ms": 2.5},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ConfigurationError):
        SlidingWindowLimiter(**kwargs)


def test_invalid_args_carry_error_code() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        new_sliding_window_limiter(3, 0)

    assert exc_info.value.code == "invalid_time_limit"
