"""Unit tests for the token bucket algorithm and its keyed limiter."""

import pytest

from keyrate.adapters.rate_limit.factory import new_token_bucket_limiter
from keyrate.adapters.rate_limit.token_bucket import TokenBucketLimiter
from keyrate.core.clock import FakeClock
from keyrate.core.errors import ConfigurationError


def test_fill_then_drain(clock: FakeClock) -> None:
    limiter = new_token_bucket_limiter(5, 1.0, clock=clock)

    results = [limiter.allow("u") for _ in range(5)]
    assert results == [True] * 5

    assert limiter.allow("u") is False


def test_refill_after_one_second(clock: FakeClock) -> None:
    limiter = new_token_bucket_limiter(5, 1.0, clock=clock)
    for _ in range(5):
        limiter.allow("u")
    assert limiter.allow("u") is False

    clock.advance(1000)

    assert limiter.allow("u") is True
    assert limiter.allow("u") is False


def test_refill_never_exceeds_capacity() -> None:
    algorithm = TokenBucketLimiter(3, 10.0)
    bucket = algorithm.new_state(0)

    algorithm.admit(bucket, 0)
    algorithm.refill(bucket, 60_000)

    assert bucket.tokens == 3.0


def test_fractional_tokens_persist() -> None:
    # 125 tokens/s is exactly 0.125 tokens per ms
    algorithm = TokenBucketLimiter(1, 125.0)
    bucket = algorithm.new_state(0)
    assert algorithm.admit(bucket, 0) is True

    assert algorithm.admit(bucket, 2) is False
    assert bucket.tokens == 0.25
    assert algorithm.admit(bucket, 4) is False
    assert bucket.tokens == 0.5

    assert algorithm.admit(bucket, 8) is True
    assert bucket.tokens == 0.0


def test_denial_only_applies_refill() -> None:
    algorithm = TokenBucketLimiter(2, 1.0)
    bucket = algorithm.new_state(0)
    algorithm.admit(bucket, 0)
    algorithm.admit(bucket, 0)

    assert algorithm.admit(bucket, 250) is False
    assert bucket.tokens == pytest.approx(0.25)
    assert bucket.last_refill_ms == 250


def test_clock_going_backward_is_no_elapsed_time() -> None:
    algorithm = TokenBucketLimiter(2, 1.0)
    bucket = algorithm.new_state(5_000)
    algorithm.admit(bucket, 5_000)

    assert algorithm.admit(bucket, 1_000) is True
    assert bucket.tokens == 0.0
    assert bucket.last_refill_ms == 5_000

    assert algorithm.admit(bucket, 2_000) is False
    assert bucket.last_refill_ms == 5_000


def test_capacity_one_is_minimum_interval_gate(clock: FakeClock) -> None:
    # 125 tokens/s -> one admission every 8 ms
    limiter = new_token_bucket_limiter(1, 125.0, clock=clock)

    assert limiter.allow("u") is True
    clock.advance(7)
    assert limiter.allow("u") is False
    clock.advance(1)
    assert limiter.allow("u") is True


def test_keys_are_isolated(clock: FakeClock) -> None:
    limiter = new_token_bucket_limiter(1, 1.0, clock=clock)

    assert limiter.allow("k1") is True
    assert limiter.allow("k1") is False

    assert limiter.allow("k2") is True


def test_tokens_stay_within_bounds_over_mixed_traffic() -> None:
    algorithm = TokenBucketLimiter(4, 3.0)
    bucket = algorithm.new_state(0)

    for now in [0, 0, 10, 10, 10, 500, 501, 900, 3_000, 2_000, 3_001, 10_000]:
        algorithm.admit(bucket, now)
        assert 0 <= bucket.tokens <= bucket.capacity


@pytest.mark.parametrize(
    "kwargs",
    [
        {"capacity": 0, "refill_tokens_per_second": 1.0},
        {"capacity": -3, "refill_tokens_per_second": 1.0},
        {"capacity": 1.5, "refill_tokens_per_second": 1.0},
        {"capacity": 5, "refill_tokens_per_second": 0},
        {"capacity": 5, "refill_tokens_per_second": -0.5},
        {"capacity": 5, "refill_tokens_per_second": float("nan")},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ConfigurationError):
        TokenBucketLimiter(**kwargs)


def test_invalid_args_carry_error_code() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        new_token_bucket_limiter(0, 1.0)

    assert exc_info.value.code == "invalid_capacity"
    assert exc_info.value.details == {"field": "capacity", "actual_value": 0}

    with pytest.raises(ConfigurationError) as exc_info:
        new_token_bucket_limiter(1, 0.0)

    assert exc_info.value.code == "invalid_refill_rate"


def test_configuration_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        TokenBucketLimiter(0, 1.0)


def test_rate_is_stored_per_millisecond() -> None:
    algorithm = TokenBucketLimiter(10, 2.0)

    assert algorithm.refill_rate_per_ms == pytest.approx(0.002)
    assert algorithm.new_state(42).tokens == 10.0
    assert algorithm.new_state(42).last_refill_ms == 42
