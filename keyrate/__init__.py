"""keyrate - per-key token bucket and sliding window rate limiting."""

from keyrate.adapters.rate_limit import (
    AbstractRateLimiter,
    KeyedLimiterRegistry,
    SlidingWindowLimiter,
    TokenBucketLimiter,
    create_rate_limiter,
    new_sliding_window_limiter,
    new_token_bucket_limiter,
)
from keyrate.core.clock import Clock, FakeClock, MonotonicClock
from keyrate.core.errors import AppError, ConfigurationError

__version__ = "0.1.0"

__all__ = [
    "AbstractRateLimiter",
    "AppError",
    "Clock",
    "ConfigurationError",
    "FakeClock",
    "KeyedLimiterRegistry",
    "MonotonicClock",
    "SlidingWindowLimiter",
    "TokenBucketLimiter",
    "create_rate_limiter",
    "new_sliding_window_limiter",
    "new_token_bucket_limiter",
]
