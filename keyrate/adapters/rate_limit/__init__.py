"""Rate limiting adapters.

Two admission algorithms (token bucket, sliding window log) behind one keyed
registry that owns per-key state and its locking.
"""

from keyrate.adapters.rate_limit.base import AbstractRateLimiter, AdmissionAlgorithm
from keyrate.adapters.rate_limit.factory import (
    create_rate_limiter,
    new_sliding_window_limiter,
    new_token_bucket_limiter,
)
from keyrate.adapters.rate_limit.registry import KeyedLimiterRegistry
from keyrate.adapters.rate_limit.sliding_window import SlidingWindowLimiter, Window
from keyrate.adapters.rate_limit.token_bucket import Bucket, TokenBucketLimiter

__all__ = [
    "AbstractRateLimiter",
    "AdmissionAlgorithm",
    "Bucket",
    "KeyedLimiterRegistry",
    "SlidingWindowLimiter",
    "TokenBucketLimiter",
    "Window",
    "create_rate_limiter",
    "new_sliding_window_limiter",
    "new_token_bucket_limiter",
]
