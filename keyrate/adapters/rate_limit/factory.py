"""Factory functions for building keyed rate limiters."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from keyrate.adapters.rate_limit.registry import KeyedLimiterRegistry
from keyrate.adapters.rate_limit.sliding_window import (
    DEFAULT_TIME_LIMIT_MS,
    DEFAULT_WINDOW_SIZE,
    SlidingWindowLimiter,
    Window,
)
from keyrate.adapters.rate_limit.token_bucket import Bucket, TokenBucketLimiter
from keyrate.core.clock import Clock
from keyrate.core.config import LimiterSettings, get_settings
from keyrate.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def new_token_bucket_limiter(
    capacity: int,
    refill_tokens_per_second: float,
    *,
    clock: Clock | None = None,
    max_keys: int | None = None,
    idle_ttl_ms: int | None = None,
) -> KeyedLimiterRegistry[Bucket]:
    """Build a per-key token bucket limiter.

    Raises:
        ConfigurationError: If any parameter is invalid.
    """
    algorithm = TokenBucketLimiter(capacity, refill_tokens_per_second)
    return KeyedLimiterRegistry(algorithm, clock=clock, max_keys=max_keys, idle_ttl_ms=idle_ttl_ms)


def new_sliding_window_limiter(
    window_size: int = DEFAULT_WINDOW_SIZE,
    time_limit_ms: int = DEFAULT_TIME_LIMIT_MS,
    *,
    clock: Clock | None = None,
    max_keys: int | None = None,
    idle_ttl_ms: int | None = None,
) -> KeyedLimiterRegistry[Window]:
    """Build a per-key sliding window log limiter.

    Raises:
        ConfigurationError: If any parameter is invalid.
    """
    algorithm = SlidingWindowLimiter(window_size, time_limit_ms)
    return KeyedLimiterRegistry(algorithm, clock=clock, max_keys=max_keys, idle_ttl_ms=idle_ttl_ms)


def create_rate_limiter(
    limiter_settings: LimiterSettings | None = None,
    *,
    clock: Clock | None = None,
) -> KeyedLimiterRegistry:
    """Build the limiter variant selected by configuration.

    Reads keyrate.core.config.get_settings() (Pydantic Settings) unless
    explicit settings are passed.

    Args:
        limiter_settings: Optional settings; defaults to global settings.
        clock: Optional time source (defaults to the monotonic clock).

    Returns:
        KeyedLimiterRegistry: Configured limiter instance.

    Raises:
        ConfigurationError: If the algorithm is unknown, a value is invalid, or
            the environment cannot be parsed.
    """
    if limiter_settings is None:
        try:
            limiter_settings = get_settings().limiter
        except ValidationError as exc:
            raise ConfigurationError(
                code="invalid_settings",
                message="Rate limiter settings could not be loaded from the environment",
                details={"context": {"errors": exc.errors(include_url=False)}},
            ) from exc
    cfg = limiter_settings
    algorithm = cfg.algorithm.lower()

    if algorithm == "token_bucket":
        limiter: KeyedLimiterRegistry = new_token_bucket_limiter(
            cfg.capacity,
            cfg.refill_tokens_per_second,
            clock=clock,
            max_keys=cfg.max_keys,
            idle_ttl_ms=cfg.idle_ttl_ms,
        )
    elif algorithm == "sliding_window":
        limiter = new_sliding_window_limiter(
            cfg.window_size,
            cfg.time_limit_ms,
            clock=clock,
            max_keys=cfg.max_keys,
            idle_ttl_ms=cfg.idle_ttl_ms,
        )
    else:
        raise ConfigurationError(
            code="unknown_algorithm",
            message=(
                f"Unknown rate limit algorithm: '{cfg.algorithm}'. "
                "Supported algorithms: token_bucket, sliding_window"
            ),
            details={"field": "algorithm", "actual_value": cfg.algorithm},
        )

    logger.info(
        "rate_limit.limiter_created",
        extra={
            "algorithm": algorithm,
            "max_keys": cfg.max_keys,
            "idle_ttl_ms": cfg.idle_ttl_ms,
        },
    )
    return limiter
