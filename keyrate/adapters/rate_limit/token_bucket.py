"""Token bucket admission algorithm.

Each key owns a bucket that refills continuously at a fixed rate up to its
capacity; every admitted request consumes one token. Fractional tokens carry
over between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from keyrate.adapters.rate_limit.base import AdmissionAlgorithm
from keyrate.core.errors import require_positive

logger = logging.getLogger(__name__)


@dataclass
class Bucket:
    """Token bucket state for one key.

    Attributes:
        capacity: Maximum number of tokens.
        refill_rate_per_ms: Tokens added per elapsed millisecond.
        tokens: Current (possibly fractional) token count.
        last_refill_ms: Clock time of the last applied refill.
    """

    capacity: int
    refill_rate_per_ms: float
    tokens: float
    last_refill_ms: int


class TokenBucketLimiter(AdmissionAlgorithm[Bucket]):
    """Continuous-refill token bucket.

    With capacity=1 this is a strict minimum-interval gate of
    1000 / refill_tokens_per_second milliseconds.
    """

    name = "token_bucket"

    def __init__(self, capacity: int, refill_tokens_per_second: float) -> None:
        """Initialize the token bucket algorithm.

        Args:
            capacity: Maximum tokens (burst size), integer > 0.
            refill_tokens_per_second: Refill rate, > 0.

        Raises:
            ConfigurationError: If either value is invalid.
        """
        require_positive(capacity, field="capacity", code="invalid_capacity", integral=True)
        require_positive(
            refill_tokens_per_second,
            field="refill_tokens_per_second",
            code="invalid_refill_rate",
        )

        self._capacity = capacity
        self._refill_tokens_per_second = float(refill_tokens_per_second)
        self._refill_rate_per_ms = self._refill_tokens_per_second / 1000

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def refill_tokens_per_second(self) -> float:
        return self._refill_tokens_per_second

    @property
    def refill_rate_per_ms(self) -> float:
        return self._refill_rate_per_ms

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"TokenBucketLimiter(capacity={self._capacity}, "
            f"refill_tokens_per_second={self._refill_tokens_per_second})"
        )

    def new_state(self, now_ms: int) -> Bucket:
        return Bucket(
            capacity=self._capacity,
            refill_rate_per_ms=self._refill_rate_per_ms,
            tokens=float(self._capacity),
            last_refill_ms=now_ms,
        )

    def refill(self, bucket: Bucket, now_ms: int) -> None:
        """Add tokens for the time elapsed since the bucket's last refill.

        A clock that did not advance, or went backward, counts as no elapsed
        time and leaves the bucket untouched.
        """

        elapsed = now_ms - bucket.last_refill_ms
        if elapsed <= 0:
            if elapsed < 0:
                logger.debug(
                    "clock.non_monotonic",
                    extra={"elapsed_ms": elapsed, "algorithm": self.name},
                )
            return

        bucket.tokens = min(
            float(bucket.capacity),
            bucket.tokens + elapsed * bucket.refill_rate_per_ms,
        )
        bucket.last_refill_ms = now_ms

    def is_at_rest(self, bucket: Bucket, now_ms: int) -> bool:
        elapsed = max(0, now_ms - bucket.last_refill_ms)
        return bucket.tokens + elapsed * bucket.refill_rate_per_ms >= bucket.capacity

    def admit(self, bucket: Bucket, now_ms: int) -> bool:
        self.refill(bucket, now_ms)

        if bucket.tokens >= 1:
            bucket.tokens -= 1
            return True
        return False
