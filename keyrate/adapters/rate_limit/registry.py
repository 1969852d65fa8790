"""Keyed rate limiter registry.

Owns all per-key limiter state and serializes access to each key while
letting independent keys proceed in parallel.

Notes:
- Per-process only: state lives in memory and is lost on restart.
- Thread-safe: each key has its own lock; the key map has a short-held lock
  used only for lookup and insert-if-absent.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Generic, TypeVar

from keyrate.adapters.rate_limit.base import AbstractRateLimiter, AdmissionAlgorithm
from keyrate.core.clock import Clock, MonotonicClock
from keyrate.core.errors import require_positive
from keyrate.core.logging import hash_key
from keyrate.utils.state_store import KeyedStateStore

logger = logging.getLogger(__name__)

S = TypeVar("S")


class KeyedLimiterRegistry(AbstractRateLimiter, Generic[S]):
    """Rate limiter applying one admission algorithm per key.

    The registry is indifferent to which algorithm backs it. State for a key
    is created on first use and kept until reset() or idle eviction.
    """

    def __init__(
        self,
        algorithm: AdmissionAlgorithm[S],
        *,
        clock: Clock | None = None,
        max_keys: int | None = None,
        idle_ttl_ms: int | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            algorithm: Admission algorithm applied to every key.
            clock: Time source (defaults to the system monotonic clock).
            max_keys: Bound on tracked keys; least recently used keys are
                evicted beyond it. Unlimited when None.
            idle_ttl_ms: Keys untouched for longer than this are evicted.
                Never when None.

        Either bound only evicts keys whose state has fully recovered
        (see AdmissionAlgorithm.is_at_rest), so eviction never hands a
        limited key a fresh allowance.

        Raises:
            ConfigurationError: If max_keys or idle_ttl_ms is not positive.
        """
        if max_keys is not None:
            require_positive(max_keys, field="max_keys", code="invalid_max_keys", integral=True)
        if idle_ttl_ms is not None:
            require_positive(idle_ttl_ms, field="idle_ttl_ms", code="invalid_idle_ttl", integral=True)

        self._algorithm = algorithm
        self._clock = clock or MonotonicClock()
        self._store: KeyedStateStore[S] = KeyedStateStore(
            max_entries=max_keys,
            idle_ttl_ms=idle_ttl_ms,
            can_evict=algorithm.is_at_rest,
        )
        self._counter_lock = threading.Lock()
        self._allowed = 0
        self._denied = 0

    @property
    def algorithm(self) -> AdmissionAlgorithm[S]:
        return self._algorithm

    @property
    def clock(self) -> Clock:
        return self._clock

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"KeyedLimiterRegistry(algorithm={self._algorithm!r}, keys={len(self._store)})"

    def allow(self, key: str) -> bool:
        """Evaluate one admission for key.

        Refill/eviction, the admission test and consumption run as one
        critical section on the key's own lock.

        Args:
            key: Non-empty limiter key.

        Returns:
            True if admitted, False if denied.

        Raises:
            TypeError: If key is not a string.
            ValueError: If key is empty.
        """
        if not isinstance(key, str):
            raise TypeError(f"key must be a str, not {type(key).__name__}")
        if not key:
            raise ValueError("key must be a non-empty string")

        while True:
            entry = self._store.get_or_create(key, self._algorithm.new_state, self._clock.now())
            with entry.lock:
                if entry.retired:
                    # Evicted between lookup and lock; use the current entry
                    continue
                admitted = self._algorithm.admit(entry.state, self._clock.now())
            break

        with self._counter_lock:
            if admitted:
                self._allowed += 1
            else:
                self._denied += 1

        if not admitted and logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "rate_limit.denied",
                extra={"key_hash": hash_key(key), "algorithm": self._algorithm.name},
            )
        return admitted

    def reset(self, key: str) -> None:
        """Forget key's state; its next call starts from a fresh state."""

        if self._store.discard(key) and logger.isEnabledFor(logging.DEBUG):
            logger.debug("rate_limit.key_reset", extra={"key_hash": hash_key(key)})

    def evict_idle(self) -> int:
        """Evict keys idle past idle_ttl_ms without waiting for a new key.

        Returns:
            Number of keys evicted.
        """

        return self._store.sweep(self._clock.now())

    def stats(self) -> dict[str, Any]:
        """Return lightweight limiter metrics without exposing keys."""

        store_stats = self._store.stats()
        with self._counter_lock:
            return {
                "algorithm": self._algorithm.name,
                "keys": store_stats["keys"],
                "max_keys": store_stats["max_keys"],
                "idle_ttl_ms": store_stats["idle_ttl_ms"],
                "allowed": self._allowed,
                "denied": self._denied,
                "evictions": store_stats["evictions"],
            }
