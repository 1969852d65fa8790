"""Rate limiter interfaces.

Callers depend on AbstractRateLimiter only. The admission algorithms plug
into the keyed registry through AdmissionAlgorithm, so both variants share
one concurrency discipline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

S = TypeVar("S")


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def allow(self, key: str) -> bool:
        """Evaluate one admission for a given key.

        Args:
            key: Unique identifier (e.g., API key, client id, IP address).

        Returns:
            True if the request is admitted, False if it is denied.
        """
        raise NotImplementedError


class AdmissionAlgorithm(ABC, Generic[S]):
    """Per-key admission logic operating on one key's state.

    Implementations hold only immutable configuration. The caller owns the
    state and guarantees exclusive access for the duration of admit().
    """

    name: str = "abstract"

    @abstractmethod
    def new_state(self, now_ms: int) -> S:
        """Build the initial state for a key first seen at now_ms."""
        raise NotImplementedError

    @abstractmethod
    def admit(self, state: S, now_ms: int) -> bool:
        """Update state for the elapsed time, decide, and consume on success.

        Args:
            state: The key's state; mutated in place.
            now_ms: Current clock time in milliseconds.

        Returns:
            True if admitted.
        """
        raise NotImplementedError

    @abstractmethod
    def is_at_rest(self, state: S, now_ms: int) -> bool:
        """Whether state at now_ms is indistinguishable from new_state().

        Only such state may be dropped by idle-key eviction; anything else
        still limits its key. Must not mutate state.
        """
        raise NotImplementedError
