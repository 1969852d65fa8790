"""Time sources used by the rate limiters.

Every limiter reads time through a Clock so tests can drive it
deterministically instead of patching the time module.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Millisecond time source used only for relative deltas."""

    @abstractmethod
    def now(self) -> int:
        """Return the current time in milliseconds since an arbitrary epoch."""
        raise NotImplementedError


class MonotonicClock(Clock):
    """Clock backed by the system monotonic timer."""

    def now(self) -> int:
        return time.monotonic_ns() // 1_000_000

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return "MonotonicClock()"


class FakeClock(Clock):
    """Controllable clock for deterministic tests.

    Attributes:
        current_ms: Value returned by now().
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._current = int(start_ms)
        self._lock = threading.Lock()

    @property
    def current_ms(self) -> int:
        return self._current

    def now(self) -> int:
        with self._lock:
            return self._current

    def advance(self, ms: int) -> None:
        """Move the clock forward (or backward, for negative values)."""

        with self._lock:
            self._current += int(ms)

    def set(self, ms: int) -> None:
        """Jump the clock to an absolute value."""

        with self._lock:
            self._current = int(ms)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"FakeClock(current_ms={self._current})"
