"""Sliding window log admission algorithm.

Each key keeps the timestamps of its admitted events; a request is admitted
while fewer than window_size of them fall within the trailing time_limit_ms.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from keyrate.adapters.rate_limit.base import AdmissionAlgorithm
from keyrate.core.errors import require_positive

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 5
DEFAULT_TIME_LIMIT_MS = 10_000


@dataclass
class Window:
    """Sliding window state for one key.

    Attributes:
        window_size: Maximum admitted events within the horizon.
        time_limit_ms: Horizon length in milliseconds.
        timestamps: Admission times, oldest first.
    """

    window_size: int
    time_limit_ms: int
    timestamps: deque[int] = field(default_factory=deque)


class SlidingWindowLimiter(AdmissionAlgorithm[Window]):
    """Fixed-capacity event log over a trailing time horizon.

    Amortized O(1) per call since each timestamp is evicted once; a single
    call may evict up to window_size stale entries. Memory per key is bounded
    by window_size.
    """

    name = "sliding_window"

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        time_limit_ms: int = DEFAULT_TIME_LIMIT_MS,
    ) -> None:
        """Initialize the sliding window algorithm.

        Args:
            window_size: Maximum admitted events per horizon, integer > 0.
            time_limit_ms: Horizon length in milliseconds, integer > 0.

        Raises:
            ConfigurationError: If either value is invalid.
        """
        require_positive(window_size, field="window_size", code="invalid_window_size", integral=True)
        require_positive(time_limit_ms, field="time_limit_ms", code="invalid_time_limit", integral=True)

        self._window_size = window_size
        self._time_limit_ms = time_limit_ms

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def time_limit_ms(self) -> int:
        return self._time_limit_ms

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"SlidingWindowLimiter(window_size={self._window_size}, "
            f"time_limit_ms={self._time_limit_ms})"
        )

    def new_state(self, now_ms: int) -> Window:
        return Window(window_size=self._window_size, time_limit_ms=self._time_limit_ms)

    def evict_expired(self, window: Window, now_ms: int) -> int:
        """Drop timestamps older than the horizon from the front of the log.

        Returns:
            Number of timestamps removed.
        """

        timestamps = window.timestamps
        if timestamps and now_ms < timestamps[-1]:
            logger.debug(
                "clock.non_monotonic",
                extra={"elapsed_ms": now_ms - timestamps[-1], "algorithm": self.name},
            )

        removed = 0
        while timestamps and now_ms - timestamps[0] > window.time_limit_ms:
            timestamps.popleft()
            removed += 1
        return removed

    def is_at_rest(self, window: Window, now_ms: int) -> bool:
        # The newest timestamp is the last one to leave the horizon
        timestamps = window.timestamps
        return not timestamps or now_ms - timestamps[-1] > window.time_limit_ms

    def admit(self, window: Window, now_ms: int) -> bool:
        self.evict_expired(window, now_ms)

        if len(window.timestamps) >= window.window_size:
            return False

        # Keep the log non-decreasing even if the clock stepped backward
        if window.timestamps and now_ms < window.timestamps[-1]:
            now_ms = window.timestamps[-1]
        window.timestamps.append(now_ms)
        return True
