"""In-memory per-key state store with LRU and idle-time eviction.

Each key maps to a StateEntry carrying its own lock. The store lock only
guards the dictionary itself (lookup, insert-if-absent, eviction) and is never
held while a caller works on an entry's state.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

from keyrate.core.logging import hash_key

logger = logging.getLogger(__name__)

S = TypeVar("S")


@dataclass(eq=False)
class StateEntry(Generic[S]):
    """A key's state plus the lock that serializes access to it.

    Attributes:
        state: Algorithm-specific state (bucket or window).
        last_access_ms: Clock time of the most recent lookup.
        retired: Set once the store has evicted this entry; holders must
            look the key up again.
    """

    state: S
    last_access_ms: int
    lock: threading.Lock = field(default_factory=threading.Lock)
    retired: bool = False


class KeyedStateStore(Generic[S]):
    """Thread-safe map of key -> StateEntry with optional bounds.

    Attributes:
        max_entries: Maximum number of tracked keys (None for unlimited).
        idle_ttl_ms: Entries not accessed for longer than this are evicted
            (None disables idle eviction).
        can_evict: Predicate deciding whether an entry's state may be
            dropped at a given time. Busy entries and entries it rejects are
            skipped, so max_entries is a soft bound.
    """

    def __init__(
        self,
        *,
        max_entries: int | None = None,
        idle_ttl_ms: int | None = None,
        can_evict: Callable[[S, int], bool] | None = None,
    ) -> None:
        self._max_entries = max_entries
        self._idle_ttl_ms = idle_ttl_ms
        self._can_evict = can_evict
        self._store: OrderedDict[str, StateEntry[S]] = OrderedDict()
        self._lock = threading.Lock()
        self._created = 0
        self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._store

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"KeyedStateStore(max_entries={self._max_entries}, "
            f"idle_ttl_ms={self._idle_ttl_ms}, size={len(self._store)}, "
            f"evictions={self._evictions})"
        )

    def get_or_create(
        self,
        key: str,
        factory: Callable[[int], S],
        now_ms: int,
    ) -> StateEntry[S]:
        """Return the live entry for key, creating it atomically if absent.

        Args:
            key: Limiter key.
            factory: Builds fresh state given the current time in ms.
            now_ms: Current clock time, recorded as the access time.

        Returns:
            The single live entry for this key.
        """

        with self._lock:
            entry = self._store.get(key)
            if entry is not None:
                entry.last_access_ms = max(entry.last_access_ms, now_ms)
                self._store.move_to_end(key)  # mark as recently used
                return entry

            self._evict_idle_locked(now_ms)
            entry = StateEntry(state=factory(now_ms), last_access_ms=now_ms)
            self._store[key] = entry
            self._created += 1
            self._evict_if_over_capacity_locked(now_ms, protect=key)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "rate_limit.key_created",
                extra={"key_hash": hash_key(key)},
            )
        return entry

    def discard(self, key: str) -> bool:
        """Retire and remove the entry for key.

        Returns:
            True if an entry was removed.
        """

        with self._lock:
            entry = self._store.pop(key, None)
        if entry is None:
            return False

        # Wait out any holder so the reset takes effect after in-flight calls
        with entry.lock:
            entry.retired = True
        return True

    def sweep(self, now_ms: int) -> int:
        """Evict idle entries now instead of waiting for the next insert.

        Returns:
            Number of entries evicted.
        """

        with self._lock:
            before = self._evictions
            self._evict_idle_locked(now_ms)
            return self._evictions - before

    def clear(self) -> None:
        """Remove all entries and reset counters."""

        with self._lock:
            entries = list(self._store.values())
            self._store.clear()
            self._created = 0
            self._evictions = 0
        for entry in entries:
            with entry.lock:
                entry.retired = True

    def stats(self) -> dict[str, int | None]:
        """Return lightweight store metrics without exposing keys."""

        with self._lock:
            return {
                "keys": len(self._store),
                "max_keys": self._max_entries,
                "idle_ttl_ms": self._idle_ttl_ms,
                "created": self._created,
                "evictions": self._evictions,
            }

    def _try_evict_locked(
        self,
        key: str,
        entry: StateEntry[S],
        now_ms: int,
        reason: str,
    ) -> bool:
        # Never block on a per-key lock while holding the store lock
        if not entry.lock.acquire(blocking=False):
            return False
        try:
            # State that still limits its key must survive eviction
            if self._can_evict is not None and not self._can_evict(entry.state, now_ms):
                return False
            entry.retired = True
            self._store.pop(key, None)
            self._evictions += 1
        finally:
            entry.lock.release()

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "rate_limit.key_evicted",
                extra={"key_hash": hash_key(key), "reason": reason},
            )
        return True

    def _evict_idle_locked(self, now_ms: int) -> None:
        if self._idle_ttl_ms is None:
            return

        # OrderedDict is in access order, so idle entries form a prefix
        for key, entry in list(self._store.items()):
            if now_ms - entry.last_access_ms <= self._idle_ttl_ms:
                break
            self._try_evict_locked(key, entry, now_ms, "idle")

    def _evict_if_over_capacity_locked(self, now_ms: int, *, protect: str) -> None:
        if self._max_entries is None:
            return

        overflow = len(self._store) - self._max_entries
        if overflow <= 0:
            return

        for key, entry in list(self._store.items()):
            if overflow <= 0:
                break
            if key == protect:
                continue
            if self._try_evict_locked(key, entry, now_ms, "capacity"):
                overflow -= 1
