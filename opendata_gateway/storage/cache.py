"""
In-memory cache with per-entry expiry.

Expired entries are misses for get() but are kept until purged so the
fetch engine can serve them as a stale fallback when the portal fails.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Tuple


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the monotonic time it expires at."""

    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class TieredCache:
    """
    Key -> value store with per-entry TTL.

    The TTL is chosen by the caller per endpoint class (see CacheTier).
    All operations take an internal lock, so a read racing a write for the
    same key sees either the old or the new entry, never a partial one.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Initialize an empty cache.

        Args:
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        """Return the value for key, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_expired(self._clock()):
                return None
            return entry.value

    def get_stale(self, key: str) -> Optional[Any]:
        """Return the value for key even if expired, or None if absent."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store value under key, expiring ttl seconds from now."""
        entry = CacheEntry(value=value, expires_at=self._clock() + ttl)
        with self._lock:
            self._entries[key] = entry

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop expired entries. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def items(self) -> Iterator[Tuple[str, Any, float]]:
        """
        Snapshot of live entries as (key, value, remaining_ttl).

        Expired entries are skipped.
        """
        with self._lock:
            now = self._clock()
            snapshot = [
                (k, e.value, e.expires_at - now)
                for k, e in self._entries.items()
                if not e.is_expired(now)
            ]
        return iter(snapshot)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
