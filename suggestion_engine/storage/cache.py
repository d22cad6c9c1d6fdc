"""
Cache stores for generated suggestions.

The engine talks to any object implementing CacheStore. TTLCache is the
in-process implementation used by default and in tests.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol


class CacheStore(Protocol):
    """Key/value store with per-entry expiry.

    Implementations raise CacheUnavailable when the backend is down.
    """

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ...

    def delete(self, key: str) -> bool:
        ...

    def clear(self) -> None:
        ...


@dataclass
class CacheEntry:
    """A cached value and the wall-clock time it expires at."""
    value: Any
    expires_at: float


class TTLCache:
    """In-memory CacheStore.

    Usage:
        cache = TTLCache(default_ttl=3600)
        cache.set("trending:week", suggestions, ttl=600)
        cache.get("trending:week")

    Attributes:
        default_ttl: TTL in seconds used when set() is called without one
        max_entries: Entries kept before the oldest-expiring are evicted
    """

    def __init__(self, default_ttl: float = 8 * 3600, max_entries: int = 10000):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be > 0")
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if time.time() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        expires_at = time.time() + (ttl if ttl is not None else self.default_ttl)
        self._entries[key] = CacheEntry(value=value, expires_at=expires_at)
        if len(self._entries) > self.max_entries:
            self._evict(len(self._entries) - self.max_entries)

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def _evict(self, count: int) -> None:
        """Drop the entries closest to expiry."""
        by_expiry = sorted(self._entries.items(), key=lambda item: item[1].expires_at)
        for key, _ in by_expiry[:count]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
