"""
In-memory key-value store with TTL support.
Implements the same contract as the Redis adapter so the service runs
without Redis in development and tests.
"""
import math
import time
from threading import Lock
from typing import Callable, Dict, Optional, Set, Union

StoredValue = Union[str, Set[str]]


class CacheEntry:
    """Single store entry with expiration tracking."""

    def __init__(self, value: StoredValue, expires_at: Optional[float]) -> None:
        self.value = value
        self.expires_at = expires_at

    def is_expired(self, now: float) -> bool:
        """Check if entry has expired."""
        if self.expires_at is None:
            return False
        return now >= self.expires_at


class InMemoryKeyValueStore:
    """
    Thread-safe in-memory store mirroring the Redis commands the service uses.

    Strings and sets share one keyspace, like Redis. TTL semantics follow
    Redis: `ttl()` returns -2 for a missing key and -1 for a key without expiry.

    Usage:
        store = InMemoryKeyValueStore()
        await store.set("pool:TecEN", payload, ttl_seconds=432000)
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._store: Dict[str, CacheEntry] = {}
        self._clock = clock
        self._lock = Lock()

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for key, dropping it if expired. Caller holds the lock."""
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._store[key]
            return None
        return entry

    def _expiry(self, ttl_seconds: Optional[int]) -> Optional[float]:
        return self._clock() + ttl_seconds if ttl_seconds else None

    async def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return None
            if not isinstance(entry.value, str):
                raise TypeError(f"Key {key} does not hold a string value")
            return entry.value

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        with self._lock:
            self._store[key] = CacheEntry(value, self._expiry(ttl_seconds))

    async def set_nx(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> bool:
        """Set only if the key does not exist. Returns True if this call created it."""
        with self._lock:
            if self._live_entry(key) is not None:
                return False
            self._store[key] = CacheEntry(value, self._expiry(ttl_seconds))
            return True

    async def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return False
            entry.expires_at = self._clock() + ttl_seconds
            return True

    async def ttl(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return -2
            if entry.expires_at is None:
                return -1
            return math.ceil(entry.expires_at - self._clock())

    async def sadd(self, key: str, *members: str) -> int:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                entry = CacheEntry(set(), None)
                self._store[key] = entry
            if not isinstance(entry.value, set):
                raise TypeError(f"Key {key} does not hold a set value")
            before = len(entry.value)
            entry.value.update(members)
            return len(entry.value) - before

    async def smembers(self, key: str) -> Set[str]:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return set()
            if not isinstance(entry.value, set):
                raise TypeError(f"Key {key} does not hold a set value")
            return set(entry.value)

    async def incr(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                entry = CacheEntry("0", None)
                self._store[key] = entry
            if not isinstance(entry.value, str):
                raise TypeError(f"Key {key} does not hold an integer value")
            value = int(entry.value) + 1
            entry.value = str(value)
            return value

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        """Nothing to release; present for parity with the Redis adapter."""

    def size(self) -> int:
        """Return number of entries (including possibly expired)."""
        with self._lock:
            return len(self._store)

    def clear(self) -> None:
        """Clear all entries."""
        with self._lock:
            self._store.clear()
