"""Simple keyed TTL cache for external service results."""

import time
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class TTLCache(Generic[K, T]):
    """Per-key TTL cache with lazy expiry.

    Expired entries are dropped when read; there is no background sweep.
    Writes overwrite per key (last writer wins). Safe to share between
    coroutines on one event loop since no method awaits.
    """

    def __init__(self, ttl: float = 300.0, clock: Callable[[], float] = time.monotonic):
        """Initialize the cache.

        Args:
            ttl: Time-to-live in seconds for cached values.
            clock: Monotonic time source in seconds (injectable for tests).
        """
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[K, tuple[T, float]] = {}

    def get(self, key: K) -> T | None:
        """Get the cached value for key if it hasn't expired.

        Returns:
            The cached value if valid, None if expired or not set.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() < expires_at:
            return value
        self._entries.pop(key, None)
        return None

    def set(self, key: K, value: T) -> None:
        """Set a value in the cache with TTL."""
        self._entries[key] = (value, self._clock() + self._ttl)

    def clear(self) -> None:
        """Clear all cached values."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
