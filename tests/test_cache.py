"""Tests for the keyed TTL cache."""

from krk_mcp.data.cache import TTLCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_cache_ttl_expiration():
    """Cache should return None after TTL expires."""
    clock = FakeClock()
    cache: TTLCache[str, str] = TTLCache(ttl=10.0, clock=clock)

    cache.set("key", "test_value")
    assert cache.get("key") == "test_value"

    clock.now += 10.0
    assert cache.get("key") is None


def test_cache_returns_value_before_expiration():
    """Cache should return value before TTL expires."""
    clock = FakeClock()
    cache: TTLCache[str, str] = TTLCache(ttl=10.0, clock=clock)

    cache.set("key", "test_value")
    clock.now += 9.9
    assert cache.get("key") == "test_value"


def test_expired_entry_is_dropped_on_read():
    clock = FakeClock()
    cache: TTLCache[str, int] = TTLCache(ttl=1.0, clock=clock)

    cache.set("a", 1)
    assert len(cache) == 1
    clock.now += 2
    assert cache.get("a") is None
    assert len(cache) == 0


def test_cache_missing_key():
    cache: TTLCache[str, str] = TTLCache(ttl=10.0)
    assert cache.get("nope") is None


def test_cache_clear():
    """Cache clear should remove all values."""
    cache: TTLCache[str, str] = TTLCache(ttl=10.0)

    cache.set("a", "first")
    cache.set("b", "second")
    cache.clear()

    assert cache.get("a") is None
    assert len(cache) == 0


def test_cache_overwrite_resets_ttl():
    """Setting a key again overwrites the value and restarts its TTL."""
    clock = FakeClock()
    cache: TTLCache[str, str] = TTLCache(ttl=10.0, clock=clock)

    cache.set("key", "first")
    clock.now += 8
    cache.set("key", "second")
    clock.now += 8

    assert cache.get("key") == "second"


def test_keys_are_independent():
    clock = FakeClock()
    cache: TTLCache[str, str] = TTLCache(ttl=10.0, clock=clock)

    cache.set("old", "x")
    clock.now += 6
    cache.set("new", "y")
    clock.now += 6

    assert cache.get("old") is None
    assert cache.get("new") == "y"
