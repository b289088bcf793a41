"""Tests for the route cache in front of the path service."""

import asyncio

import httpx
import pytest

from krk_mcp.data.osrm_client import PathServiceError
from krk_mcp.models.network import Point
from krk_mcp.models.paths import PathProfile
from krk_mcp.services.route_cache import RouteCache, cache_key

from conftest import FakePathService

ORIGIN = Point(lat=50.0617, lng=19.9373)
DESTINATION = Point(lat=50.0544, lng=19.9356)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


async def test_second_call_is_served_from_cache():
    service = FakePathService()
    cache = RouteCache(service, ttl_seconds=300)

    first = await cache.get(ORIGIN, DESTINATION, PathProfile.WALKING)
    second = await cache.get(ORIGIN, DESTINATION, PathProfile.WALKING)

    assert first == second
    assert len(service.calls) == 1


async def test_entry_expires_after_five_minutes():
    """An entry stored at T is served at T+4:59 and refetched at T+5:01."""
    service = FakePathService()
    clock = FakeClock(now=1000.0)
    cache = RouteCache(service, ttl_seconds=300, clock=clock)

    stored = await cache.get(ORIGIN, DESTINATION, PathProfile.WALKING)

    clock.now = 1000.0 + 299
    assert await cache.get(ORIGIN, DESTINATION, PathProfile.WALKING) is stored
    assert len(service.calls) == 1

    clock.now = 1000.0 + 301
    await cache.get(ORIGIN, DESTINATION, PathProfile.WALKING)
    assert len(service.calls) == 2


async def test_profiles_are_cached_separately():
    service = FakePathService()
    cache = RouteCache(service)

    await cache.get(ORIGIN, DESTINATION, PathProfile.WALKING)
    await cache.get(ORIGIN, DESTINATION, PathProfile.DRIVING)

    assert len(service.calls) == 2
    assert len(cache) == 2


async def test_direction_matters():
    service = FakePathService()
    cache = RouteCache(service)

    await cache.get(ORIGIN, DESTINATION, PathProfile.WALKING)
    await cache.get(DESTINATION, ORIGIN, PathProfile.WALKING)

    assert len(service.calls) == 2


def test_key_rounds_to_six_decimals():
    a = Point(lat=50.06170001, lng=19.93730004)
    b = Point(lat=50.0617, lng=19.9373)
    assert cache_key(a, DESTINATION, PathProfile.WALKING) == cache_key(
        b, DESTINATION, PathProfile.WALKING
    )


async def test_failures_propagate_and_are_not_cached():
    service = FakePathService(failing_profiles={PathProfile.DRIVING})
    cache = RouteCache(service)

    with pytest.raises(PathServiceError):
        await cache.get(ORIGIN, DESTINATION, PathProfile.DRIVING)

    service.failing_profiles.clear()
    await cache.get(ORIGIN, DESTINATION, PathProfile.DRIVING)

    assert len(service.calls) == 2
    assert len(cache) == 1


async def test_http_errors_propagate():
    class BrokenService:
        async def get_path(self, origin, destination, profile):
            raise httpx.ConnectError("connection refused")

    cache = RouteCache(BrokenService())

    with pytest.raises(httpx.HTTPError):
        await cache.get(ORIGIN, DESTINATION, PathProfile.WALKING)
    assert len(cache) == 0


async def test_concurrent_misses_both_fetch_and_leave_one_entry():
    """Racing misses may duplicate work but leave a single valid entry."""

    class SlowService(FakePathService):
        async def get_path(self, origin, destination, profile):
            await asyncio.sleep(0)
            return await super().get_path(origin, destination, profile)

    service = SlowService()
    cache = RouteCache(service)

    results = await asyncio.gather(
        cache.get(ORIGIN, DESTINATION, PathProfile.WALKING),
        cache.get(ORIGIN, DESTINATION, PathProfile.WALKING),
    )

    assert results[0] == results[1]
    assert len(service.calls) == 2
    assert len(cache) == 1


async def test_empty_geometry_is_not_cached():
    class EmptyOnceService(FakePathService):
        async def get_path(self, origin, destination, profile):
            result = await super().get_path(origin, destination, profile)
            if len(self.calls) == 1:
                return result.model_copy(update={"geometry": []})
            return result

    service = EmptyOnceService()
    cache = RouteCache(service)

    first = await cache.get(ORIGIN, DESTINATION, PathProfile.DRIVING)
    second = await cache.get(ORIGIN, DESTINATION, PathProfile.DRIVING)

    assert first.geometry == []
    assert second.geometry
    assert len(service.calls) == 2
    assert len(cache) == 1


async def test_path_service_calls_are_bounded():
    class TrackingService(FakePathService):
        def __init__(self):
            super().__init__()
            self.in_flight = 0
            self.peak = 0

        async def get_path(self, origin, destination, profile):
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            await asyncio.sleep(0.01)
            self.in_flight -= 1
            return await super().get_path(origin, destination, profile)

    service = TrackingService()
    cache = RouteCache(service, max_concurrent=2)
    destinations = [Point(lat=50.05 + i * 0.001, lng=19.93) for i in range(6)]

    await asyncio.gather(
        *(cache.get(ORIGIN, d, PathProfile.WALKING) for d in destinations)
    )

    assert len(service.calls) == 6
    assert service.peak == 2
