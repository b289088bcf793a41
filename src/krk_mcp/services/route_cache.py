"""Best-effort cache in front of the external path service."""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Protocol

from krk_mcp.data.cache import TTLCache
from krk_mcp.models.network import Point
from krk_mcp.models.paths import PathProfile, PathResult

logger = logging.getLogger(__name__)

CacheKey = tuple[float, float, float, float, str]


class PathService(Protocol):
    async def get_path(
        self, origin: Point, destination: Point, profile: PathProfile
    ) -> PathResult: ...


def cache_key(origin: Point, destination: Point, profile: PathProfile) -> CacheKey:
    """Key rounded to 6 decimals (about 10 cm)."""
    return (
        round(origin.lat, 6),
        round(origin.lng, 6),
        round(destination.lat, 6),
        round(destination.lng, 6),
        profile.value,
    )


class RouteCache:
    """Caches successful path lookups for a fixed TTL.

    Failures are never cached and propagate to the caller. Results without
    geometry are returned but not cached, so a retry asks the service again.
    Two concurrent misses for the same key both call the path service; the
    later result overwrites the earlier one. At most max_concurrent calls
    to the path service are in flight at once.
    """

    def __init__(
        self,
        path_service: PathService,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        max_concurrent: int = 8,
    ):
        self._path_service = path_service
        self._cache: TTLCache[CacheKey, PathResult] = TTLCache(ttl=ttl_seconds, clock=clock)
        self._limit = asyncio.Semaphore(max_concurrent)

    async def get(self, origin: Point, destination: Point, profile: PathProfile) -> PathResult:
        """Get a path, calling the path service on a miss or expired entry.

        Raises:
            httpx.HTTPError: If the path service request fails.
            PathServiceError: If the path service found no route.
        """
        key = cache_key(origin, destination, profile)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"Route cache hit for {key}")
            return cached

        logger.debug(f"Route cache miss for {key}")
        async with self._limit:
            result = await self._path_service.get_path(origin, destination, profile)
        if result.geometry:
            self._cache.set(key, result)
        return result

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
