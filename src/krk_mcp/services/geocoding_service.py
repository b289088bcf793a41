"""Place search backed by Nominatim.

Errors are caught and logged; search_places returns api_available=False
instead of raising.
"""

import logging

from krk_mcp.data.cache import TTLCache
from krk_mcp.data.config import PlannerConfig, get_planner_config
from krk_mcp.data.nominatim_client import NominatimClient
from krk_mcp.models.paths import GeocodingResult
from krk_mcp.models.responses import SearchPlacesResponse

logger = logging.getLogger(__name__)

# Module-level cache (lazy-initialized)
_results_cache: TTLCache[tuple[str, int], list[GeocodingResult]] | None = None


def _get_cache(config: PlannerConfig) -> TTLCache[tuple[str, int], list[GeocodingResult]]:
    global _results_cache
    if _results_cache is None:
        _results_cache = TTLCache(ttl=config.route_cache_ttl_seconds)
    return _results_cache


async def search_places(
    query: str,
    limit: int | None = None,
    config: PlannerConfig | None = None,
) -> SearchPlacesResponse:
    """Search for places by free text.

    Args:
        query: Address or place name, e.g. "Rynek Główny".
        limit: Maximum results (default: configured geocoding limit).
        config: Optional config override.

    Returns:
        SearchPlacesResponse; api_available is False if the geocoder failed.
    """
    config = config or get_planner_config()
    query = query.strip()
    if not query:
        return SearchPlacesResponse(query=query, results=[], count=0, api_available=True)

    limit = limit or config.geocoding_limit
    cache = _get_cache(config)
    key = (query.lower(), limit)

    results = cache.get(key)
    if results is None:
        try:
            async with NominatimClient(config) as client:
                results = await client.search(query, limit=limit)
        except Exception as e:
            logger.warning(f"Failed to search places for '{query}': {e}")
            return SearchPlacesResponse(query=query, results=[], count=0, api_available=False)
        cache.set(key, results)
        logger.debug(f"Found {len(results)} places for '{query}'")

    return SearchPlacesResponse(
        query=query, results=results, count=len(results), api_available=True
    )


def clear_cache() -> None:
    global _results_cache
    _results_cache = None
