"""Process-wide planner wiring for the MCP tools and CLI.

Holds lazily created singletons: the network index (loaded once), the
OSRM client, the route cache and the TripPlanner built on them.
"""

import logging

from krk_mcp.data.config import PlannerConfig, get_planner_config
from krk_mcp.data.network_loader import load_network
from krk_mcp.data.osrm_client import OSRMClient
from krk_mcp.models.network import Point, TransportMode
from krk_mcp.models.responses import NearbyStopsResponse, PlanTripRequest, PlanTripResponse
from krk_mcp.services.network_index import NetworkIndex
from krk_mcp.services.route_cache import RouteCache
from krk_mcp.services.trip_planner import TripPlanner

logger = logging.getLogger(__name__)

# Module-level singletons (lazy-initialized)
_config: PlannerConfig | None = None
_index: NetworkIndex | None = None
_osrm_client: OSRMClient | None = None
_route_cache: RouteCache | None = None
_planner: TripPlanner | None = None


def _get_config() -> PlannerConfig:
    """Get or create the planner config singleton."""
    global _config
    if _config is None:
        _config = get_planner_config()
    return _config


def get_network_index() -> NetworkIndex:
    """Get or load the network index singleton."""
    global _index
    if _index is None:
        dataset = load_network(_get_config().network_path)
        _index = NetworkIndex(dataset)
    return _index


def _get_route_cache() -> RouteCache:
    """Get or create the route cache singleton (and its OSRM client)."""
    global _osrm_client, _route_cache
    if _route_cache is None:
        config = _get_config()
        _osrm_client = OSRMClient(config)
        _route_cache = RouteCache(
            _osrm_client,
            ttl_seconds=config.route_cache_ttl_seconds,
            max_concurrent=config.path_service_max_concurrent,
        )
    return _route_cache


def get_planner() -> TripPlanner:
    """Get or create the trip planner singleton."""
    global _planner
    if _planner is None:
        _planner = TripPlanner(get_network_index(), _get_route_cache(), _get_config())
    return _planner


async def plan_trip(request: PlanTripRequest) -> PlanTripResponse:
    return await get_planner().plan_trip(request)


def find_nearby_stops(
    lat: float,
    lng: float,
    radius_meters: float | None = None,
    limit: int | None = None,
    modes: frozenset[TransportMode] = frozenset(),
) -> NearbyStopsResponse:
    """Find stops near a coordinate.

    Args:
        lat: Latitude.
        lng: Longitude.
        radius_meters: Search radius (default: the train search radius).
        limit: Maximum stops (default: configured nearby stop limit).
        modes: Transit modes to include (default: all).

    Returns:
        NearbyStopsResponse sorted by distance.
    """
    config = _get_config()
    radius = radius_meters or config.train_radius.distance_meters
    # Walk time is bounded by the radius alone here
    stops = get_network_index().nearby_stops(
        Point(lat=lat, lng=lng),
        max_distance=radius,
        max_walk_minutes=config.max_walk_leg_minutes,
        allowed_modes=modes,
        limit=limit or config.nearby_stop_limit,
    )
    return NearbyStopsResponse(stops=stops, count=len(stops))


async def close_service() -> None:
    """Close the OSRM client's HTTP connections."""
    if _osrm_client is not None:
        await _osrm_client.aclose()


def reset_service() -> None:
    """Reset the service state completely.

    Drops the index, cache and planner and resets config. Useful for testing.
    """
    global _config, _index, _osrm_client, _route_cache, _planner
    _config = None
    _index = None
    _osrm_client = None
    _route_cache = None
    _planner = None
    # hasattr check handles the function being mocked in tests
    if hasattr(get_planner_config, "cache_clear"):
        get_planner_config.cache_clear()
