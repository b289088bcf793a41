"""MCP tools for finding and resolving stops."""

from krk_mcp.app import mcp
from krk_mcp.matching.models import StopResolutionResponse
from krk_mcp.matching.stop_matcher import resolve_stop as _resolve_stop
from krk_mcp.models.responses import NearbyStopsResponse
from krk_mcp.services.planner_service import find_nearby_stops as _find_nearby_stops
from krk_mcp.services.planner_service import get_network_index
from krk_mcp.tools.trip_tools import parse_modes


@mcp.tool()
async def find_nearby_stops(
    lat: float,
    lng: float,
    radius_meters: float = 1200,
    limit: int = 5,
    modes: list[str] | None = None,
) -> NearbyStopsResponse:
    """Find Kraków transit stops near a coordinate.

    Examples:
        find_nearby_stops(lat=50.0614, lng=19.9372)  # around the Main Square
        find_nearby_stops(lat=50.0677, lng=19.9449, modes=["train"])

    Args:
        lat: Latitude.
        lng: Longitude.
        radius_meters: Search radius (default 1200m, max 5000m).
        limit: Maximum number of stops (default 5, max 20).
        modes: Restrict to "bus", "tram" and/or "train" (default: all).

    Returns:
        NearbyStopsResponse with stops sorted by distance, each with walking minutes.
    """
    if limit < 1:
        limit = 1
    elif limit > 20:
        limit = 20

    if radius_meters < 1:
        radius_meters = 1
    elif radius_meters > 5000:
        radius_meters = 5000

    allowed = parse_modes(modes) if modes else frozenset()
    return _find_nearby_stops(
        lat=lat, lng=lng, radius_meters=radius_meters, limit=limit, modes=allowed
    )


@mcp.tool()
async def resolve_stop(
    query: str,
    limit: int = 5,
    min_score: float = 60.0,
) -> StopResolutionResponse:
    """Resolve a stop id or name to matching Kraków stops using fuzzy matching.

    Accent-insensitive and tolerant of typos and abbreviations (al., ul., pl., os.).

    Examples:
        resolve_stop("1001")  # Exact id -> resolved=True, confidence=EXACT
        resolve_stop("dworzec glowny")  # No diacritics needed
        resolve_stop("Pl. Wszystkich Swietych")

    Args:
        query: Stop id or name.
        limit: Maximum number of matches to return (default 5, max 20).
        min_score: Minimum match score 0-100 (default 60).

    Returns:
        StopResolutionResponse with matches, best_match and resolved flag.
    """
    if limit < 1:
        limit = 1
    elif limit > 20:
        limit = 20

    if min_score < 0:
        min_score = 0
    elif min_score > 100:
        min_score = 100

    return _resolve_stop(query, get_network_index(), limit=limit, min_score=min_score)
