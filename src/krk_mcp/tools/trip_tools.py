"""MCP tools for trip planning."""

from krk_mcp.app import mcp
from krk_mcp.models.network import Point, TransportMode
from krk_mcp.models.responses import (
    DEFAULT_MODES,
    PlanTripRequest,
    PlanTripResponse,
    RoutingPreferences,
)
from krk_mcp.services.planner_service import plan_trip as _plan_trip


def parse_modes(modes: list[str] | None) -> frozenset[TransportMode]:
    """Parse mode names, always keeping walking.

    Raises:
        ValueError: If a mode name is unknown.
    """
    if not modes:
        return DEFAULT_MODES
    return frozenset(TransportMode(m.strip().lower()) for m in modes) | {TransportMode.WALKING}


@mcp.tool()
async def plan_trip(
    start_lat: float,
    start_lng: float,
    end_lat: float,
    end_lng: float,
    modes: list[str] | None = None,
    minimize_walking: bool = False,
    minimize_transfers: bool = False,
    minimize_time: bool = True,
    avoid_stairs: bool = False,
    prefer_express: bool = False,
    max_walking_distance: float | None = None,
    max_walking_time: int | None = None,
) -> PlanTripResponse:
    """Plan a trip across Kraków by walking, bus, tram and train.

    Searches nearby stops around both points, combines direct and one-transfer
    connections over several departure times, and returns the best route plus
    up to 4 alternatives. Warnings explain fallbacks (longer walks, substituted
    transport) and active disruptions.

    Examples:
        plan_trip(50.0677, 19.9449, 50.0544, 19.9356)  # Dworzec Główny -> Wawel
        plan_trip(50.0726, 19.7986, 49.9870, 20.0605, modes=["train"])  # airport -> Wieliczka

    Args:
        start_lat: Start latitude.
        start_lng: Start longitude.
        end_lat: Destination latitude.
        end_lng: Destination longitude.
        modes: Any of "walking", "bus", "tram", "train" (default: walking, bus, tram).
        minimize_walking: Weight walking distance more heavily; disables the short-walk shortcut.
        minimize_transfers: Penalize transfers more heavily.
        minimize_time: Weight total duration more heavily (default True).
        avoid_stairs: Prefer step-free walking.
        prefer_express: Prefer express lines.
        max_walking_distance: Stop search radius in meters (overrides the default).
        max_walking_time: Stop search walking time in minutes (overrides the default).

    Returns:
        PlanTripResponse with primary_route, alternative_routes, warnings and metadata.
    """
    request = PlanTripRequest(
        start=Point(lat=start_lat, lng=start_lng),
        end=Point(lat=end_lat, lng=end_lng),
        allowed_modes=parse_modes(modes),
        preferences=RoutingPreferences(
            minimize_walking=minimize_walking,
            minimize_transfers=minimize_transfers,
            minimize_time=minimize_time,
            avoid_stairs=avoid_stairs,
            prefer_express=prefer_express,
        ),
        max_walking_distance=max_walking_distance,
        max_walking_time=max_walking_time,
    )
    return await _plan_trip(request)
