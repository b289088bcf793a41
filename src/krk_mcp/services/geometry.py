"""Great-circle distance and travel time estimates."""

import math

from krk_mcp.models.network import Point, TransportMode

# Earth's radius in meters for haversine calculation
EARTH_RADIUS_METERS = 6_371_000

WALKING_SPEED_MPS = 1.39

# Assumed average speeds (km/h) for estimated transit legs
TRANSIT_SPEEDS_KMH: dict[TransportMode, float] = {
    TransportMode.TRAM: 20.0,
    TransportMode.BUS: 15.0,
    TransportMode.TRAIN: 60.0,
}


def distance_meters(a: Point, b: Point) -> float:
    """Calculate the great-circle distance between two points in meters."""
    lat1_rad = math.radians(a.lat)
    lat2_rad = math.radians(b.lat)
    delta_lat = math.radians(b.lat - a.lat)
    delta_lng = math.radians(b.lng - a.lng)

    h = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_METERS * c


def estimate_walking_minutes(distance: float) -> int:
    """Walking time in whole minutes, rounded up."""
    return math.ceil(distance / WALKING_SPEED_MPS / 60)


def minutes_at_speed(distance: float, speed_kmh: float) -> int:
    """Travel time in whole minutes at a constant speed, rounded up."""
    return math.ceil(distance / 1000 / speed_kmh * 60)


def estimate_transit_minutes(distance: float, transport_class: TransportMode) -> int:
    """Estimated in-vehicle time for a transit leg.

    Raises:
        ValueError: If transport_class is not a transit mode.
    """
    speed = TRANSIT_SPEEDS_KMH.get(transport_class)
    if speed is None:
        raise ValueError(f"No assumed speed for {transport_class.value}")
    return minutes_at_speed(distance, speed)


def midpoint(a: Point, b: Point) -> Point:
    """Arithmetic midpoint; adequate at city scale."""
    return Point(lat=(a.lat + b.lat) / 2, lng=(a.lng + b.lng) / 2)


def straight_line(a: Point, b: Point) -> list[tuple[float, float]]:
    """Two-vertex polyline in [lng, lat] order."""
    return [(a.lng, a.lat), (b.lng, b.lat)]
