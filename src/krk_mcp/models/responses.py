from datetime import datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from krk_mcp.models.network import Point, Stop, TransportMode
from krk_mcp.models.paths import GeocodingResult

# Trip Planning Models


class WalkingSegment(BaseModel):
    """Walking leg of an itinerary."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["walking"] = "walking"
    segment_id: str
    start_point: Point
    end_point: Point
    distance_meters: float
    duration_minutes: int
    geometry: list[tuple[float, float]] = Field(description="Polyline as [lng, lat] pairs")
    instructions: str
    accessible: bool = Field(default=True, description="Step-free path")
    is_transfer: bool = Field(default=False, description="Walk between two transit legs")


class TransitSegment(BaseModel):
    """Leg ridden on a single bus, tram or train line."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["transit"] = "transit"
    segment_id: str
    start_point: Point
    end_point: Point
    boarding_stop: Stop
    alighting_stop: Stop
    intermediate_stops: list[Stop] = Field(default_factory=list)
    line_number: str
    transport_class: TransportMode
    headsign: str
    route_color: str
    distance_meters: float
    duration_minutes: int
    delay_minutes: int = Field(default=0, description="Disruption delay included in duration")
    scheduled_departure: datetime
    scheduled_arrival: datetime
    geometry: list[tuple[float, float]] = Field(description="Polyline as [lng, lat] pairs")
    instructions: str


Segment = Annotated[WalkingSegment | TransitSegment, Field(discriminator="kind")]


class Itinerary(BaseModel):
    """Door-to-door trip made of contiguous segments."""

    model_config = ConfigDict(frozen=True)

    itinerary_id: str
    segments: list[Segment] = Field(min_length=1, description="Ordered legs")

    total_distance_meters: float
    total_duration_minutes: int = Field(description="Segments plus wait and departure offset")
    walking_distance_meters: float
    walking_minutes: int
    transfer_count: int = Field(description="Transit legs - 1, floor 0")

    wait_minutes: int = 0
    departure_offset_minutes: int = 0
    departure_time: datetime
    arrival_time: datetime

    score: float | None = Field(default=None, description="Preference score, lower is better")

    @property
    def transit_segments(self) -> list[TransitSegment]:
        return [s for s in self.segments if isinstance(s, TransitSegment)]

    @property
    def is_walking_only(self) -> bool:
        return not self.transit_segments


class RoutingPreferences(BaseModel):
    minimize_walking: bool = False
    minimize_transfers: bool = False
    minimize_time: bool = True
    avoid_stairs: bool = False
    prefer_express: bool = False


DEFAULT_MODES = frozenset({TransportMode.WALKING, TransportMode.BUS, TransportMode.TRAM})


class PlanTripRequest(BaseModel):
    """Trip planning request between two coordinates."""

    start: Point
    end: Point
    allowed_modes: frozenset[TransportMode] = DEFAULT_MODES
    preferences: RoutingPreferences = Field(default_factory=RoutingPreferences)
    max_walking_distance: float | None = Field(
        default=None, gt=0, description="Overrides the default stop search radius (meters)"
    )
    max_walking_time: int | None = Field(
        default=None, gt=0, description="Overrides the default stop search walk time (minutes)"
    )

    @property
    def transit_modes(self) -> frozenset[TransportMode]:
        return self.allowed_modes - {TransportMode.WALKING}


class WarningType(str, Enum):
    DISRUPTION = "disruption"
    DELAY = "delay"
    ACCESSIBILITY = "accessibility"
    WALKING_DISTANCE = "walking_distance"
    SUBSTITUTION = "substitution"


class WarningSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class RoutingWarning(BaseModel):
    type: WarningType
    message: str
    severity: WarningSeverity
    affected_segments: list[str] = Field(default_factory=list)


class RoutingMetadata(BaseModel):
    request_id: str
    algorithm: str = Field(description="'multimodal-search' or 'walking-only'")
    version: str
    processing_time_ms: float
    data_timestamp: datetime


class PlanTripResponse(BaseModel):
    """Response from plan_trip."""

    primary_route: Itinerary | None = None
    alternative_routes: list[Itinerary] = Field(default_factory=list)
    warnings: list[RoutingWarning] = Field(default_factory=list)
    metadata: RoutingMetadata

    @computed_field
    @property
    def success(self) -> bool:
        return self.primary_route is not None


# Stop and place search models


class NearbyStop(BaseModel):
    stop: Stop
    distance_meters: float
    walk_minutes: int


class NearbyStopsResponse(BaseModel):
    stops: list[NearbyStop]
    count: int = Field(description="Number of stops returned")


class SearchPlacesResponse(BaseModel):
    """Response from search_places."""

    query: str
    results: list[GeocodingResult] = Field(default_factory=list)
    count: int
    api_available: bool = Field(
        description="Whether the geocoding service was reachable (false on error)"
    )
