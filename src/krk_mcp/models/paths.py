"""Models for payloads returned by the external path and geocoding services."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PathProfile(str, Enum):
    """Routing profile understood by the path service."""

    WALKING = "walking"
    DRIVING = "driving"


class PathResult(BaseModel):
    """Point-to-point path from the path service."""

    model_config = ConfigDict(frozen=True)

    distance_meters: float
    duration_seconds: float
    geometry: list[tuple[float, float]] = Field(
        default_factory=list, description="Polyline as [lng, lat] pairs"
    )


class OSRMRoute(BaseModel):
    """Single route entry of an OSRM /route response."""

    model_config = ConfigDict(extra="ignore")

    distance: float
    duration: float
    geometry: dict


class OSRMResponse(BaseModel):
    """Top-level OSRM /route response."""

    model_config = ConfigDict(extra="ignore")

    code: str
    message: str | None = None
    routes: list[OSRMRoute] = []


class GeocodingResult(BaseModel):
    """A place returned by the geocoder."""

    lat: float
    lng: float
    display_name: str
    place_id: str
