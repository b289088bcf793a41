"""Pydantic models for the static transit network."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TransportMode(str, Enum):
    """Modes a rider can select for a trip."""

    WALKING = "walking"
    BUS = "bus"
    TRAM = "tram"
    TRAIN = "train"


TRANSIT_MODES = frozenset({TransportMode.BUS, TransportMode.TRAM, TransportMode.TRAIN})


class StopClass(str, Enum):
    """Transport class served at a stop. MIXED stops serve both bus and tram."""

    BUS = "bus"
    TRAM = "tram"
    TRAIN = "train"
    MIXED = "mixed"


class DisruptionSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Point(BaseModel):
    """WGS84 coordinate pair."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class Stop(BaseModel):
    """Transit stop from the static dataset."""

    model_config = ConfigDict(frozen=True)

    stop_id: str
    name: str
    lat: float
    lng: float
    stop_class: StopClass
    lines: list[str] = Field(default_factory=list, description="Line ids serving this stop")
    zone: str | None = None

    @property
    def point(self) -> Point:
        return Point(lat=self.lat, lng=self.lng)

    @property
    def modes(self) -> frozenset[TransportMode]:
        """Transport modes this stop can be boarded with."""
        if self.stop_class == StopClass.MIXED:
            return frozenset({TransportMode.BUS, TransportMode.TRAM})
        return frozenset({TransportMode(self.stop_class.value)})


class Line(BaseModel):
    """Transit line (route) from the static dataset."""

    model_config = ConfigDict(frozen=True)

    line_id: str = Field(description="Public line number, e.g. '8' or 'SKA1'")
    long_name: str
    transport_class: TransportMode
    color: str = "#666666"
    text_color: str = "#FFFFFF"
    stops: list[str] = Field(
        default_factory=list, description="Ordered stop ids (fixed-route lines only)"
    )
    express: bool = False
    bidirectional: bool = True


class Disruption(BaseModel):
    """Active or scheduled service disruption affecting one or more lines."""

    model_config = ConfigDict(frozen=True)

    disruption_id: str
    title: str
    description: str | None = None
    severity: DisruptionSeverity = DisruptionSeverity.MEDIUM
    affected_lines: list[str] = Field(default_factory=list)
    estimated_delay_minutes: int = Field(default=0, ge=0)
    start_time: datetime | None = None
    end_time: datetime | None = Field(default=None, description="None while ongoing")

    def is_active(self, at: datetime) -> bool:
        if self.start_time is not None and at < self.start_time:
            return False
        if self.end_time is not None and at >= self.end_time:
            return False
        return True


class NetworkDataset(BaseModel):
    """Complete read-only network loaded once at process start."""

    name: str
    version: str
    stops: list[Stop]
    lines: list[Line]
    disruptions: list[Disruption] = Field(default_factory=list)
