"""Shared fixtures: a small synthetic network and a scriptable path service."""

import random
from datetime import datetime

import pytest

from krk_mcp.data.config import PlannerConfig
from krk_mcp.data.osrm_client import PathServiceError
from krk_mcp.models.network import (
    Disruption,
    DisruptionSeverity,
    Line,
    NetworkDataset,
    Point,
    Stop,
    StopClass,
    TransportMode,
)
from krk_mcp.models.paths import PathProfile, PathResult
from krk_mcp.services.candidates import CandidateGenerator
from krk_mcp.services.geometry import distance_meters, straight_line
from krk_mcp.services.network_index import NetworkIndex
from krk_mcp.services.route_cache import RouteCache
from krk_mcp.services.trip_planner import TripPlanner

FIXED_NOW = datetime(2025, 3, 10, 8, 0)

# Stops "A" and "B" share tram line 8 and express bus 502, about 1200 m apart.
# "P" and "Q" share no line; "T" lies between them on both their lines.
# "R1".."R3" form a fixed-route train line.
STOPS = [
    Stop(stop_id="A", name="Alpha", lat=50.0000, lng=19.9000, stop_class=StopClass.MIXED, lines=["8", "502"]),
    Stop(stop_id="B", name="Bravo", lat=50.0108, lng=19.9000, stop_class=StopClass.MIXED, lines=["8", "502"]),
    Stop(stop_id="P", name="Papa", lat=50.0500, lng=19.9000, stop_class=StopClass.BUS, lines=["100"]),
    Stop(stop_id="Q", name="Quebec", lat=50.0500, lng=19.9300, stop_class=StopClass.BUS, lines=["200"]),
    Stop(stop_id="T", name="Tango", lat=50.0500, lng=19.9150, stop_class=StopClass.BUS, lines=["100", "200"]),
    Stop(stop_id="R1", name="Rail One", lat=50.1000, lng=19.9000, stop_class=StopClass.TRAIN, lines=["SKA1"]),
    Stop(stop_id="R2", name="Rail Two", lat=50.1000, lng=19.9200, stop_class=StopClass.TRAIN, lines=["SKA1"]),
    Stop(stop_id="R3", name="Rail Three", lat=50.1000, lng=19.9400, stop_class=StopClass.TRAIN, lines=["SKA1"]),
]

LINES = [
    Line(line_id="8", long_name="Alpha - Bravo", transport_class=TransportMode.TRAM, color="#96CEB4"),
    Line(line_id="502", long_name="Alpha - Bravo Express", transport_class=TransportMode.BUS, express=True),
    Line(line_id="100", long_name="Papa - Tango", transport_class=TransportMode.BUS),
    Line(line_id="200", long_name="Tango - Quebec", transport_class=TransportMode.BUS),
    Line(
        line_id="SKA1",
        long_name="Rail One - Rail Three",
        transport_class=TransportMode.TRAIN,
        stops=["R1", "R2", "R3"],
    ),
]

DISRUPTIONS = [
    Disruption(
        disruption_id="D1",
        title="Roadworks on line 200",
        severity=DisruptionSeverity.HIGH,
        affected_lines=["200"],
        estimated_delay_minutes=3,
    ),
]


class FakePathService:
    """Path service returning straight lines at fixed speeds.

    Profiles listed in failing_profiles always raise PathServiceError.
    """

    def __init__(self, failing_profiles: set[PathProfile] | None = None):
        self.failing_profiles = failing_profiles or set()
        self.calls: list[tuple[Point, Point, PathProfile]] = []

    async def get_path(self, origin: Point, destination: Point, profile: PathProfile) -> PathResult:
        self.calls.append((origin, destination, profile))
        if profile in self.failing_profiles:
            raise PathServiceError(f"scripted {profile.value} failure")
        distance = distance_meters(origin, destination)
        speed = 1.4 if profile == PathProfile.WALKING else 10.0
        return PathResult(
            distance_meters=distance,
            duration_seconds=distance / speed,
            geometry=straight_line(origin, destination),
        )

    def calls_for(self, profile: PathProfile) -> list[tuple[Point, Point, PathProfile]]:
        return [c for c in self.calls if c[2] == profile]


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def dataset() -> NetworkDataset:
    return NetworkDataset(
        name="Test network", version="t1", stops=STOPS, lines=LINES, disruptions=DISRUPTIONS
    )


@pytest.fixture
def index(dataset: NetworkDataset) -> NetworkIndex:
    return NetworkIndex(dataset)


@pytest.fixture
def config() -> PlannerConfig:
    return PlannerConfig(geometry_retry_base_delay_seconds=0.5)


@pytest.fixture
def path_service() -> FakePathService:
    return FakePathService()


@pytest.fixture
def route_cache(path_service: FakePathService) -> RouteCache:
    return RouteCache(path_service, ttl_seconds=300)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def generator(index, route_cache, config, sleep) -> CandidateGenerator:
    return CandidateGenerator(
        index, route_cache, config, rng=random.Random(7), sleep=sleep, now=lambda: FIXED_NOW
    )


@pytest.fixture
def planner(index, route_cache, config, sleep) -> TripPlanner:
    return TripPlanner(
        index, route_cache, config, rng=random.Random(7), now=lambda: FIXED_NOW, sleep=sleep
    )
