from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SearchRadius(BaseModel):
    """Walking limits used when looking for stops around an endpoint."""

    distance_meters: float
    walk_minutes: int


class ScoringWeights(BaseModel):
    """Weights of the itinerary score (lower score is better).

    The values are empirical; they only encode "prefer transit, penalize
    transfers and walking".
    """

    duration_weight_minimize_time: float = 2.0
    duration_weight: float = 1.0
    walking_weight_minimize_walking: float = 3.0
    walking_weight: float = 0.5
    transfer_penalty_minimize_transfers: float = 600.0
    transfer_penalty: float = 300.0
    transit_bonus: float = -500.0
    walking_only_penalty_per_meter: float = 0.5
    walking_only_penalty_threshold_meters: float = 1000.0


class PlannerConfig(BaseSettings):
    """Configuration for trip planning and the external services it calls.

    Automatically loads from environment variables and .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # Path service (OSRM)
    osrm_base_url: str = Field(default="https://router.project-osrm.org", alias="KRK_OSRM_URL")
    osrm_timeout_seconds: float = Field(default=5.0, alias="KRK_OSRM_TIMEOUT")

    # Geocoding (Nominatim)
    nominatim_base_url: str = Field(
        default="https://nominatim.openstreetmap.org", alias="KRK_NOMINATIM_URL"
    )
    nominatim_user_agent: str = Field(default="krk-mcp/0.1", alias="KRK_USER_AGENT")
    geocoding_city: str = "Kraków"
    geocoding_viewbox: str = "19.8,49.9,20.2,50.2"
    geocoding_limit: int = 5

    # Static network dataset (defaults to the bundled Kraków network)
    network_path: Path | None = Field(default=None, alias="KRK_NETWORK_PATH")

    # External route cache
    route_cache_ttl_seconds: float = Field(default=300.0, alias="KRK_ROUTE_CACHE_TTL")
    path_service_max_concurrent: int = Field(default=8, alias="KRK_OSRM_MAX_CONCURRENT")

    # Transit geometry retries (linear backoff: base * attempt)
    geometry_max_attempts: int = 3
    geometry_retry_base_delay_seconds: float = 0.25

    # Sanity bounds for a single walking leg
    max_walk_leg_meters: float = 5000.0
    max_walk_leg_minutes: int = 60

    # Stop discovery
    default_radius: SearchRadius = SearchRadius(distance_meters=150, walk_minutes=5)
    train_radius: SearchRadius = SearchRadius(distance_meters=1200, walk_minutes=15)
    escalation_radii: list[SearchRadius] = [
        SearchRadius(distance_meters=2000, walk_minutes=25),
        SearchRadius(distance_meters=2500, walk_minutes=30),
    ]
    extended_train_radius: SearchRadius = SearchRadius(distance_meters=5000, walk_minutes=60)
    nearby_stop_limit: int = 5
    stops_per_endpoint: int = 3

    # Trivial and long-distance thresholds
    trivial_walk_meters: float = 300.0
    max_walkable_meters: float = 3000.0

    # Transfer point band (distance from both boarding and alighting stop)
    transfer_min_meters: float = 200.0
    transfer_max_meters: float = 2000.0
    transfer_points_tried: int = 2
    transfer_walk_meters: float = 100.0
    transfer_min_minutes: int = 2

    # Simulated schedule
    departure_offsets_minutes: list[int] = [0, 10, 15, 20, 25]
    min_wait_minutes: int = 2
    max_wait_minutes: int = 5
    schedule_jitter_minutes: int = 2
    train_speed_kmh: float = 80.0

    # Ranking
    ranking_mode: Literal["duration", "score"] = Field(default="duration", alias="KRK_RANKING_MODE")
    max_alternatives: int = 4
    dedupe_window_minutes: int = 5
    scoring: ScoringWeights = ScoringWeights()


@lru_cache
def get_planner_config() -> PlannerConfig:
    """Get planner configuration (cached singleton).

    Returns:
        PlannerConfig with values from .env file or environment variables.
    """
    return PlannerConfig()
