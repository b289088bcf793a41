"""Multi-modal trip planning between two coordinates.

The planner is stateless per request. It discovers stops around both
endpoints, runs a concurrent candidate search over stop pairs and departure
offsets, then ranks and de-duplicates the results. When stops can't be
found it walks an ordered ladder of fallback strategies.
"""

import asyncio
import logging
import math
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

import httpx

from krk_mcp.data.config import PlannerConfig, SearchRadius
from krk_mcp.data.osrm_client import PathServiceError
from krk_mcp.models.network import DisruptionSeverity, StopClass, TransportMode
from krk_mcp.models.paths import PathProfile
from krk_mcp.models.responses import (
    Itinerary,
    NearbyStop,
    PlanTripRequest,
    PlanTripResponse,
    RoutingMetadata,
    RoutingWarning,
    WalkingSegment,
    WarningSeverity,
    WarningType,
)
from krk_mcp.services.candidates import CandidateGenerator, Sleep, assemble_itinerary, new_id
from krk_mcp.services.geometry import distance_meters, estimate_walking_minutes, straight_line
from krk_mcp.services.network_index import NetworkIndex
from krk_mcp.services.ranking import dedupe, rank
from krk_mcp.services.route_cache import RouteCache

logger = logging.getLogger(__name__)

PLANNER_VERSION = "1.0.0"
ALGORITHM_SEARCH = "multimodal-search"
ALGORITHM_WALKING = "walking-only"

BUS_TRAM = frozenset({TransportMode.BUS, TransportMode.TRAM})
TRAIN_ONLY = frozenset({TransportMode.TRAIN})


@dataclass
class StopSearch:
    """Stops found around both endpoints and the modes used to find them."""

    origin: list[NearbyStop]
    destination: list[NearbyStop]
    modes: frozenset[TransportMode]

    @property
    def found(self) -> bool:
        return bool(self.origin) and bool(self.destination)


@dataclass
class PlanOutcome:
    routes: list[Itinerary] = field(default_factory=list)
    warnings: list[RoutingWarning] = field(default_factory=list)
    algorithm: str = ALGORITHM_SEARCH


Strategy = Callable[[PlanTripRequest, float], Awaitable[PlanOutcome | None]]


def _km(meters: float) -> str:
    return f"{meters / 1000:.1f} km"


class TripPlanner:
    """Plans door-to-door trips over a NetworkIndex.

    Usage:
        planner = TripPlanner(index, RouteCache(OSRMClient(config)), config)
        response = await planner.plan_trip(request)
    """

    def __init__(
        self,
        index: NetworkIndex,
        route_cache: RouteCache,
        config: PlannerConfig,
        rng: random.Random | None = None,
        now: Callable[[], datetime] = datetime.now,
        sleep: Sleep = asyncio.sleep,
        data_timestamp: datetime | None = None,
    ):
        self._index = index
        self._route_cache = route_cache
        self._config = config
        self._now = now
        self._data_timestamp = data_timestamp or now()
        self._generator = CandidateGenerator(
            index, route_cache, config, rng=rng, sleep=sleep, now=now
        )

    async def plan_trip(self, request: PlanTripRequest) -> PlanTripResponse:
        """Plan a trip. Never raises; failures surface as warnings.

        Returns:
            PlanTripResponse with the best itinerary, alternatives and warnings.
        """
        started = time.perf_counter()
        request_id = new_id("req")

        try:
            outcome = await self._plan(request)
        except Exception:
            logger.exception(f"Planning failed for {request_id}, trying walking-only plan")
            try:
                outcome = await self.walking_only(request)
            # walking_only absorbs path service errors, so only internal faults land here
            except Exception:
                logger.exception(f"Walking-only plan failed for {request_id}")
                outcome = PlanOutcome(
                    warnings=[
                        RoutingWarning(
                            type=WarningType.ACCESSIBILITY,
                            severity=WarningSeverity.ERROR,
                            message=(
                                "Could not plan a route right now. "
                                "Please check your connection and try again."
                            ),
                        )
                    ],
                    algorithm=ALGORITHM_WALKING,
                )

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"Planned {request_id}: {len(outcome.routes)} route(s), "
            f"{len(outcome.warnings)} warning(s) in {elapsed_ms:.0f} ms"
        )
        return PlanTripResponse(
            primary_route=outcome.routes[0] if outcome.routes else None,
            alternative_routes=outcome.routes[1:],
            warnings=outcome.warnings,
            metadata=RoutingMetadata(
                request_id=request_id,
                algorithm=outcome.algorithm,
                version=PLANNER_VERSION,
                processing_time_ms=elapsed_ms,
                data_timestamp=self._data_timestamp,
            ),
        )

    async def _plan(self, request: PlanTripRequest) -> PlanOutcome:
        direct = distance_meters(request.start, request.end)

        if direct < self._config.trivial_walk_meters and not request.preferences.minimize_walking:
            logger.debug(f"Trivial distance ({direct:.0f} m), walking only")
            return await self.walking_only(request)

        if not request.transit_modes:
            return await self.walking_only(request)

        search = self.discover_stops(request)
        if search.found:
            outcome = await self.search(request, search)
            if search.modes != request.transit_modes:
                outcome.warnings.append(
                    RoutingWarning(
                        type=WarningType.SUBSTITUTION,
                        severity=WarningSeverity.INFO,
                        message="Few stops nearby; searched all bus and tram lines within a longer walk.",
                    )
                )
            return outcome

        for strategy in self._fallback_strategies():
            outcome = await strategy(request, direct)
            if outcome is not None:
                logger.info(f"Fallback '{strategy.__name__}' produced a result")
                return outcome

        return await self.walking_only(request)

    # Stop discovery

    def _initial_radius(self, request: PlanTripRequest) -> SearchRadius:
        base = (
            self._config.train_radius
            if TransportMode.TRAIN in request.allowed_modes
            else self._config.default_radius
        )
        return SearchRadius(
            distance_meters=request.max_walking_distance or base.distance_meters,
            walk_minutes=request.max_walking_time or base.walk_minutes,
        )

    def _find_stops(
        self,
        request: PlanTripRequest,
        radius: SearchRadius,
        modes: frozenset[TransportMode],
        stop_classes: frozenset[StopClass] | None = None,
    ) -> StopSearch:
        def around(point):
            return self._index.nearby_stops(
                point,
                radius.distance_meters,
                radius.walk_minutes,
                modes,
                self._config.nearby_stop_limit,
                stop_classes,
            )

        return StopSearch(origin=around(request.start), destination=around(request.end), modes=modes)

    def discover_stops(self, request: PlanTripRequest) -> StopSearch:
        """Find stops around both endpoints, widening the radius if needed.

        The last escalation step accepts every surface mode unless the
        request includes trains, which keep their requested modes.
        """
        modes = request.transit_modes
        steps = [(self._initial_radius(request), modes)]
        radii = self._config.escalation_radii
        for i, radius in enumerate(radii):
            last = i == len(radii) - 1
            widen = last and TransportMode.TRAIN not in modes
            steps.append((radius, BUS_TRAM if widen else modes))

        search = StopSearch(origin=[], destination=[], modes=modes)
        for radius, step_modes in steps:
            search = self._find_stops(request, radius, step_modes)
            if search.found:
                return search
            logger.debug(
                f"No stops within {radius.distance_meters:.0f} m of both endpoints "
                f"({len(search.origin)} origin, {len(search.destination)} destination)"
            )
        return search

    # Fallback ladder

    def _fallback_strategies(self) -> list[Strategy]:
        return [
            self._substitute_bus_and_tram,
            self._too_far_to_walk,
            self._extended_train_radius,
            self._no_train_connection,
            self._walk_instead,
        ]

    async def _substitute_bus_and_tram(
        self, request: PlanTripRequest, direct: float
    ) -> PlanOutcome | None:
        if request.transit_modes != TRAIN_ONLY:
            return None
        search = self._find_stops(request, self._config.escalation_radii[-1], BUS_TRAM)
        if not search.found:
            return None
        outcome = await self.search(request, search)
        if outcome.algorithm == ALGORITHM_WALKING:
            return None
        outcome.warnings.append(
            RoutingWarning(
                type=WarningType.SUBSTITUTION,
                severity=WarningSeverity.INFO,
                message="No train stations nearby; showing bus and tram connections instead.",
            )
        )
        return outcome

    async def _too_far_to_walk(self, request: PlanTripRequest, direct: float) -> PlanOutcome | None:
        if TransportMode.TRAIN in request.allowed_modes:
            return None
        if direct <= self._config.max_walkable_meters:
            return None
        return PlanOutcome(
            warnings=[
                RoutingWarning(
                    type=WarningType.WALKING_DISTANCE,
                    severity=WarningSeverity.ERROR,
                    message=(
                        f"The distance of {_km(direct)} is too long to walk and no public "
                        "transport stops were found nearby."
                    ),
                )
            ],
        )

    async def _extended_train_radius(
        self, request: PlanTripRequest, direct: float
    ) -> PlanOutcome | None:
        if TransportMode.TRAIN not in request.allowed_modes:
            return None
        radius = self._config.extended_train_radius
        search = self._find_stops(request, radius, TRAIN_ONLY, frozenset({StopClass.TRAIN}))
        if not search.found:
            return None
        outcome = await self.search(request, search)
        if outcome.algorithm == ALGORITHM_WALKING:
            return PlanOutcome(
                warnings=[
                    RoutingWarning(
                        type=WarningType.WALKING_DISTANCE,
                        severity=WarningSeverity.ERROR,
                        message=(
                            f"No train connection found within {_km(radius.distance_meters)} "
                            "of the start and destination."
                        ),
                    )
                ],
            )
        outcome.warnings.append(
            RoutingWarning(
                type=WarningType.WALKING_DISTANCE,
                severity=WarningSeverity.INFO,
                message=(
                    f"The nearest train stations are up to {_km(radius.distance_meters)} away; "
                    "expect a longer walk."
                ),
            )
        )
        return outcome

    async def _no_train_connection(
        self, request: PlanTripRequest, direct: float
    ) -> PlanOutcome | None:
        if TransportMode.TRAIN not in request.allowed_modes:
            return None
        return PlanOutcome(
            warnings=[
                RoutingWarning(
                    type=WarningType.WALKING_DISTANCE,
                    severity=WarningSeverity.ERROR,
                    message="No train connection found near the start or destination.",
                )
            ],
        )

    async def _walk_instead(self, request: PlanTripRequest, direct: float) -> PlanOutcome:
        return await self.walking_only(request)

    # Search

    async def search(self, request: PlanTripRequest, stops: StopSearch) -> PlanOutcome:
        """Generate, rank and de-duplicate candidates for the found stops.

        Falls back to walking only when no candidate could be built.
        """
        departure = self._now()
        per_endpoint = self._config.stops_per_endpoint
        prefs = request.preferences

        tasks = []
        for origin in stops.origin[:per_endpoint]:
            for destination in stops.destination[:per_endpoint]:
                if origin.stop.stop_id == destination.stop.stop_id:
                    continue
                for offset in self._config.departure_offsets_minutes:
                    for build in (
                        self._generator.direct_candidate,
                        self._generator.transfer_candidate,
                    ):
                        tasks.append(
                            build(
                                request.start,
                                request.end,
                                origin,
                                destination,
                                prefs,
                                offset,
                                allowed_modes=stops.modes,
                                departure_time=departure,
                            )
                        )

        results = await asyncio.gather(*tasks, return_exceptions=True)

        candidates = []
        for result in results:
            if isinstance(result, BaseException):
                logger.warning(f"Candidate generation failed: {result!r}")
                continue
            if result is not None:
                candidates.append(result)

        logger.debug(f"{len(candidates)} candidate(s) from {len(tasks)} task(s)")
        if not candidates:
            return await self.walking_only(request)

        ranked = rank(candidates, prefs, self._config.ranking_mode, self._config.scoring)
        unique = dedupe(ranked, self._config.dedupe_window_minutes)
        routes = unique[: 1 + self._config.max_alternatives]

        return PlanOutcome(routes=routes, warnings=self.disruption_warnings(routes[0]))

    def disruption_warnings(self, itinerary: Itinerary) -> list[RoutingWarning]:
        warnings = []
        for segment in itinerary.transit_segments:
            for disruption in self._index.active_disruptions_for_line(
                segment.line_number, segment.scheduled_departure
            ):
                message = f"Line {segment.line_number}: {disruption.title}"
                if disruption.estimated_delay_minutes:
                    message += f" (about {disruption.estimated_delay_minutes} min delay)"
                warnings.append(
                    RoutingWarning(
                        type=WarningType.DISRUPTION,
                        severity=(
                            WarningSeverity.WARNING
                            if disruption.severity == DisruptionSeverity.HIGH
                            else WarningSeverity.INFO
                        ),
                        message=message,
                        affected_segments=[segment.segment_id],
                    )
                )
        return warnings

    # Walking only

    async def walking_only(self, request: PlanTripRequest) -> PlanOutcome:
        """Single walking segment from start to end.

        Uses the path service when it answers and a straight-line estimate
        otherwise.
        """
        start, end = request.start, request.end
        itinerary_id = new_id("walk")

        try:
            path = await self._route_cache.get(start, end, PathProfile.WALKING)
            distance = path.distance_meters
            minutes = math.ceil(path.duration_seconds / 60)
            geometry = path.geometry or straight_line(start, end)
        except (PathServiceError, httpx.HTTPError) as e:
            logger.warning(f"Walking path unavailable, using straight-line estimate: {e}")
            distance = distance_meters(start, end)
            minutes = estimate_walking_minutes(distance)
            geometry = straight_line(start, end)

        segment = WalkingSegment(
            segment_id=f"{itinerary_id}_walk1",
            start_point=start,
            end_point=end,
            distance_meters=distance,
            duration_minutes=minutes,
            geometry=geometry,
            instructions="Walk to your destination",
        )
        itinerary = assemble_itinerary(itinerary_id, [segment], departure=self._now())
        itinerary = rank(
            [itinerary], request.preferences, weights=self._config.scoring
        )[0]

        warnings = []
        if distance > self._config.max_walkable_meters:
            warnings.append(
                RoutingWarning(
                    type=WarningType.WALKING_DISTANCE,
                    severity=WarningSeverity.WARNING,
                    message=f"This route is a {_km(distance)} walk.",
                    affected_segments=[segment.segment_id],
                )
            )
        return PlanOutcome(routes=[itinerary], warnings=warnings, algorithm=ALGORITHM_WALKING)
