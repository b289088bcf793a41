"""Builds single itineraries for a chosen pair of boarding and alighting stops.

Every candidate is all-or-nothing: if any required leg cannot be built the
whole candidate is dropped and None is returned.
"""

import asyncio
import logging
import math
import random
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import httpx

from krk_mcp.data.config import PlannerConfig
from krk_mcp.data.osrm_client import PathServiceError
from krk_mcp.models.network import Line, Point, Stop, StopClass, TransportMode
from krk_mcp.models.paths import PathProfile
from krk_mcp.models.responses import (
    Itinerary,
    NearbyStop,
    RoutingPreferences,
    TransitSegment,
    WalkingSegment,
)
from krk_mcp.services.geometry import (
    distance_meters,
    estimate_transit_minutes,
    estimate_walking_minutes,
    minutes_at_speed,
    straight_line,
)
from krk_mcp.services.network_index import FixedLinePath, NetworkIndex
from krk_mcp.services.route_cache import RouteCache

logger = logging.getLogger(__name__)

# Walks shorter than this are left out of an itinerary
MIN_WALK_METERS = 1.0

Sleep = Callable[[float], Awaitable[None]]


def new_id(prefix: str) -> str:
    """Generate an id like 'route_1718000000000_3f9a1c2b7'."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _numeric_line_id(line_id: str) -> int | None:
    return int(line_id) if line_id.isdigit() else None


def _lowest_number_key(line: Line) -> tuple:
    number = _numeric_line_id(line.line_id)
    return (0, number, "") if number is not None else (1, 0, line.line_id)


def _express_key(line: Line) -> tuple:
    number = _numeric_line_id(line.line_id)
    return (line.express, number if number is not None else -1, line.line_id)


@dataclass(frozen=True)
class LegPlan:
    """Line choice for one transit leg, resolved before any external call."""

    line: Line
    boarding: Stop
    alighting: Stop
    headsign: str
    fixed_path: FixedLinePath | None = None


class CandidateGenerator:
    """Produces zero or one itinerary per (stop pair, departure offset).

    Randomness (waits and schedule jitter) comes from an injected
    random.Random so results are reproducible with a seeded source.
    """

    def __init__(
        self,
        index: NetworkIndex,
        route_cache: RouteCache,
        config: PlannerConfig,
        rng: random.Random | None = None,
        sleep: Sleep = asyncio.sleep,
        now: Callable[[], datetime] = datetime.now,
    ):
        self._index = index
        self._route_cache = route_cache
        self._config = config
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._now = now

    # Line selection

    def select_line(
        self,
        boarding: Stop,
        alighting: Stop,
        preferences: RoutingPreferences,
        allowed_modes: frozenset[TransportMode] = frozenset(),
    ) -> Line | None:
        """Pick the line for a leg between two stops.

        With prefer_express, express lines win, then the highest line number.
        Otherwise the lowest numeric line id wins (non-numeric ids last).
        """
        transit_modes = allowed_modes - {TransportMode.WALKING}
        lines = []
        for line_id in self._index.common_lines(boarding, alighting):
            line = self._index.get_line(line_id)
            if line is None:
                continue
            if transit_modes and line.transport_class not in transit_modes:
                continue
            lines.append(line)

        if not lines:
            return None
        if preferences.prefer_express:
            return max(lines, key=_express_key)
        return min(lines, key=_lowest_number_key)

    def plan_leg(
        self,
        boarding: Stop,
        alighting: Stop,
        preferences: RoutingPreferences,
        allowed_modes: frozenset[TransportMode] = frozenset(),
    ) -> LegPlan | None:
        if boarding.stop_id == alighting.stop_id:
            return None

        if boarding.stop_class == StopClass.TRAIN and alighting.stop_class == StopClass.TRAIN:
            transit_modes = allowed_modes - {TransportMode.WALKING}
            if transit_modes and TransportMode.TRAIN not in transit_modes:
                return None
            path = self._index.fixed_line_path(boarding, alighting, TransportMode.TRAIN)
            if path is None:
                return None
            line_stops = path.line.stops
            forward = line_stops.index(boarding.stop_id) < line_stops.index(alighting.stop_id)
            terminal = self._index.get_stop(line_stops[-1] if forward else line_stops[0])
            return LegPlan(
                line=path.line,
                boarding=boarding,
                alighting=alighting,
                headsign=terminal.name if terminal else path.line.long_name,
                fixed_path=path,
            )

        line = self.select_line(boarding, alighting, preferences, allowed_modes)
        if line is None:
            return None
        return LegPlan(line=line, boarding=boarding, alighting=alighting, headsign=line.long_name)

    # Segment builders

    async def walk_leg(
        self, origin: Point, destination: Point, segment_id: str, instructions: str
    ) -> list[WalkingSegment] | None:
        """Walking leg through the route cache.

        Returns:
            [] if the points practically coincide, a one-element list with the
            segment, or None if the path service failed or returned a walk
            beyond the configured sanity bounds.
        """
        if distance_meters(origin, destination) < MIN_WALK_METERS:
            return []

        try:
            path = await self._route_cache.get(origin, destination, PathProfile.WALKING)
        except (PathServiceError, httpx.HTTPError) as e:
            logger.debug(f"Walking path unavailable: {e}")
            return None

        minutes = math.ceil(path.duration_seconds / 60)
        if (
            path.distance_meters > self._config.max_walk_leg_meters
            or minutes > self._config.max_walk_leg_minutes
        ):
            logger.debug(
                f"Rejecting walk of {path.distance_meters:.0f} m / {minutes} min"
            )
            return None

        return [
            WalkingSegment(
                segment_id=segment_id,
                start_point=origin,
                end_point=destination,
                distance_meters=path.distance_meters,
                duration_minutes=minutes,
                geometry=path.geometry or straight_line(origin, destination),
                instructions=instructions,
            )
        ]

    def transfer_walk(self, stop: Stop, segment_id: str) -> WalkingSegment:
        distance = self._config.transfer_walk_meters
        return WalkingSegment(
            segment_id=segment_id,
            start_point=stop.point,
            end_point=stop.point,
            distance_meters=distance,
            duration_minutes=max(
                self._config.transfer_min_minutes, estimate_walking_minutes(distance)
            ),
            geometry=straight_line(stop.point, stop.point),
            instructions=f"Change at {stop.name}",
            is_transfer=True,
        )

    async def fetch_transit_geometry(
        self, origin: Point, destination: Point
    ) -> list[tuple[float, float]] | None:
        """Vehicle path between two stops, using the driving profile as a proxy.

        Retries with linear backoff (base delay * attempt). Returns None once
        all attempts have failed.
        """
        attempts = self._config.geometry_max_attempts
        base_delay = self._config.geometry_retry_base_delay_seconds

        for attempt in range(1, attempts + 1):
            try:
                path = await self._route_cache.get(origin, destination, PathProfile.DRIVING)
                if path.geometry:
                    return path.geometry
                logger.warning(f"Empty transit geometry (attempt {attempt}/{attempts})")
            except (PathServiceError, httpx.HTTPError) as e:
                logger.warning(f"Transit geometry fetch failed (attempt {attempt}/{attempts}): {e}")

            if attempt < attempts:
                await self._sleep(base_delay * attempt)

        return None

    async def transit_segment(
        self, plan: LegPlan, departure: datetime, segment_id: str
    ) -> TransitSegment | None:
        """Build the transit segment for a planned leg departing at departure."""
        line = plan.line
        disruptions = self._index.active_disruptions_for_line(line.line_id, departure)
        delay = sum(d.estimated_delay_minutes for d in disruptions)

        if plan.fixed_path is not None:
            path = plan.fixed_path
            distance = path.distance_meters
            base_minutes = minutes_at_speed(distance, self._config.train_speed_kmh)
            geometry = [(s.lng, s.lat) for s in path.stops]
            intermediate = path.intermediate_stops
        else:
            geometry = await self.fetch_transit_geometry(
                plan.boarding.point, plan.alighting.point
            )
            if geometry is None:
                return None
            distance = distance_meters(plan.boarding.point, plan.alighting.point)
            jitter = self._config.schedule_jitter_minutes
            base_minutes = max(
                1,
                estimate_transit_minutes(distance, line.transport_class)
                + self._rng.randint(-jitter, jitter),
            )
            intermediate = []

        duration = base_minutes + delay
        instructions = (
            f"Take {line.transport_class.value} {line.line_id} towards {plan.headsign} "
            f"from {plan.boarding.name} to {plan.alighting.name}"
        )
        if intermediate:
            instructions += f" ({len(intermediate) + 1} stops)"
        for disruption in disruptions:
            instructions += (
                f". {disruption.title} (+{disruption.estimated_delay_minutes} min)"
            )

        return TransitSegment(
            segment_id=segment_id,
            start_point=plan.boarding.point,
            end_point=plan.alighting.point,
            boarding_stop=plan.boarding,
            alighting_stop=plan.alighting,
            intermediate_stops=intermediate,
            line_number=line.line_id,
            transport_class=line.transport_class,
            headsign=plan.headsign,
            route_color=line.color,
            distance_meters=distance,
            duration_minutes=duration,
            delay_minutes=delay,
            scheduled_departure=departure,
            scheduled_arrival=departure + timedelta(minutes=duration),
            geometry=geometry,
            instructions=instructions,
        )

    # Candidates

    async def direct_candidate(
        self,
        start: Point,
        end: Point,
        start_stop: NearbyStop,
        end_stop: NearbyStop,
        preferences: RoutingPreferences,
        departure_offset: int,
        allowed_modes: frozenset[TransportMode] = frozenset(),
        departure_time: datetime | None = None,
    ) -> Itinerary | None:
        """Walk, ride one line, walk.

        Returns:
            The itinerary, or None if no shared line exists or any leg fails.
        """
        plan = self.plan_leg(start_stop.stop, end_stop.stop, preferences, allowed_modes)
        if plan is None:
            return None

        departure = departure_time or self._now()
        itinerary_id = new_id("route")

        first_walk = await self.walk_leg(
            start, plan.boarding.point, f"{itinerary_id}_walk1", f"Walk to {plan.boarding.name}"
        )
        if first_walk is None:
            return None

        wait = self._random_wait()
        boarding_time = departure + timedelta(
            minutes=departure_offset + _minutes(first_walk) + wait
        )
        ride = await self.transit_segment(plan, boarding_time, f"{itinerary_id}_transit1")
        if ride is None:
            return None

        last_walk = await self.walk_leg(
            plan.alighting.point, end, f"{itinerary_id}_walk2", "Walk to your destination"
        )
        if last_walk is None:
            return None

        return assemble_itinerary(
            itinerary_id,
            [*first_walk, ride, *last_walk],
            departure=departure,
            wait_minutes=wait,
            departure_offset=departure_offset,
        )

    async def transfer_candidate(
        self,
        start: Point,
        end: Point,
        start_stop: NearbyStop,
        end_stop: NearbyStop,
        preferences: RoutingPreferences,
        departure_offset: int,
        allowed_modes: frozenset[TransportMode] = frozenset(),
        departure_time: datetime | None = None,
    ) -> Itinerary | None:
        """Walk, ride, change at an intermediate stop, ride, walk.

        Tries the closest transfer points in order and returns the first that
        yields a complete itinerary.
        """
        transfer_stops = self._index.transfer_candidates(
            start_stop.stop,
            end_stop.stop,
            self._config.transfer_min_meters,
            self._config.transfer_max_meters,
        )[: self._config.transfer_points_tried]

        for transfer_stop in transfer_stops:
            itinerary = await self._via_transfer(
                start,
                end,
                start_stop.stop,
                transfer_stop,
                end_stop.stop,
                preferences,
                departure_offset,
                allowed_modes,
                departure_time or self._now(),
            )
            if itinerary is not None:
                return itinerary
        return None

    async def _via_transfer(
        self,
        start: Point,
        end: Point,
        boarding: Stop,
        transfer_stop: Stop,
        alighting: Stop,
        preferences: RoutingPreferences,
        departure_offset: int,
        allowed_modes: frozenset[TransportMode],
        departure: datetime,
    ) -> Itinerary | None:
        first_plan = self.plan_leg(boarding, transfer_stop, preferences, allowed_modes)
        second_plan = self.plan_leg(transfer_stop, alighting, preferences, allowed_modes)
        if first_plan is None or second_plan is None:
            return None

        itinerary_id = new_id("route")

        first_walk = await self.walk_leg(
            start, boarding.point, f"{itinerary_id}_walk1", f"Walk to {boarding.name}"
        )
        if first_walk is None:
            return None

        wait = self._random_wait()
        boarding_time = departure + timedelta(
            minutes=departure_offset + _minutes(first_walk) + wait
        )
        first_ride = await self.transit_segment(
            first_plan, boarding_time, f"{itinerary_id}_transit1"
        )
        if first_ride is None:
            return None

        change = self.transfer_walk(transfer_stop, f"{itinerary_id}_transfer")
        second_ride = await self.transit_segment(
            second_plan,
            first_ride.scheduled_arrival + timedelta(minutes=change.duration_minutes),
            f"{itinerary_id}_transit2",
        )
        if second_ride is None:
            return None

        last_walk = await self.walk_leg(
            alighting.point, end, f"{itinerary_id}_walk2", "Walk to your destination"
        )
        if last_walk is None:
            return None

        return assemble_itinerary(
            itinerary_id,
            [*first_walk, first_ride, change, second_ride, *last_walk],
            departure=departure,
            wait_minutes=wait,
            departure_offset=departure_offset,
        )

    def _random_wait(self) -> int:
        return self._rng.randint(self._config.min_wait_minutes, self._config.max_wait_minutes)


def _minutes(segments: list[WalkingSegment]) -> int:
    return sum(s.duration_minutes for s in segments)


def assemble_itinerary(
    itinerary_id: str,
    segments: list[WalkingSegment | TransitSegment],
    departure: datetime,
    wait_minutes: int = 0,
    departure_offset: int = 0,
) -> Itinerary:
    """Aggregate segment totals into an Itinerary."""
    walking = [s for s in segments if isinstance(s, WalkingSegment)]
    transit_count = sum(1 for s in segments if isinstance(s, TransitSegment))
    total_duration = (
        departure_offset + wait_minutes + sum(s.duration_minutes for s in segments)
    )

    return Itinerary(
        itinerary_id=itinerary_id,
        segments=segments,
        total_distance_meters=sum(s.distance_meters for s in segments),
        total_duration_minutes=total_duration,
        walking_distance_meters=sum(s.distance_meters for s in walking),
        walking_minutes=sum(s.duration_minutes for s in walking),
        transfer_count=max(0, transit_count - 1),
        wait_minutes=wait_minutes,
        departure_offset_minutes=departure_offset,
        departure_time=departure,
        arrival_time=departure + timedelta(minutes=total_duration),
    )
