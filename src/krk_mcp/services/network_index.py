"""In-memory lookups over the static transit network.

The index is built once per process from a NetworkDataset and never mutated,
so it is shared between concurrent planning requests without locking.
"""

from dataclasses import dataclass
from datetime import datetime

from krk_mcp.models.network import (
    Disruption,
    Line,
    NetworkDataset,
    Point,
    Stop,
    StopClass,
    TransportMode,
)
from krk_mcp.models.responses import NearbyStop
from krk_mcp.services.geometry import distance_meters, estimate_walking_minutes, midpoint


@dataclass(frozen=True)
class FixedLinePath:
    """Ordered run of stops along a fixed-route line, boarding stop first."""

    line: Line
    stops: list[Stop]

    @property
    def intermediate_stops(self) -> list[Stop]:
        return self.stops[1:-1]

    @property
    def distance_meters(self) -> float:
        return sum(
            distance_meters(a.point, b.point) for a, b in zip(self.stops, self.stops[1:])
        )


class NetworkIndex:
    """Read-only index of stops, lines and disruptions."""

    def __init__(self, dataset: NetworkDataset):
        self.name = dataset.name
        self.version = dataset.version
        self.stops: list[Stop] = list(dataset.stops)
        self.stops_by_id: dict[str, Stop] = {s.stop_id: s for s in dataset.stops}
        self.lines_by_id: dict[str, Line] = {line.line_id: line for line in dataset.lines}
        self.disruptions: list[Disruption] = list(dataset.disruptions)

    def get_stop(self, stop_id: str) -> Stop | None:
        return self.stops_by_id.get(stop_id)

    def get_line(self, line_id: str) -> Line | None:
        return self.lines_by_id.get(line_id)

    def nearby_stops(
        self,
        point: Point,
        max_distance: float,
        max_walk_minutes: int,
        allowed_modes: frozenset[TransportMode] = frozenset(),
        limit: int = 5,
        stop_classes: frozenset[StopClass] | None = None,
    ) -> list[NearbyStop]:
        """Find stops within walking reach of a point.

        Args:
            point: Location to search around.
            max_distance: Maximum straight-line distance in meters.
            max_walk_minutes: Maximum estimated walking time.
            allowed_modes: Transit modes to accept. Empty accepts every stop;
                otherwise mixed stops are always accepted.
            limit: Maximum number of stops returned.
            stop_classes: If given, only stops of these classes qualify.

        Returns:
            Qualifying stops sorted by ascending distance.
        """
        transit_modes = allowed_modes - {TransportMode.WALKING}
        found = []
        for stop in self.stops:
            if stop_classes is not None and stop.stop_class not in stop_classes:
                continue
            if (
                transit_modes
                and stop.stop_class != StopClass.MIXED
                and not (stop.modes & transit_modes)
            ):
                continue
            distance = distance_meters(point, stop.point)
            if distance > max_distance:
                continue
            walk_minutes = estimate_walking_minutes(distance)
            if walk_minutes > max_walk_minutes:
                continue
            found.append(NearbyStop(stop=stop, distance_meters=distance, walk_minutes=walk_minutes))

        found.sort(key=lambda n: n.distance_meters)
        return found[:limit]

    def common_lines(self, a: Stop, b: Stop) -> set[str]:
        """Line ids serving both stops."""
        return set(a.lines) & set(b.lines)

    def transfer_candidates(
        self,
        a: Stop,
        b: Stop,
        min_distance: float = 200.0,
        max_distance: float = 2000.0,
    ) -> list[Stop]:
        """Stops where a rider could change from a line at a to a line reaching b.

        A candidate shares at least one line with each of a and b and lies
        within [min_distance, max_distance] of both. Ordered by distance to
        the a-b midpoint.
        """
        lines_a = set(a.lines)
        lines_b = set(b.lines)
        center = midpoint(a.point, b.point)

        candidates = []
        for stop in self.stops:
            if stop.stop_id in (a.stop_id, b.stop_id):
                continue
            lines = set(stop.lines)
            if not (lines & lines_a) or not (lines & lines_b):
                continue
            from_a = distance_meters(a.point, stop.point)
            from_b = distance_meters(b.point, stop.point)
            if not (min_distance <= from_a <= max_distance):
                continue
            if not (min_distance <= from_b <= max_distance):
                continue
            candidates.append((distance_meters(center, stop.point), stop))

        candidates.sort(key=lambda c: c[0])
        return [stop for _, stop in candidates]

    def fixed_line_path(
        self, a: Stop, b: Stop, transport_class: TransportMode = TransportMode.TRAIN
    ) -> FixedLinePath | None:
        """Shortest run from a to b along a fixed-route line of the given class.

        Travel against a line's stop order is only allowed on bidirectional lines.
        """
        best: FixedLinePath | None = None
        for line_id in sorted(self.common_lines(a, b)):
            line = self.lines_by_id.get(line_id)
            if line is None or line.transport_class != transport_class or not line.stops:
                continue
            if a.stop_id not in line.stops or b.stop_id not in line.stops:
                continue

            i = line.stops.index(a.stop_id)
            j = line.stops.index(b.stop_id)
            if i == j:
                continue
            if i < j:
                stop_ids = line.stops[i : j + 1]
            elif line.bidirectional:
                stop_ids = line.stops[j : i + 1][::-1]
            else:
                continue

            stops = [self.stops_by_id[sid] for sid in stop_ids if sid in self.stops_by_id]
            if len(stops) != len(stop_ids):
                continue
            if best is None or len(stops) < len(best.stops):
                best = FixedLinePath(line=line, stops=stops)
        return best

    def active_disruptions_for_line(self, line_id: str, at: datetime) -> list[Disruption]:
        return [d for d in self.disruptions if line_id in d.affected_lines and d.is_active(at)]
