"""Itinerary scoring, ordering and de-duplication."""

from typing import Literal

from krk_mcp.data.config import ScoringWeights
from krk_mcp.models.responses import Itinerary, RoutingPreferences

RankingMode = Literal["duration", "score"]


def score_itinerary(
    itinerary: Itinerary,
    preferences: RoutingPreferences,
    weights: ScoringWeights | None = None,
) -> float:
    """Preference-weighted cost of an itinerary. Lower is better."""
    w = weights or ScoringWeights()

    duration_weight = w.duration_weight_minimize_time if preferences.minimize_time else w.duration_weight
    walking_weight = (
        w.walking_weight_minimize_walking if preferences.minimize_walking else w.walking_weight
    )
    transfer_penalty = (
        w.transfer_penalty_minimize_transfers
        if preferences.minimize_transfers
        else w.transfer_penalty
    )

    score = itinerary.total_duration_minutes * duration_weight
    score += itinerary.walking_distance_meters * walking_weight
    score += itinerary.transfer_count * transfer_penalty

    if itinerary.is_walking_only:
        if itinerary.total_distance_meters > w.walking_only_penalty_threshold_meters:
            score += itinerary.total_distance_meters * w.walking_only_penalty_per_meter
    else:
        score += w.transit_bonus

    return score


def rank(
    candidates: list[Itinerary],
    preferences: RoutingPreferences,
    mode: RankingMode = "duration",
    weights: ScoringWeights | None = None,
) -> list[Itinerary]:
    """Order candidates best first, attaching each one's score.

    "duration" sorts by total duration; "score" by score_itinerary. Both
    sorts are stable.
    """
    scored = [
        c.model_copy(update={"score": score_itinerary(c, preferences, weights)})
        for c in candidates
    ]
    if mode == "score":
        return sorted(scored, key=lambda c: c.score)
    return sorted(scored, key=lambda c: c.total_duration_minutes)


def _transit_signature(itinerary: Itinerary) -> tuple:
    return tuple(
        (s.start_point.lat, s.start_point.lng, s.end_point.lat, s.end_point.lng)
        for s in itinerary.transit_segments
    )


def dedupe(itineraries: list[Itinerary], window_minutes: int = 5) -> list[Itinerary]:
    """Drop itineraries that repeat an earlier one.

    A duplicate rides the same sequence of transit legs (by start and end
    coordinates) and differs in total duration by less than window_minutes.
    The first occurrence is kept and order is preserved.
    """
    kept: list[Itinerary] = []
    for itinerary in itineraries:
        signature = _transit_signature(itinerary)
        duplicate = any(
            _transit_signature(k) == signature
            and abs(k.total_duration_minutes - itinerary.total_duration_minutes) < window_minutes
            for k in kept
        )
        if not duplicate:
            kept.append(itinerary)
    return kept
