from rapidfuzz import fuzz

from krk_mcp.matching.models import (
    MatchConfidence,
    MatchType,
    StopMatch,
    StopResolutionResponse,
    confidence_from_score,
)
from krk_mcp.matching.normalizers import get_meaningful_tokens, normalize_text
from krk_mcp.models.network import Stop
from krk_mcp.services.network_index import NetworkIndex


def _compute_fuzzy_score(
    query_normalized: str,
    target_normalized: str,
    query_tokens: set[str] | None = None,
    target_tokens: set[str] | None = None,
) -> float:
    """Compute fuzzy match score using combination of algorithms.

    Uses token_set_ratio (handles word order) combined with partial_ratio
    (handles substrings), blended with token coverage to penalize
    overly-specific matches.

    Returns:
        Score in 0-100 range
    """
    token_score = fuzz.token_set_ratio(query_normalized, target_normalized)
    partial_score = fuzz.partial_ratio(query_normalized, target_normalized)
    base_score = token_score * 0.7 + partial_score * 0.3

    if query_tokens is None:
        query_tokens = get_meaningful_tokens(query_normalized)
    if target_tokens is None:
        target_tokens = get_meaningful_tokens(target_normalized)

    if not query_tokens or not target_tokens:
        return min(100.0, base_score)

    overlap = query_tokens & target_tokens
    query_coverage = len(overlap) / len(query_tokens)
    target_coverage = len(overlap) / len(target_tokens)
    coverage_score = query_coverage * 0.7 + target_coverage * 0.3

    # Single-token queries ("bagatela", "kazimierz") lean on substring matching
    if len(query_tokens) == 1 and partial_score >= 75:
        score = partial_score * 0.85 + token_score * 0.15
    else:
        score = base_score * 0.70 + (coverage_score * 100) * 0.30

    if query_coverage == 1.0 and len(query_tokens) >= 2:
        score += min(10.0, len(query_tokens) * 4.0)

    return min(100.0, score)


def _stop_to_match(stop: Stop, score: float, match_type: MatchType) -> StopMatch:
    return StopMatch(
        stop_id=stop.stop_id,
        stop_name=stop.name,
        stop_class=stop.stop_class,
        lat=stop.lat,
        lng=stop.lng,
        lines=stop.lines,
        score=score,
        confidence=confidence_from_score(score, match_type),
        match_type=match_type,
    )


def resolve_stop(
    query: str,
    index: NetworkIndex,
    limit: int = 5,
    min_score: float = 60.0,
) -> StopResolutionResponse:
    """Resolve a query to matching stops.

    Resolution strategy (priority order):
    1. Exact stop_id match -> score=100, confidence=EXACT
    2. Fuzzy name matching -> score from rapidfuzz

    Args:
        query: Stop id or (partial, accent-insensitive) name
        index: Network to search
        limit: Maximum number of results to return
        min_score: Minimum score threshold (0-100)

    Returns:
        StopResolutionResponse with matches and resolution status
    """
    query = query.strip()
    if not query:
        return StopResolutionResponse(query=query, matches=[], best_match=None, resolved=False)

    matches: list[StopMatch] = []

    exact = index.get_stop(query)
    if exact is not None:
        matches.append(_stop_to_match(exact, 100.0, MatchType.ID_EXACT))

    query_normalized = normalize_text(query)
    query_tokens = get_meaningful_tokens(query)

    for stop in index.stops:
        if exact is not None and stop.stop_id == exact.stop_id:
            continue

        score = _compute_fuzzy_score(
            query_normalized,
            normalize_text(stop.name),
            query_tokens=query_tokens,
            target_tokens=get_meaningful_tokens(stop.name),
        )
        if score >= min_score:
            matches.append(_stop_to_match(stop, score, MatchType.FUZZY_NAME))

    matches.sort(key=lambda m: (-m.score, m.stop_id))
    matches = matches[:limit]

    best_match = matches[0] if matches else None
    resolved = (
        best_match is not None
        and best_match.confidence in (MatchConfidence.EXACT, MatchConfidence.HIGH)
    )

    return StopResolutionResponse(
        query=query,
        matches=matches,
        best_match=best_match,
        resolved=resolved,
    )
