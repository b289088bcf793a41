from enum import Enum

from pydantic import BaseModel, Field

from krk_mcp.models.network import StopClass


class MatchConfidence(str, Enum):
    """Confidence level for a match.

    - EXACT: score=100 AND exact stop id match
    - HIGH: score >= 85 (fuzzy matches only)
    - MEDIUM: score >= 70
    - LOW: score >= 60
    """

    EXACT = "exact"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MatchType(str, Enum):
    """Type of match found."""

    ID_EXACT = "id_exact"
    FUZZY_NAME = "fuzzy_name"


def confidence_from_score(score: float, match_type: MatchType) -> MatchConfidence:
    """Determine confidence level from score and match type."""
    if match_type == MatchType.ID_EXACT:
        return MatchConfidence.EXACT

    if score >= 85:
        return MatchConfidence.HIGH
    if score >= 70:
        return MatchConfidence.MEDIUM
    return MatchConfidence.LOW


class StopMatch(BaseModel):
    """A matched stop with confidence information."""

    stop_id: str
    stop_name: str
    stop_class: StopClass
    lat: float
    lng: float
    lines: list[str] = Field(default_factory=list)
    score: float = Field(description="Match score (0-100)")
    confidence: MatchConfidence = Field(description="Confidence level of the match")
    match_type: MatchType = Field(description="Type of match")


class StopResolutionResponse(BaseModel):
    """Response from resolve_stop tool."""

    query: str = Field(description="Original query string")
    matches: list[StopMatch] = Field(description="Matched stops, ordered by score")
    best_match: StopMatch | None = Field(
        default=None, description="Best match (always set to top match when matches exist)"
    )
    resolved: bool = Field(
        description="True if best_match has EXACT or HIGH confidence (safe to auto-use)"
    )
