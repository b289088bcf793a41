"""Fuzzy matching for stop names."""

from krk_mcp.matching.models import (
    MatchConfidence,
    MatchType,
    StopMatch,
    StopResolutionResponse,
)
from krk_mcp.matching.normalizers import get_meaningful_tokens, normalize_text, remove_accents
from krk_mcp.matching.stop_matcher import resolve_stop

__all__ = [
    # Matchers
    "resolve_stop",
    # Models
    "MatchConfidence",
    "MatchType",
    "StopMatch",
    "StopResolutionResponse",
    # Normalizers
    "normalize_text",
    "remove_accents",
    "get_meaningful_tokens",
]
