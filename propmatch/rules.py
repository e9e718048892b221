"""Deterministic matching rules: exact description match and confidence buckets."""

from .models import MatchStatus

MATCH_THRESHOLD = 80
SIMILAR_THRESHOLD = 45


def classify_confidence(confidence: float | None) -> MatchStatus:
    """Map a 0-100 confidence to a status. Boundaries belong to the higher bucket."""
    if confidence is None:
        return MatchStatus.MISMATCH
    if confidence >= MATCH_THRESHOLD:
        return MatchStatus.MATCH
    if confidence >= SIMILAR_THRESHOLD:
        return MatchStatus.SIMILAR_MATCH
    return MatchStatus.MISMATCH


def normalize_description(text: str) -> str:
    return " ".join(text.strip().lower().split())


def is_exact_match(desc_a: str, desc_b: str) -> bool:
    return normalize_description(desc_a) == normalize_description(desc_b)
