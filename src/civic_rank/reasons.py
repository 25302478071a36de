"""Rule-based explanations attached to recommendations and follow suggestions."""

import math

from .candidate import Candidate
from .profile import RequesterProfile
from .config import (
    MAX_MUTUAL_CONNECTIONS,
    REASON_CONTENT_MATCH,
    REASON_CONTENT_LOCATION,
    REASON_FRESHNESS,
    REASON_COLLABORATIVE,
    REASON_SIMILARITY,
    REASON_MUTUAL,
    REASON_VERY_ACTIVE,
    REASON_ACTIVE,
    REASON_SAME_CITY,
    REASON_NEARBY,
    REASON_SHARED_INTERESTS,
    FALLBACK_REASON,
)


def _join(reasons: list[str]) -> str:
    return ", ".join(reasons) if reasons else FALLBACK_REASON


def content_reason(profile: RequesterProfile, candidate: Candidate, scores) -> str:
    """Explain a content recommendation from its ScoreBreakdown."""
    reasons = []

    if scores.content_based > REASON_CONTENT_MATCH and profile.preference_for(candidate.category):
        reasons.append(f"Based on your interest in {candidate.category}")

    if scores.location > REASON_CONTENT_LOCATION:
        reasons.append("Happening near you")

    if scores.freshness > REASON_FRESHNESS:
        reasons.append("Recently added")

    if scores.collaborative > REASON_COLLABORATIVE:
        reasons.append("Popular with similar users")

    return _join(reasons)


def follow_reason(scores) -> str:
    """Explain a follow suggestion from its FollowScoreBreakdown."""
    reasons = []

    if scores.similarity > REASON_SIMILARITY:
        reasons.append("Similar interests")

    if scores.mutual_connections > REASON_MUTUAL:
        mutual_count = math.floor(scores.mutual_connections * MAX_MUTUAL_CONNECTIONS)
        reasons.append(f"{mutual_count} mutual connections")

    if scores.activity > REASON_VERY_ACTIVE:
        reasons.append("Very active")
    elif scores.activity > REASON_ACTIVE:
        reasons.append("Active user")

    if scores.location > REASON_SAME_CITY:
        reasons.append("Same city")
    elif scores.location > REASON_NEARBY:
        reasons.append("Nearby")

    if scores.interest_overlap > REASON_SHARED_INTERESTS:
        reasons.append("Shared interests")

    return _join(reasons)
