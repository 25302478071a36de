"""
Follow-suggestion engine.

Ranks other users for a requester by shared interests, estimated mutual
connections, activity and proximity, and provides the small follow-network
helpers the social features use (popular users, interest search, stats).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .candidate import Candidate
from .datasource import parse_optional_timestamp
from .profile import Location
from .similarity import haversine_distance_km, common_interests
from .strategies import MutualConnectionCounter, FollowerOverlapEstimator
from .ranking import (
    ScoredCandidate,
    clamp,
    combine_scores,
    rank_by_score,
    apply_diversity_filter,
)
from .reasons import follow_reason
from .config import (
    FOLLOW_WEIGHTS,
    NEUTRAL_SCORE,
    MAX_MUTUAL_CONNECTIONS,
    ACTIVITY_BASE_SCORE,
    ACTIVITY_POSTS_CAP,
    ACTIVITY_EVENTS_CAP,
    ACTIVITY_POSTS_WEIGHT,
    ACTIVITY_EVENTS_WEIGHT,
    ACTIVITY_RECENCY_BONUSES,
    FOLLOW_MAX_DISTANCE_KM,
    LOCATION_SAME_CITY_SCORE,
    LOCATION_SAME_STATE_SCORE,
    LOCATION_DEFAULT_SCORE,
    FOLLOW_GROWTH_WINDOW_DAYS,
)

logger = logging.getLogger(__name__)


@dataclass
class FollowScoreBreakdown:
    similarity: float
    mutual_connections: float
    activity: float
    location: float
    interest_overlap: float
    final_score: float


@dataclass
class FollowSuggestion:
    """A user suggested to the requester, with the evidence behind it."""

    id: str
    user_id: str
    display_name: str
    score: float
    common_interests: list[str]
    mutual_followers: int
    reason: str
    breakdown: FollowScoreBreakdown
    created_at: datetime
    city: str | None = None
    state: str | None = None
    algorithm: str = "follow"


@dataclass
class FollowStats:
    user_id: str
    total_followers: int
    total_following: int
    mutual_followers: int
    engagement_rate: float
    growth_rate: float
    last_updated: datetime = field(default_factory=datetime.now)


def similarity_score(requester_interests: list[str], candidate_interests: list[str]) -> float:
    """Shared interests over the larger interest list."""
    if not requester_interests or not candidate_interests:
        return NEUTRAL_SCORE
    shared = common_interests(requester_interests, candidate_interests)
    return clamp(len(shared) / max(len(requester_interests), len(candidate_interests)))


def interest_overlap_score(requester_interests: list[str], candidate_interests: list[str]) -> float:
    """Shared interests over the smaller interest list."""
    if not requester_interests or not candidate_interests:
        return NEUTRAL_SCORE
    shared = common_interests(requester_interests, candidate_interests)
    return clamp(len(shared) / min(len(requester_interests), len(candidate_interests)))


def activity_score(user: Candidate, reference_time: datetime) -> float:
    """
    Engagement level of a user.

    Starts at 0.5, adds bounded credit for posts and created events, plus a
    recency bonus tiered by days since the last activity.
    """
    score = ACTIVITY_BASE_SCORE

    if user.posts_count:
        score += min(user.posts_count / ACTIVITY_POSTS_CAP, 1.0) * ACTIVITY_POSTS_WEIGHT

    if user.events_created_count:
        score += min(user.events_created_count / ACTIVITY_EVENTS_CAP, 1.0) * ACTIVITY_EVENTS_WEIGHT

    if user.last_activity is not None:
        days_since = (reference_time - user.last_activity).total_seconds() / 86400
        for max_days, bonus in ACTIVITY_RECENCY_BONUSES:
            if days_since <= max_days:
                score += bonus
                break

    return clamp(score)


def follow_location_score(requester_location: Location | None, candidate_location: Location | None) -> float:
    """City, then state, then distance-based proximity."""
    if requester_location is None or candidate_location is None:
        return NEUTRAL_SCORE

    if requester_location.city and requester_location.city == candidate_location.city:
        return LOCATION_SAME_CITY_SCORE

    if requester_location.state and requester_location.state == candidate_location.state:
        return LOCATION_SAME_STATE_SCORE

    if requester_location.has_coordinates and candidate_location.has_coordinates:
        distance = haversine_distance_km(
            requester_location.latitude,
            requester_location.longitude,
            candidate_location.latitude,
            candidate_location.longitude,
        )
        return max(0.0, 1 - distance / FOLLOW_MAX_DISTANCE_KM)

    return LOCATION_DEFAULT_SCORE


class FollowRecommender:
    """Suggest users to follow, excluding the requester and anyone already followed."""

    def __init__(self, mutual_counter: MutualConnectionCounter | None = None):
        self.mutual_counter = mutual_counter or FollowerOverlapEstimator()

    def mutual_connections_score(self, mutual_count: int) -> float:
        return clamp(mutual_count / MAX_MUTUAL_CONNECTIONS)

    def score(
        self,
        requester_interests: list[str],
        requester_location: Location | None,
        candidate: Candidate,
        mutual_count: int,
        reference_time: datetime,
    ) -> FollowScoreBreakdown:
        components = {
            'similarity': similarity_score(requester_interests, candidate.interests),
            'mutual_connections': self.mutual_connections_score(mutual_count),
            'activity': activity_score(candidate, reference_time),
            'location': follow_location_score(requester_location, candidate.location),
            'interest_overlap': interest_overlap_score(requester_interests, candidate.interests),
        }
        components = {name: clamp(value) for name, value in components.items()}
        return FollowScoreBreakdown(
            **components,
            final_score=combine_scores(components, FOLLOW_WEIGHTS),
        )

    def suggest(
        self,
        requester_id: str,
        requester_interests: list[str],
        requester_location: Location | None,
        excluded_ids: list[str] | set[str],
        candidate_users: list[Candidate],
        limit: int,
        reference_time: datetime | None = None,
    ) -> list[FollowSuggestion]:
        if reference_time is None:
            reference_time = datetime.now()

        excluded = set(excluded_ids)
        # The requester's own record stays in the population for mutual estimates
        population = {user.id: user for user in candidate_users}

        scored = []
        mutual_counts: dict[str, int] = {}
        for position, user in enumerate(candidate_users):
            if user.id == requester_id or user.id in excluded:
                continue
            mutual_counts[user.id] = self.mutual_counter.count(requester_id, user.id, population)
            breakdown = self.score(
                requester_interests,
                requester_location,
                user,
                mutual_counts[user.id],
                reference_time,
            )
            scored.append(ScoredCandidate(user, breakdown, position))

        ranked = rank_by_score(scored)
        selected = apply_diversity_filter(ranked, limit)
        logger.debug(
            f"Scored {len(scored)} of {len(candidate_users)} users for {requester_id} "
            f"({len(excluded)} excluded), returning {len(selected)}"
        )

        suggestions = []
        for index, item in enumerate(selected):
            user = item.candidate
            suggestions.append(FollowSuggestion(
                id=f"suggestion_{user.id}_{index}",
                user_id=user.id,
                display_name=user.display_name or "Anonymous",
                score=item.final_score,
                common_interests=common_interests(requester_interests, user.interests),
                mutual_followers=mutual_counts[user.id],
                reason=follow_reason(item.breakdown),
                breakdown=item.breakdown,
                created_at=reference_time,
                city=user.location.city if user.location else None,
                state=user.location.state if user.location else None,
            ))

        return suggestions


def generate_follow_suggestions(
    requester_id: str,
    requester_interests: list[str],
    requester_location: Location | None,
    excluded_ids: list[str] | set[str],
    candidate_users: list[Candidate],
    limit: int,
    mutual_counter: MutualConnectionCounter | None = None,
    reference_time: datetime | None = None,
) -> list[FollowSuggestion]:
    """Convenience wrapper around FollowRecommender with the baseline mutual estimate."""
    recommender = FollowRecommender(mutual_counter=mutual_counter)
    return recommender.suggest(
        requester_id,
        requester_interests,
        requester_location,
        excluded_ids,
        candidate_users,
        limit,
        reference_time=reference_time,
    )


def popular_users(users: list[Candidate], limit: int = 10) -> list[Candidate]:
    """Users with followers, most followed first."""
    with_followers = [u for u in users if u.followers_count > 0]
    return sorted(with_followers, key=lambda u: -u.followers_count)[:limit]


def users_by_interest(users: list[Candidate], interest: str, limit: int = 10) -> list[Candidate]:
    """Users with an interest containing the query (case-insensitive), most followed first."""
    needle = interest.lower()
    matches = [u for u in users if any(needle in i.lower() for i in u.interests)]
    return sorted(matches, key=lambda u: -u.followers_count)[:limit]


def compute_follow_stats(
    user_id: str,
    followers: list[dict],
    following: list[dict],
    now: datetime | None = None,
) -> FollowStats:
    """
    Summarize a user's follow network.

    followers/following are relationship records with an "id" plus optional
    "engagement_count" and "followed_at" (falls back to "created_at").
    """
    if now is None:
        now = datetime.now()

    following_ids = {f.get("id") for f in following}
    mutual = sum(1 for f in followers if f.get("id") in following_ids)

    total_followers = len(followers)
    total_engagement = sum(int(f.get("engagement_count") or 0) for f in followers)
    engagement_rate = total_engagement / total_followers if total_followers else 0.0

    window_start = now - timedelta(days=FOLLOW_GROWTH_WINDOW_DAYS)
    recent = 0
    for follower in followers:
        followed_at = parse_optional_timestamp(follower.get("followed_at") or follower.get("created_at"))
        if followed_at is not None and followed_at > window_start:
            recent += 1
    growth_rate = recent / total_followers if total_followers else 0.0

    return FollowStats(
        user_id=user_id,
        total_followers=total_followers,
        total_following=len(following),
        mutual_followers=mutual,
        engagement_rate=engagement_rate,
        growth_rate=growth_rate,
        last_updated=now,
    )
