from dataclasses import dataclass, field
import logging
import math
from datetime import datetime, timedelta

from .candidate import Candidate
from .profile import RequesterProfile
from .similarity import haversine_distance_km, cosine_similarity
from .strategies import (
    SimilarUserFinder,
    DiversityScorer,
    NoSimilarUsers,
    ConstantDiversity,
)
from .ranking import (
    ScoredCandidate,
    clamp,
    combine_scores,
    rank_by_score,
    apply_diversity_filter,
)
from .reasons import content_reason
from .config import (
    CONTENT_WEIGHTS,
    NEUTRAL_SCORE,
    CONTENT_MAX_DISTANCE_KM,
    FRESHNESS_DECAY_RATE,
    FRESHNESS_MIN_SCORE,
    PRICE_LOW_MAX,
    PRICE_MEDIUM_MAX,
    EVENT_SOON_DAYS,
    EVENT_MEDIUM_DAYS,
    RECOMMENDATION_TTL_HOURS,
)

logger = logging.getLogger(__name__)


@dataclass
class ScoreBreakdown:
    collaborative: float
    content_based: float
    location: float
    freshness: float
    diversity: float
    final_score: float

    def components(self) -> dict[str, float]:
        return {
            'collaborative': self.collaborative,
            'content_based': self.content_based,
            'location': self.location,
            'freshness': self.freshness,
            'diversity': self.diversity,
        }


@dataclass
class Recommendation:
    id: str
    user_id: str
    content_id: str
    content_type: str
    score: float
    reason: str
    breakdown: ScoreBreakdown
    created_at: datetime
    expires_at: datetime | None = None
    algorithm: str = "hybrid"
    metadata: dict = field(default_factory=dict)


def extract_content_features(candidate: Candidate, reference_time: datetime) -> dict[str, float]:
    """Binary feature vector for a candidate: category, tags, price bucket, time to event."""
    features: dict[str, float] = {f"category_{candidate.category}": 1.0}

    for tag in candidate.tags:
        features[f"tag_{tag}"] = 1.0

    # A price of 0 carries no bucket
    if candidate.price:
        features['price_low'] = 1.0 if candidate.price < PRICE_LOW_MAX else 0.0
        features['price_medium'] = 1.0 if PRICE_LOW_MAX <= candidate.price < PRICE_MEDIUM_MAX else 0.0
        features['price_high'] = 1.0 if candidate.price >= PRICE_MEDIUM_MAX else 0.0

    if candidate.event_date is not None:
        days_until = (candidate.event_date - reference_time).total_seconds() / 86400
        features['time_soon'] = 1.0 if days_until <= EVENT_SOON_DAYS else 0.0
        features['time_medium'] = 1.0 if EVENT_SOON_DAYS < days_until <= EVENT_MEDIUM_DAYS else 0.0
        features['time_far'] = 1.0 if days_until > EVENT_MEDIUM_DAYS else 0.0

    return features


def extract_user_interests(profile: RequesterProfile) -> dict[str, float]:
    """
    Interest vector for a requester.

    Preference weights become category_<c> entries; behavior history becomes
    <action>_<contentType> counts normalized by the most frequent pair.
    """
    interests = {f"category_{p.category}": p.weight for p in profile.preferences}

    behavior_counts: dict[str, int] = {}
    for event in profile.behavior_history:
        key = f"{event.action}_{event.content_type}"
        behavior_counts[key] = behavior_counts.get(key, 0) + 1

    max_count = max([1, *behavior_counts.values()])
    for key, count in behavior_counts.items():
        interests[key] = count / max_count

    return interests


class ContentRecommender:
    """
    Hybrid recommender for posts and events.

    Blends collaborative, content-based, location, freshness and diversity
    scores with fixed weights, then ranks with a category/type diversity pass.
    """

    def __init__(
        self,
        similar_user_finder: SimilarUserFinder | None = None,
        diversity_scorer: DiversityScorer | None = None,
        ttl_hours: float = RECOMMENDATION_TTL_HOURS,
    ):
        self.similar_user_finder = similar_user_finder or NoSimilarUsers()
        self.diversity_scorer = diversity_scorer or ConstantDiversity()
        self.ttl_hours = ttl_hours

    def collaborative_score(
        self,
        profile: RequesterProfile,
        candidate: Candidate,
        similar_users: list[RequesterProfile] | None = None,
    ) -> float:
        if similar_users is None:
            similar_users = self.similar_user_finder.find_similar(profile)
        if not similar_users:
            return NEUTRAL_SCORE

        weights = []
        for user in similar_users:
            preference = user.preference_for(candidate.category)
            weights.append(preference.weight if preference else NEUTRAL_SCORE)

        return clamp(sum(weights) / len(weights))

    def content_based_score(
        self,
        profile: RequesterProfile,
        candidate: Candidate,
        reference_time: datetime,
    ) -> float:
        if not profile.preferences:
            return NEUTRAL_SCORE

        preference = profile.preference_for(candidate.category)
        if preference is not None:
            return clamp(preference.weight)

        features = extract_content_features(candidate, reference_time)
        interests = extract_user_interests(profile)
        return clamp(cosine_similarity(features, interests))

    def location_score(self, profile: RequesterProfile, candidate: Candidate) -> float:
        here, there = profile.location, candidate.location
        if here is None or there is None or not here.has_coordinates or not there.has_coordinates:
            return NEUTRAL_SCORE

        distance = haversine_distance_km(here.latitude, here.longitude, there.latitude, there.longitude)
        return max(0.0, 1 - distance / CONTENT_MAX_DISTANCE_KM)

    def freshness_score(self, candidate: Candidate, reference_time: datetime) -> float:
        if candidate.created_at is None:
            return NEUTRAL_SCORE

        hours = (reference_time - candidate.created_at).total_seconds() / 3600
        score = math.exp(-FRESHNESS_DECAY_RATE * hours)
        return clamp(max(score, FRESHNESS_MIN_SCORE))

    def diversity_score(self, profile: RequesterProfile, candidate: Candidate) -> float:
        return clamp(self.diversity_scorer.score(candidate, profile))

    def score(
        self,
        profile: RequesterProfile,
        candidate: Candidate,
        reference_time: datetime | None = None,
        similar_users: list[RequesterProfile] | None = None,
    ) -> ScoreBreakdown:
        """Compute every component score and the weighted final score for one candidate."""
        if reference_time is None:
            reference_time = datetime.now()

        components = {
            'collaborative': self.collaborative_score(profile, candidate, similar_users),
            'content_based': self.content_based_score(profile, candidate, reference_time),
            'location': self.location_score(profile, candidate),
            'freshness': self.freshness_score(candidate, reference_time),
            'diversity': self.diversity_score(profile, candidate),
        }
        components = {name: clamp(value) for name, value in components.items()}
        return ScoreBreakdown(
            **components,
            final_score=combine_scores(components, CONTENT_WEIGHTS),
        )

    def recommend(
        self,
        profile: RequesterProfile,
        candidates: list[Candidate],
        limit: int,
        reference_time: datetime | None = None,
    ) -> list[Recommendation]:
        """Generate ranked, explained recommendations for a requester."""
        if reference_time is None:
            reference_time = datetime.now()

        # Similar users depend only on the requester
        similar_users = self.similar_user_finder.find_similar(profile)
        scored = [
            ScoredCandidate(
                candidate,
                self.score(profile, candidate, reference_time, similar_users),
                position,
            )
            for position, candidate in enumerate(candidates)
        ]
        ranked = rank_by_score(scored)
        selected = apply_diversity_filter(ranked, limit)
        logger.debug(
            f"Scored {len(scored)} candidates for {profile.user_id}, returning {len(selected)}"
        )

        expires_at = reference_time + timedelta(hours=self.ttl_hours)
        results = []
        for index, item in enumerate(selected):
            candidate = item.candidate
            results.append(Recommendation(
                id=f"rec_{candidate.id}_{index}",
                user_id=profile.user_id,
                content_id=candidate.id,
                content_type=candidate.type,
                score=item.final_score,
                reason=content_reason(profile, candidate, item.breakdown),
                breakdown=item.breakdown,
                created_at=reference_time,
                expires_at=expires_at,
                metadata=item.breakdown.components(),
            ))

        return results


def generate_recommendations(
    profile: RequesterProfile,
    candidates: list[Candidate],
    limit: int,
    similar_user_finder: SimilarUserFinder | None = None,
    diversity_scorer: DiversityScorer | None = None,
    reference_time: datetime | None = None,
) -> list[Recommendation]:
    """
    Convenience wrapper around ContentRecommender.

    Uses the baseline strategies unless others are supplied.
    """
    recommender = ContentRecommender(
        similar_user_finder=similar_user_finder,
        diversity_scorer=diversity_scorer,
    )
    return recommender.recommend(profile, candidates, limit, reference_time=reference_time)
