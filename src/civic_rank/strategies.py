"""
Pluggable capabilities the scoring pipelines depend on.

The recommenders receive these as constructor arguments. The baseline
implementations reproduce the placeholder heuristics the application shipped
with; the alternatives back the same interfaces with real data.
"""

from __future__ import annotations

import logging
import math
from typing import Protocol

from .candidate import Candidate
from .profile import RequesterProfile
from .similarity import clamp, cosine_similarity
from .config import (
    DEFAULT_DIVERSITY_SCORE,
    MUTUAL_FOLLOWER_OVERLAP_RATIO,
    SIMILAR_USER_MIN_SIMILARITY,
    SIMILAR_USER_TOP_K,
)

logger = logging.getLogger(__name__)


class SimilarUserFinder(Protocol):
    def find_similar(self, profile: RequesterProfile) -> list[RequesterProfile]:
        ...


class MutualConnectionCounter(Protocol):
    def count(self, requester_id: str, candidate_id: str, population: dict[str, Candidate]) -> int:
        ...


class DiversityScorer(Protocol):
    def score(self, candidate: Candidate, profile: RequesterProfile) -> float:
        ...


class NoSimilarUsers:
    """Baseline finder: no similar-user data, so collaborative scoring stays neutral."""

    def find_similar(self, profile: RequesterProfile) -> list[RequesterProfile]:
        return []


class PreferenceSimilarUserFinder:
    """
    Find peers whose category preferences point the same way as the requester's.

    Each profile is reduced to a {category: weight} vector and compared with
    cosine similarity. Peers at or above min_similarity are returned, most
    similar first, capped at top_k.
    """

    def __init__(
        self,
        peers: list[RequesterProfile],
        min_similarity: float = SIMILAR_USER_MIN_SIMILARITY,
        top_k: int = SIMILAR_USER_TOP_K,
    ):
        self.peers = peers
        self.min_similarity = min_similarity
        self.top_k = top_k

    @staticmethod
    def _vector(profile: RequesterProfile) -> dict[str, float]:
        return {p.category: p.weight for p in profile.preferences}

    def find_similar(self, profile: RequesterProfile) -> list[RequesterProfile]:
        target = self._vector(profile)
        if not target:
            return []

        scored = []
        for peer in self.peers:
            if peer.user_id == profile.user_id:
                continue
            sim = cosine_similarity(target, self._vector(peer))
            if sim >= self.min_similarity:
                scored.append((peer, sim))

        scored.sort(key=lambda x: -x[1])
        logger.debug(f"Found {len(scored)} similar users for {profile.user_id}")
        return [peer for peer, _ in scored[:self.top_k]]


class FollowerOverlapEstimator:
    """
    Baseline counter: estimate mutual followers as 10% of the smaller follower count.

    Not a real graph query. Returns 0 when either user is missing from the population.
    """

    def __init__(self, overlap_ratio: float = MUTUAL_FOLLOWER_OVERLAP_RATIO):
        self.overlap_ratio = overlap_ratio

    def count(self, requester_id: str, candidate_id: str, population: dict[str, Candidate]) -> int:
        requester = population.get(requester_id)
        candidate = population.get(candidate_id)
        if requester is None or candidate is None:
            return 0
        smaller = min(requester.followers_count, candidate.followers_count)
        return math.floor(smaller * self.overlap_ratio)


class FollowGraphCounter:
    """Count mutual followers from an explicit follower graph (user id -> follower ids)."""

    def __init__(self, followers: dict[str, set[str] | list[str]]):
        self.followers = {user_id: set(ids) for user_id, ids in followers.items()}

    def count(self, requester_id: str, candidate_id: str, population: dict[str, Candidate]) -> int:
        return len(self.followers.get(requester_id, set()) & self.followers.get(candidate_id, set()))


class ConstantDiversity:
    """Baseline diversity: every candidate gets the same fixed score."""

    def __init__(self, value: float = DEFAULT_DIVERSITY_SCORE):
        self.value = value

    def score(self, candidate: Candidate, profile: RequesterProfile) -> float:
        return self.value


class CategoryNoveltyDiversity:
    """
    Reward categories the requester has not already expressed interest in.

    Unknown categories score 1.0; a known category scores 1 - weight / 2, so
    the strongest existing interest still keeps half the diversity credit.
    """

    def score(self, candidate: Candidate, profile: RequesterProfile) -> float:
        preference = profile.preference_for(candidate.category)
        if preference is None:
            return 1.0
        return clamp(1.0 - preference.weight / 2)
