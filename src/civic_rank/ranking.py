"""
Shared ranking pipeline pieces: score combination, ordering and diversity selection.

Both the content and follow recommenders score every candidate, sort the
results stably by final score and then run the same greedy diversity pass.
"""

from __future__ import annotations

import logging
import math
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Any

from .candidate import Candidate
from .similarity import clamp
from .config import DIVERSITY_MAX_PER_CATEGORY, DIVERSITY_MAX_PER_TYPE


logger = logging.getLogger(__name__)


def combine_scores(components: dict[str, float], weights: dict[str, float]) -> float:
    """
    Weighted linear combination of component scores.

    Each component is clamped to [0, 1] first; components without a weight
    are ignored.
    """
    return sum(clamp(components[name]) * weight for name, weight in weights.items())


@dataclass
class ScoredCandidate:
    """A candidate with its score breakdown and original input position."""
    candidate: Candidate
    breakdown: Any
    position: int

    @property
    def final_score(self) -> float:
        return self.breakdown.final_score


def rank_by_score(scored: list[ScoredCandidate]) -> list[ScoredCandidate]:
    """Sort descending by final score; ties keep input order."""
    return sorted(scored, key=lambda s: (-s.final_score, s.position))


def apply_diversity_filter(
    ranked: list[ScoredCandidate],
    limit: int,
    max_per_category: int = DIVERSITY_MAX_PER_CATEGORY,
    max_per_type: int = DIVERSITY_MAX_PER_TYPE,
) -> list[ScoredCandidate]:
    """
    Select up to limit items while spreading categories and types.

    Walks the ranked list and accepts an item only while its category has been
    accepted fewer than max_per_category times and its type fewer than
    max_per_type times. Remaining slots are backfilled with the best skipped
    items. The selection is returned in ranked order.
    """
    if limit <= 0:
        return []

    accepted: set[int] = set()
    category_counts: dict[str | None, int] = defaultdict(int)
    type_counts: dict[str, int] = defaultdict(int)

    for pos, item in enumerate(ranked):
        if len(accepted) >= limit:
            break
        category = item.candidate.category
        item_type = item.candidate.type
        if category_counts[category] < max_per_category and type_counts[item_type] < max_per_type:
            accepted.add(pos)
            category_counts[category] += 1
            type_counts[item_type] += 1

    diverse_count = len(accepted)
    if diverse_count < limit:
        for pos in range(len(ranked)):
            if len(accepted) >= limit:
                break
            accepted.add(pos)
        logger.debug(
            f"Diversity pass kept {diverse_count}/{limit} items, "
            f"backfilled to {len(accepted)} from {len(ranked)} candidates"
        )

    return [ranked[pos] for pos in sorted(accepted)]


def recommendation_diversity(candidates: list[Candidate]) -> dict:
    """
    Compute diversity metrics for a ranked result set.

    Entropies are normalized by log2(n) so 1.0 means every item differs.
    """
    if not candidates:
        return {"diversity_score": 0.0}

    def entropy(items: list) -> float:
        """Shannon entropy as diversity measure."""
        if not items:
            return 0.0
        counts = Counter(items)
        total = len(items)
        probs = [c / total for c in counts.values()]
        return -sum(p * math.log2(p) for p in probs if p > 0)

    categories = [c.category for c in candidates if c.category]
    types = [c.type for c in candidates]

    n = len(candidates)
    max_entropy = math.log2(n) if n > 1 else 1.0

    category_diversity = entropy(categories) / max_entropy
    type_diversity = entropy(types) / max_entropy
    overall = category_diversity * 0.7 + type_diversity * 0.3

    return {
        "diversity_score": round(overall, 3),
        "category_diversity": round(category_diversity, 3),
        "type_diversity": round(type_diversity, 3),
        "unique_categories": len(set(categories)),
        "unique_types": len(set(types)),
    }
