"""
Trending and "for you" news scoring.

Trending score = engagement x time decay x locality boost. The optional
personalization layer multiplies in boosts for the reader's preferred cities,
sources and categories.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .datasource import load_json, parse_optional_timestamp
from .profile import Location
from .config import (
    TRENDING_DECAY_RATE,
    TRENDING_ENGAGEMENT_WEIGHTS,
    LOCALITY_BOOST_SAME_CITY,
    LOCALITY_BOOST_SAME_COUNTRY,
    PERSONAL_BOOST_CITY,
    PERSONAL_BOOST_SOURCE,
    PERSONAL_BOOST_CATEGORY,
    TOP_PREFERRED_CITIES,
    NEWS_PREFERENCE_ACTIONS,
)

logger = logging.getLogger(__name__)


def _norm(value: str | None) -> str | None:
    return value.strip().lower() if value else None


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass
class NewsArticle:
    id: str
    published_at: datetime | None = None
    source: str | None = None
    category: str | None = None
    city: str | None = None
    country: str | None = None
    likes: int = 0
    comments: int = 0
    shares: int = 0
    poll_votes: int = 0

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "NewsArticle":
        return cls(
            id=str(payload["id"]),
            published_at=parse_optional_timestamp(payload.get("published_at")),
            source=payload.get("source") or None,
            category=payload.get("category") or None,
            city=payload.get("city") or payload.get("location_name") or None,
            country=payload.get("country") or None,
            likes=_int(payload.get("likes_count", payload.get("likes"))),
            comments=_int(payload.get("comments_count", payload.get("comments"))),
            shares=_int(payload.get("shares_count", payload.get("shares"))),
            poll_votes=_int(payload.get("poll_votes_count", payload.get("poll_votes"))),
        )


@dataclass
class NewsPreferences:
    """A reader's news preferences; preferred_cities is ordered, most preferred first."""
    preferred_cities: list[str] = field(default_factory=list)
    preferred_countries: list[str] = field(default_factory=list)
    preferred_sources: list[str] = field(default_factory=list)
    preferred_categories: list[str] = field(default_factory=list)
    excluded_sources: list[str] = field(default_factory=list)
    excluded_categories: list[str] = field(default_factory=list)

    def top_cities(self, n: int = TOP_PREFERRED_CITIES) -> set[str]:
        return {_norm(c) for c in self.preferred_cities[:n] if c}

    def excludes(self, article: NewsArticle) -> bool:
        return (
            _norm(article.source) in {_norm(s) for s in self.excluded_sources}
            or _norm(article.category) in {_norm(c) for c in self.excluded_categories}
        )

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "NewsPreferences":
        def _list(key: str) -> list[str]:
            return [str(v) for v in load_json(payload.get(key))]

        return cls(
            preferred_cities=_list("preferred_cities"),
            preferred_countries=_list("preferred_countries"),
            preferred_sources=_list("preferred_sources"),
            preferred_categories=_list("preferred_categories"),
            excluded_sources=_list("excluded_sources"),
            excluded_categories=_list("excluded_categories"),
        )


@dataclass
class TrendingArticle:
    article: NewsArticle
    trending_score: float
    personalized_score: float


def engagement_score(article: NewsArticle) -> float:
    w = TRENDING_ENGAGEMENT_WEIGHTS
    return (
        article.likes * w['likes']
        + article.comments * w['comments']
        + article.shares * w['shares']
        + article.poll_votes * w['poll_votes']
    )


def time_decay(article: NewsArticle, reference_time: datetime) -> float:
    """exp(-0.08 * hours since published); unpublished or future articles do not decay."""
    if article.published_at is None:
        return 1.0
    hours = max(0.0, (reference_time - article.published_at).total_seconds() / 3600)
    return math.exp(-TRENDING_DECAY_RATE * hours)


def locality_boost(article: NewsArticle, locale: Location | None) -> float:
    if locale is None:
        return 1.0
    if locale.city and _norm(article.city) == _norm(locale.city):
        return LOCALITY_BOOST_SAME_CITY
    if locale.country and _norm(article.country) == _norm(locale.country):
        return LOCALITY_BOOST_SAME_COUNTRY
    return 1.0


def compute_trending_score(
    article: NewsArticle,
    reference_time: datetime | None = None,
    locale: Location | None = None,
) -> float:
    """Engagement x time decay x locality boost relative to the viewer's locale."""
    if reference_time is None:
        reference_time = datetime.now()
    return engagement_score(article) * time_decay(article, reference_time) * locality_boost(article, locale)


def compute_personalized_score(
    trending_score: float,
    preferences: NewsPreferences | None,
    article: NewsArticle,
) -> float:
    """Apply the city, source and category boosts that match the reader's preferences."""
    if preferences is None:
        return trending_score

    score = trending_score
    if article.city and _norm(article.city) in preferences.top_cities():
        score *= PERSONAL_BOOST_CITY
    if article.source and _norm(article.source) in {_norm(s) for s in preferences.preferred_sources}:
        score *= PERSONAL_BOOST_SOURCE
    if article.category and _norm(article.category) in {_norm(c) for c in preferences.preferred_categories}:
        score *= PERSONAL_BOOST_CATEGORY
    return score


def rank_trending(
    articles: list[NewsArticle],
    limit: int,
    reference_time: datetime | None = None,
    locale: Location | None = None,
    preferences: NewsPreferences | None = None,
) -> list[TrendingArticle]:
    """
    Score and order articles for a trending or "for you" feed.

    Articles from excluded sources or categories are dropped. Ordering uses
    the personalized score (equal to the trending score without preferences),
    ties keep input order.
    """
    if reference_time is None:
        reference_time = datetime.now()
    if limit <= 0:
        return []

    scored = []
    for article in articles:
        if preferences is not None and preferences.excludes(article):
            continue
        trending = compute_trending_score(article, reference_time, locale)
        scored.append(TrendingArticle(
            article=article,
            trending_score=trending,
            personalized_score=compute_personalized_score(trending, preferences, article),
        ))

    logger.debug(f"Scored {len(scored)}/{len(articles)} articles for trending feed")
    scored.sort(key=lambda t: -t.personalized_score)
    return scored[:limit]


def derive_news_preferences(events: list[dict]) -> NewsPreferences:
    """
    Learn news preferences from engagement events.

    Only like/share events count. Each event is a dict with "event_type" and
    the article fields under "article" (or "news_cache"). Cities, sources and
    categories are ordered by how often they were engaged with.
    """
    cities: Counter = Counter()
    sources: Counter = Counter()
    categories: Counter = Counter()

    for event in events:
        if event.get("event_type") not in NEWS_PREFERENCE_ACTIONS:
            continue
        article = event.get("article") or event.get("news_cache") or {}
        city = article.get("city") or article.get("location_name")
        if city:
            cities[city] += 1
        if article.get("source"):
            sources[article["source"]] += 1
        if article.get("category"):
            categories[article["category"]] += 1

    # most_common keeps first-seen order among equal counts
    return NewsPreferences(
        preferred_cities=[c for c, _ in cities.most_common()],
        preferred_sources=[s for s, _ in sources.most_common()],
        preferred_categories=[c for c, _ in categories.most_common()],
    )
