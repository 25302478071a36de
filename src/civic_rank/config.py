"""
Configuration constants for the civic_rank scoring core.

This module centralizes all magic numbers used by the ranking pipelines.
Weight tables and decay rates are design-time constants; only operational
values (default limits, expiry, data directory) can be overridden via
environment variables.
"""
import math
import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def _get_env(key: str, default, cast, min_val):
    """
    Read a numeric setting from the environment.

    Values below min_val are raised to it; unparseable or non-finite values
    (nan, inf) fall back to the default. Both cases are logged.
    """
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        val = cast(raw)
    except ValueError:
        val = None
    if val is None or not math.isfinite(val):
        logger.warning(f"Invalid {key}='{raw}', using default {default}")
        return default
    if val < min_val:
        logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
        return min_val
    return val


def _get_float_env(key: str, default: float, min_val: float = 0) -> float:
    return _get_env(key, default, float, min_val)


def _get_int_env(key: str, default: int, min_val: int = 1) -> int:
    return _get_env(key, default, int, min_val)


# Operational settings
DATA_DIR = Path(os.environ.get("CIVIC_RANK_DATA_DIR", "data"))
DEFAULT_LIMIT = _get_int_env("CIVIC_RANK_DEFAULT_LIMIT", 20, min_val=1)
RECOMMENDATION_TTL_HOURS = _get_float_env("CIVIC_RANK_RECOMMENDATION_TTL_HOURS", 24.0, min_val=1.0)

# Score used whenever a calculator lacks the data it needs
NEUTRAL_SCORE = 0.5

# Geography
EARTH_RADIUS_KM = 6371.0
CONTENT_MAX_DISTANCE_KM = 50.0
FOLLOW_MAX_DISTANCE_KM = 100.0

# Content recommendation weights (must sum to 1.0)
CONTENT_WEIGHTS = {
    'collaborative': 0.30,
    'content_based': 0.25,
    'location': 0.20,
    'freshness': 0.15,
    'diversity': 0.10,
}

# Freshness decay: exp(-rate * hours), floored
FRESHNESS_DECAY_RATE = 0.05
FRESHNESS_MIN_SCORE = 0.1

# Baseline diversity placeholder
DEFAULT_DIVERSITY_SCORE = 0.8

# Price buckets for content features
PRICE_LOW_MAX = 50
PRICE_MEDIUM_MAX = 200

# Days-until-event buckets for content features
EVENT_SOON_DAYS = 7
EVENT_MEDIUM_DAYS = 30

# Follow suggestion weights (must sum to 1.0)
FOLLOW_WEIGHTS = {
    'similarity': 0.25,
    'mutual_connections': 0.30,
    'activity': 0.20,
    'location': 0.15,
    'interest_overlap': 0.10,
}

# Mutual connection normalization and placeholder estimate
MAX_MUTUAL_CONNECTIONS = 50
MUTUAL_FOLLOWER_OVERLAP_RATIO = 0.10

# Activity score composition
ACTIVITY_BASE_SCORE = 0.5
ACTIVITY_POSTS_CAP = 100
ACTIVITY_EVENTS_CAP = 20
ACTIVITY_POSTS_WEIGHT = 0.2
ACTIVITY_EVENTS_WEIGHT = 0.2
# (max days since last activity, bonus), checked in order
ACTIVITY_RECENCY_BONUSES = [
    (7, 0.3),    # very active
    (30, 0.2),   # active
    (90, 0.1),   # somewhat active
]

# Follow location tiers
LOCATION_SAME_CITY_SCORE = 1.0
LOCATION_SAME_STATE_SCORE = 0.7
LOCATION_DEFAULT_SCORE = 0.3

# Trending news
TRENDING_DECAY_RATE = 0.08
TRENDING_ENGAGEMENT_WEIGHTS = {
    'likes': 1.0,
    'comments': 2.0,
    'shares': 1.5,
    'poll_votes': 1.0,
}
LOCALITY_BOOST_SAME_CITY = 1.2
LOCALITY_BOOST_SAME_COUNTRY = 1.1
PERSONAL_BOOST_CITY = 1.3
PERSONAL_BOOST_SOURCE = 1.2
PERSONAL_BOOST_CATEGORY = 1.15
TOP_PREFERRED_CITIES = 3
NEWS_PREFERENCE_ACTIONS = ('like', 'share')

# Diversity filter caps (per accepted result set)
DIVERSITY_MAX_PER_CATEGORY = 3
DIVERSITY_MAX_PER_TYPE = 2

# Reason thresholds
REASON_CONTENT_MATCH = 0.7
REASON_CONTENT_LOCATION = 0.7
REASON_FRESHNESS = 0.8
REASON_COLLABORATIVE = 0.7
REASON_SIMILARITY = 0.7
REASON_MUTUAL = 0.5
REASON_VERY_ACTIVE = 0.7
REASON_ACTIVE = 0.5
REASON_SAME_CITY = 0.8
REASON_NEARBY = 0.6
REASON_SHARED_INTERESTS = 0.6
FALLBACK_REASON = "Recommended for you"

# Preference learning: weight change per behavior action
PREFERENCE_ACTION_DELTAS = {
    'like': 0.1,
    'comment': 0.15,
    'share': 0.2,
    'bookmark': 0.1,
    'follow': 0.25,
    'view': 0.02,
    'search': 0.05,
}
DEFAULT_PREFERENCE_WEIGHT = 0.5

# Similar-user discovery (preference-vector finder)
SIMILAR_USER_MIN_SIMILARITY = 0.5
SIMILAR_USER_TOP_K = 10

# Follow stats
FOLLOW_GROWTH_WINDOW_DAYS = 30
