"""Similarity and distance helpers shared by the scoring pipelines."""

import math

import numpy as np

from .config import EARTH_RADIUS_KM


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Bound a score to [low, high], the unit interval by default."""
    return max(low, min(high, value))


def haversine_distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in kilometers.

    a = sin^2(dlat/2) + cos(lat1)*cos(lat2)*sin^2(dlon/2)
    d = R * 2 * atan2(sqrt(a), sqrt(1 - a))
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def common_interests(a: list[str], b: list[str]) -> list[str]:
    """
    Case-insensitive intersection of two interest lists.

    Keeps the order and casing of the first list and drops duplicates.
    """
    others = {interest.lower() for interest in b}
    seen: set[str] = set()
    result = []
    for interest in a:
        key = interest.lower()
        if key in others and key not in seen:
            seen.add(key)
            result.append(interest)
    return result


def cosine_similarity(vec_a: dict[str, float], vec_b: dict[str, float]) -> float:
    """
    Cosine similarity of two sparse feature vectors.

    Computed over the union of keys with missing entries treated as 0.
    Returns 0.0 when either vector has zero magnitude.
    """
    keys = sorted(set(vec_a) | set(vec_b))
    if not keys:
        return 0.0

    a = np.array([vec_a.get(k, 0.0) for k in keys], dtype=float)
    b = np.array([vec_b.get(k, 0.0) for k in keys], dtype=float)
    norm_product = np.linalg.norm(a) * np.linalg.norm(b)
    if norm_product == 0:
        return 0.0

    sim = float(np.dot(a, b) / norm_product)
    # Rounding can push identical vectors a hair past 1.0
    return clamp(sim)
