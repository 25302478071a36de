import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from .datasource import load_json, parse_optional_timestamp, require_record
from .similarity import clamp
from .config import (
    PREFERENCE_ACTION_DELTAS,
    DEFAULT_PREFERENCE_WEIGHT,
)

logger = logging.getLogger(__name__)


def _optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class Location:
    """A place: coordinates when known, plus city/state/country labels."""
    latitude: float | None = None
    longitude: float | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @classmethod
    def from_dict(cls, payload: dict | None) -> "Location | None":
        if not payload:
            return None
        payload = require_record(payload, "location")
        return cls(
            latitude=_optional_float(payload.get("latitude", payload.get("lat"))),
            longitude=_optional_float(payload.get("longitude", payload.get("lng", payload.get("lon")))),
            city=payload.get("city") or None,
            state=payload.get("state") or None,
            country=payload.get("country") or None,
        )


@dataclass
class Preference:
    """Weighted interest in a category, learned or stated."""
    category: str
    weight: float
    source: str = "explicit"  # explicit | behavioral
    last_updated: datetime | None = None

    @classmethod
    def from_dict(cls, payload: dict) -> "Preference":
        payload = require_record(payload, "preference")
        weight = _optional_float(payload.get("weight"))
        return cls(
            category=str(payload.get("category", "")),
            weight=clamp(weight if weight is not None else DEFAULT_PREFERENCE_WEIGHT),
            source=payload.get("source") or "explicit",
            last_updated=parse_optional_timestamp(payload.get("last_updated", payload.get("lastUpdated"))),
        )


@dataclass
class BehaviorEvent:
    action: str
    content_type: str
    content_id: str
    timestamp: datetime | None = None

    @classmethod
    def from_dict(cls, payload: dict) -> "BehaviorEvent":
        payload = require_record(payload, "behavior event")
        return cls(
            action=str(payload.get("action", "")),
            content_type=str(payload.get("content_type", payload.get("contentType", ""))),
            content_id=str(payload.get("content_id", payload.get("contentId", ""))),
            timestamp=parse_optional_timestamp(payload.get("timestamp")),
        )


@dataclass
class RequesterProfile:
    """The user recommendations are generated for."""
    user_id: str
    preferences: list[Preference] = field(default_factory=list)
    behavior_history: list[BehaviorEvent] = field(default_factory=list)
    location: Location | None = None

    def preference_for(self, category: str | None) -> Preference | None:
        """Return the preference matching a category, if any."""
        if category is None:
            return None
        for pref in self.preferences:
            if pref.category == category:
                return pref
        return None

    @classmethod
    def from_dict(cls, payload: dict) -> "RequesterProfile":
        return cls(
            user_id=str(payload.get("user_id", payload.get("id", ""))),
            preferences=[Preference.from_dict(p) for p in load_json(payload.get("preferences"))],
            behavior_history=[
                BehaviorEvent.from_dict(b)
                for b in load_json(payload.get("behavior_history", payload.get("behaviorHistory")))
            ],
            location=Location.from_dict(payload.get("location")),
        )


def update_preferences(
    profile: RequesterProfile,
    action: str,
    content_type: str,
    now: datetime | None = None,
) -> list[Preference]:
    """
    Return the profile's preferences nudged by a single behavior.

    The preference for content_type moves by the action's delta and stays in
    [0, 1]. Missing preferences start at the neutral weight. The profile
    itself is left untouched.
    """
    if now is None:
        now = datetime.now()

    updated = [replace(p) for p in profile.preferences]
    preference = next((p for p in updated if p.category == content_type), None)
    if preference is None:
        preference = Preference(
            category=content_type,
            weight=DEFAULT_PREFERENCE_WEIGHT,
            source="behavioral",
            last_updated=now,
        )
        updated.append(preference)

    delta = PREFERENCE_ACTION_DELTAS.get(action, 0.0)
    if not delta:
        logger.debug(f"Action '{action}' does not change preferences")

    preference.weight = clamp(preference.weight + delta)
    preference.last_updated = now
    return updated
