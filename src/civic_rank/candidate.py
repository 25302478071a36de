"""Content items and user records ranked by the recommendation pipelines."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .datasource import load_json, parse_optional_timestamp
from .profile import Location


def _count(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


@dataclass
class Candidate:
    """
    A rankable item: a post, an event or a user profile.

    Only id and type are required. Everything else is optional and the
    calculators fall back to neutral scores when it is missing.
    """

    id: str
    type: str = "post"
    category: str | None = None
    location: Location | None = None
    price: float | None = None
    created_at: datetime | None = None
    event_date: datetime | None = None
    tags: list[str] = field(default_factory=list)

    # User candidates
    interests: list[str] = field(default_factory=list)
    display_name: str | None = None
    followers_count: int = 0
    posts_count: int = 0
    events_created_count: int = 0
    last_activity: datetime | None = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Candidate":
        price = payload.get("price")
        try:
            price = float(price) if price not in (None, "") else None
        except (TypeError, ValueError):
            price = None

        return cls(
            id=str(payload["id"]),
            type=str(payload.get("type") or "post").lower(),
            category=payload.get("category") or None,
            location=Location.from_dict(payload.get("location")),
            price=price,
            created_at=parse_optional_timestamp(payload.get("created_at")),
            event_date=parse_optional_timestamp(payload.get("date", payload.get("event_date"))),
            tags=[str(t) for t in load_json(payload.get("tags"))],
            interests=[str(i) for i in load_json(payload.get("interests"))],
            display_name=payload.get("display_name") or payload.get("username") or None,
            followers_count=_count(payload.get("followers_count")),
            posts_count=_count(payload.get("posts_count")),
            events_created_count=_count(payload.get("events_created_count")),
            last_activity=parse_optional_timestamp(payload.get("last_activity")),
        )
