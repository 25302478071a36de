"""
JSON-file data source for candidates, requester profiles and news articles.

Stands in for the application's hosted store: each loader reads a JSON
document (a list of records, or a single record for profiles) and turns it
into the in-memory types the scoring pipelines consume.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import DATA_DIR

logger = logging.getLogger(__name__)


def parse_timestamp_naive(timestamp_str: str) -> datetime:
    """
    Parse ISO format timestamp string to naive datetime.

    Offset-aware values are converted to UTC before the offset is dropped, so
    the same instant always maps to the same naive datetime. Naive values are
    returned unchanged.
    """
    # fromisoformat only accepts a trailing Z from 3.11 on
    if timestamp_str.endswith("Z"):
        timestamp_str = timestamp_str[:-1] + "+00:00"
    dt = datetime.fromisoformat(timestamp_str)
    return dt.astimezone(timezone.utc).replace(tzinfo=None) if dt.tzinfo else dt


def parse_optional_timestamp(value: Any) -> datetime | None:
    """Parse a timestamp field, returning None when missing or unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).replace(tzinfo=None) if value.tzinfo else value
    try:
        return parse_timestamp_naive(str(value))
    except ValueError:
        logger.debug(f"Ignoring unparseable timestamp {value!r}")
        return None


def load_json(val):
    """Safely load a JSON list from a record field."""
    if not val:
        return []
    if isinstance(val, list):
        return val
    try:
        return json.loads(val)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Failed to parse JSON '{str(val)[:50]}...': {e}")
        return []


def require_record(value: Any, what: str = "record") -> dict:
    """Return value if it is a JSON object, otherwise raise ValueError."""
    if not isinstance(value, dict):
        raise ValueError(f"Expected a JSON object for {what}, got {type(value).__name__}")
    return value


def _resolve(path: str | Path) -> Path:
    """Resolve relative paths that do not exist against DATA_DIR."""
    p = Path(path)
    if not p.is_absolute() and not p.exists() and (DATA_DIR / p).exists():
        return DATA_DIR / p
    return p


def read_records(path: str | Path) -> list[dict]:
    """Read a JSON document and return it as a list of records."""
    file_path = _resolve(path)
    payload = json.loads(file_path.read_text())
    if isinstance(payload, dict):
        # Accept {"items": [...]} envelopes as well as single records
        items = payload.get("items")
        records = items if isinstance(items, list) else [payload]
    elif isinstance(payload, list):
        records = payload
    elif payload is None:
        records = []
    else:
        raise ValueError(f"Expected a JSON list or object in {file_path}, got {type(payload).__name__}")
    return [require_record(record, f"record {i} in {file_path}") for i, record in enumerate(records)]


def load_candidates(path: str | Path) -> list:
    """Load posts, events and user candidates."""
    from .candidate import Candidate

    candidates = [Candidate.from_dict(record) for record in read_records(path)]
    logger.debug(f"Loaded {len(candidates)} candidates from {path}")
    return candidates


def load_profiles(path: str | Path) -> list:
    """Load one or more requester profiles."""
    from .profile import RequesterProfile

    return [RequesterProfile.from_dict(record) for record in read_records(path)]


def load_profile(path: str | Path):
    """Load a single requester profile (the first record of the document)."""
    profiles = load_profiles(path)
    if not profiles:
        raise ValueError(f"No profile found in {path}")
    return profiles[0]


def load_articles(path: str | Path) -> list:
    """Load news articles for trending ranking."""
    from .trending import NewsArticle

    return [NewsArticle.from_dict(record) for record in read_records(path)]


def load_news_preferences(path: str | Path):
    """Load a requester's news preferences."""
    from .trending import NewsPreferences

    records = read_records(path)
    return NewsPreferences.from_dict(records[0] if records else {})
