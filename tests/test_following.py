from datetime import timedelta

import pytest

from civic_rank.candidate import Candidate
from civic_rank.following import (
    FollowRecommender,
    activity_score,
    compute_follow_stats,
    follow_location_score,
    generate_follow_suggestions,
    interest_overlap_score,
    popular_users,
    similarity_score,
    users_by_interest,
)
from civic_rank.profile import Location
from civic_rank.strategies import FollowGraphCounter


def _user(uid, interests=None, followers=0, city=None, state=None, **kwargs):
    location = Location(city=city, state=state) if (city or state) else None
    return Candidate(
        id=uid,
        type="user",
        interests=interests or [],
        followers_count=followers,
        location=location,
        display_name=kwargs.pop("display_name", uid.title()),
        **kwargs,
    )


@pytest.fixture
def users(now):
    return [
        _user("me", ["parks", "transit", "schools"], followers=200, city="Austin", state="TX"),
        _user("alice", ["parks", "gardening"], followers=105, city="Austin", state="TX",
              posts_count=50, last_activity=now - timedelta(days=2)),
        _user("bob", ["parks", "transit", "schools"], followers=500, city="Austin", state="TX"),
        _user("carol", ["chess"], followers=3, city="Dallas", state="TX"),
        _user("dave", [], followers=0),
    ]


def test_similarity_and_overlap_use_different_denominators():
    mine = ["Parks", "Transit", "Schools"]
    theirs = ["parks", "gardening"]

    assert similarity_score(mine, theirs) == pytest.approx(1 / 3)
    assert interest_overlap_score(mine, theirs) == pytest.approx(0.5)
    assert similarity_score([], theirs) == 0.5
    assert interest_overlap_score(mine, []) == 0.5


def test_activity_score_tiers(now):
    idle = _user("idle")
    busy = _user("busy", posts_count=50, events_created_count=10, last_activity=now - timedelta(days=3))
    monthly = _user("monthly", last_activity=now - timedelta(days=20))
    quarterly = _user("quarterly", last_activity=now - timedelta(days=60))
    dormant = _user("dormant", last_activity=now - timedelta(days=400))
    prolific = _user("prolific", posts_count=1000)

    assert activity_score(idle, now) == 0.5
    assert activity_score(busy, now) == 1.0
    assert activity_score(monthly, now) == pytest.approx(0.7)
    assert activity_score(quarterly, now) == pytest.approx(0.6)
    assert activity_score(dormant, now) == 0.5
    # Post credit is capped
    assert activity_score(prolific, now) == pytest.approx(0.7)


def test_follow_location_tiers():
    home = Location(city="Austin", state="TX")

    assert follow_location_score(home, Location(city="Austin", state="TX")) == 1.0
    assert follow_location_score(home, Location(city="Dallas", state="TX")) == 0.7
    assert follow_location_score(home, Location(city="Denver", state="CO")) == 0.3
    assert follow_location_score(None, home) == 0.5
    assert follow_location_score(home, None) == 0.5


def test_follow_location_distance_fallback():
    here = Location(latitude=30.0, longitude=-97.0, city="A", state="X")
    there = Location(latitude=30.0 + 50 / 111.195, longitude=-97.0, city="B", state="Y")

    assert follow_location_score(here, there) == pytest.approx(0.5, abs=0.01)


def test_suggest_skips_requester_and_excluded(users, now):
    suggestions = generate_follow_suggestions(
        "me",
        ["parks", "transit", "schools"],
        Location(city="Austin", state="TX"),
        ["bob"],
        users,
        limit=10,
        reference_time=now,
    )

    ids = [s.user_id for s in suggestions]
    assert "me" not in ids
    assert "bob" not in ids
    assert set(ids) == {"alice", "carol", "dave"}
    scores = [s.score for s in suggestions]
    assert scores == sorted(scores, reverse=True)


def test_suggestion_details(users, now):
    suggestions = generate_follow_suggestions(
        "me",
        ["Parks", "transit", "schools"],
        Location(city="Austin", state="TX"),
        {"bob"},
        users,
        limit=1,
        reference_time=now,
    )

    top = suggestions[0]
    assert top.user_id == "alice"
    assert top.id == "suggestion_alice_0"
    assert top.display_name == "Alice"
    # floor(min(200, 105) * 0.1)
    assert top.mutual_followers == 10
    assert top.common_interests == ["Parks"]
    assert top.city == "Austin"
    assert top.state == "TX"
    assert top.created_at == now
    assert top.algorithm == "follow"
    assert top.breakdown.location == 1.0
    assert top.breakdown.activity == pytest.approx(0.9)
    assert "Same city" in top.reason
    assert "Very active" in top.reason


def test_anonymous_display_name(now):
    anon = Candidate(id="anon", type="user")

    suggestions = generate_follow_suggestions("me", [], None, [], [anon], limit=5, reference_time=now)

    assert suggestions[0].display_name == "Anonymous"
    assert suggestions[0].mutual_followers == 0


def test_suggest_with_follow_graph(users, now):
    graph = {"me": {"x", "y", "z"}, "carol": {"x", "y"}, "alice": set()}
    recommender = FollowRecommender(mutual_counter=FollowGraphCounter(graph))

    suggestions = recommender.suggest("me", ["parks"], None, [], users, limit=10, reference_time=now)

    by_id = {s.user_id: s for s in suggestions}
    assert by_id["carol"].mutual_followers == 2
    assert by_id["alice"].mutual_followers == 0


def test_suggest_limit_zero(users, now):
    assert generate_follow_suggestions("me", [], None, [], users, limit=0, reference_time=now) == []


def test_popular_users(users):
    top = popular_users(users, limit=3)

    assert [u.id for u in top] == ["bob", "me", "alice"]
    assert all(u.followers_count > 0 for u in popular_users(users))


def test_users_by_interest(users):
    assert [u.id for u in users_by_interest(users, "PARK")] == ["bob", "me", "alice"]
    assert [u.id for u in users_by_interest(users, "chess")] == ["carol"]
    assert users_by_interest(users, "knitting") == []


def test_compute_follow_stats(now):
    followers = [
        {"id": "a", "engagement_count": 4, "followed_at": (now - timedelta(days=3)).isoformat()},
        {"id": "b", "engagement_count": 2, "created_at": (now - timedelta(days=90)).isoformat()},
        {"id": "c"},
        {"id": "d", "engagement_count": 6, "followed_at": (now - timedelta(days=10)).isoformat()},
    ]
    following = [{"id": "a"}, {"id": "d"}, {"id": "z"}]

    stats = compute_follow_stats("me", followers, following, now=now)

    assert stats.total_followers == 4
    assert stats.total_following == 3
    assert stats.mutual_followers == 2
    assert stats.engagement_rate == pytest.approx(3.0)
    assert stats.growth_rate == pytest.approx(0.5)
    assert stats.last_updated == now


def test_compute_follow_stats_empty(now):
    stats = compute_follow_stats("me", [], [], now=now)

    assert stats.engagement_rate == 0.0
    assert stats.growth_rate == 0.0
