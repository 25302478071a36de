import argparse
import json
import logging
import sys

import pytest

from civic_rank import cli


def _run_cli(monkeypatch, argv, name):
    captured = []
    monkeypatch.setattr(cli, name, lambda args: captured.append(args))
    monkeypatch.setattr(sys, "argv", argv)
    cli.main()
    return captured[0]


def _cli_messages(caplog):
    return [r.getMessage() for r in caplog.records if r.name == "civic_rank.cli"]


@pytest.fixture
def data_files(tmp_path):
    profile = tmp_path / "profile.json"
    profile.write_text(json.dumps({
        "user_id": "u1",
        "preferences": [{"category": "music", "weight": 0.9}],
    }))
    candidates = tmp_path / "candidates.json"
    candidates.write_text(json.dumps([
        {"id": "s1", "type": "post", "category": "sports"},
        {"id": "m1", "type": "event", "category": "music", "price": 15},
    ]))
    return profile, candidates


def test_cli_dispatch_recommend(monkeypatch):
    args = _run_cli(
        monkeypatch,
        ["prog", "recommend", "p.json", "c.json", "--limit", "5", "--format", "json", "--diversity-report"],
        "cmd_recommend",
    )

    assert args.profile == "p.json"
    assert args.candidates == "c.json"
    assert args.limit == 5
    assert args.format == "json"
    assert args.diversity_report is True


def test_cli_dispatch_follow(monkeypatch):
    args = _run_cli(
        monkeypatch,
        ["prog", "follow", "u1", "users.json", "--interests", "parks", "transit", "--exclude", "u2", "--city", "Austin"],
        "cmd_follow",
    )

    assert args.user_id == "u1"
    assert args.interests == ["parks", "transit"]
    assert args.exclude == ["u2"]
    assert args.city == "Austin"
    assert args.state is None
    assert args.limit == 20


def test_cli_dispatch_trending(monkeypatch):
    args = _run_cli(
        monkeypatch,
        ["prog", "trending", "news.json", "--city", "Pune", "--preferences", "prefs.json"],
        "cmd_trending",
    )

    assert args.articles == "news.json"
    assert args.city == "Pune"
    assert args.preferences == "prefs.json"
    assert args.format == "text"


def test_cli_dispatch_batch(monkeypatch):
    args = _run_cli(monkeypatch, ["prog", "recommend-batch", "profiles.json", "c.json"], "cmd_recommend_batch")

    assert args.profiles == "profiles.json"
    assert args.limit == 20


def test_cmd_recommend_json(data_files, caplog):
    profile, candidates = data_files
    caplog.set_level(logging.INFO)

    cli.cmd_recommend(argparse.Namespace(
        profile=str(profile),
        candidates=str(candidates),
        limit=5,
        format="json",
        diversity_report=False,
    ))

    rows = json.loads(_cli_messages(caplog)[0])
    assert [r["content_id"] for r in rows] == ["m1", "s1"]
    assert rows[0]["id"] == "rec_m1_0"
    assert rows[0]["scores"]["content_based"] == 0.9
    assert rows[0]["reason"] == "Based on your interest in music"


def test_cmd_recommend_text_with_report(data_files, caplog):
    profile, candidates = data_files
    caplog.set_level(logging.INFO)

    cli.cmd_recommend(argparse.Namespace(
        profile=str(profile),
        candidates=str(candidates),
        limit=5,
        format="text",
        diversity_report=True,
    ))

    messages = _cli_messages(caplog)
    assert any("Top 2 recommendations for u1" in m for m in messages)
    assert any(m.startswith("1. m1 (event)") for m in messages)
    assert "Diversity Report:" in messages


def test_cmd_recommend_batch(data_files, tmp_path, caplog):
    _, candidates = data_files
    profiles = tmp_path / "profiles.json"
    profiles.write_text(json.dumps([{"user_id": "u1"}, {"user_id": "u2"}]))
    caplog.set_level(logging.INFO)

    cli.cmd_recommend_batch(argparse.Namespace(profiles=str(profiles), candidates=str(candidates), limit=1))

    output = json.loads(_cli_messages(caplog)[-1])
    assert set(output) == {"u1", "u2"}
    assert all(len(recs) == 1 for recs in output.values())


def test_cmd_follow_csv(tmp_path, caplog):
    users = tmp_path / "users.json"
    users.write_text(json.dumps([
        {"id": "u1", "interests": ["parks"], "location": {"city": "Austin", "state": "TX"}},
        {"id": "u2", "username": "Jo", "interests": ["parks"], "location": {"city": "Austin", "state": "TX"}},
        {"id": "u3", "interests": ["chess"]},
    ]))
    caplog.set_level(logging.INFO)

    cli.cmd_follow(argparse.Namespace(
        user_id="u1", users=str(users), interests=None, exclude=["u3"],
        city=None, state=None, limit=10, format="csv",
    ))

    messages = _cli_messages(caplog)
    assert messages[0].split(",")[0] == "id"
    assert len(messages) == 2
    assert '"u2"' in messages[1]
    assert '"Jo"' in messages[1]


def test_cmd_trending_json(tmp_path, caplog):
    articles = tmp_path / "news.json"
    articles.write_text(json.dumps({"items": [
        {"id": "a", "likes_count": 5, "city": "Pune"},
        {"id": "b", "likes_count": 5, "city": "Delhi"},
    ]}))
    caplog.set_level(logging.INFO)

    cli.cmd_trending(argparse.Namespace(
        articles=str(articles), city="Pune", country=None, preferences=None, limit=5, format="json",
    ))

    rows = json.loads(_cli_messages(caplog)[0])
    assert [r["id"] for r in rows] == ["a", "b"]
    assert rows[0]["trending_score"] == 6.0


def test_missing_file_exits(tmp_path, caplog):
    with pytest.raises(SystemExit) as exc:
        cli.cmd_recommend(argparse.Namespace(
            profile=str(tmp_path / "missing.json"),
            candidates=str(tmp_path / "missing.json"),
            limit=5,
            format="text",
            diversity_report=False,
        ))

    assert exc.value.code == 1
    assert any("File not found" in m for m in _cli_messages(caplog))


def test_cmd_recommend_json_with_diversity_report(data_files, caplog):
    profile, candidates = data_files
    caplog.set_level(logging.INFO)

    cli.cmd_recommend(argparse.Namespace(
        profile=str(profile),
        candidates=str(candidates),
        limit=5,
        format="json",
        diversity_report=True,
    ))

    messages = _cli_messages(caplog)
    assert len(messages) == 1
    output = json.loads(messages[0])
    assert [r["content_id"] for r in output["recommendations"]] == ["m1", "s1"]
    assert output["diversity"]["unique_categories"] == 2
    assert output["diversity"]["unique_types"] == 2


@pytest.mark.parametrize("records", [
    ["not-a-record"],
    [{"id": "m1", "category": "music", "location": "Springfield"}],
    42,
])
def test_malformed_candidates_exit_cleanly(data_files, tmp_path, caplog, records):
    profile, _ = data_files
    candidates = tmp_path / "bad.json"
    candidates.write_text(json.dumps(records))

    with pytest.raises(SystemExit) as exc:
        cli.cmd_recommend(argparse.Namespace(
            profile=str(profile),
            candidates=str(candidates),
            limit=5,
            format="text",
            diversity_report=False,
        ))

    assert exc.value.code == 1
    assert any("Could not load" in m for m in _cli_messages(caplog))


def test_malformed_profile_preferences_exit_cleanly(data_files, tmp_path):
    _, candidates = data_files
    profile = tmp_path / "bad_profile.json"
    profile.write_text(json.dumps({"user_id": "u1", "preferences": ["music"]}))

    with pytest.raises(SystemExit) as exc:
        cli.cmd_recommend(argparse.Namespace(
            profile=str(profile),
            candidates=str(candidates),
            limit=5,
            format="text",
            diversity_report=False,
        ))

    assert exc.value.code == 1
