import argparse
import json
import logging
import sys

from tqdm import tqdm

from .datasource import (
    load_candidates,
    load_profile,
    load_profiles,
    load_articles,
    load_news_preferences,
)
from .config import DEFAULT_LIMIT
from .profile import Location
from .recommender import ContentRecommender, Recommendation
from .following import generate_follow_suggestions, FollowSuggestion
from .trending import rank_trending, TrendingArticle
from .ranking import recommendation_diversity

logger = logging.getLogger(__name__)


def _load_or_exit(loader, path):
    """Run a data-source loader, exiting with status 1 on unreadable input."""
    try:
        return loader(path)
    except FileNotFoundError:
        logger.error(f"File not found: {path}")
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Could not load {path}: {e}")
    sys.exit(1)


def _recommendation_to_dict(rec: Recommendation) -> dict:
    return {
        "id": rec.id,
        "content_id": rec.content_id,
        "content_type": rec.content_type,
        "score": round(rec.score, 4),
        "reason": rec.reason,
        "algorithm": rec.algorithm,
        "scores": {k: round(v, 4) for k, v in rec.breakdown.components().items()},
        "created_at": rec.created_at.isoformat(),
        "expires_at": rec.expires_at.isoformat() if rec.expires_at else None,
    }


def _suggestion_to_dict(s: FollowSuggestion) -> dict:
    return {
        "id": s.id,
        "user_id": s.user_id,
        "display_name": s.display_name,
        "score": round(s.score, 4),
        "common_interests": s.common_interests,
        "mutual_followers": s.mutual_followers,
        "city": s.city,
        "state": s.state,
        "reason": s.reason,
        "created_at": s.created_at.isoformat(),
    }


def _trending_to_dict(t: TrendingArticle) -> dict:
    return {
        "id": t.article.id,
        "source": t.article.source,
        "category": t.article.category,
        "city": t.article.city,
        "trending_score": round(t.trending_score, 4),
        "personalized_score": round(t.personalized_score, 4),
    }


def _emit(rows: list[dict], output_format: str, text_lines: list[str], header: str) -> None:
    """Log rows in the requested format."""
    if output_format == 'json':
        logger.info(json.dumps(rows, indent=2))
    elif output_format == 'csv':
        if not rows:
            return
        columns = [k for k, v in rows[0].items() if not isinstance(v, (dict, list))]
        logger.info(",".join(columns))
        for row in rows:
            values = [str(row[c]).replace('"', '""') for c in columns]
            logger.info(",".join(f'"{v}"' for v in values))
    else:  # text format
        logger.info(f"\n{header}")
        for line in text_lines:
            logger.info(line)


def cmd_recommend(args: argparse.Namespace) -> None:
    profile = _load_or_exit(load_profile, args.profile)
    candidates = _load_or_exit(load_candidates, args.candidates)

    recs = ContentRecommender().recommend(profile, candidates, args.limit)
    candidates_by_id = {c.id: c for c in candidates}

    rows = [_recommendation_to_dict(r) for r in recs]
    metrics = None
    if args.diversity_report:
        metrics = recommendation_diversity([candidates_by_id[r.content_id] for r in recs])

    if args.format == 'json' and metrics is not None:
        logger.info(json.dumps({"recommendations": rows, "diversity": metrics}, indent=2))
        return

    lines = [
        f"{i}. {r.content_id} ({r.content_type}) - Score: {r.score:.3f}\n   Why: {r.reason}"
        for i, r in enumerate(recs, 1)
    ]
    _emit(rows, args.format, lines, f"Top {len(recs)} recommendations for {profile.user_id}:")

    # Diversity report at the end
    if metrics is not None:
        logger.info(f"\n{'=' * 50}")
        logger.info("Diversity Report:")
        logger.info(f"  Overall diversity: {metrics['diversity_score']:.0%}")
        if recs:
            logger.info(f"  Categories: {metrics['unique_categories']} unique ({metrics['category_diversity']:.0%} entropy)")
            logger.info(f"  Types: {metrics['unique_types']} unique ({metrics['type_diversity']:.0%} entropy)")


def cmd_recommend_batch(args: argparse.Namespace) -> None:
    profiles = _load_or_exit(load_profiles, args.profiles)
    candidates = _load_or_exit(load_candidates, args.candidates)

    recommender = ContentRecommender()
    output = {}
    for profile in tqdm(profiles, desc="Ranking", unit="user"):
        recs = recommender.recommend(profile, candidates, args.limit)
        output[profile.user_id] = [_recommendation_to_dict(r) for r in recs]

    logger.info(json.dumps(output, indent=2))


def cmd_follow(args: argparse.Namespace) -> None:
    users = _load_or_exit(load_candidates, args.users)

    requester = next((u for u in users if u.id == args.user_id), None)
    interests = args.interests if args.interests else (requester.interests if requester else [])
    location = requester.location if requester else None
    if args.city or args.state:
        location = Location(city=args.city, state=args.state)

    suggestions = generate_follow_suggestions(
        args.user_id,
        interests,
        location,
        set(args.exclude or []),
        users,
        args.limit,
    )

    rows = [_suggestion_to_dict(s) for s in suggestions]
    lines = [
        f"{i}. {s.display_name} ({s.user_id}) - Score: {s.score:.3f}\n   Why: {s.reason}"
        for i, s in enumerate(suggestions, 1)
    ]
    _emit(rows, args.format, lines, f"Top {len(suggestions)} follow suggestions for {args.user_id}:")


def cmd_trending(args: argparse.Namespace) -> None:
    articles = _load_or_exit(load_articles, args.articles)
    preferences = _load_or_exit(load_news_preferences, args.preferences) if args.preferences else None
    locale = Location(city=args.city, country=args.country) if (args.city or args.country) else None

    ranked = rank_trending(articles, args.limit, locale=locale, preferences=preferences)

    rows = [_trending_to_dict(t) for t in ranked]
    lines = [
        f"{i}. {t.article.id} [{t.article.source or '-'}] - Score: {t.personalized_score:.2f}"
        for i, t in enumerate(ranked, 1)
    ]
    feed = "for you" if preferences else "trending"
    _emit(rows, args.format, lines, f"Top {len(ranked)} {feed} articles:")


def main():
    parser = argparse.ArgumentParser(description="Civic engagement ranking engine")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    formats = ['text', 'json', 'csv']

    rec_parser = subparsers.add_parser("recommend", help="Recommend posts and events for a user")
    rec_parser.add_argument("profile", help="JSON file with the requester profile")
    rec_parser.add_argument("candidates", help="JSON file with candidate posts/events")
    rec_parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help=f"Number of results (default: {DEFAULT_LIMIT})")
    rec_parser.add_argument("--format", choices=formats, default='text', help="Output format")
    rec_parser.add_argument("--diversity-report", action="store_true",
                            help="Show category/type diversity of the results")
    rec_parser.set_defaults(func=cmd_recommend)

    batch_parser = subparsers.add_parser("recommend-batch", help="Recommend for many users (JSON output)")
    batch_parser.add_argument("profiles", help="JSON file with a list of requester profiles")
    batch_parser.add_argument("candidates", help="JSON file with candidate posts/events")
    batch_parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help=f"Results per user (default: {DEFAULT_LIMIT})")
    batch_parser.set_defaults(func=cmd_recommend_batch)

    follow_parser = subparsers.add_parser("follow", help="Suggest users to follow")
    follow_parser.add_argument("user_id", help="Requester user id")
    follow_parser.add_argument("users", help="JSON file with user records")
    follow_parser.add_argument("--interests", nargs="*", help="Requester interests (default: from the user's record)")
    follow_parser.add_argument("--exclude", nargs="*", help="User ids already followed")
    follow_parser.add_argument("--city", help="Requester city (overrides the user's record)")
    follow_parser.add_argument("--state", help="Requester state (overrides the user's record)")
    follow_parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help=f"Number of results (default: {DEFAULT_LIMIT})")
    follow_parser.add_argument("--format", choices=formats, default='text', help="Output format")
    follow_parser.set_defaults(func=cmd_follow)

    trending_parser = subparsers.add_parser("trending", help="Rank news articles by trending score")
    trending_parser.add_argument("articles", help="JSON file with news articles")
    trending_parser.add_argument("--city", help="Viewer city for the locality boost")
    trending_parser.add_argument("--country", help="Viewer country for the locality boost")
    trending_parser.add_argument("--preferences", help="JSON file with news preferences (for-you feed)")
    trending_parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help=f"Number of results (default: {DEFAULT_LIMIT})")
    trending_parser.add_argument("--format", choices=formats, default='text', help="Output format")
    trending_parser.set_defaults(func=cmd_trending)

    args = parser.parse_args()

    # Configure logging based on verbosity
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    args.func(args)
