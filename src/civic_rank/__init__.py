"""Ranking core for posts, events, follow suggestions and trending news."""
