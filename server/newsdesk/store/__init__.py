"""
Article Store

In-memory storage for articles, users and watchlist entries.
"""
from newsdesk.store.memory import ArticleStore
from newsdesk.store.seed import SEED_ARTICLES, seed_articles

__all__ = [
    "ArticleStore",
    "SEED_ARTICLES",
    "seed_articles",
]
