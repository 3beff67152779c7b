"""Database utilities for the article store."""

from .models import Article, Base, FeedSource, JobRun, JobStatus, UserSource  # noqa: F401
from .session import build_store_url, get_engine, get_sessionmaker, session_scope  # noqa: F401

__all__ = [
    "Article",
    "Base",
    "FeedSource",
    "JobRun",
    "JobStatus",
    "UserSource",
    "build_store_url",
    "get_engine",
    "get_sessionmaker",
    "session_scope",
]
