"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from typing import Generator

from sqlalchemy.orm import Session

from .cache import StatsCache, stats_cache
from .db import get_session


def get_db() -> Generator[Session, None, None]:
    """One session per request, closed when the response is sent."""
    yield from get_session()


def get_stats_cache() -> StatsCache:
    """The process-wide per-user statistics cache."""
    return stats_cache
