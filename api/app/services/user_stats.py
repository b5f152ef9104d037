"""
Per-user engagement statistics.

Computes an author's totals, status breakdown, six-month history, and
30-day engagement with SQL aggregation, and serves them through the
injected StatsCache for up to STATS_CACHE_TTL seconds.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone

from dateutil.relativedelta import relativedelta
from sqlalchemy import extract, func
from sqlalchemy.orm import Session

from .. import models
from ..cache import StatsCache

logger = logging.getLogger(__name__)

MONTHLY_WINDOW_MONTHS = 6
RECENT_WINDOW_DAYS = 30


def engagement_rate(likes: int, comments: int, views: int) -> float:
    """
    Percentage of views that turned into a like or comment, two decimals.

    Example:
        engagement_rate(3, 1, 200)  # 2.0
        engagement_rate(5, 5, 0)    # 0
    """
    if not views:
        return 0
    return round((likes + comments) / views * 100, 2)


@dataclass
class UserStats:
    """Statistics for one author's posts."""

    overview: dict
    posts_by_status: dict[str, int] = field(default_factory=dict)
    monthly_stats: list[dict] = field(default_factory=list)
    recent_engagement: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


class UserStatsService:
    """
    Service for computing and caching user statistics.

    Statistics are computed on-demand and cached for 5 minutes; post, like,
    and comment writes call ``invalidate_cache`` for the post author.
    """

    def __init__(self, db: Session, cache: StatsCache):
        self.db = db
        self.cache = cache

    def get_user_stats(self, user_id: int) -> tuple[dict, bool]:
        """
        Get statistics for a user, checking the cache first.

        Args:
            user_id: Integer ID of the user

        Returns:
            Tuple of (stats dict, served_from_cache)
        """
        return self.cache.get_or_compute(user_id, lambda: self.compute_stats(user_id).to_dict())

    def invalidate_cache(self, user_id: int) -> None:
        self.cache.invalidate(user_id)

    def _count_subqueries(self):
        like_counts = (
            self.db.query(
                models.PostLike.post_id.label("post_id"),
                func.count(models.PostLike.id).label("count"),
            )
            .group_by(models.PostLike.post_id)
            .subquery()
        )
        comment_counts = (
            self.db.query(
                models.PostComment.post_id.label("post_id"),
                func.count(models.PostComment.id).label("count"),
            )
            .group_by(models.PostComment.post_id)
            .subquery()
        )
        return like_counts, comment_counts

    def _engagement_query(self, user_id: int, *columns):
        """
        Query over the author's posts with per-post like/comment counts joined in.

        The leading columns are caller-supplied; views, likes, and comments
        sums are always appended.
        """
        like_counts, comment_counts = self._count_subqueries()
        return (
            self.db.query(
                *columns,
                func.coalesce(func.sum(models.Post.views), 0),
                func.coalesce(func.sum(func.coalesce(like_counts.c.count, 0)), 0),
                func.coalesce(func.sum(func.coalesce(comment_counts.c.count, 0)), 0),
            )
            .select_from(models.Post)
            .outerjoin(like_counts, like_counts.c.post_id == models.Post.id)
            .outerjoin(comment_counts, comment_counts.c.post_id == models.Post.id)
            .filter(models.Post.author_id == user_id)
        )

    def compute_stats(self, user_id: int, now: datetime | None = None) -> UserStats:
        """
        Compute statistics for a user from the database.

        Aggregates data from:
        - posts table (counts, views, status, creation month)
        - post_likes table (likes received)
        - post_comments table (comments received)
        """
        now = now or datetime.now(timezone.utc)

        total_posts, total_views, total_likes, total_comments = (
            self._engagement_query(user_id, func.count(models.Post.id)).one()
        )

        status_rows = (
            self.db.query(models.Post.status, func.count(models.Post.id))
            .filter(models.Post.author_id == user_id)
            .group_by(models.Post.status)
            .all()
        )

        year_col = extract("year", models.Post.created_at)
        month_col = extract("month", models.Post.created_at)
        monthly_rows = (
            self._engagement_query(user_id, year_col, month_col, func.count(models.Post.id))
            .filter(models.Post.created_at >= now - relativedelta(months=MONTHLY_WINDOW_MONTHS))
            .group_by(year_col, month_col)
            .order_by(year_col, month_col)
            .all()
        )

        recent_views, recent_likes, recent_comments = (
            self._engagement_query(user_id)
            .filter(models.Post.created_at >= now - timedelta(days=RECENT_WINDOW_DAYS))
            .one()
        )

        return UserStats(
            overview={
                "total_posts": int(total_posts),
                "total_views": int(total_views),
                "total_likes": int(total_likes),
                "total_comments": int(total_comments),
                "engagement_rate": engagement_rate(
                    int(total_likes), int(total_comments), int(total_views)
                ),
            },
            posts_by_status={status: int(count) for status, count in status_rows},
            monthly_stats=[
                {
                    "year": int(year),
                    "month": int(month),
                    "posts": int(posts),
                    "views": int(views),
                    "likes": int(likes),
                    "comments": int(comments),
                }
                for year, month, posts, views, likes, comments in monthly_rows
            ],
            recent_engagement={
                "last_30_days": {
                    "views": int(recent_views),
                    "likes": int(recent_likes),
                    "comments": int(recent_comments),
                }
            },
        )


def get_user_stats(db: Session, cache: StatsCache, user_id: int) -> tuple[dict, bool]:
    """
    Convenience function to get user statistics.

    Returns:
        Tuple of (stats dict, served_from_cache)
    """
    service = UserStatsService(db, cache)
    return service.get_user_stats(user_id)
