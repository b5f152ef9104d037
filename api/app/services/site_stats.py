"""
Sitewide statistics service.

Maintains the singleton ``site_stats`` row. Active-user and published-post
counts are recomputed on every read; countries reached and uptime are
stored values (countries reached is adjustable by an admin).
"""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models
from ..models import utcnow
from ..settings import DEFAULT_COUNTRIES_REACHED, DEFAULT_UPTIME_PERCENTAGE

logger = logging.getLogger(__name__)

SITE_STATS_ID = 1


def format_count(num: int) -> str:
    """
    Render a count for the public stats banner.

    Example:
        format_count(999)        # "999+"
        format_count(1500)       # "1.5K+"
        format_count(2_000_000)  # "2.0M+"
    """
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M+"
    if num >= 1000:
        return f"{num / 1000:.1f}K+"
    return f"{num}+"


def format_uptime(percentage: float) -> str:
    return f"{percentage:.1f}%"


def get_or_create_site_stats(db: Session) -> models.SiteStats:
    """
    Return the singleton stats row, creating it with defaults on first use.

    A concurrent first read that loses the insert race re-reads the winner's row.
    """
    stats = db.get(models.SiteStats, SITE_STATS_ID)
    if stats:
        return stats

    stats = models.SiteStats(
        id=SITE_STATS_ID,
        countries_reached_count=DEFAULT_COUNTRIES_REACHED,
        uptime_percentage=DEFAULT_UPTIME_PERCENTAGE,
    )
    db.add(stats)
    try:
        db.commit()
        logger.info("Created site stats row")
    except IntegrityError:
        db.rollback()
        stats = db.get(models.SiteStats, SITE_STATS_ID)
    return stats


def refresh_site_stats(db: Session) -> models.SiteStats:
    """Recount users and published posts and stamp their update times."""
    user_count = db.query(func.count(models.User.id)).scalar() or 0
    post_count = (
        db.query(func.count(models.Post.id))
        .filter(models.Post.status == "published")
        .scalar()
        or 0
    )

    stats = get_or_create_site_stats(db)
    now = utcnow()
    stats.active_users_count = user_count
    stats.active_users_updated_at = now
    stats.published_posts_count = post_count
    stats.published_posts_updated_at = now
    db.commit()
    return stats


def format_site_stats(stats: models.SiteStats) -> list[dict[str, str]]:
    return [
        {"label": "Active users", "value": format_count(stats.active_users_count)},
        {"label": "Blog posts published", "value": format_count(stats.published_posts_count)},
        {"label": "Countries reached", "value": format_count(stats.countries_reached_count)},
        {"label": "Uptime", "value": format_uptime(stats.uptime_percentage)},
    ]


def get_site_stats(db: Session) -> list[dict[str, str]]:
    """
    Convenience function: refresh the live counts and return the formatted banner.
    """
    return format_site_stats(refresh_site_stats(db))


def update_countries_reached(db: Session, count: int) -> models.SiteStats:
    stats = get_or_create_site_stats(db)
    stats.countries_reached_count = count
    stats.countries_reached_updated_at = utcnow()
    db.commit()
    logger.info(f"Countries reached set to {count}")
    return stats
