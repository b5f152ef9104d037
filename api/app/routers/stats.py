"""Statistics endpoints: public site banner and per-user dashboard numbers."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user, require_admin
from ..cache import StatsCache
from ..deps import get_db, get_stats_cache
from ..services.site_stats import get_site_stats, update_countries_reached
from ..services.user_stats import get_user_stats

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Stats"])


@router.get("/stats", response_model=schemas.Envelope[list[schemas.SiteStatItem]])
def get_public_stats(
    db: Session = Depends(get_db),
) -> schemas.Envelope[list[schemas.SiteStatItem]]:
    """
    Sitewide numbers for the landing page.

    Active users and published posts are recounted on every call.
    """
    items = get_site_stats(db)
    return schemas.Envelope(data=[schemas.SiteStatItem(**item) for item in items])


@router.put("/stats/countries", response_model=schemas.Envelope[list[schemas.SiteStatItem]])
def set_countries_reached(
    payload: schemas.CountriesUpdate,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.Envelope[list[schemas.SiteStatItem]]:
    """Set the "Countries reached" figure (admin only)."""
    update_countries_reached(db, payload.count)
    logger.info(f"Admin {admin.id} set countries reached to {payload.count}")
    items = get_site_stats(db)
    return schemas.Envelope(data=[schemas.SiteStatItem(**item) for item in items])


@router.get(
    "/users/stats",
    response_model=schemas.Envelope[schemas.UserStatsOut],
    response_model_exclude_none=True,
)
def get_my_stats(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    cache: StatsCache = Depends(get_stats_cache),
) -> schemas.Envelope[schemas.UserStatsOut]:
    """
    Engagement statistics for the current user's posts.

    Served from a 5-minute cache; ``cached`` is true on a cache hit.
    """
    stats, from_cache = get_user_stats(db, cache, current_user.id)
    data = schemas.UserStatsOut(**stats, cached=True if from_cache else None)
    return schemas.Envelope(data=data)
