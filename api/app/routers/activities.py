"""Activity feed endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user
from ..deps import get_db
from ..services.activity import clear_for_user, list_for_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users/activities", tags=["Activities"])


@router.get("", response_model=schemas.FeedEnvelope[schemas.ActivityOut])
def get_activities(
    page: int = Query(1),
    limit: int = Query(10),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.FeedEnvelope[schemas.ActivityOut]:
    """
    The current user's feed: things they did and things done to their posts.

    Each entry carries a rendered ``content`` sentence.
    """
    result = list_for_user(db, current_user.id, page, limit)
    return schemas.FeedEnvelope(
        data=[schemas.ActivityOut(**entry) for entry in result.items],
        pagination=schemas.PaginationInfo(
            page=result.page,
            limit=result.limit,
            total=result.total,
            pages=result.pages,
        ),
    )


@router.delete("", response_model=schemas.MessageResponse)
def clear_activities(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.MessageResponse:
    clear_for_user(db, current_user.id)
    return schemas.MessageResponse(message="All activities cleared")
