"""
Activity feed service.

Every user-facing event (post written, comment left, like given, profile
edited) is appended to the ``activities`` table as its own commit, after the
change it describes has been committed. Recording never raises: a failed
insert is logged and rolled back so the caller's response is unaffected.
"""

from __future__ import annotations

import functools
import logging
from typing import Any
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from .. import models
from ..pagination import Page, paginate

logger = logging.getLogger(__name__)

# Feed sentences keyed by activity type. Placeholders come from the metadata
# captured when the event was recorded.
ACTIVITY_MESSAGES: dict[str, str] = {
    "post_created": 'You created a new post "{title}"',
    "post_updated": 'You updated your post "{title}"',
    "post_deleted": 'You deleted post "{title}"',
    "comment_added": 'You commented on "{post_title}"',
    "comment_received": 'Someone commented on your post "{post_title}"',
    "like_given": 'You liked "{post_title}"',
    "like_received": 'Someone liked your post "{post_title}"',
    "profile_updated": "You updated your profile",
}

UNKNOWN_ACTIVITY_MESSAGE = "Unknown activity"


class _MissingAsEmpty(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render_activity(activity_type: str, metadata: dict[str, Any] | None) -> str:
    """
    Render an activity as a human-readable sentence.

    Unknown types render a fallback string instead of failing.

    Example:
        render_activity("like_given", {"post_title": "Hello"})  # 'You liked "Hello"'
    """
    template = ACTIVITY_MESSAGES.get(activity_type)
    if template is None:
        return UNKNOWN_ACTIVITY_MESSAGE
    return template.format_map(_MissingAsEmpty(metadata or {}))


def record_activity(
    db: Session,
    user_id: int,
    activity_type: str,
    post_id: int | None = None,
    comment_id: UUID | None = None,
    metadata: dict[str, Any] | None = None,
    target_user_id: int | None = None,
) -> models.Activity | None:
    """
    Append one activity row in its own commit.

    Args:
        db: Database session (any pending primary change must already be committed)
        user_id: User the activity belongs to
        activity_type: One of models.ACTIVITY_TYPES
        post_id: Related post, if any
        comment_id: Related comment, if any
        metadata: Title/content snippets captured at event time
        target_user_id: User a "received" event is addressed to

    Returns:
        The created Activity, or None if recording failed
    """
    if activity_type not in models.ACTIVITY_TYPES:
        logger.warning(f"Ignoring unknown activity type '{activity_type}' for user {user_id}")
        return None

    activity = models.Activity(
        user_id=user_id,
        type=activity_type,
        post_id=post_id,
        comment_id=comment_id,
        target_user_id=target_user_id,
        details=dict(metadata or {}),
    )
    try:
        db.add(activity)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.warning(
            f"Failed to record {activity_type} activity for user {user_id}: {e}", exc_info=True
        )
        return None

    return activity


# ============================================================================
# EVENT HELPERS
# ============================================================================


def _never_raises(func):
    """Log and swallow any failure while building or recording an event."""

    @functools.wraps(func)
    def wrapper(db: Session, user_id: int, *args, **kwargs) -> None:
        try:
            func(db, user_id, *args, **kwargs)
        except Exception as e:
            db.rollback()
            logger.warning(
                f"Failed to record {func.__name__} activity for user {user_id}: {e}",
                exc_info=True,
            )

    return wrapper


@_never_raises
def post_created(db: Session, user_id: int, post: models.Post) -> None:
    record_activity(db, user_id, "post_created", post_id=post.id, metadata={"title": post.title})


@_never_raises
def post_updated(db: Session, user_id: int, post: models.Post) -> None:
    record_activity(db, user_id, "post_updated", post_id=post.id, metadata={"title": post.title})


@_never_raises
def post_deleted(db: Session, user_id: int, title: str) -> None:
    # The post row is gone, so only the captured title survives
    record_activity(db, user_id, "post_deleted", metadata={"title": title})


@_never_raises
def comment_added(
    db: Session, user_id: int, post: models.Post, comment: models.PostComment
) -> None:
    """Record the commenter's event and, when someone else wrote the post, the author's."""
    post_id, author_id, title = post.id, post.author_id, post.title
    comment_id, snippet = comment.id, comment.body[:100]

    record_activity(
        db,
        user_id,
        "comment_added",
        post_id=post_id,
        comment_id=comment_id,
        metadata={"post_title": title, "content": snippet},
    )

    if author_id != user_id:
        record_activity(
            db,
            author_id,
            "comment_received",
            post_id=post_id,
            comment_id=comment_id,
            metadata={"post_title": title, "content": snippet, "target_user": author_id},
            target_user_id=author_id,
        )


@_never_raises
def like_given(db: Session, user_id: int, post: models.Post) -> None:
    """Record the liker's event and, when someone else wrote the post, the author's."""
    post_id, author_id, title = post.id, post.author_id, post.title

    record_activity(db, user_id, "like_given", post_id=post_id, metadata={"post_title": title})

    if author_id != user_id:
        record_activity(
            db,
            author_id,
            "like_received",
            post_id=post_id,
            metadata={"post_title": title, "target_user": author_id},
            target_user_id=author_id,
        )


@_never_raises
def profile_updated(db: Session, user_id: int) -> None:
    record_activity(db, user_id, "profile_updated")


# ============================================================================
# FEED
# ============================================================================


def list_for_user(db: Session, user_id: int, page: int | None, limit: int | None) -> Page:
    """
    Activities performed by or addressed to a user, newest first.

    Returns:
        Page whose items are rendered feed entries (dicts)
    """
    query = (
        db.query(models.Activity)
        .options(joinedload(models.Activity.post))
        .filter(
            or_(
                models.Activity.user_id == user_id,
                models.Activity.target_user_id == user_id,
            )
        )
        .order_by(models.Activity.created_at.desc(), models.Activity.id.desc())
    )
    result = paginate(query, page, limit)
    result.items = [serialize_activity(activity) for activity in result.items]
    return result


def serialize_activity(activity: models.Activity) -> dict[str, Any]:
    post = None
    if activity.post is not None:
        post = {"id": activity.post.id, "title": activity.post.title, "slug": activity.post.slug}

    return {
        "id": activity.id,
        "type": activity.type,
        "user_id": activity.user_id,
        "target_user_id": activity.target_user_id,
        "post": post,
        "comment_id": activity.comment_id,
        "metadata": activity.details or {},
        "content": render_activity(activity.type, activity.details),
        "created_at": activity.created_at,
    }


def clear_for_user(db: Session, user_id: int) -> int:
    """
    Delete every activity the user performed.

    Events that only target the user (someone else's row) are kept.

    Returns:
        Number of rows deleted
    """
    deleted = (
        db.query(models.Activity)
        .filter(models.Activity.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info(f"Cleared {deleted} activities for user {user_id}")
    return deleted
