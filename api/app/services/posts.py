"""
Post engagement service.

Query and mutation helpers for posts and their like / comment rows. Routers
own authorization and HTTP errors; functions here only touch the database.
Every mutation is a single-row or single-statement write followed by a commit.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from uuid import UUID

from sqlalchemy import String, cast, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from .. import models
from ..pagination import Page, paginate
from ..settings import EXCERPT_LENGTH

logger = logging.getLogger(__name__)

POST_STATUSES = ("draft", "published")


def derive_excerpt(content: str, excerpt: str | None = None) -> str:
    """
    Return the trimmed excerpt, or derive one from the content.

    Example:
        derive_excerpt("Hello world")  # "Hello world..."
    """
    if excerpt and excerpt.strip():
        return excerpt.strip()
    return content[:EXCERPT_LENGTH].strip() + "..."


def validate_status(value: str | None) -> str:
    if value not in POST_STATUSES:
        raise ValueError(f"Status must be one of: {', '.join(POST_STATUSES)}")
    return value


def _populated(db: Session):
    """Post query with author, likes, and comment authors loaded up front."""
    return db.query(models.Post).options(
        joinedload(models.Post.author),
        selectinload(models.Post.likes),
        selectinload(models.Post.comments).joinedload(models.PostComment.author),
    )


# ============================================================================
# READS
# ============================================================================


def list_posts(
    db: Session,
    page: int | None = None,
    limit: int | None = None,
    category: str | None = None,
    tag: str | None = None,
    search: str | None = None,
    status: str | None = None,
    author_id: int | None = None,
) -> Page:
    """
    Filtered, newest-first page of posts.

    Args:
        category: Exact category slug
        tag: Exact tag membership
        search: Case-insensitive substring of title or content
        status: Exact status
        author_id: Restrict to one author's posts
    """
    query = _populated(db)

    if author_id is not None:
        query = query.filter(models.Post.author_id == author_id)
    if category:
        query = query.filter(models.Post.category_slug == category)
    if tag:
        # Tags are a JSON array; match the serialized, quoted element
        query = query.filter(cast(models.Post.tags, String).contains(json.dumps(tag), autoescape=True))
    if search:
        query = query.filter(
            or_(
                models.Post.title.icontains(search, autoescape=True),
                models.Post.content.icontains(search, autoescape=True),
            )
        )
    if status:
        query = query.filter(models.Post.status == status)

    query = query.order_by(models.Post.created_at.desc(), models.Post.id.desc())
    return paginate(query, page, limit)


def get_post(db: Session, post_id: int) -> models.Post | None:
    return _populated(db).filter(models.Post.id == post_id).first()


def increment_views(db: Session, post_id: int) -> bool:
    """
    Atomically add one view with a single UPDATE statement.

    Returns:
        True if the post exists and was incremented, False otherwise
    """
    updated = (
        db.query(models.Post)
        .filter(models.Post.id == post_id)
        .update({models.Post.views: models.Post.views + 1}, synchronize_session=False)
    )
    db.commit()
    return updated > 0


# ============================================================================
# POST WRITES
# ============================================================================


def create_post(
    db: Session,
    author_id: int,
    title: str,
    content: str,
    category_name: str,
    tags: list[str] | None = None,
    excerpt: str | None = None,
    status: str | None = None,
    featured_image: str | None = None,
) -> models.Post:
    """
    Insert a new post. Slugs are derived on flush by the model listener.

    Raises:
        ValueError: If the status is not a known post status
    """
    post = models.Post(
        author_id=author_id,
        title=title.strip(),
        content=content,
        excerpt=derive_excerpt(content, excerpt),
        category_name=category_name,
        tags=list(tags or []),
        status=validate_status(status or "draft"),
        featured_image=featured_image,
        views=0,
    )
    db.add(post)
    db.commit()
    logger.info(f"Created post {post.id} by user {author_id}")
    return post


def update_post(db: Session, post: models.Post, changes: dict[str, Any]) -> models.Post:
    """
    Apply a partial update. Only keys present in ``changes`` are written.

    Raises:
        ValueError: If a new status is not a known post status
    """
    if "status" in changes:
        validate_status(changes["status"])
    if "title" in changes:
        changes["title"] = changes["title"].strip()
    if "excerpt" in changes:
        changes["excerpt"] = changes["excerpt"].strip()

    for field, value in changes.items():
        setattr(post, field, value)

    db.commit()
    logger.info(f"Updated post {post.id}: {sorted(changes)}")
    return post


def delete_post(db: Session, post: models.Post) -> tuple[str, str | None]:
    """
    Delete a post row (likes and comments cascade).

    Returns:
        Tuple of (title, featured_image) captured before deletion
    """
    title, image, post_id = post.title, post.featured_image, post.id
    db.delete(post)
    db.commit()
    logger.info(f"Deleted post {post_id}")
    return title, image


# ============================================================================
# LIKES
# ============================================================================


def toggle_like(db: Session, post_id: int, user_id: int) -> tuple[bool, bool]:
    """
    Flip a user's like on a post.

    Removal is one DELETE; addition is one INSERT guarded by the
    (post_id, user_id) unique constraint, so concurrent toggles cannot leave
    a duplicate like.

    Returns:
        Tuple of (liked, newly_liked). ``newly_liked`` is False both for an
        unlike and for an insert that lost a race to an identical insert.
    """
    removed = (
        db.query(models.PostLike)
        .filter(models.PostLike.post_id == post_id, models.PostLike.user_id == user_id)
        .delete(synchronize_session=False)
    )
    if removed:
        db.commit()
        return False, False

    db.add(models.PostLike(post_id=post_id, user_id=user_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Concurrent like for post {post_id} by user {user_id}; already liked")
        return True, False

    return True, True


def has_liked(db: Session, post_id: int, user_id: int) -> bool:
    return (
        db.query(models.PostLike.id)
        .filter(models.PostLike.post_id == post_id, models.PostLike.user_id == user_id)
        .first()
        is not None
    )


# ============================================================================
# COMMENTS
# ============================================================================


def add_comment(db: Session, post: models.Post, author_id: int, body: str) -> models.PostComment:
    comment = models.PostComment(post_id=post.id, author_id=author_id, body=body)
    db.add(comment)
    db.commit()
    return comment


def find_comment(db: Session, post_id: int, comment_id: UUID) -> models.PostComment | None:
    return (
        db.query(models.PostComment)
        .options(joinedload(models.PostComment.author))
        .filter(models.PostComment.post_id == post_id, models.PostComment.id == comment_id)
        .first()
    )


def edit_comment(db: Session, comment: models.PostComment, body: str) -> models.PostComment:
    comment.body = body
    db.commit()
    return comment


def delete_comment(db: Session, comment: models.PostComment) -> list[models.PostComment]:
    """
    Remove a comment by id.

    Returns:
        The post's remaining comments, newest first
    """
    post_id = comment.post_id
    db.delete(comment)
    db.commit()
    return (
        db.query(models.PostComment)
        .options(joinedload(models.PostComment.author))
        .filter(models.PostComment.post_id == post_id)
        .order_by(models.PostComment.created_at.desc())
        .all()
    )
