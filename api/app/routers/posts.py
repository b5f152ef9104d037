"""Post, like, and comment endpoints."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import get_current_user, require_ownership
from ..cache import StatsCache
from ..deps import get_db, get_stats_cache
from ..pagination import Page
from ..services import activity
from ..services import posts as post_service
from ..uploads import delete_upload, save_upload_file
from ..validation import parse_category, parse_tags, validate_comment_body

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Posts"])


def _get_post_or_404(db: Session, post_id: int) -> models.Post:
    post = post_service.get_post(db, post_id)
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


def _store_featured_image(upload: UploadFile | None) -> str | None:
    try:
        return save_upload_file(upload, "posts")
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except OSError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save image",
        )


def _list_response(page: Page) -> schemas.ListEnvelope[schemas.PostOut]:
    return schemas.ListEnvelope(
        data=[schemas.PostOut.model_validate(p) for p in page.items],
        total=page.total,
        total_pages=page.pages,
        current_page=page.page,
    )


# ============================================================================
# POSTS
# ============================================================================


@router.get("", response_model=schemas.ListEnvelope[schemas.PostOut])
def list_posts(
    page: int = Query(1),
    limit: int = Query(10),
    category: str | None = None,
    tag: str | None = None,
    search: str | None = None,
    post_status: str | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
) -> schemas.ListEnvelope[schemas.PostOut]:
    """
    List posts newest first.

    Filters:
    - category: category slug
    - tag: posts carrying this tag
    - search: case-insensitive match in title or content
    - status: "draft" or "published"
    """
    result = post_service.list_posts(
        db,
        page=page,
        limit=limit,
        category=category,
        tag=tag,
        search=search,
        status=post_status,
    )
    return _list_response(result)


@router.get("/me/posts", response_model=schemas.ListEnvelope[schemas.PostOut])
def list_my_posts(
    page: int = Query(1),
    limit: int = Query(10),
    post_status: str | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.ListEnvelope[schemas.PostOut]:
    """List the current user's own posts, drafts included."""
    result = post_service.list_posts(
        db, page=page, limit=limit, status=post_status, author_id=current_user.id
    )
    return _list_response(result)


@router.get("/{post_id}", response_model=schemas.Envelope[schemas.PostOut])
def get_post(
    post_id: int,
    db: Session = Depends(get_db),
) -> schemas.Envelope[schemas.PostOut]:
    """Fetch a post and count the view."""
    if not post_service.increment_views(db, post_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")

    post = _get_post_or_404(db, post_id)
    return schemas.Envelope(data=schemas.PostOut.model_validate(post))


@router.post(
    "",
    response_model=schemas.Envelope[schemas.PostOut],
    status_code=status.HTTP_201_CREATED,
)
def create_post(
    title: str | None = Form(None),
    content: str | None = Form(None),
    excerpt: str | None = Form(None),
    category: str | None = Form(None),
    tags: list[str] | None = Form(None),
    tags_bracketed: list[str] | None = Form(None, alias="tags[]"),
    post_status: str | None = Form(None, alias="status"),
    featured_image: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    cache: StatsCache = Depends(get_stats_cache),
) -> schemas.Envelope[schemas.PostOut]:
    """
    Create a post from a multipart form.

    ``category`` is a JSON object string such as '{"name": "Tech News"}'.
    ``tags`` accepts several shapes; see validation.parse_tags.
    """
    if not title or not title.strip() or not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title and content are required",
        )

    try:
        category_name = parse_category(category)
        tag_list = parse_tags(tags_bracketed, tags)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    image_path = _store_featured_image(featured_image)

    try:
        post = post_service.create_post(
            db,
            author_id=current_user.id,
            title=title,
            content=content,
            category_name=category_name,
            tags=tag_list,
            excerpt=excerpt,
            status=post_status,
            featured_image=image_path,
        )
    except ValueError as e:
        db.rollback()
        delete_upload(image_path)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception:
        db.rollback()
        delete_upload(image_path)
        raise

    post_id = post.id
    activity.post_created(db, current_user.id, post)
    cache.invalidate(current_user.id)

    post = _get_post_or_404(db, post_id)
    return schemas.Envelope(
        data=schemas.PostOut.model_validate(post),
        message="Post created successfully",
    )


@router.put("/{post_id}", response_model=schemas.Envelope[schemas.PostOut])
def update_post(
    post_id: int,
    title: str | None = Form(None),
    content: str | None = Form(None),
    excerpt: str | None = Form(None),
    category: str | None = Form(None),
    tags: list[str] | None = Form(None),
    tags_bracketed: list[str] | None = Form(None, alias="tags[]"),
    post_status: str | None = Form(None, alias="status"),
    featured_image: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    cache: StatsCache = Depends(get_stats_cache),
) -> schemas.Envelope[schemas.PostOut]:
    """Partially update a post (author or admin). Empty fields are ignored."""
    post = _get_post_or_404(db, post_id)
    require_ownership(post.author_id, current_user, detail="Not authorized to update this post")

    changes: dict = {}
    if title and title.strip():
        changes["title"] = title
    if content:
        changes["content"] = content
    if excerpt and excerpt.strip():
        changes["excerpt"] = excerpt
    if post_status:
        changes["status"] = post_status

    try:
        if category:
            changes["category_name"] = parse_category(category)
        if tags or tags_bracketed:
            changes["tags"] = parse_tags(tags_bracketed, tags)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    old_image = post.featured_image
    new_image = _store_featured_image(featured_image)
    if new_image:
        changes["featured_image"] = new_image

    try:
        post = post_service.update_post(db, post, changes)
    except ValueError as e:
        db.rollback()
        delete_upload(new_image)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception:
        db.rollback()
        delete_upload(new_image)
        raise

    if new_image and old_image:
        delete_upload(old_image)

    author_id = post.author_id
    activity.post_updated(db, current_user.id, post)
    cache.invalidate(author_id)

    post = _get_post_or_404(db, post_id)
    return schemas.Envelope(data=schemas.PostOut.model_validate(post))


@router.delete("/{post_id}", response_model=schemas.Envelope[dict])
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    cache: StatsCache = Depends(get_stats_cache),
) -> schemas.Envelope[dict]:
    """Delete a post with its likes, comments, and featured image (author or admin)."""
    post = _get_post_or_404(db, post_id)
    require_ownership(post.author_id, current_user, detail="Not authorized to delete this post")

    author_id = post.author_id
    title, image = post_service.delete_post(db, post)
    if image:
        delete_upload(image)

    activity.post_deleted(db, current_user.id, title)
    cache.invalidate(author_id)

    return schemas.Envelope(data={})


# ============================================================================
# LIKES
# ============================================================================


@router.put("/{post_id}/like", response_model=schemas.Envelope[schemas.PostLikeOut])
def toggle_like(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    cache: StatsCache = Depends(get_stats_cache),
) -> schemas.Envelope[schemas.PostLikeOut]:
    """Like the post, or remove the like if the current user already liked it."""
    post = _get_post_or_404(db, post_id)
    author_id = post.author_id

    liked, newly_liked = post_service.toggle_like(db, post_id, current_user.id)
    if newly_liked:
        activity.like_given(db, current_user.id, post)
    cache.invalidate(author_id)

    post = _get_post_or_404(db, post_id)
    post.liked = liked
    return schemas.Envelope(data=schemas.PostLikeOut.model_validate(post))


# ============================================================================
# COMMENTS
# ============================================================================


@router.post(
    "/{post_id}/comments",
    response_model=schemas.Envelope[schemas.CommentOut],
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    post_id: int,
    payload: schemas.CommentCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    cache: StatsCache = Depends(get_stats_cache),
) -> schemas.Envelope[schemas.CommentOut]:
    """Comment on a post (max 1000 characters)."""
    post = _get_post_or_404(db, post_id)

    try:
        body = validate_comment_body(payload.content)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    author_id = post.author_id
    comment = post_service.add_comment(db, post, current_user.id, body)
    comment_id = comment.id

    activity.comment_added(db, current_user.id, post, comment)
    cache.invalidate(author_id)

    comment = post_service.find_comment(db, post_id, comment_id)
    return schemas.Envelope(
        data=schemas.CommentOut.model_validate(comment),
        message="Comment added successfully",
    )


@router.put(
    "/{post_id}/comments/{comment_id}",
    response_model=schemas.Envelope[schemas.CommentOut],
)
def edit_comment(
    post_id: int,
    comment_id: UUID,
    payload: schemas.CommentCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    cache: StatsCache = Depends(get_stats_cache),
) -> schemas.Envelope[schemas.CommentOut]:
    """Edit a comment in place (comment author only). No activity is recorded."""
    post = _get_post_or_404(db, post_id)
    comment = post_service.find_comment(db, post_id, comment_id)
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")

    if comment.author_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized to edit this comment",
        )

    try:
        body = validate_comment_body(payload.content)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    author_id = post.author_id
    comment = post_service.edit_comment(db, comment, body)
    cache.invalidate(author_id)

    comment = post_service.find_comment(db, post_id, comment_id)
    return schemas.Envelope(data=schemas.CommentOut.model_validate(comment))


@router.delete(
    "/{post_id}/comments/{comment_id}",
    response_model=schemas.Envelope[list[schemas.CommentOut]],
)
def delete_comment(
    post_id: int,
    comment_id: UUID,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    cache: StatsCache = Depends(get_stats_cache),
) -> schemas.Envelope[list[schemas.CommentOut]]:
    """
    Delete a comment.

    Allowed for the comment's author, the post's author, or an admin.
    Returns the comments that remain on the post.
    """
    post = _get_post_or_404(db, post_id)
    comment = post_service.find_comment(db, post_id, comment_id)
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")

    if (
        comment.author_id != current_user.id
        and post.author_id != current_user.id
        and not current_user.is_admin
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized to delete this comment",
        )

    author_id = post.author_id
    remaining = post_service.delete_comment(db, comment)
    cache.invalidate(author_id)

    return schemas.Envelope(data=[schemas.CommentOut.model_validate(c) for c in remaining])
