"""User profile and admin user-management endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import EmailStr
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..auth import get_current_user, require_admin
from ..cache import StatsCache
from ..deps import get_db, get_stats_cache
from ..services import activity
from ..services.accounts import DuplicateAccountError, apply_account_changes
from ..uploads import delete_upload, save_upload_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

DEFAULT_AVATAR = "default-avatar.jpg"
MIN_INTERESTS = 3


def _clean_interests(values: list[str]) -> list[str]:
    return [value.strip() for value in values if value and value.strip()]


@router.get("/profile/{username}", response_model=schemas.Envelope[schemas.UserProfileOut])
def get_user_profile(
    username: str,
    db: Session = Depends(get_db),
) -> schemas.Envelope[schemas.UserProfileOut]:
    """Public profile: the user, their posts newest first, and engagement totals."""
    user = (
        db.query(models.User)
        .options(
            selectinload(models.User.posts).joinedload(models.Post.author),
            selectinload(models.User.posts).selectinload(models.Post.likes),
            selectinload(models.User.posts)
            .selectinload(models.Post.comments)
            .joinedload(models.PostComment.author),
        )
        .filter(models.User.username == username)
        .first()
    )
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    posts = list(user.posts)
    totals = schemas.ProfileTotals(
        total_posts=len(posts),
        total_likes=sum(post.like_count for post in posts),
        total_comments=sum(post.comment_count for post in posts),
    )
    return schemas.Envelope(
        data=schemas.UserProfileOut(
            user=schemas.UserPublic.model_validate(user),
            posts=[schemas.PostOut.model_validate(post) for post in posts],
            stats=totals,
        )
    )


@router.put("/profile", response_model=schemas.Envelope[schemas.UserFull])
def update_profile(
    first_name: str | None = Form(None),
    last_name: str | None = Form(None),
    username: str | None = Form(None, min_length=3, max_length=50),
    email: EmailStr | None = Form(None),
    bio: str | None = Form(None),
    interests: list[str] | None = Form(None),
    avatar: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Envelope[schemas.UserFull]:
    """Partially update the current user's profile, optionally replacing the avatar."""
    try:
        new_avatar = save_upload_file(avatar, "avatars")
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except OSError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save avatar",
        )

    old_avatar = current_user.avatar
    changes = {
        "first_name": first_name.strip() if first_name and first_name.strip() else None,
        "last_name": last_name.strip() if last_name and last_name.strip() else None,
        "username": username,
        "email": email,
        "bio": bio.strip() if bio is not None else None,
        "interests": _clean_interests(interests) if interests is not None else None,
        "avatar": new_avatar,
    }

    try:
        apply_account_changes(db, current_user, **changes)
    except DuplicateAccountError as e:
        delete_upload(new_avatar)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception:
        db.rollback()
        delete_upload(new_avatar)
        raise

    if new_avatar and old_avatar and old_avatar != DEFAULT_AVATAR:
        delete_upload(old_avatar)

    user_id = current_user.id
    activity.profile_updated(db, user_id)

    user = db.get(models.User, user_id)
    return schemas.Envelope(
        data=schemas.UserFull.model_validate(user),
        message="Profile updated successfully",
    )


@router.post("/interests", response_model=schemas.Envelope[schemas.UserFull])
def save_interests(
    payload: schemas.InterestsRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.Envelope[schemas.UserFull]:
    interests = _clean_interests(payload.interests)
    if len(interests) < MIN_INTERESTS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Please select at least {MIN_INTERESTS} interests",
        )

    current_user.interests = interests
    db.commit()
    db.refresh(current_user)
    return schemas.Envelope(
        data=schemas.UserFull.model_validate(current_user),
        message="Interests saved successfully",
    )


# ============================================================================
# ADMIN
# ============================================================================


@router.get("", response_model=schemas.Envelope[list[schemas.UserFull]])
def list_users(
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.Envelope[list[schemas.UserFull]]:
    users = db.query(models.User).order_by(models.User.created_at.desc()).all()
    return schemas.Envelope(data=[schemas.UserFull.model_validate(u) for u in users])


@router.get("/{user_id}", response_model=schemas.Envelope[schemas.UserFull])
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.Envelope[schemas.UserFull]:
    user = db.get(models.User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return schemas.Envelope(data=schemas.UserFull.model_validate(user))


@router.put("/{user_id}", response_model=schemas.Envelope[schemas.UserFull])
def update_user(
    user_id: int,
    payload: schemas.AdminUserUpdate,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
) -> schemas.Envelope[schemas.UserFull]:
    """Edit any user's account fields, including role (admin only)."""
    user = db.get(models.User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    changes = payload.model_dump(exclude_none=True)
    if "interests" in changes:
        changes["interests"] = _clean_interests(changes["interests"])

    try:
        user = apply_account_changes(db, user, **changes)
    except DuplicateAccountError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(f"Admin {admin.id} updated user {user_id}: {sorted(changes)}")
    return schemas.Envelope(data=schemas.UserFull.model_validate(user))


@router.delete("/{user_id}", response_model=schemas.Envelope[dict])
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: models.User = Depends(require_admin),
    cache: StatsCache = Depends(get_stats_cache),
) -> schemas.Envelope[dict]:
    """Delete a user with their posts, comments, likes, and activities (admin only)."""
    user = db.get(models.User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    # Authors whose like/comment totals change when this user's rows go away
    affected_authors = {
        author_id
        for (author_id,) in db.query(models.Post.author_id)
        .join(models.PostComment, models.PostComment.post_id == models.Post.id)
        .filter(models.PostComment.author_id == user_id)
        .distinct()
    }
    affected_authors |= {
        author_id
        for (author_id,) in db.query(models.Post.author_id)
        .join(models.PostLike, models.PostLike.post_id == models.Post.id)
        .filter(models.PostLike.user_id == user_id)
        .distinct()
    }
    images = [post.featured_image for post in user.posts if post.featured_image]
    avatar = user.avatar

    db.delete(user)
    db.commit()
    logger.info(f"Admin {admin.id} deleted user {user_id}")

    for image in images:
        delete_upload(image)
    if avatar and avatar != DEFAULT_AVATAR:
        delete_upload(avatar)

    cache.invalidate(user_id)
    for author_id in affected_authors:
        cache.invalidate(author_id)

    return schemas.Envelope(data={})
