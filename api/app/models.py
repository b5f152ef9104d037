from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
    func,
)
from sqlalchemy.orm import relationship

from .db import Base
from .utils.slugs import slugify


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# CORE ENTITIES
# ============================================================================


class User(Base):
    """User account with credentials and profile information."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(
        String(255), unique=True, nullable=False, index=True
    )  # Stored lowercase
    password_hash = Column(String(255), nullable=False)

    # Profile
    bio = Column(Text, nullable=True)
    avatar = Column(String(500), nullable=False, default="default-avatar.jpg")
    interests = Column(JSON, nullable=False, default=list)

    role = Column(String(20), nullable=False, default="user")  # "user" | "admin"

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True
    )
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    # Relationships
    posts = relationship(
        "Post",
        back_populates="author",
        foreign_keys="Post.author_id",
        order_by="Post.created_at.desc()",
        cascade="all, delete-orphan",
    )
    comments = relationship(
        "PostComment",
        back_populates="author",
        foreign_keys="PostComment.author_id",
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Post(Base):
    """Blog post with embedded likes and comments."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Content
    title = Column(String(300), nullable=False)
    slug = Column(String(350), nullable=False, index=True)  # Derived from title
    content = Column(Text, nullable=False)
    excerpt = Column(Text, nullable=True)
    featured_image = Column(String(500), nullable=True)  # Relative upload path

    # Classification
    category_name = Column(String(100), nullable=False)
    category_slug = Column(String(120), nullable=False, index=True)  # Derived from category_name
    tags = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="draft", index=True)  # "draft" | "published"

    views = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True
    )
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    # Relationships
    author = relationship("User", back_populates="posts", foreign_keys=[author_id])
    likes = relationship(
        "PostLike",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    comments = relationship(
        "PostComment",
        back_populates="post",
        order_by="PostComment.created_at.desc()",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_posts_author_created", author_id, created_at.desc()),
        Index("ix_posts_status_created", status, created_at.desc()),
    )

    @property
    def category(self) -> dict:
        return {"name": self.category_name, "slug": self.category_slug}

    @property
    def like_user_ids(self) -> list[int]:
        return [like.user_id for like in self.likes]

    @property
    def like_count(self) -> int:
        return len(self.likes)

    @property
    def comment_count(self) -> int:
        return len(self.comments)


@event.listens_for(Post, "before_insert")
@event.listens_for(Post, "before_update")
def _derive_post_slugs(mapper, connection, target: Post) -> None:
    """Keep slug and category_slug derived from their source fields on every save."""
    if target.title is not None:
        target.slug = slugify(target.title)
    if target.category_name is not None:
        target.category_slug = slugify(target.category_name)


class PostLike(Base):
    """Membership of a user in a post's likes."""

    __tablename__ = "post_likes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # Relationships
    post = relationship("Post", back_populates="likes")

    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_post_likes_post_user"),
    )


class PostComment(Base):
    """Comment on a post, addressed by its own UUID."""

    __tablename__ = "post_comments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    post_id = Column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    body = Column(Text, nullable=False)  # Up to 1000 characters

    # Timestamps
    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True
    )
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    # Relationships
    post = relationship("Post", back_populates="comments")
    author = relationship("User", back_populates="comments", foreign_keys=[author_id])

    __table_args__ = (Index("ix_post_comments_post_created", post_id, created_at.desc()),)


# ============================================================================
# ACTIVITY FEED
# ============================================================================


ACTIVITY_TYPES = (
    "post_created",
    "post_updated",
    "post_deleted",
    "comment_added",
    "comment_received",
    "like_given",
    "like_received",
    "profile_updated",
)


class Activity(Base):
    """Immutable record of a user-facing event."""

    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(32), nullable=False)
    post_id = Column(
        Integer, ForeignKey("posts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    comment_id = Column(Uuid(as_uuid=True), nullable=True)
    target_user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )  # Set for the "received" variants
    details = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), index=True
    )

    # Relationships
    post = relationship("Post", foreign_keys=[post_id])

    __table_args__ = (
        Index("ix_activities_user_created", user_id, created_at.desc()),
        Index("ix_activities_target_created", target_user_id, created_at.desc()),
    )


# ============================================================================
# SITEWIDE METRICS
# ============================================================================


class SiteStats(Base):
    """Singleton row of public site-wide numbers."""

    __tablename__ = "site_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)

    active_users_count = Column(Integer, nullable=False, default=0)
    active_users_updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    published_posts_count = Column(Integer, nullable=False, default=0)
    published_posts_updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    countries_reached_count = Column(Integer, nullable=False, default=0)
    countries_reached_updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    uptime_percentage = Column(Float, nullable=False, default=99.9)
    uptime_updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    created_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)
