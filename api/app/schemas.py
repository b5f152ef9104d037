from __future__ import annotations

from datetime import datetime
from typing import Any, Generic, Literal, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# ============================================================================
# BASE SCHEMAS
# ============================================================================


T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Standard response wrapper: ``{success, data, message}``."""

    success: bool = True
    data: T
    message: str | None = None


class ListEnvelope(BaseModel, Generic[T]):
    """Paginated list wrapper used by the post listings."""

    success: bool = True
    data: list[T]
    total: int
    total_pages: int
    current_page: int


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class FeedEnvelope(BaseModel, Generic[T]):
    """Paginated list wrapper used by the activity feed."""

    success: bool = True
    data: list[T]
    pagination: PaginationInfo


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: Literal[False] = False
    message: str
    errors: list[dict[str, Any]] | None = None


# ============================================================================
# HEALTH
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"
    uptime_s: float | None = None


# ============================================================================
# USER SCHEMAS
# ============================================================================


class AuthorSummary(BaseModel):
    """Author fields populated into posts, comments, and feeds."""

    id: int
    first_name: str
    last_name: str
    username: str
    avatar: str

    model_config = ConfigDict(from_attributes=True)


class UserPublic(AuthorSummary):
    """Public user profile."""

    bio: str | None = None
    interests: list[str] = Field(default_factory=list)
    created_at: datetime


class UserFull(UserPublic):
    """Full user record (for the user themselves or an admin)."""

    email: str
    role: Literal["user", "admin"]
    updated_at: datetime | None = None


class RegisterRequest(BaseModel):
    """Create account request."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class AuthData(BaseModel):
    """Token plus the authenticated user."""

    token: str
    user: UserFull


class AdminUserUpdate(BaseModel):
    """Admin edit of any user; omitted fields are left unchanged."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    username: str | None = Field(None, min_length=3, max_length=50)
    email: EmailStr | None = None
    bio: str | None = None
    role: Literal["user", "admin"] | None = None
    interests: list[str] | None = None


class InterestsRequest(BaseModel):
    interests: list[str] = Field(default_factory=list)


class ProfileTotals(BaseModel):
    total_posts: int
    total_likes: int
    total_comments: int


# ============================================================================
# POST SCHEMAS
# ============================================================================


class CategoryOut(BaseModel):
    name: str
    slug: str


class CommentOut(BaseModel):
    """A comment as rendered inside a post."""

    id: UUID
    user: AuthorSummary = Field(validation_alias="author")
    content: str = Field(validation_alias="body")
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class CommentCreate(BaseModel):
    """Add / edit comment request. Validated by the service for exact messages."""

    content: str | None = None


class PostOut(BaseModel):
    """Full post with populated author, likes, and comments."""

    id: int
    title: str
    slug: str
    content: str
    excerpt: str | None = None
    featured_image: str | None = None
    category: CategoryOut
    tags: list[str] = Field(default_factory=list)
    status: Literal["draft", "published"]
    views: int
    author: AuthorSummary
    likes: list[int] = Field(default_factory=list, validation_alias="like_user_ids")
    like_count: int
    comments: list[CommentOut] = Field(default_factory=list)
    comment_count: int
    created_at: datetime
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class PostLikeOut(PostOut):
    """Post returned from the like toggle, with the actor's resulting state."""

    liked: bool


class UserProfileOut(BaseModel):
    user: UserPublic
    posts: list[PostOut]
    stats: ProfileTotals


# ============================================================================
# ACTIVITY SCHEMAS
# ============================================================================


class ActivityPost(BaseModel):
    id: int
    title: str
    slug: str

    model_config = ConfigDict(from_attributes=True)


class ActivityOut(BaseModel):
    """One rendered feed entry."""

    id: int
    type: str
    user_id: int
    target_user_id: int | None = None
    post: ActivityPost | None = None
    comment_id: UUID | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    content: str
    created_at: datetime


# ============================================================================
# STATISTICS SCHEMAS
# ============================================================================


class StatsOverview(BaseModel):
    total_posts: int
    total_views: int
    total_likes: int
    total_comments: int
    engagement_rate: float


class MonthlyStat(BaseModel):
    year: int
    month: int
    posts: int
    views: int
    likes: int
    comments: int


class EngagementWindow(BaseModel):
    views: int
    likes: int
    comments: int


class RecentEngagement(BaseModel):
    last_30_days: EngagementWindow


class UserStatsOut(BaseModel):
    overview: StatsOverview
    posts_by_status: dict[str, int]
    monthly_stats: list[MonthlyStat]
    recent_engagement: RecentEngagement
    cached: bool | None = None


class SiteStatItem(BaseModel):
    label: str
    value: str


class CountriesUpdate(BaseModel):
    count: int = Field(..., ge=0)
