"""initial blog schema: users, posts, likes, comments, activities, site stats

Revision ID: 202610180001
Revises:
Create Date: 2026-10-18 00:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "202610180001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar", sa.String(length=500), nullable=False),
        sa.Column("interests", sa.JSON(), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "posts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("slug", sa.String(length=350), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("featured_image", sa.String(length=500), nullable=True),
        sa.Column("category_name", sa.String(length=100), nullable=False),
        sa.Column("category_slug", sa.String(length=120), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_posts_id", "posts", ["id"])
    op.create_index("ix_posts_author_id", "posts", ["author_id"])
    op.create_index("ix_posts_slug", "posts", ["slug"])
    op.create_index("ix_posts_category_slug", "posts", ["category_slug"])
    op.create_index("ix_posts_status", "posts", ["status"])
    op.create_index("ix_posts_created_at", "posts", ["created_at"])
    op.create_index(
        "ix_posts_author_created", "posts", ["author_id", sa.text("created_at DESC")]
    )
    op.create_index(
        "ix_posts_status_created", "posts", ["status", sa.text("created_at DESC")]
    )

    op.create_table(
        "post_likes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "post_id",
            sa.Integer(),
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("post_id", "user_id", name="uq_post_likes_post_user"),
    )
    op.create_index("ix_post_likes_post_id", "post_likes", ["post_id"])
    op.create_index("ix_post_likes_user_id", "post_likes", ["user_id"])

    op.create_table(
        "post_comments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "post_id",
            sa.Integer(),
            sa.ForeignKey("posts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "author_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("body", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_post_comments_id", "post_comments", ["id"])
    op.create_index("ix_post_comments_post_id", "post_comments", ["post_id"])
    op.create_index("ix_post_comments_author_id", "post_comments", ["author_id"])
    op.create_index("ix_post_comments_created_at", "post_comments", ["created_at"])
    op.create_index(
        "ix_post_comments_post_created",
        "post_comments",
        ["post_id", sa.text("created_at DESC")],
    )

    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column(
            "post_id",
            sa.Integer(),
            sa.ForeignKey("posts.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("comment_id", sa.Uuid(), nullable=True),
        sa.Column(
            "target_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_activities_id", "activities", ["id"])
    op.create_index("ix_activities_user_id", "activities", ["user_id"])
    op.create_index("ix_activities_post_id", "activities", ["post_id"])
    op.create_index("ix_activities_target_user_id", "activities", ["target_user_id"])
    op.create_index("ix_activities_created_at", "activities", ["created_at"])
    op.create_index(
        "ix_activities_user_created", "activities", ["user_id", sa.text("created_at DESC")]
    )
    op.create_index(
        "ix_activities_target_created",
        "activities",
        ["target_user_id", sa.text("created_at DESC")],
    )

    op.create_table(
        "site_stats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("active_users_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active_users_updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("published_posts_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("published_posts_updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("countries_reached_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("countries_reached_updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("uptime_percentage", sa.Float(), nullable=False, server_default="99.9"),
        sa.Column("uptime_updated_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("site_stats")

    op.drop_index("ix_activities_target_created", table_name="activities")
    op.drop_index("ix_activities_user_created", table_name="activities")
    op.drop_index("ix_activities_created_at", table_name="activities")
    op.drop_index("ix_activities_target_user_id", table_name="activities")
    op.drop_index("ix_activities_post_id", table_name="activities")
    op.drop_index("ix_activities_user_id", table_name="activities")
    op.drop_index("ix_activities_id", table_name="activities")
    op.drop_table("activities")

    op.drop_index("ix_post_comments_post_created", table_name="post_comments")
    op.drop_index("ix_post_comments_created_at", table_name="post_comments")
    op.drop_index("ix_post_comments_author_id", table_name="post_comments")
    op.drop_index("ix_post_comments_post_id", table_name="post_comments")
    op.drop_index("ix_post_comments_id", table_name="post_comments")
    op.drop_table("post_comments")

    op.drop_index("ix_post_likes_user_id", table_name="post_likes")
    op.drop_index("ix_post_likes_post_id", table_name="post_likes")
    op.drop_table("post_likes")

    op.drop_index("ix_posts_status_created", table_name="posts")
    op.drop_index("ix_posts_author_created", table_name="posts")
    op.drop_index("ix_posts_created_at", table_name="posts")
    op.drop_index("ix_posts_status", table_name="posts")
    op.drop_index("ix_posts_category_slug", table_name="posts")
    op.drop_index("ix_posts_slug", table_name="posts")
    op.drop_index("ix_posts_author_id", table_name="posts")
    op.drop_index("ix_posts_id", table_name="posts")
    op.drop_table("posts")

    op.drop_index("ix_users_created_at", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
