"""Centralized environment-driven settings.

Keep this module lightweight: stdlib only, no app imports, to avoid circular deps.
"""

from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

# Comma-separated browser origins allowed to call the API
CORS_ORIGINS: list[str] = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

# Root directory for uploaded files. Post images land in UPLOAD_DIR/posts,
# avatars in UPLOAD_DIR/avatars.
UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "public/uploads")

# Maximum size for a single uploaded image (bytes).
# Configured via .env: MAX_UPLOAD_BYTES=1000000  (1 MB)
MAX_UPLOAD_BYTES: int = _int_env("MAX_UPLOAD_BYTES", 1_000_000)

# Redis connection for the per-user statistics cache
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Per-user statistics cache lifetime (seconds)
STATS_CACHE_TTL: int = _int_env("STATS_CACHE_TTL", 300)

# Values used when the site stats row is first created
DEFAULT_COUNTRIES_REACHED: int = _int_env("DEFAULT_COUNTRIES_REACHED", 150)
DEFAULT_UPTIME_PERCENTAGE: float = _float_env("DEFAULT_UPTIME_PERCENTAGE", 99.9)

# Pagination defaults
DEFAULT_PAGE_SIZE: int = _int_env("DEFAULT_PAGE_SIZE", 10)
MAX_PAGE_SIZE: int = _int_env("MAX_PAGE_SIZE", 100)

# Comment body limit (characters)
MAX_COMMENT_LENGTH = 1000

# Length of the excerpt derived from content when none is supplied
EXCERPT_LENGTH = 150


def is_development() -> bool:
    return ENVIRONMENT == "development"
