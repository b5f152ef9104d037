"""Redis-backed cache for per-user statistics."""

from __future__ import annotations

import json
import logging
from typing import Callable

import redis

from .settings import REDIS_URL, STATS_CACHE_TTL

logger = logging.getLogger(__name__)

# Redis connection
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis | None:
    """
    Get or create the shared Redis client.

    Returns None if the connection fails; callers then run uncached.
    """
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    try:
        client = redis.from_url(REDIS_URL, decode_responses=True)
        client.ping()
    except redis.RedisError as e:
        logger.warning(f"Redis cache unavailable: {e}. Continuing without cache.")
        return None

    logger.info("Redis cache connected successfully")
    _redis_client = client
    return _redis_client


class StatsCache:
    """
    Read-through cache of computed user statistics.

    Entries are stored as JSON under ``stats:<user_id>`` with a TTL of
    ``ttl`` seconds, and dropped early by ``invalidate`` whenever a user's
    posts, likes, or comments change. Two concurrent misses for the same
    user may both compute; the last write wins.
    """

    KEY_PREFIX = "stats:"

    def __init__(self, client: redis.Redis | None = None, ttl: int = STATS_CACHE_TTL):
        self.client = client
        self.ttl = ttl

    def _redis(self) -> redis.Redis | None:
        if self.client is not None:
            return self.client
        return get_redis_client()

    @classmethod
    def key_for(cls, user_id: int) -> str:
        return f"{cls.KEY_PREFIX}{user_id}"

    def get(self, user_id: int) -> dict | None:
        """
        Retrieve cached stats for a user.

        Args:
            user_id: Integer ID of the user

        Returns:
            Cached stats dict if present and not expired, None otherwise
        """
        client = self._redis()
        if not client:
            return None

        key = self.key_for(user_id)
        try:
            value = client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Cache get error for key '{key}': {e}")
            return None

        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning(f"Discarding unreadable cache entry '{key}'")
            return None

    def set(self, user_id: int, value: dict) -> bool:
        client = self._redis()
        if not client:
            return False

        key = self.key_for(user_id)
        try:
            client.set(key, json.dumps(value), ex=self.ttl)
        except redis.RedisError as e:
            logger.warning(f"Cache set error for key '{key}': {e}")
            return False
        return True

    def get_or_compute(self, user_id: int, compute: Callable[[], dict]) -> tuple[dict, bool]:
        """
        Return cached stats, computing and storing them on a miss.

        Args:
            user_id: Integer ID of the user
            compute: Zero-argument callable producing fresh stats

        Returns:
            Tuple of (stats, served_from_cache)
        """
        cached = self.get(user_id)
        if cached is not None:
            logger.debug(f"Stats cache hit for user {user_id}")
            return cached, True

        logger.debug(f"Stats cache miss for user {user_id}, computing...")
        value = compute()
        self.set(user_id, value)
        return value, False

    def invalidate(self, user_id: int | None) -> bool:
        """
        Drop the cached stats for a user.

        Returns:
            True if an entry was removed, False otherwise
        """
        if user_id is None:
            return False

        client = self._redis()
        if not client:
            return False

        key = self.key_for(user_id)
        try:
            removed = bool(client.delete(key))
        except redis.RedisError as e:
            logger.warning(f"Cache delete error for key '{key}': {e}")
            return False

        if removed:
            logger.info(f"Invalidated stats cache for user {user_id}")
        return removed

    def clear(self) -> int:
        """
        Drop every cached stats entry.

        Returns:
            Number of keys deleted
        """
        client = self._redis()
        if not client:
            return 0

        try:
            keys = list(client.scan_iter(match=f"{self.KEY_PREFIX}*"))
            if not keys:
                return 0
            return client.delete(*keys)
        except redis.RedisError as e:
            logger.warning(f"Cache clear error: {e}")
            return 0


stats_cache = StatsCache()
