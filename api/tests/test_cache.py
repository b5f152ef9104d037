"""Test the per-user statistics cache."""

import fakeredis
import pytest
import redis

from app.cache import StatsCache


@pytest.fixture()
def server() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def cache(server) -> StatsCache:
    return StatsCache(client=server, ttl=300)


class BrokenRedis:
    """Client whose every call fails like a dropped connection."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise redis.ConnectionError("connection refused")

        return fail


def test_get_or_compute_caches_value(cache: StatsCache):
    calls = []

    def compute():
        calls.append(1)
        return {"n": len(calls)}

    assert cache.get_or_compute(7, compute) == ({"n": 1}, False)
    assert cache.get_or_compute(7, compute) == ({"n": 1}, True)
    assert len(calls) == 1


def test_entries_stored_as_json_with_ttl(cache: StatsCache, server):
    cache.set(1, {"overview": {"total_posts": 3}})

    assert server.get("stats:1") == '{"overview": {"total_posts": 3}}'
    assert 0 < server.ttl("stats:1") <= 300


def test_invalidate(cache: StatsCache):
    cache.set(1, {"v": 1})
    cache.set(2, {"v": 2})

    assert cache.invalidate(1) is True
    assert cache.invalidate(1) is False
    assert cache.invalidate(None) is False
    assert cache.get(1) is None
    assert cache.get(2) == {"v": 2}


def test_clear_only_touches_stats_keys(cache: StatsCache, server):
    cache.set(1, {})
    cache.set(2, {})
    server.set("unrelated", "keep")

    assert cache.clear() == 2
    assert cache.get(1) is None
    assert server.get("unrelated") == "keep"


def test_unreadable_entry_is_a_miss(cache: StatsCache, server):
    server.set("stats:5", "not json")
    assert cache.get(5) is None


def test_redis_errors_degrade_to_uncached():
    cache = StatsCache(client=BrokenRedis())

    assert cache.get_or_compute(1, lambda: {"v": 1}) == ({"v": 1}, False)
    assert cache.set(1, {"v": 1}) is False
    assert cache.invalidate(1) is False
    assert cache.clear() == 0


def test_key_format():
    assert StatsCache.key_for(42) == "stats:42"
