"""Tests for the recommendation cache"""

import threading
import time
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest
import redis

from indie_recs.services.cache import (
    CacheBackend,
    CacheLockTimeout,
    CacheUnavailable,
    InMemoryCacheBackend,
    RankedList,
    RecommendationCache,
    RedisCacheBackend,
)


class FakeClock:
    """Settable clock for TTL tests"""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0))


@pytest.fixture
def cache(clock):
    return RecommendationCache(InMemoryCacheBackend(), ttl=3600, clock=clock, lock_timeout=5)


def test_set_then_get(cache, clock):
    cache.set(1, [4, 2, 9])

    ranked = cache.get(1)

    assert ranked.game_ids == [4, 2, 9]
    assert ranked.generated_at == clock.now


def test_entry_expires_after_ttl(cache, clock):
    cache.set(1, [4, 2, 9])

    clock.advance(3600)
    assert cache.get(1) is not None

    clock.advance(1)
    assert cache.get(1) is None


def test_invalidate_evicts_entry(cache):
    cache.set(1, [4, 2, 9])
    cache.set(2, [7])

    cache.invalidate(1)

    assert cache.get(1) is None
    assert cache.get(2).game_ids == [7]


def test_get_or_generate_miss_then_hit(cache):
    generate = MagicMock(return_value=[3, 1, 2])

    first, first_cached = cache.get_or_generate(1, generate, 3)
    second, second_cached = cache.get_or_generate(1, generate, 3)

    assert first.game_ids == second.game_ids == [3, 1, 2]
    assert (first_cached, second_cached) == (False, True)
    generate.assert_called_once_with(3)


def test_shorter_cached_list_counts_as_miss(cache):
    cache.get_or_generate(1, lambda size: list(range(size)), 5)

    ranked, cached = cache.get_or_generate(1, lambda size: list(range(size)), 10)

    assert cached is False
    assert ranked.game_ids == list(range(10))


def test_regeneration_discarded_when_invalidated_midway(cache):
    """An invalidation during generation wins over the older generation"""

    def generate(size):
        cache.invalidate(1)
        return [5, 6, 7]

    ranked, cached = cache.get_or_generate(1, generate, 3)

    assert ranked.game_ids == [5, 6, 7]
    assert cached is False
    assert cache.get(1) is None


def test_refresh_replaces_entry(cache):
    cache.set(1, [1, 2, 3])

    cache.refresh(1, lambda size: [9, 8, 7], 3)

    assert cache.get(1).game_ids == [9, 8, 7]


def test_concurrent_misses_regenerate_once(cache):
    calls = []
    calls_lock = threading.Lock()
    barrier = threading.Barrier(4)
    results = []

    def generate(size):
        with calls_lock:
            calls.append(size)
        time.sleep(0.1)
        return [1, 2, 3]

    def request():
        barrier.wait()
        results.append(cache.get_or_generate(1, generate, 3))

    threads = [threading.Thread(target=request) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 1
    assert len(results) == 4
    assert all(ranked.game_ids == [1, 2, 3] for ranked, _ in results)
    assert sorted(cached for _, cached in results) == [False, True, True, True]


def test_malformed_entry_is_a_miss(cache):
    cache.backend.set(cache._key(1), "{not json", 60)

    assert cache.get(1) is None


def test_lock_timeout(clock):
    backend = InMemoryCacheBackend()
    cache = RecommendationCache(backend, ttl=3600, clock=clock, lock_timeout=0)

    with backend.lock(cache._lock_key(1), timeout=5):
        with pytest.raises(CacheLockTimeout):
            cache.set(1, [1])


def test_ranked_list_json_round_trip():
    ranked = RankedList(user_id=3, game_ids=[5, 1], generated_at=datetime(2026, 3, 1, 8, 30))

    restored = RankedList.from_json(ranked.to_json())

    assert restored == ranked
    assert restored.size == 2


def test_in_memory_backend_expiry():
    now = [100.0]
    backend = InMemoryCacheBackend(clock=lambda: now[0])

    backend.set("key", "value", ttl=10)
    assert backend.get("key") == "value"

    now[0] = 110.0
    assert backend.get("key") is None


def test_redis_backend_compare_and_swap():
    client = MagicMock()
    backend = RedisCacheBackend(redis_client=client)

    backend.set_if_counter("recs:user:1", "{}", 60, "recs:epoch:1", 0)

    write, counter_key = client.transaction.call_args.args
    assert counter_key == "recs:epoch:1"
    assert client.transaction.call_args.kwargs == {"value_from_callable": True}

    pipe = MagicMock()
    pipe.get.return_value = "1"
    assert write(pipe) is False
    pipe.setex.assert_not_called()

    pipe.get.return_value = "0"
    assert write(pipe) is True
    pipe.multi.assert_called_once()
    pipe.setex.assert_called_once_with("recs:user:1", 60, "{}")


def test_redis_backend_lock_timeout():
    client = MagicMock()
    client.lock.return_value.acquire.return_value = False
    backend = RedisCacheBackend(redis_client=client)

    with pytest.raises(CacheLockTimeout):
        with backend.lock("recs:lock:1", timeout=5, blocking_timeout=1):
            pass


def test_redis_backend_health_check_failure():
    client = MagicMock()
    client.ping.side_effect = redis.exceptions.ConnectionError("refused")

    cache = RecommendationCache(RedisCacheBackend(redis_client=client))

    assert cache.health_check() is False


class UnreachableBackend(CacheBackend):
    """Backend whose storage is down"""

    name = "unreachable"

    def _fail(self, *args, **kwargs):
        raise CacheUnavailable("connection refused")

    get = set = set_if_counter = delete = incr = get_int = lock = _fail

    def ping(self):
        return False


@pytest.fixture
def unreachable_redis():
    client = MagicMock()
    for command in ("get", "setex", "delete", "incr", "transaction", "lock"):
        getattr(client, command).side_effect = redis.exceptions.ConnectionError("Connection refused")
    return client


def test_unreachable_backend_degrades_to_uncached(clock):
    cache = RecommendationCache(UnreachableBackend(), ttl=3600, clock=clock)
    generate = MagicMock(return_value=[3, 1, 2])

    first, first_cached = cache.get_or_generate(1, generate, 3)
    second, second_cached = cache.get_or_generate(1, generate, 3)

    assert first.game_ids == second.game_ids == [3, 1, 2]
    assert (first_cached, second_cached) == (False, False)
    assert generate.call_count == 2
    assert cache.get(1) is None


def test_unreachable_backend_invalidate_and_set_do_not_raise(clock):
    cache = RecommendationCache(UnreachableBackend(), ttl=3600, clock=clock)

    cache.invalidate(1)
    ranked = cache.set(1, [4, 5])

    assert ranked.game_ids == [4, 5]
    assert cache.refresh(1, lambda size: [9], 1).game_ids == [9]
    assert cache.health_check() is False


def test_redis_connection_errors_are_cache_misses(unreachable_redis, clock):
    cache = RecommendationCache(RedisCacheBackend(redis_client=unreachable_redis), ttl=3600, clock=clock)

    ranked, cached = cache.get_or_generate(1, lambda size: [7, 8, 9], 3)
    cache.invalidate(1)

    assert ranked.game_ids == [7, 8, 9]
    assert cached is False
    assert cache.get(1) is None


def test_redis_backend_translates_errors(unreachable_redis):
    backend = RedisCacheBackend(redis_client=unreachable_redis)

    with pytest.raises(CacheUnavailable):
        backend.get("recs:user:1")

    with pytest.raises(CacheUnavailable):
        with backend.lock("recs:lock:1", timeout=5):
            pass


def test_failed_write_after_generation_returns_list(clock):
    backend = InMemoryCacheBackend()
    backend.set_if_counter = MagicMock(side_effect=CacheUnavailable("timeout"))
    cache = RecommendationCache(backend, ttl=3600, clock=clock)

    ranked, cached = cache.get_or_generate(1, lambda size: [2, 4], 2)

    assert ranked.game_ids == [2, 4]
    assert cached is False
    assert cache.get(1) is None
