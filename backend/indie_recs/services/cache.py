"""Cache Layer: per-user ranked lists with TTL and single-flight regeneration"""

import json
import threading
import time
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from functools import wraps
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import redis

from ..config import settings
from ..models.base import utcnow
from ..utils.logging import get_logger
from ..utils.metrics import increment_cache_hit, increment_cache_invalidation, increment_cache_miss

logger = get_logger(__name__)


class CacheUnavailable(Exception):
    """The cache backend could not be reached; callers degrade to uncached"""


class CacheLockTimeout(Exception):
    """The per-user regeneration lock could not be acquired in time"""


@dataclass
class RankedList:
    """One generation of a user's recommendations"""

    user_id: int
    game_ids: List[int]
    generated_at: datetime = field(default_factory=utcnow)
    size: Optional[int] = None  # Requested length at generation time

    def __post_init__(self):
        if self.size is None:
            self.size = len(self.game_ids)

    def to_json(self) -> str:
        return json.dumps({
            "user_id": self.user_id,
            "game_ids": self.game_ids,
            "generated_at": self.generated_at.isoformat(),
            "size": self.size,
        })

    @classmethod
    def from_json(cls, raw: str) -> "RankedList":
        data = json.loads(raw)
        return cls(
            user_id=int(data["user_id"]),
            game_ids=[int(game_id) for game_id in data["game_ids"]],
            generated_at=datetime.fromisoformat(data["generated_at"]),
            size=data.get("size"),
        )


class CacheBackend:
    """
    Storage primitives the recommendation cache needs

    Implementations raise CacheUnavailable when storage cannot be reached.
    """

    name = "base"

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str, ttl: int) -> None:
        raise NotImplementedError

    def set_if_counter(self, key: str, value: str, ttl: int, counter_key: str, expected: int) -> bool:
        """Write value only if counter_key still holds expected (compare-and-swap)"""
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def incr(self, key: str) -> int:
        raise NotImplementedError

    def get_int(self, key: str) -> int:
        raise NotImplementedError

    def lock(self, key: str, timeout: int, blocking_timeout: Optional[float] = None):
        """Context manager holding an exclusive lock on key"""
        raise NotImplementedError

    def ping(self) -> bool:
        raise NotImplementedError


def _unavailable_on_error(func: Callable):
    """Translate redis-py errors into CacheUnavailable"""

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except redis.exceptions.RedisError as e:
            raise CacheUnavailable(f"{func.__name__}: {e}") from e

    return wrapper


class RedisCacheBackend(CacheBackend):
    """Redis-backed storage shared by API workers and Celery workers"""

    name = "redis"

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self.redis_client = redis_client or redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD,
            decode_responses=True
        )

    @_unavailable_on_error
    def get(self, key: str) -> Optional[str]:
        return self.redis_client.get(key)

    @_unavailable_on_error
    def set(self, key: str, value: str, ttl: int) -> None:
        self.redis_client.setex(key, ttl, value)

    @_unavailable_on_error
    def set_if_counter(self, key: str, value: str, ttl: int, counter_key: str, expected: int) -> bool:
        def write(pipe) -> bool:
            current = int(pipe.get(counter_key) or 0)
            if current != expected:
                return False
            pipe.multi()
            pipe.setex(key, ttl, value)
            return True

        return self.redis_client.transaction(write, counter_key, value_from_callable=True)

    @_unavailable_on_error
    def delete(self, key: str) -> None:
        self.redis_client.delete(key)

    @_unavailable_on_error
    def incr(self, key: str) -> int:
        return int(self.redis_client.incr(key))

    @_unavailable_on_error
    def get_int(self, key: str) -> int:
        return int(self.redis_client.get(key) or 0)

    @contextmanager
    def lock(self, key: str, timeout: int, blocking_timeout: Optional[float] = None) -> Iterator[None]:
        try:
            lock = self.redis_client.lock(key, timeout=timeout, blocking_timeout=blocking_timeout)
            acquired = lock.acquire()
        except redis.exceptions.RedisError as e:
            raise CacheUnavailable(f"lock: {e}") from e
        if not acquired:
            raise CacheLockTimeout(key)
        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.RedisError as e:
                # Lock expired while the regeneration was still running, or Redis went away
                logger.warning("Could not release cache lock", key=key, error=str(e))

    def ping(self) -> bool:
        try:
            return bool(self.redis_client.ping())
        except redis.exceptions.RedisError:
            return False


class InMemoryCacheBackend(CacheBackend):
    """Process-local storage for tests and single-process deployments"""

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._guard = threading.Lock()
        self._values: Dict[str, Tuple[str, float]] = {}
        self._counters: Dict[str, int] = {}
        self._locks: Dict[str, threading.Lock] = {}

    def get(self, key: str) -> Optional[str]:
        with self._guard:
            entry = self._values.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._values[key]
                return None
            return value

    def set(self, key: str, value: str, ttl: int) -> None:
        with self._guard:
            self._values[key] = (value, self._clock() + ttl)

    def set_if_counter(self, key: str, value: str, ttl: int, counter_key: str, expected: int) -> bool:
        with self._guard:
            if self._counters.get(counter_key, 0) != expected:
                return False
            self._values[key] = (value, self._clock() + ttl)
            return True

    def delete(self, key: str) -> None:
        with self._guard:
            self._values.pop(key, None)

    def incr(self, key: str) -> int:
        with self._guard:
            self._counters[key] = self._counters.get(key, 0) + 1
            return self._counters[key]

    def get_int(self, key: str) -> int:
        with self._guard:
            return self._counters.get(key, 0)

    @contextmanager
    def lock(self, key: str, timeout: int, blocking_timeout: Optional[float] = None) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        acquired = lock.acquire(timeout=blocking_timeout if blocking_timeout is not None else -1)
        if not acquired:
            raise CacheLockTimeout(key)
        try:
            yield
        finally:
            lock.release()

    def ping(self) -> bool:
        return True


class RecommendationCache:
    """
    One ranked list per user with an explicit TTL

    Writes for a user are serialised by a per-user lock, so at most one
    regeneration runs per key; concurrent callers wait behind it and reuse
    its result. Invalidation bumps a per-user epoch, and a regeneration that
    started before the bump cannot overwrite the eviction.

    When the backend is unreachable reads count as misses and freshly
    generated lists are returned without being stored.
    """

    def __init__(
        self,
        backend: CacheBackend,
        ttl: int = settings.CACHE_TTL,
        clock: Callable[[], datetime] = utcnow,
        lock_timeout: int = settings.CACHE_LOCK_TIMEOUT,
    ):
        self.backend = backend
        self.ttl = ttl
        self.clock = clock
        self.lock_timeout = lock_timeout

    def get(self, user_id: int) -> Optional[RankedList]:
        """Cached list if still within TTL, otherwise None (a miss)"""
        ranked = self._lookup(user_id)
        if ranked is None:
            increment_cache_miss(self.backend.name)
        else:
            increment_cache_hit(self.backend.name)
        return ranked

    def set(self, user_id: int, game_ids: List[int], generated_at: Optional[datetime] = None) -> RankedList:
        """Store a new generation, superseding the previous one"""
        ranked = RankedList(user_id=user_id, game_ids=list(game_ids), generated_at=generated_at or self.clock())
        with self._user_lock(user_id):
            try:
                self.backend.set(self._key(user_id), ranked.to_json(), self.ttl)
            except CacheUnavailable as e:
                logger.warning("Cache write failed", user_id=user_id, error=str(e))
        return ranked

    def invalidate(self, user_id: int) -> None:
        """Evict the user's list; in-flight regenerations are discarded"""
        try:
            self.backend.incr(self._epoch_key(user_id))
            self.backend.delete(self._key(user_id))
        except CacheUnavailable as e:
            logger.warning("Cache invalidation failed", user_id=user_id, error=str(e))
            return
        increment_cache_invalidation(self.backend.name)
        logger.info("Recommendation cache invalidated", user_id=user_id)

    def get_or_generate(
        self,
        user_id: int,
        generate: Callable[[int], List[int]],
        size: int,
    ) -> Tuple[RankedList, bool]:
        """
        Cached list, or a fresh one produced by generate(size)

        A cached generation made for a shorter request than size counts as
        a miss.

        Returns:
            (ranked list, whether it came from the cache)
        """
        cached = self.get(user_id)
        if cached is not None and cached.size >= size:
            return cached, True

        with self._user_lock(user_id):
            # Another caller may have regenerated while we waited for the lock
            cached = self._lookup(user_id)
            if cached is not None and cached.size >= size:
                return cached, True
            return self._regenerate(user_id, generate, size), False

    def refresh(self, user_id: int, generate: Callable[[int], List[int]], size: int) -> RankedList:
        """Regenerate unconditionally (batch job), still single-flight per user"""
        with self._user_lock(user_id):
            return self._regenerate(user_id, generate, size)

    def health_check(self) -> bool:
        return self.backend.ping()

    def _regenerate(self, user_id: int, generate: Callable[[int], List[int]], size: int) -> RankedList:
        try:
            epoch = self.backend.get_int(self._epoch_key(user_id))
        except CacheUnavailable as e:
            logger.warning("Cache epoch unavailable, list will not be stored", user_id=user_id, error=str(e))
            epoch = None

        generated_at = self.clock()
        game_ids = list(generate(size))
        ranked = RankedList(user_id=user_id, game_ids=game_ids, generated_at=generated_at, size=size)
        if epoch is None:
            return ranked

        try:
            written = self.backend.set_if_counter(
                self._key(user_id), ranked.to_json(), self.ttl, self._epoch_key(user_id), epoch
            )
        except CacheUnavailable as e:
            logger.warning("Cache write failed", user_id=user_id, error=str(e))
            return ranked

        if not written:
            logger.info("Discarded regeneration superseded by invalidation", user_id=user_id)
        return ranked

    def _lookup(self, user_id: int) -> Optional[RankedList]:
        try:
            raw = self.backend.get(self._key(user_id))
        except CacheUnavailable as e:
            logger.warning("Cache read failed", user_id=user_id, error=str(e))
            return None
        if raw is None:
            return None
        try:
            ranked = RankedList.from_json(raw)
        except (ValueError, KeyError, TypeError):
            logger.warning("Discarding malformed cache entry", user_id=user_id)
            return None
        if self.clock() - ranked.generated_at > timedelta(seconds=self.ttl):
            return None
        return ranked

    @contextmanager
    def _user_lock(self, user_id: int) -> Iterator[None]:
        with ExitStack() as stack:
            try:
                stack.enter_context(self.backend.lock(
                    self._lock_key(user_id),
                    timeout=self.lock_timeout,
                    blocking_timeout=self.lock_timeout,
                ))
            except CacheUnavailable as e:
                logger.warning("Cache lock unavailable", user_id=user_id, error=str(e))
            yield

    @staticmethod
    def _key(user_id: int) -> str:
        return f"recs:user:{user_id}"

    @staticmethod
    def _epoch_key(user_id: int) -> str:
        return f"recs:epoch:{user_id}"

    @staticmethod
    def _lock_key(user_id: int) -> str:
        return f"recs:lock:{user_id}"
