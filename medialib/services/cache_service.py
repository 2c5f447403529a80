# File: medialib/services/cache_service.py

"""
Response caching for the media library.

Listing endpoints are read through a cache keyed by the request. The cache
is a capability, not a requirement: a backend that cannot be reached
reports itself unavailable and the request is served from the database.

Key features:
- In-memory, Redis and no-op backends behind one ``CacheBackend`` interface
- ``get`` returns a ``CacheResult`` (hit, miss or unavailable)
- Namespaced keys and prefix invalidation after writes
- Time-to-live (TTL) support for automatic expiration
"""

import enum
import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

import redis

from medialib.core.exceptions import CacheUnavailableException

logger = logging.getLogger(__name__)

LISTING_PREFIX = "listing"


class CacheStatus(str, enum.Enum):
    HIT = "hit"
    MISS = "miss"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class CacheResult:
    status: CacheStatus
    value: Any = None

    @property
    def hit(self) -> bool:
        return self.status is CacheStatus.HIT

    @classmethod
    def found(cls, value: Any) -> "CacheResult":
        return cls(CacheStatus.HIT, value)

    @classmethod
    def miss(cls) -> "CacheResult":
        return cls(CacheStatus.MISS)

    @classmethod
    def unavailable(cls) -> "CacheResult":
        return cls(CacheStatus.UNAVAILABLE)


class CacheEntry:
    """Represents a cached item with its expiry."""

    def __init__(self, value: Any, ttl: Optional[int] = None):
        self.value = value
        self.created_at = time.time()
        self.expires_at = self.created_at + ttl if ttl is not None else None
        self.last_accessed = self.created_at

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return time.time() > self.expires_at

    def touch(self) -> None:
        self.last_accessed = time.time()


class CacheBackend:
    """Base class for cache backends."""

    name = "base"

    def get(self, key: str) -> CacheResult:
        """Get value from cache."""
        raise NotImplementedError("Subclasses must implement get")

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache. Returns False when the value was not stored."""
        raise NotImplementedError("Subclasses must implement set")

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``."""
        raise NotImplementedError("Subclasses must implement delete_prefix")

    def get_stats(self) -> Dict[str, Any]:
        return {"backend": self.name}


class NullCache(CacheBackend):
    """Backend used when caching is disabled or the store is unreachable."""

    name = "none"

    def get(self, key: str) -> CacheResult:
        return CacheResult.miss()

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        return False

    def delete_prefix(self, prefix: str) -> int:
        return 0


class MemoryCache(CacheBackend):
    """In-memory cache implementation with least-recently-used eviction."""

    name = "memory"

    def __init__(self, max_size: int = 1000):
        """
        Initialize memory cache.

        Args:
            max_size: Maximum number of items in cache
        """
        self.cache: Dict[str, CacheEntry] = {}
        self.max_size = max_size
        self.lock = threading.RLock()
        self.stats = {"hits": 0, "misses": 0, "sets": 0, "evictions": 0}

    def get(self, key: str) -> CacheResult:
        with self.lock:
            entry = self.cache.get(key)
            if entry is None or entry.is_expired:
                if entry is not None:
                    del self.cache[key]
                self.stats["misses"] += 1
                return CacheResult.miss()
            entry.touch()
            self.stats["hits"] += 1
            return CacheResult.found(entry.value)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        with self.lock:
            if len(self.cache) >= self.max_size and key not in self.cache:
                self._evict_lru_item()
            self.cache[key] = CacheEntry(value, ttl)
            self.stats["sets"] += 1
            return True

    def delete_prefix(self, prefix: str) -> int:
        with self.lock:
            keys = [k for k in self.cache if k.startswith(prefix)]
            for key in keys:
                del self.cache[key]
            return len(keys)

    def get_stats(self) -> Dict[str, Any]:
        with self.lock:
            return {"backend": self.name, "size": len(self.cache), "stats": dict(self.stats)}

    def _evict_lru_item(self) -> None:
        if not self.cache:
            return
        lru_key = min(self.cache.items(), key=lambda x: x[1].last_accessed)[0]
        del self.cache[lru_key]
        self.stats["evictions"] += 1


class RedisCache(CacheBackend):
    """
    Redis-based cache implementation.

    Every Redis error is turned into an unavailable result or a skipped
    write; nothing raised by the client escapes.
    """

    name = "redis"

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    def ping(self) -> None:
        """Raise CacheUnavailableException when the server does not answer."""
        try:
            self.redis.ping()
        except redis.RedisError as e:
            raise CacheUnavailableException(self.name, str(e)) from e

    def get(self, key: str) -> CacheResult:
        try:
            value = self.redis.get(key)
        except redis.RedisError as e:
            logger.warning(f"Redis get failed for {key}: {e}")
            return CacheResult.unavailable()

        if value is None:
            return CacheResult.miss()
        try:
            return CacheResult.found(json.loads(value))
        except json.JSONDecodeError:
            logger.warning(f"Discarding undecodable cache entry {key}")
            return CacheResult.miss()

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError):
            logger.warning(f"Could not serialize value for key {key}")
            return False

        try:
            if ttl is not None:
                return bool(self.redis.setex(key, ttl, serialized))
            return bool(self.redis.set(key, serialized))
        except redis.RedisError as e:
            logger.warning(f"Redis set failed for {key}: {e}")
            return False

    def delete_prefix(self, prefix: str) -> int:
        try:
            keys = list(self.redis.scan_iter(match=f"{prefix}*"))
            if not keys:
                return 0
            return int(self.redis.delete(*keys))
        except redis.RedisError as e:
            logger.warning(f"Redis invalidation failed for {prefix}*: {e}")
            return 0

    def get_stats(self) -> Dict[str, Any]:
        try:
            info = self.redis.info()
        except redis.RedisError:
            return {"backend": self.name, "available": False}
        return {
            "backend": self.name,
            "available": True,
            "used_memory": info.get("used_memory_human"),
            "connected_clients": info.get("connected_clients"),
        }


class CacheService:
    """
    Namespaced read-through cache in front of listing endpoints.
    """

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        namespace: str = "medialib",
        ttl: Optional[int] = 300,
    ):
        self.backend = backend or NullCache()
        self.namespace = namespace
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings) -> "CacheService":
        """
        Build the service for ``settings.CACHE_BACKEND``.

        An unreachable Redis degrades to no caching instead of failing startup.
        """
        backend_type = settings.CACHE_BACKEND.lower()
        backend: CacheBackend
        if backend_type == "redis":
            client = redis.Redis.from_url(
                settings.REDIS_URL, socket_connect_timeout=2, socket_timeout=2
            )
            redis_backend = RedisCache(client)
            try:
                redis_backend.ping()
                backend = redis_backend
                logger.info("Response cache using Redis")
            except CacheUnavailableException as e:
                logger.warning(f"{e.message}; responses will not be cached")
                backend = NullCache()
        elif backend_type == "memory":
            backend = MemoryCache()
        else:
            backend = NullCache()
        return cls(backend, namespace=settings.CACHE_NAMESPACE, ttl=settings.CACHE_TTL)

    def _format_key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> CacheResult:
        return self.backend.get(self._format_key(key))

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        return self.backend.set(
            self._format_key(key), value, ttl if ttl is not None else self.ttl
        )

    def listing_key(self, path: str, params: Iterable[Tuple[str, str]], viewer: str) -> str:
        """
        Key for one listing request: path, sorted query parameters and the
        caller's visibility class.
        """
        canonical = "&".join(f"{k}={v}" for k, v in sorted(params))
        digest = hashlib.sha1(f"{viewer}|{path}?{canonical}".encode()).hexdigest()
        return f"{LISTING_PREFIX}:{digest}"

    def invalidate_listings(self) -> int:
        removed = self.backend.delete_prefix(self._format_key(LISTING_PREFIX))
        if removed:
            logger.debug(f"Invalidated {removed} cached listings")
        return removed

    def get_stats(self) -> Dict[str, Any]:
        return self.backend.get_stats()
