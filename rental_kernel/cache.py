"""
Query cache (``rental_kernel.cache``).

Responsibility
--------------
An explicit, injectable memoization boundary for engine reads.  Engines call
``get``/``set`` with a namespace and key; agreement mutations call
``invalidate_namespace`` so a stale read never outlives one mutation cycle.

Values are JSON-compatible payloads (dicts, lists, strings, numbers).
Callers convert their DTOs to and from payloads, which keeps every backend
interchangeable.

Backends
--------
* ``NullQueryCache`` -- never stores anything; the default.
* ``InMemoryQueryCache`` -- per-process dict with TTL from the injected clock.
* ``RedisQueryCache`` -- redis-py client, namespaced keys, JSON payloads.
  Redis failures are logged and degrade to a cache miss.
"""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any

import redis

from rental_kernel.domain.clock import Clock, SystemClock
from rental_kernel.logging_config import get_logger

logger = get_logger("cache")

AVAILABILITY_NAMESPACE = "availability"
REVENUE_NAMESPACE = "revenue"


class QueryCache(ABC):
    """Namespaced key/value cache used by the engines."""

    @abstractmethod
    def get(self, namespace: str, key: str) -> Any | None:
        ...

    @abstractmethod
    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ...

    @abstractmethod
    def invalidate_namespace(self, namespace: str) -> int:
        """Drop every entry in ``namespace``; returns the number removed."""
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


class NullQueryCache(QueryCache):
    def get(self, namespace: str, key: str) -> Any | None:
        return None

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        return None

    def invalidate_namespace(self, namespace: str) -> int:
        return 0

    def clear(self) -> None:
        return None


class InMemoryQueryCache(QueryCache):
    """
    Thread-safe in-process cache.

    Entries expire ``ttl_seconds`` after they were set, measured with the
    injected clock.  A ttl of None means the entry lives until invalidated.
    """

    def __init__(self, default_ttl_seconds: int | None = 300, clock: Clock | None = None):
        self._default_ttl = default_ttl_seconds
        self._clock = clock or SystemClock()
        self._entries: dict[str, dict[str, tuple[Any, datetime | None]]] = {}
        self._lock = threading.Lock()

    def get(self, namespace: str, key: str) -> Any | None:
        with self._lock:
            bucket = self._entries.get(namespace)
            if not bucket or key not in bucket:
                return None
            value, expires_at = bucket[key]
            if expires_at is not None and self._clock.now() >= expires_at:
                del bucket[key]
                return None
            return value

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        expires_at = self._clock.now() + timedelta(seconds=ttl) if ttl is not None else None
        with self._lock:
            self._entries.setdefault(namespace, {})[key] = (value, expires_at)

    def invalidate_namespace(self, namespace: str) -> int:
        with self._lock:
            removed = len(self._entries.pop(namespace, {}))
        logger.debug(
            "cache_namespace_invalidated",
            extra={"namespace": namespace, "removed": removed},
        )
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RedisQueryCache(QueryCache):
    """
    Redis-backed cache.

    Keys are ``<prefix>:<namespace>:<key>``.  Namespace invalidation walks
    the namespace with ``SCAN`` so it never blocks the server the way
    ``KEYS`` would.
    """

    def __init__(
        self,
        client: redis.Redis,
        prefix: str = "rental",
        default_ttl_seconds: int = 300,
    ):
        self._client = client
        self._prefix = prefix
        self._default_ttl = default_ttl_seconds
        logger.info(
            "redis_cache_initialized",
            extra={"prefix": prefix, "default_ttl_seconds": default_ttl_seconds},
        )

    def _key(self, namespace: str, key: str) -> str:
        return f"{self._prefix}:{namespace}:{key}"

    def get(self, namespace: str, key: str) -> Any | None:
        cache_key = self._key(namespace, key)
        try:
            data = self._client.get(cache_key)
        except redis.RedisError as exc:
            logger.warning("cache_get_failed", extra={"key": cache_key, "detail": str(exc)})
            return None
        if data is None:
            return None
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return json.loads(data)

    def set(self, namespace: str, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        cache_key = self._key(namespace, key)
        payload = json.dumps(value, default=str)
        try:
            self._client.set(cache_key, payload, ex=ttl_seconds or self._default_ttl)
        except redis.RedisError as exc:
            logger.warning("cache_set_failed", extra={"key": cache_key, "detail": str(exc)})

    def invalidate_namespace(self, namespace: str) -> int:
        pattern = f"{self._prefix}:{namespace}:*"
        removed = 0
        try:
            batch: list = []
            for cache_key in self._client.scan_iter(match=pattern, count=500):
                batch.append(cache_key)
                if len(batch) >= 500:
                    removed += self._client.delete(*batch)
                    batch = []
            if batch:
                removed += self._client.delete(*batch)
        except redis.RedisError as exc:
            logger.warning(
                "cache_invalidate_failed",
                extra={"namespace": namespace, "detail": str(exc)},
            )
        logger.debug(
            "cache_namespace_invalidated",
            extra={"namespace": namespace, "removed": removed},
        )
        return removed

    def clear(self) -> None:
        self.invalidate_namespace("*")
