"""Search response caching: Redis when available, in-memory otherwise."""
from __future__ import annotations

import copy
import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol

import redis

from .config import Settings

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    def set(self, key: str, value: Dict[str, Any], ttl: int) -> None: ...

    def expire(self) -> int: ...


@dataclass
class RedisCache:
    client: redis.Redis

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            data = self.client.get(key)
        except redis.RedisError as exc:
            logger.warning("Redis get failed: %s", exc)
            return None
        if not data:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            return None

    def set(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        try:
            self.client.setex(key, ttl, json.dumps(value))
        except redis.RedisError as exc:
            logger.warning("Redis set failed: %s", exc)

    def expire(self) -> int:
        # Redis evicts expired keys on its own.
        return 0


class InMemoryCache:
    """Process-local TTL cache. Expiry is checked on every read.

    Holds at most ``max_entries`` responses; the least recently used entry is
    evicted first.
    """

    def __init__(self, clock: Callable[[], float] = time.time, max_entries: int = 100) -> None:
        self._store: OrderedDict[str, tuple[float, Dict[str, Any]]] = OrderedDict()
        self._max_entries = max(1, max_entries)
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            value = self._store.get(key)
            if not value:
                return None
            expires_at, payload = value
            if expires_at <= self._clock():
                self._store.pop(key, None)
                return None
            self._store.move_to_end(key)
            return copy.deepcopy(payload)

    def set(self, key: str, value: Dict[str, Any], ttl: int) -> None:
        with self._lock:
            if key in self._store:
                self._store.move_to_end(key)
            elif len(self._store) >= self._max_entries:
                evicted, _ = self._store.popitem(last=False)
                logger.debug("cache full, evicted key=%s", evicted)
            self._store[key] = (self._clock() + ttl, copy.deepcopy(value))

    def expire(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [key for key, (expires_at, _) in self._store.items() if expires_at <= now]
            for key in stale:
                del self._store[key]
        if stale:
            logger.debug("cache sweep evicted=%s", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


def build_cache(settings: Settings) -> CacheBackend:
    if settings.cache_backend != "redis":
        logger.info("Using in-memory cache")
        return InMemoryCache(max_entries=settings.cache_max_entries)
    try:
        client = redis.Redis(host=settings.redis_host, port=settings.redis_port, decode_responses=False)
        client.ping()
        logger.info("Using Redis cache at %s:%s", settings.redis_host, settings.redis_port)
        return RedisCache(client)
    except redis.RedisError:
        logger.warning("Redis not available, using in-memory cache")
        return InMemoryCache(max_entries=settings.cache_max_entries)
