from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass, field
from typing import Any


class CacheError(RuntimeError):
    pass


class Cache:
    """
    Minimal key/value cache. ``clear()`` drops every entry of the cache,
    not a single key.
    """

    def get(self, key: str) -> Any | None:
        raise NotImplementedError

    def put(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


@dataclass
class MemoryCache(Cache):
    ttl: float | None = None
    _entries: dict[str, tuple[float | None, Any]] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at is not None and expires_at <= time.monotonic():
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: Any) -> None:
        expires_at = time.monotonic() + self.ttl if self.ttl else None
        with self._lock:
            self._entries[key] = (expires_at, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


@dataclass
class RedisCache(Cache):
    """
    Redis-backed cache. Values are stored as JSON under ``<namespace>:<key>``;
    ``clear()`` removes the whole namespace.
    """

    url: str
    namespace: str
    ttl: int | None = None
    _redis: Any = field(default=None, repr=False)

    def _client(self):
        if self._redis is None:
            try:
                import redis  # type: ignore
            except Exception as e:  # pragma: no cover
                raise CacheError("redis required for CACHE_BACKEND=redis. Install redis.") from e
            self._redis = redis.Redis.from_url(self.url, decode_responses=True)
        return self._redis

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> Any | None:
        raw = self._client().get(self._key(key))
        return json.loads(raw) if raw is not None else None

    def put(self, key: str, value: Any) -> None:
        self._client().set(self._key(key), json.dumps(value, ensure_ascii=False), ex=self.ttl)

    def clear(self) -> None:
        client = self._client()
        keys = list(client.scan_iter(match=f"{self.namespace}:*", count=500))
        if keys:
            client.delete(*keys)


def cache_from_config(config: dict, namespace: str, *, ttl: int | None = None) -> Cache:
    backend = (config.get("CACHE_BACKEND") or "memory").strip().lower()
    if backend == "redis":
        return RedisCache(url=(config.get("REDIS_URL") or "").strip(), namespace=namespace, ttl=ttl)
    return MemoryCache(ttl=ttl)
