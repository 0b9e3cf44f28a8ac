"""
Key-value stores backing the response cache.

Both stores hold JSON-serialized payloads with a per-entry TTL and raise
``CacheUnavailableError`` on any failure so callers can fail open.
"""

from __future__ import annotations

import json
import time
from collections import OrderedDict
from typing import Any, Callable, Optional, Tuple

import redis.asyncio as redis

from shared.config import BaseConfig
from shared.errors import CacheUnavailableError
from shared.logging import get_logger

from .directives import DEFAULT_CACHE_TTL


def _encode(value: Any) -> str:
    try:
        return json.dumps(value, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise CacheUnavailableError("set", "value is not JSON serializable", {"error": str(exc)}) from exc


def _decode(raw: Any) -> Any:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise CacheUnavailableError("get", "cached payload is corrupt", {"error": str(exc)}) from exc


class RedisCacheStore:
    """Response cache store on Redis, entries written with SETEX."""

    def __init__(
        self,
        redis_url: str,
        *,
        password: Optional[str] = None,
        client: Optional[redis.Redis] = None,
    ) -> None:
        self.redis_url = redis_url
        self.logger = get_logger("courses.cache_store")
        self._redis = client or redis.from_url(
            redis_url,
            password=password,
            encoding="utf-8",
            decode_responses=True,
        )

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._redis.get(key)
        except Exception as exc:
            raise CacheUnavailableError("get", str(exc), {"key": key}) from exc
        if raw is None:
            return None
        return _decode(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        payload = _encode(value)
        try:
            await self._redis.setex(key, ttl_seconds, payload)
        except Exception as exc:
            raise CacheUnavailableError("set", str(exc), {"key": key}) from exc

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except Exception as exc:
            self.logger.warning("Redis ping failed", error=str(exc))
            return False

    async def close(self) -> None:
        """Close Redis connections."""
        try:
            await self._redis.aclose()
        except Exception as exc:  # pragma: no cover - close is best effort
            self.logger.debug("Redis close failed", error=str(exc))


class MemoryCacheStore:
    """
    In-process response cache store.

    Entries carry an absolute expiry and the store is bounded by
    ``max_items``; the least recently used entry is evicted first.
    """

    def __init__(
        self,
        *,
        max_items: int = 100,
        default_ttl: int = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_items <= 0:
            raise ValueError("max_items must be positive")
        self.max_items = max_items
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[str, float]]" = OrderedDict()

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        payload, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return _decode(payload)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        payload = _encode(value)
        ttl = ttl_seconds if ttl_seconds and ttl_seconds > 0 else self.default_ttl
        self._entries[key] = (payload, self._clock() + ttl)
        self._entries.move_to_end(key)
        self._evict()

    def _evict(self) -> None:
        now = self._clock()
        for key in [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]:
            del self._entries[key]
        while len(self._entries) > self.max_items:
            self._entries.popitem(last=False)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def build_cache_store(config: BaseConfig):
    """Create the configured cache store."""
    if config.cache_store == "memory":
        return MemoryCacheStore(
            max_items=config.cache_max_items,
            default_ttl=config.cache_default_ttl,
        )
    return RedisCacheStore(config.redis_url, password=config.redis_password)
