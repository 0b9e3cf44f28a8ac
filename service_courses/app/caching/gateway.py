"""
Read-through response cache around route handlers.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional, Protocol, Set, TYPE_CHECKING

from shared.logging import get_logger

from .directives import CacheDirective
from .keys import RequestContext, derive_key

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class CacheStore(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    async def close(self) -> None: ...


class ResponseCacheGateway:
    """
    Serves handler results from a cache store when present.

    On a miss the real handler runs and a non-empty result is written back
    in a detached task. Store failures never reach the caller: a failed
    lookup is treated as a miss (and skips the write), a failed write is
    logged and dropped. Handler failures propagate untouched.
    """

    def __init__(self, store: CacheStore, *, metrics: Optional["MetricsCollector"] = None):
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("courses.response_cache")
        self._pending_writes: Set[asyncio.Task] = set()

    async def handle(
        self,
        request: RequestContext,
        directive: Optional[CacheDirective],
        next_handler: Callable[[], Awaitable[Any]],
    ) -> Any:
        if directive is None:
            return await next_handler()

        route = directive.key_template
        full_key = derive_key(directive.key_template, request)

        lookup_failed = False
        start = time.perf_counter()
        try:
            cached = await self.store.get(full_key)
        except Exception as exc:
            lookup_failed = True
            cached = None
            self.logger.warning("Response cache lookup failed", key=full_key, error=str(exc))
        finally:
            self._observe("response_cache_lookup_duration_seconds", time.perf_counter() - start, route=route)

        if cached:
            self.logger.debug("Response cache hit", key=full_key)
            self._count("response_cache_lookups_total", route=route, result="hit")
            return cached

        self._count("response_cache_lookups_total", route=route, result="error" if lookup_failed else "miss")

        result = await next_handler()

        if lookup_failed:
            return result

        if result:
            self._schedule_write(full_key, result, directive.ttl_seconds, route)
        return result

    def _schedule_write(self, key: str, value: Any, ttl_seconds: int, route: str) -> None:
        task = asyncio.create_task(self._write(key, value, ttl_seconds, route))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _write(self, key: str, value: Any, ttl_seconds: int, route: str) -> None:
        try:
            await self.store.set(key, value, ttl_seconds)
        except Exception as exc:
            self.logger.warning("Response cache write failed", key=key, error=str(exc))
            self._count("response_cache_writes_total", route=route, result="error")
            return
        self.logger.debug("Cached response", key=key, ttl=ttl_seconds)
        self._count("response_cache_writes_total", route=route, result="ok")

    @property
    def pending_writes(self) -> int:
        return len(self._pending_writes)

    async def drain(self) -> None:
        """Wait for every in-flight cache write to finish."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    async def close(self) -> None:
        await self.drain()
        await self.store.close()

    def _count(self, metric_name: str, **labels) -> None:
        if not self.metrics:
            return
        try:
            self.metrics.increment_counter(metric_name, **labels)
        except Exception as exc:  # pragma: no cover - metrics failures should never break requests
            self.logger.debug("Failed to record cache metric", metric=metric_name, error=str(exc))

    def _observe(self, metric_name: str, value: float, **labels) -> None:
        if not self.metrics:
            return
        try:
            self.metrics.observe_histogram(metric_name, value, **labels)
        except Exception as exc:  # pragma: no cover - metrics failures should never break requests
            self.logger.debug("Failed to record cache metric", metric=metric_name, error=str(exc))
