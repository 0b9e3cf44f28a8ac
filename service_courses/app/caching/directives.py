"""
Cache directive registration for route handlers.

Handlers are associated with a cache key template and TTL when routes are
declared. The gateway consults the registry by handler identity at request
time; nothing is discovered through runtime reflection.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, TypeVar, Union

from shared.errors import ValidationError


CACHE_KEY = "cache_key"
CACHE_TTL = "cache_ttl"
DEFAULT_CACHE_TTL = 300

HandlerT = TypeVar("HandlerT", bound=Callable[..., Any])
HandlerRef = Union[str, Callable[..., Any]]


@dataclass(frozen=True)
class CacheDirective:
    """Cache key template and TTL attached to a handler."""

    key_template: str
    ttl_seconds: int = DEFAULT_CACHE_TTL

    def __post_init__(self) -> None:
        if not isinstance(self.key_template, str) or not self.key_template:
            raise ValidationError("Cache key template must be a non-empty string")
        if isinstance(self.ttl_seconds, bool) or not isinstance(self.ttl_seconds, int) or self.ttl_seconds <= 0:
            raise ValidationError(
                "Cache TTL must be a positive integer",
                {"ttl_seconds": self.ttl_seconds},
            )


def handler_id(handler: HandlerRef) -> str:
    """Return the registry identity of a handler callable."""
    if isinstance(handler, str):
        return handler
    target = getattr(handler, "__wrapped__", handler)
    return f"{target.__module__}.{target.__qualname__}"


class CacheDirectiveRegistry:
    """Registration table mapping handler identity to cache metadata."""

    def __init__(self) -> None:
        self._metadata: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def set_metadata(self, handler: HandlerRef, kind: str, value: Any) -> None:
        """Attach one metadata value to a handler."""
        if kind not in (CACHE_KEY, CACHE_TTL):
            raise ValidationError("Unknown cache metadata kind", {"kind": kind})
        with self._lock:
            self._metadata.setdefault(handler_id(handler), {})[kind] = value

    def get_metadata(self, handler: HandlerRef, kind: str) -> Optional[Any]:
        """Read one metadata value for a handler, or None."""
        with self._lock:
            return self._metadata.get(handler_id(handler), {}).get(kind)

    def register(self, handler: HandlerRef, key_template: str, ttl_seconds: int = DEFAULT_CACHE_TTL) -> CacheDirective:
        """Register key and TTL together."""
        directive = CacheDirective(key_template, ttl_seconds)
        self._store(handler, directive)
        return directive

    def _store(self, handler: HandlerRef, directive: CacheDirective) -> None:
        with self._lock:
            self._metadata[handler_id(handler)] = {
                CACHE_KEY: directive.key_template,
                CACHE_TTL: directive.ttl_seconds,
            }

    def get_directive(self, handler: HandlerRef) -> Optional[CacheDirective]:
        """Resolve the directive for a handler; None disables caching."""
        with self._lock:
            metadata = dict(self._metadata.get(handler_id(handler)) or {})
        if not metadata or not metadata.get(CACHE_KEY):
            return None
        ttl = metadata.get(CACHE_TTL) or DEFAULT_CACHE_TTL
        return CacheDirective(metadata[CACHE_KEY], ttl)

    def directives(self) -> Dict[str, CacheDirective]:
        """Snapshot of every handler with a usable directive."""
        with self._lock:
            handler_ids = list(self._metadata)
        result = {}
        for ident in handler_ids:
            directive = self.get_directive(ident)
            if directive is not None:
                result[ident] = directive
        return result

    def clear(self) -> None:
        with self._lock:
            self._metadata.clear()

    def __contains__(self, handler: HandlerRef) -> bool:
        return self.get_directive(handler) is not None

    def __len__(self) -> int:
        return len(self.directives())

    # Decorator forms

    def cache_key(self, key_template: str) -> Callable[[HandlerT], HandlerT]:
        """Decorator setting only the cache key of a handler."""
        if not isinstance(key_template, str) or not key_template:
            raise ValidationError("Cache key template must be a non-empty string")

        def decorator(handler: HandlerT) -> HandlerT:
            self.set_metadata(handler, CACHE_KEY, key_template)
            return handler

        return decorator

    def cache_ttl(self, ttl_seconds: int) -> Callable[[HandlerT], HandlerT]:
        """Decorator setting only the cache TTL of a handler."""
        if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int) or ttl_seconds <= 0:
            raise ValidationError("Cache TTL must be a positive integer", {"ttl_seconds": ttl_seconds})

        def decorator(handler: HandlerT) -> HandlerT:
            self.set_metadata(handler, CACHE_TTL, ttl_seconds)
            return handler

        return decorator

    def cacheable(self, key_template: str, ttl_seconds: int = DEFAULT_CACHE_TTL) -> Callable[[HandlerT], HandlerT]:
        """Decorator setting key and TTL of a handler atomically."""
        directive = CacheDirective(key_template, ttl_seconds)

        def decorator(handler: HandlerT) -> HandlerT:
            self._store(handler, directive)
            return handler

        return decorator


directive_registry = CacheDirectiveRegistry()

cache_key = directive_registry.cache_key
cache_ttl = directive_registry.cache_ttl
cacheable = directive_registry.cacheable
