"""
Response caching package.

Wraps route handlers in a read-through cache: handlers register a key
template and TTL, the gateway derives a per-request key and serves stored
responses, and cache store failures degrade to a miss.
"""

from .directives import (
    CACHE_KEY,
    CACHE_TTL,
    DEFAULT_CACHE_TTL,
    CacheDirective,
    CacheDirectiveRegistry,
    cache_key,
    cache_ttl,
    cacheable,
    directive_registry,
)
from .gateway import ResponseCacheGateway
from .keys import ANONYMOUS_USER, RequestContext, derive_key
from .route import CachedRoute
from .store import MemoryCacheStore, RedisCacheStore, build_cache_store

__all__ = [
    "ANONYMOUS_USER",
    "CACHE_KEY",
    "CACHE_TTL",
    "DEFAULT_CACHE_TTL",
    "CacheDirective",
    "CacheDirectiveRegistry",
    "CachedRoute",
    "MemoryCacheStore",
    "RedisCacheStore",
    "RequestContext",
    "ResponseCacheGateway",
    "build_cache_store",
    "cache_key",
    "cache_ttl",
    "cacheable",
    "derive_key",
    "directive_registry",
]
