"""
Unit tests for the cache directive registry.
"""

import pytest
from concurrent.futures import ThreadPoolExecutor

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_courses.app.caching import directives as directives_module
from service_courses.app.caching.directives import (
    CACHE_KEY,
    CACHE_TTL,
    DEFAULT_CACHE_TTL,
    CacheDirective,
    CacheDirectiveRegistry,
    handler_id,
)
from shared.errors import ValidationError


async def list_courses():
    return []


async def get_course():
    return {}


class TestCacheDirective:
    """Test cases for CacheDirective."""

    def test_default_ttl(self):
        """TTL defaults to five minutes."""
        directive = CacheDirective("courses:list")

        assert directive.ttl_seconds == DEFAULT_CACHE_TTL == 300

    def test_directive_is_immutable(self):
        """Directives cannot be changed after creation."""
        directive = CacheDirective("courses:list", 60)

        with pytest.raises(AttributeError):
            directive.ttl_seconds = 10

    @pytest.mark.parametrize("ttl", [0, -5, 1.5, True])
    def test_invalid_ttl_rejected(self, ttl):
        """TTL must be a positive integer."""
        with pytest.raises(ValidationError):
            CacheDirective("courses:list", ttl)

    def test_empty_key_rejected(self):
        """Key template must be non-empty."""
        with pytest.raises(ValidationError):
            CacheDirective("")


class TestCacheDirectiveRegistry:
    """Test cases for CacheDirectiveRegistry."""

    @pytest.fixture
    def registry(self):
        """Create an empty registry."""
        return CacheDirectiveRegistry()

    def test_handler_without_directive(self, registry):
        """Unregistered handlers have no directive."""
        assert registry.get_directive(list_courses) is None
        assert registry.get_metadata(list_courses, CACHE_KEY) is None
        assert list_courses not in registry

    def test_cacheable_sets_key_and_ttl(self, registry):
        """cacheable registers both metadata kinds at once."""
        decorated = registry.cacheable("courses:list", 60)(list_courses)

        assert decorated is list_courses
        assert registry.get_metadata(list_courses, CACHE_KEY) == "courses:list"
        assert registry.get_metadata(list_courses, CACHE_TTL) == 60
        assert registry.get_directive(list_courses) == CacheDirective("courses:list", 60)

    def test_cacheable_default_ttl(self, registry):
        """cacheable without a TTL uses the default."""
        registry.cacheable("courses:detail")(get_course)

        assert registry.get_directive(get_course).ttl_seconds == 300

    def test_cache_key_alone_uses_default_ttl(self, registry):
        """A key without a TTL still enables caching."""
        registry.cache_key("courses:list")(list_courses)

        assert registry.get_directive(list_courses) == CacheDirective("courses:list", 300)

    def test_cache_ttl_alone_does_not_enable_caching(self, registry):
        """A TTL without a key leaves caching disabled."""
        registry.cache_ttl(60)(list_courses)

        assert registry.get_metadata(list_courses, CACHE_TTL) == 60
        assert registry.get_directive(list_courses) is None

    def test_separate_decorators_combine(self, registry):
        """cache_key and cache_ttl stack on the same handler."""
        registry.cache_key("courses:list")(registry.cache_ttl(45)(list_courses))

        assert registry.get_directive(list_courses) == CacheDirective("courses:list", 45)

    def test_lookup_by_identity_string(self, registry):
        """Handlers can be looked up by their identity string."""
        registry.cacheable("courses:list", 60)(list_courses)

        assert handler_id(list_courses) == f"{__name__}.list_courses"
        assert registry.get_directive(handler_id(list_courses)).key_template == "courses:list"

    def test_directives_snapshot(self, registry):
        """directives() lists only handlers with a usable directive."""
        registry.cacheable("courses:list", 60)(list_courses)
        registry.cache_ttl(30)(get_course)

        snapshot = registry.directives()

        assert list(snapshot) == [handler_id(list_courses)]
        assert len(registry) == 1

    def test_register_without_decorator(self, registry):
        """Handlers can be registered directly during route setup."""
        directive = registry.register(get_course, "courses:detail", 120)

        assert directive == CacheDirective("courses:detail", 120)
        assert registry.get_directive(get_course) is not None
        assert get_course in registry

    def test_reregistration_overwrites(self, registry):
        """Registering again replaces the earlier directive."""
        registry.cacheable("courses:list", 60)(list_courses)
        registry.cacheable("courses:list:v2", 120)(list_courses)

        assert registry.get_directive(list_courses) == CacheDirective("courses:list:v2", 120)

    def test_unknown_metadata_kind_rejected(self, registry):
        """Only cache_key and cache_ttl are accepted."""
        with pytest.raises(ValidationError):
            registry.set_metadata(list_courses, "cache_tags", ["a"])

    def test_invalid_decorator_arguments_rejected(self, registry):
        """Bad arguments fail when the decorator is built."""
        with pytest.raises(ValidationError):
            registry.cacheable("courses:list", 0)
        with pytest.raises(ValidationError):
            registry.cache_key("")
        with pytest.raises(ValidationError):
            registry.cache_ttl(-1)

    def test_concurrent_registration_and_lookup(self, registry):
        """Readers and writers on separate threads see complete directives."""
        handlers = [f"courses.handler_{index}" for index in range(50)]

        def register(ident):
            registry.set_metadata(ident, CACHE_TTL, 30)
            registry.set_metadata(ident, CACHE_KEY, f"courses:{ident}")
            return registry.get_directive(ident)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(register, handlers))

        assert all(directive.ttl_seconds == 30 for directive in results)
        assert len(registry.directives()) == 50
        assert registry.get_metadata("courses.handler_7", CACHE_KEY) == "courses:courses.handler_7"

    def test_clear(self, registry):
        """clear() empties the table."""
        registry.cacheable("courses:list", 60)(list_courses)
        registry.clear()

        assert registry.get_directive(list_courses) is None

    def test_module_level_decorators_use_shared_registry(self):
        """The module-level helpers write to the default registry."""
        async def featured_courses():
            return []

        try:
            directives_module.cacheable("courses:featured", 90)(featured_courses)
            directive = directives_module.directive_registry.get_directive(featured_courses)
            assert directive == CacheDirective("courses:featured", 90)
        finally:
            directives_module.directive_registry.clear()
