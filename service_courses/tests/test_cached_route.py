"""
Unit tests for CachedRoute.
"""

import pytest
from unittest.mock import AsyncMock
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_courses.app.caching import (
    CacheDirectiveRegistry,
    CachedRoute,
    MemoryCacheStore,
    ResponseCacheGateway,
)


class CountingCatalog:
    """Records how often the real endpoints run."""

    def __init__(self):
        self.calls = 0

    def page(self, page: int):
        self.calls += 1
        return {"items": [{"id": f"course-{page}"}], "page": page, "call": self.calls}


def build_app(store=None, with_gateway: bool = True):
    app = FastAPI()
    registry = CacheDirectiveRegistry()
    catalog = CountingCatalog()
    store = store if store is not None else MemoryCacheStore()
    router = APIRouter(route_class=CachedRoute)

    @router.get("/courses")
    @registry.cacheable("courses:list", 60)
    async def list_courses(page: int = 1):
        return catalog.page(page)

    @router.get("/courses/uncached")
    async def list_uncached(page: int = 1):
        return catalog.page(page)

    @router.get("/courses/missing")
    @registry.cacheable("courses:missing")
    async def missing_course():
        catalog.calls += 1
        raise HTTPException(status_code=404, detail="Course not found")

    @router.get("/courses/accepted")
    @registry.cacheable("courses:accepted")
    async def accepted():
        catalog.calls += 1
        return JSONResponse(status_code=202, content={"queued": True})

    @router.get("/courses/enrollments", status_code=201)
    @registry.cacheable("courses:enroll")
    async def enroll(course_id: str = "risk-first"):
        catalog.calls += 1
        return {"course_id": course_id, "enrolled": True}

    @app.middleware("http")
    async def fake_auth(request: Request, call_next):
        user_id = request.headers.get("X-User-Id")
        if user_id:
            request.state.user_info = {"user_id": user_id}
        return await call_next(request)

    app.include_router(router)
    app.state.cache_directives = registry
    if with_gateway:
        app.state.response_cache_gateway = ResponseCacheGateway(store)
    return app, catalog, store


class TestCachedRoute:
    """Test cases for CachedRoute."""

    def test_second_request_served_from_cache(self):
        """The endpoint runs once; the repeat is a cache hit with the same body."""
        app, catalog, store = build_app()

        with TestClient(app) as client:
            first = client.get("/courses", params={"page": 2}, headers={"X-User-Id": "u1"})
            second = client.get("/courses", params={"page": 2}, headers={"X-User-Id": "u1"})

        assert first.status_code == 200
        assert first.headers["X-Cache"] == "MISS"
        assert second.status_code == 200
        assert second.headers["X-Cache"] == "HIT"
        assert second.json() == first.json()
        assert catalog.calls == 1

    def test_cache_entry_uses_derived_key(self):
        """The stored key follows template:user:base64(query)."""
        app, catalog, store = build_app()

        with TestClient(app) as client:
            client.get("/courses", params={"page": 2}, headers={"X-User-Id": "u1"})
            client.get("/courses")

        assert "courses:list:u1:eyJwYWdlIjoiMiJ9" in store._entries
        assert "courses:list:anonymous:e30=" in store._entries

    def test_users_do_not_share_entries(self):
        """Different users miss independently."""
        app, catalog, store = build_app()

        with TestClient(app) as client:
            client.get("/courses", headers={"X-User-Id": "u1"})
            response = client.get("/courses", headers={"X-User-Id": "u2"})

        assert response.headers["X-Cache"] == "MISS"
        assert catalog.calls == 2

    def test_query_order_does_not_matter(self):
        """Reordered query strings hit the same entry."""
        app, catalog, store = build_app()

        with TestClient(app) as client:
            client.get("/courses?page=3&sort=asc")
            response = client.get("/courses?sort=asc&page=3")

        assert response.headers["X-Cache"] == "HIT"
        assert catalog.calls == 1

    def test_route_without_directive_is_untouched(self):
        """Endpoints with no directive never consult the cache."""
        app, catalog, store = build_app()

        with TestClient(app) as client:
            client.get("/courses/uncached")
            response = client.get("/courses/uncached")

        assert "X-Cache" not in response.headers
        assert catalog.calls == 2
        assert len(store) == 0

    def test_handler_error_not_cached(self):
        """HTTP errors propagate and are never stored."""
        app, catalog, store = build_app()

        with TestClient(app) as client:
            first = client.get("/courses/missing")
            second = client.get("/courses/missing")

        assert first.status_code == 404
        assert second.status_code == 404
        assert catalog.calls == 2
        assert len(store) == 0

    def test_status_other_than_declared_not_cached(self):
        """A response whose status differs from the route default is never stored."""
        app, catalog, store = build_app()

        with TestClient(app) as client:
            first = client.get("/courses/accepted")
            second = client.get("/courses/accepted")

        assert first.status_code == 202
        assert second.status_code == 202
        assert second.headers["X-Cache"] == "MISS"
        assert catalog.calls == 2
        assert len(store) == 0

    def test_hit_keeps_declared_status(self):
        """A route declared with status 201 answers 201 on a hit too."""
        app, catalog, store = build_app()

        with TestClient(app) as client:
            first = client.get("/courses/enrollments", params={"course_id": "options-greeks"})
            second = client.get("/courses/enrollments", params={"course_id": "options-greeks"})

        assert first.status_code == 201
        assert first.headers["X-Cache"] == "MISS"
        assert second.status_code == 201
        assert second.headers["X-Cache"] == "HIT"
        assert second.json() == first.json()
        assert catalog.calls == 1

    def test_store_outage_is_transparent(self):
        """Store failures fall back to the real endpoint."""
        store = AsyncMock()
        store.get.side_effect = ConnectionError("Redis connection failed")
        app, catalog, _ = build_app(store=store)

        with TestClient(app) as client:
            first = client.get("/courses", params={"page": 1})
            second = client.get("/courses", params={"page": 1})

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["items"] == [{"id": "course-1"}]
        assert catalog.calls == 2
        store.set.assert_not_called()

    def test_no_gateway_configured(self):
        """Without a gateway on app.state the route behaves like APIRoute."""
        app, catalog, store = build_app(with_gateway=False)

        with TestClient(app) as client:
            client.get("/courses")
            response = client.get("/courses")

        assert response.status_code == 200
        assert "X-Cache" not in response.headers
        assert catalog.calls == 2
