"""
Courses service for the Academy Access Layer.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Query, Request

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.logging import set_user_context

from service_courses.app.caching import (
    CacheDirectiveRegistry,
    CachedRoute,
    ResponseCacheGateway,
    build_cache_store,
)
from service_courses.app.catalog import (
    CourseCatalog,
    CourseCategory,
    CourseDifficulty,
    CourseQuery,
    CourseSortField,
    SortOrder,
)

USER_ID_HEADER = "X-User-Id"


class CoursesService(BaseService):
    """Course catalogue service with cached read endpoints."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        cache_store=None,
        catalog: Optional[CourseCatalog] = None,
    ):
        super().__init__("courses", 8020, config=config)
        self.catalog = catalog if catalog is not None else CourseCatalog()
        self.cache_store = cache_store if cache_store is not None else build_cache_store(self.config)
        self.cache_directives = CacheDirectiveRegistry()
        self.response_cache = ResponseCacheGateway(self.cache_store, metrics=self.metrics)

        self.app.state.cache_directives = self.cache_directives
        self.app.state.response_cache_gateway = self.response_cache

        self._setup_user_context_middleware()
        self._setup_course_routes()
        self._setup_service_routes()

        self.app.state.courses_service = self

    async def on_shutdown(self) -> None:
        await self.response_cache.close()

    async def _check_dependencies(self) -> Dict[str, str]:
        reachable = await self.cache_store.ping()
        return {"cache_store": "ok" if reachable else "unavailable"}

    def _setup_user_context_middleware(self):
        """Pick up the caller identity forwarded by the upstream gateway."""

        @self.app.middleware("http")
        async def attach_user_context(request: Request, call_next):
            user_id = request.headers.get(USER_ID_HEADER)
            if user_id:
                request.state.user_info = {"user_id": user_id}
                set_user_context(user_id)
            return await call_next(request)

    def _setup_course_routes(self):
        """Set up course catalogue routes."""
        router = APIRouter(prefix="/api/v1/courses", tags=["courses"], route_class=CachedRoute)
        cache = self.cache_directives

        @router.get("")
        @cache.cacheable("courses:list", 60)
        async def list_courses(
            search: Optional[str] = Query(None, min_length=1),
            category: Optional[CourseCategory] = Query(None),
            difficulty: Optional[CourseDifficulty] = Query(None),
            instructor_id: Optional[str] = Query(None),
            min_price: Optional[float] = Query(None, ge=0),
            max_price: Optional[float] = Query(None, ge=0),
            tags: Optional[str] = Query(None, description="Comma-separated tags"),
            featured: Optional[bool] = Query(None),
            sort_by: CourseSortField = Query(CourseSortField.CREATED_AT),
            sort_order: SortOrder = Query(SortOrder.DESC),
            page: int = Query(1, ge=1),
            limit: int = Query(10, ge=1, le=100),
        ):
            """List published courses."""
            query = CourseQuery(
                search=search,
                category=category,
                difficulty=difficulty,
                instructor_id=instructor_id,
                min_price=min_price,
                max_price=max_price,
                tags=_split_tags(tags),
                featured=featured,
                sort_by=sort_by,
                sort_order=sort_order,
                page=page,
                limit=limit,
            )
            return await self.catalog.list_courses(query)

        @router.get("/{course_id}")
        @cache.cacheable("courses:detail")
        async def get_course(course_id: str):
            """Get a single course."""
            return await self.catalog.get_course(course_id)

        self.app.include_router(router)

    def _setup_service_routes(self):
        """Set up service info and cache introspection routes."""

        @self.app.get("/")
        async def root():
            return {
                "service": self.service_name,
                "message": "Academy Access Layer - Courses",
                "version": "1.0.0",
            }

        @self.app.get("/api/v1/cache/directives")
        async def list_cache_directives():
            """Return the cache directive registration table."""
            directives = self.cache_directives.directives()
            return {
                "count": len(directives),
                "store": type(self.cache_store).__name__,
                "pending_writes": self.response_cache.pending_writes,
                "directives": [
                    {
                        "handler": handler,
                        "key_template": directive.key_template,
                        "ttl_seconds": directive.ttl_seconds,
                    }
                    for handler, directive in sorted(directives.items())
                ],
            }


def _split_tags(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create the courses FastAPI application."""
    return CoursesService(config, **kwargs).app


if __name__ == "__main__":
    CoursesService(get_config("courses", 8020)).run()
