"""
FastAPI route class that runs endpoints through the response cache.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Coroutine, Dict, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.responses import StreamingResponse

from .keys import RequestContext

CACHE_STATUS_HEADER = "X-Cache"


def _cacheable_body(response: Response, expected_status: int) -> Optional[Any]:
    """JSON payload of a response at the route's declared status, or None when it must not be stored."""
    if isinstance(response, StreamingResponse):
        return None
    if response.status_code != expected_status:
        return None
    if not (response.media_type or "").startswith("application/json"):
        return None
    try:
        return json.loads(response.body)
    except (TypeError, ValueError):
        return None


class CachedRoute(APIRoute):
    """
    Route whose endpoint is served through ``app.state.response_cache_gateway``.

    The directive is looked up in ``app.state.cache_directives`` by endpoint
    identity on every request. Without a gateway or a directive the endpoint
    runs exactly as a plain ``APIRoute``.

    Only responses carrying the route's declared status code are stored, so a
    hit is replayed with the same status the endpoint produces on a miss.
    """

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        original_route_handler = super().get_route_handler()
        endpoint = self.endpoint
        success_status = self.status_code or 200

        async def cached_route_handler(request: Request) -> Response:
            gateway = getattr(request.app.state, "response_cache_gateway", None)
            registry = getattr(request.app.state, "cache_directives", None)
            directive = registry.get_directive(endpoint) if registry is not None else None
            if gateway is None or directive is None:
                return await original_route_handler(request)

            served: Dict[str, Response] = {}

            async def call_endpoint() -> Optional[Any]:
                response = await original_route_handler(request)
                served["response"] = response
                return _cacheable_body(response, success_status)

            payload = await gateway.handle(RequestContext.from_request(request), directive, call_endpoint)

            response = served.get("response")
            if response is None:
                response = JSONResponse(content=payload, status_code=success_status)
                response.headers[CACHE_STATUS_HEADER] = "HIT"
            else:
                response.headers[CACHE_STATUS_HEADER] = "MISS"
            return response

        return cached_route_handler
