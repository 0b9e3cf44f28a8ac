"""
Request context and cache key derivation for the response cache.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from fastapi import Request


ANONYMOUS_USER = "anonymous"


@dataclass(frozen=True)
class RequestContext:
    """The parts of an inbound request that participate in the cache key."""

    user_id: Optional[str] = None
    query_parameters: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_request(cls, request: Request) -> "RequestContext":
        """Build the context from a FastAPI request.

        The user comes from ``request.state.user_info`` as populated by the
        upstream auth layer. Repeated query parameters keep their last value.
        """
        user_id = None
        user_info = getattr(request.state, "user_info", None)
        if isinstance(user_info, dict):
            user_id = user_info.get("user_id")

        return cls(
            user_id=str(user_id) if user_id else None,
            query_parameters=dict(request.query_params),
        )


def serialize_query(query_parameters: Mapping[str, Any]) -> str:
    """Canonical compact JSON for a query mapping, keys sorted."""
    return json.dumps(
        dict(query_parameters),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def derive_key(template: str, request: RequestContext) -> str:
    """Build ``<template>:<user>:<base64(query json)>`` for a request."""
    user_id = request.user_id or ANONYMOUS_USER
    encoded_query = base64.b64encode(serialize_query(request.query_parameters).encode("utf-8")).decode("ascii")
    return f"{template}:{user_id}:{encoded_query}"

