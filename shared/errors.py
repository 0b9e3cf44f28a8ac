"""
Shared error handling for the Academy Access Layer.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class AccessLayerException(Exception):
    """Base exception for Access Layer services."""

    status_code = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    status_code = 422

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(AccessLayerException):
    """Requested resource does not exist."""

    status_code = 404

    def __init__(self, resource: str, resource_id: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            {"resource": resource, "id": resource_id, **(details or {})},
        )


class CacheUnavailableError(AccessLayerException):
    """Cache store lookup or write failed."""

    status_code = 503

    def __init__(self, operation: str, message: str = "Cache store unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_UNAVAILABLE", f"{operation}: {message}", details)
        self.operation = operation
