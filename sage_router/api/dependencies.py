"""
Sage Router - API Dependencies

Shared dependencies for FastAPI routes.
"""

import uuid

from fastapi import Request

from ..core.errors import ErrorDetails, ErrorType, InfraError
from ..routing.service import RouterService


# Set by server.py to avoid circular imports
_service_getter = None


def set_service_getter(getter):
    """Set the function that returns the router service."""
    global _service_getter
    _service_getter = getter


def get_service() -> RouterService:
    """
    Get the router service.

    Raises a 503 until the server lifespan has built it.
    """
    service = _service_getter() if _service_getter is not None else None
    if service is None:
        raise InfraError(
            ErrorDetails(
                code="service_unavailable",
                message="Router not initialized. Server may be starting up.",
                type=ErrorType.INFRA,
                request_id="",
                retryable=True,
                retry_after=5
            ),
            status_code=503
        )
    return service


def get_request_id(request: Request) -> str:
    """Request id bound by the observability middleware, or a fresh one."""
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return request_id
    return request.headers.get("x-request-id") or f"req_{uuid.uuid4().hex[:24]}"
