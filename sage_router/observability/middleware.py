"""
Sage Router - Observability Middleware

Request correlation for the HTTP surface plus one-call observability
setup.

Usage:
    from sage_router.observability import setup_observability, ObservabilityMiddleware

    setup_observability(settings)
    app.add_middleware(ObservabilityMiddleware)
"""

import time
import uuid
from typing import Any, Dict, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from ..config import RouterSettings
from .metrics import get_metrics
from .tracing import setup_tracing
from .logging import get_logger, LogContext, setup_logging


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Binds a request id to the log context for every routed request and
    echoes it back in X-Request-Id.
    """

    # Paths to exclude from request logging
    EXCLUDE_PATHS = {"/health", "/metrics", "/openapi.json", "/docs", "/redoc"}

    def __init__(
        self,
        app: ASGIApp,
        exclude_paths: Optional[set] = None,
    ):
        super().__init__(app)
        self.exclude_paths = exclude_paths or self.EXCLUDE_PATHS
        self.logger = get_logger("sage_router.http")

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        request_id = request.headers.get("x-request-id", "")
        if not request_id:
            request_id = f"req_{uuid.uuid4().hex[:24]}"

        log_ctx = LogContext(request_id=request_id)
        LogContext.set_current(log_ctx)
        request.state.request_id = request_id
        request.state.log_context = log_ctx

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            LogContext.clear()

        self.logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
            request_id=request_id,
        )
        response.headers["X-Request-Id"] = request_id
        return response


_observability_initialized = False


def setup_observability(
    settings: RouterSettings,
    service_name: str = "sage-router",
    service_version: str = "1.0.0",
) -> Dict[str, Any]:
    """
    Initialize logging, metrics and tracing.

    Call once at application startup. Safe to call multiple times.

    Returns:
        Dict with initialized components
    """
    global _observability_initialized

    setup_logging(
        level=settings.log_level,
        json_output=settings.log_format == "json",
    )

    result: Dict[str, Any] = {
        "logging": True,
        "metrics": get_metrics(),
        "tracing": setup_tracing(
            service_name=service_name,
            service_version=service_version,
            otlp_endpoint=settings.otlp_endpoint,
            console_export=settings.otel_console_export,
        ),
    }

    if not _observability_initialized:
        get_logger("sage_router.observability").info(
            "Observability initialized",
            service_name=service_name,
            service_version=service_version,
            otlp_endpoint=settings.otlp_endpoint or "none",
        )
        _observability_initialized = True

    return result
