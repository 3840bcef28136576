"""
Sage Router - API Server

FastAPI app exposing the routing and resilience layer.

Supports three modes:
- MODE=local: Stub backends when USE_STUB_ADAPTERS is set, real ones otherwise
- MODE=prod: Real provider backends from *_API_KEY variables
- MODE=test: Deterministic stub backends
"""

import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .adapters import build_backends
from .api import routing_router, set_service_getter
from .config import load_settings
from .core.errors import RouterException
from .core.models import ProviderIdentity
from .observability import (
    ObservabilityMiddleware,
    get_logger,
    get_metrics,
    metrics_endpoint,
    setup_observability,
)
from .routing.service import RouterService


# ============================================================
# Global state
# ============================================================

service_instance: Optional[RouterService] = None


# ============================================================
# Lifespan management
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the router service on startup, close backends on shutdown."""
    global service_instance

    settings = load_settings()
    observability = setup_observability(settings)
    logger = get_logger("sage_router.server")

    backends = build_backends(settings)
    if not backends:
        logger.warning(
            "No providers configured. Set OPENAI_API_KEY, ANTHROPIC_API_KEY, or GOOGLE_API_KEY"
        )

    service_instance = RouterService(settings, backends, metrics=get_metrics())
    # Health is process-lifetime state; every start begins healthy
    service_instance.reset()
    for provider in ProviderIdentity:
        get_metrics().set_provider_health(provider.value, service_instance.ledger.status(provider))

    logger.info(
        "Sage router ready",
        mode=settings.mode.value,
        providers=[p.value for p in backends],
        stub_backends=settings.use_stub_adapters,
    )

    yield

    await service_instance.close()
    service_instance = None
    observability["tracing"].shutdown()
    logger.info("Sage router stopped")


# ============================================================
# FastAPI App
# ============================================================

app = FastAPI(
    title="Sage Router",
    description="Request routing and provider fallback for marketing content generation",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routing_router)


def get_service_instance() -> Optional[RouterService]:
    return service_instance


set_service_getter(get_service_instance)


# ============================================================
# Core Endpoints
# ============================================================

@app.get("/health")
async def health_check():
    """Liveness plus a one-word summary of provider health."""
    if service_instance is None:
        return {"status": "starting", "version": "1.0.0"}

    states = service_instance.provider_health()
    statuses = {s.provider.value: s.status.value for s in states}
    healthy = all(status == "healthy" for status in statuses.values())
    return {
        "status": "healthy" if healthy else "degraded",
        "version": "1.0.0",
        "mode": service_instance.settings.mode.value,
        "providers": statuses,
    }


@app.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics in text format."""
    return metrics_endpoint()


# ============================================================
# Error handlers
# ============================================================

@app.exception_handler(RouterException)
async def router_exception_handler(request: Request, exc: RouterException):
    """One JSON error body for every router error."""
    if not exc.error.request_id:
        exc.error.request_id = getattr(request.state, "request_id", "")

    headers = {
        "X-Request-Id": exc.error.request_id,
        "X-Error-Type": exc.error.type.value,
        "X-Error-Code": exc.error.code,
    }
    if exc.error.retry_after:
        headers["Retry-After"] = str(exc.error.retry_after)
    if exc.error.provider:
        headers["X-Provider"] = exc.error.provider

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.error.to_dict(),
        headers=headers
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle standard HTTP exceptions."""
    request_id = getattr(request.state, "request_id", "") or f"req_{uuid.uuid4().hex[:24]}"

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": "http_error",
                "message": exc.detail if isinstance(exc.detail, str) else str(exc.detail),
                "type": "semantic_error" if exc.status_code < 500 else "infra_error",
                "request_id": request_id,
                "retryable": exc.status_code >= 500
            }
        },
        headers={"X-Request-Id": request_id}
    )


# ============================================================
# Run server
# ============================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "sage_router.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
