"""
Sage Router - Observability Module

- Structured JSON logging with context injection
- Prometheus metrics (decisions, attempts, fallbacks, provider health)
- OpenTelemetry spans around provider attempts

Usage:
    from sage_router.observability import get_logger, get_metrics

    logger = get_logger(__name__)
    metrics = get_metrics()
"""

from .metrics import (
    MetricsCollector,
    get_metrics,
    metrics_endpoint,
)
from .tracing import (
    TracingManager,
    setup_tracing,
    trace_provider_call,
)
from .logging import (
    StructuredLogger,
    get_logger,
    setup_logging,
    LogContext,
)
from .middleware import (
    ObservabilityMiddleware,
    setup_observability,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "metrics_endpoint",
    # Tracing
    "TracingManager",
    "setup_tracing",
    "trace_provider_call",
    # Logging
    "StructuredLogger",
    "get_logger",
    "setup_logging",
    "LogContext",
    # Combined
    "ObservabilityMiddleware",
    "setup_observability",
]
