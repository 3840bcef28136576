"""
Sage Router - Prometheus Metrics

Metrics exposed:
- sage_routing_decisions_total: Counter of decisions by profile, provider, rule kind
- sage_generation_attempts_total: Counter of provider attempts by outcome
- sage_generation_duration_seconds: Histogram of attempt latency (direct vs reasoning)
- sage_fallback_transitions_total: Counter of fallbacks from one provider to the next
- sage_provider_health_state: Gauge of ledger status per provider
- sage_reasoning_iterations: Histogram of refinement turns per reasoning pass
- sage_requests_exhausted_total: Counter of requests where every candidate failed

Usage:
    from sage_router.observability.metrics import get_metrics, metrics_endpoint

    metrics = get_metrics()
    metrics.record_attempt(provider="openai", outcome="success", mode="direct", duration_seconds=1.2)

    @app.get("/metrics")
    async def metrics():
        return metrics_endpoint()
"""

from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)
from fastapi import Response

from ..core.models import HealthStatus


class MetricsCollector:
    """
    Central metrics collector using Prometheus client.

    Each collector owns its registry, so tests can build fresh ones
    without duplicate-registration errors.
    """

    _instance: Optional["MetricsCollector"] = None

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.info = Info(
            "sage_router",
            "Sage router service information",
            registry=self.registry,
        )
        self.info.info({
            "version": "1.0.0",
            "service": "sage-router",
        })

        self.routing_decisions = Counter(
            "sage_routing_decisions_total",
            "Total routing decisions",
            labelnames=["profile", "provider", "rule_kind", "reasoning"],
            registry=self.registry,
        )

        self.generation_attempts = Counter(
            "sage_generation_attempts_total",
            "Total provider attempts",
            labelnames=["provider", "outcome"],  # outcome = success/failure/timeout
            registry=self.registry,
        )

        # Buckets sized for LLM calls, reasoning passes run several in a row
        self.generation_duration = Histogram(
            "sage_generation_duration_seconds",
            "Provider attempt duration in seconds",
            labelnames=["provider", "mode"],  # mode = direct/reasoning
            buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 100.0, 200.0, float("inf")),
            registry=self.registry,
        )

        self.fallback_transitions = Counter(
            "sage_fallback_transitions_total",
            "Total fallbacks from a failed provider to the next candidate",
            labelnames=["from_provider", "to_provider"],
            registry=self.registry,
        )

        # 0 = healthy, 1 = degraded, 2 = unhealthy
        self.provider_health_state = Gauge(
            "sage_provider_health_state",
            "Provider health (0=healthy, 1=degraded, 2=unhealthy)",
            labelnames=["provider"],
            registry=self.registry,
        )

        self.reasoning_iterations = Histogram(
            "sage_reasoning_iterations",
            "Refinement turns per reasoning pass",
            buckets=(0, 1, 2, 3, 4, 5, 8),
            registry=self.registry,
        )

        self.requests_exhausted = Counter(
            "sage_requests_exhausted_total",
            "Requests where every candidate provider failed",
            labelnames=["profile"],
            registry=self.registry,
        )

    @classmethod
    def get_instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Reset singleton (for testing)."""
        cls._instance = None

    def record_decision(
        self,
        profile: str,
        provider: str,
        rule_kind: str,
        use_reasoning: bool,
    ):
        self.routing_decisions.labels(
            profile=profile,
            provider=provider,
            rule_kind=rule_kind,
            reasoning="true" if use_reasoning else "false",
        ).inc()

    def record_attempt(
        self,
        provider: str,
        outcome: str,
        mode: str,
        duration_seconds: float,
    ):
        self.generation_attempts.labels(provider=provider, outcome=outcome).inc()
        self.generation_duration.labels(provider=provider, mode=mode).observe(duration_seconds)

    def record_fallback(self, from_provider: str, to_provider: str):
        self.fallback_transitions.labels(
            from_provider=from_provider,
            to_provider=to_provider,
        ).inc()

    def set_provider_health(self, provider, status: HealthStatus):
        name = getattr(provider, "value", provider)
        self.provider_health_state.labels(provider=name).set(status.rank)

    def record_reasoning_iterations(self, iterations: int):
        self.reasoning_iterations.observe(iterations)

    def record_exhausted(self, profile: str):
        self.requests_exhausted.labels(profile=profile).inc()

    def render(self) -> bytes:
        """Render the registry in Prometheus text format."""
        return generate_latest(self.registry)


def get_metrics() -> MetricsCollector:
    """Get the process-wide metrics collector."""
    return MetricsCollector.get_instance()


def metrics_endpoint() -> Response:
    """FastAPI response for the /metrics endpoint."""
    return Response(
        content=get_metrics().render(),
        media_type=CONTENT_TYPE_LATEST,
    )
