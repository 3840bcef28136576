"""
Sage Router - Observability Tests

Tests for the observability stack:
- Prometheus metrics
- OpenTelemetry tracing
- Structured logging
- Middleware integration
"""

import json
import logging

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry

from sage_router.core.models import HealthStatus, ProviderIdentity
from sage_router.observability.logging import (
    JSONFormatter,
    LogContext,
    get_logger,
)
from sage_router.observability.metrics import MetricsCollector
from sage_router.observability.middleware import ObservabilityMiddleware
from sage_router.observability.tracing import (
    TracingManager,
    setup_tracing,
    trace_provider_call,
)


# ============================================================
# Metrics
# ============================================================

class TestMetricsCollector:
    """Test Prometheus metric recording."""

    @pytest.fixture
    def collector(self):
        return MetricsCollector(registry=CollectorRegistry())

    def test_record_attempt(self, collector):
        collector.record_attempt("openai", "error", "direct", 0.2)
        collector.record_attempt("openai", "success", "direct", 0.1)

        assert collector.registry.get_sample_value(
            "sage_generation_attempts_total", {"provider": "openai", "outcome": "error"}
        ) == 1.0
        assert collector.registry.get_sample_value(
            "sage_generation_duration_seconds_count", {"provider": "openai", "mode": "direct"}
        ) == 2.0

    def test_record_fallback(self, collector):
        collector.record_fallback("openai", "gemini")
        assert collector.registry.get_sample_value(
            "sage_fallback_transitions_total",
            {"from_provider": "openai", "to_provider": "gemini"},
        ) == 1.0

    def test_health_gauge_accepts_enum_or_name(self, collector):
        collector.set_provider_health(ProviderIdentity.ANTHROPIC, HealthStatus.UNHEALTHY)
        collector.set_provider_health("gemini", HealthStatus.DEGRADED)

        assert collector.registry.get_sample_value(
            "sage_provider_health_state", {"provider": "anthropic"}
        ) == 2.0
        assert collector.registry.get_sample_value(
            "sage_provider_health_state", {"provider": "gemini"}
        ) == 1.0

    def test_render_text_format(self, collector):
        collector.record_exhausted("baseline")
        collector.record_reasoning_iterations(2)

        body = collector.render().decode()
        assert 'sage_requests_exhausted_total{profile="baseline"} 1.0' in body
        assert "sage_reasoning_iterations_bucket" in body


# ============================================================
# Tracing
# ============================================================

class TestTracing:
    """Test provider call spans."""

    def teardown_method(self):
        TracingManager.reset_instance()

    def test_setup_replaces_singleton(self):
        manager = setup_tracing(service_name="sage-test")
        assert TracingManager.get_instance() is manager
        assert manager.service_name == "sage-test"

    def test_span_reraises(self):
        setup_tracing()
        with pytest.raises(RuntimeError):
            with trace_provider_call("openai", "gpt-4o"):
                raise RuntimeError("boom")

    def test_span_yields(self):
        setup_tracing()
        with trace_provider_call("gemini", "gemini-2.0-flash", mode="reasoning") as span:
            assert span is not None


# ============================================================
# Logging
# ============================================================

class TestJSONFormatter:
    """Test structured log output."""

    def _record(self, **extra):
        record = logging.LogRecord("sage_router.test", logging.INFO, __file__, 1, "Routing decision", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(self._record(provider="openai")))

        assert data["level"] == "INFO"
        assert data["message"] == "Routing decision"
        assert data["provider"] == "openai"

    def test_context_injected(self):
        LogContext.set_current(LogContext(request_id="req_1", profile="deep_analysis"))
        try:
            data = json.loads(JSONFormatter().format(self._record()))
        finally:
            LogContext.clear()

        assert data["request_id"] == "req_1"
        assert data["profile"] == "deep_analysis"

    def test_sensitive_fields_redacted(self):
        data = json.loads(JSONFormatter().format(self._record(api_key="sk-live")))
        assert data["api_key"] == "[REDACTED]"


class TestLogContext:

    def test_update_known_and_extra(self):
        ctx = LogContext(request_id="req_1")
        ctx.update(profile="precision", provider="gemini")

        assert ctx.profile == "precision"
        assert ctx.to_dict() == {"request_id": "req_1", "profile": "precision", "provider": "gemini"}

    def test_structured_logger_extras(self, caplog):
        logger = get_logger("sage_router.test")
        with caplog.at_level(logging.INFO, logger="sage_router.test"):
            logger.info("Provider attempt failed", provider="openai")

        assert caplog.records[-1].provider == "openai"


# ============================================================
# Middleware
# ============================================================

class TestObservabilityMiddleware:
    """Test request id binding."""

    @pytest.fixture
    def client(self):
        app = FastAPI()
        app.add_middleware(ObservabilityMiddleware)

        @app.get("/echo")
        async def echo(request: Request):
            ctx = LogContext.get_current()
            return {
                "state": request.state.request_id,
                "context": ctx.request_id if ctx else None,
            }

        @app.get("/health")
        async def health():
            return {"ok": True}

        return TestClient(app)

    def test_incoming_request_id_kept(self, client):
        response = client.get("/echo", headers={"x-request-id": "req_given"})

        assert response.headers["X-Request-Id"] == "req_given"
        assert response.json() == {"state": "req_given", "context": "req_given"}

    def test_request_id_generated(self, client):
        response = client.get("/echo")

        request_id = response.headers["X-Request-Id"]
        assert request_id.startswith("req_")
        assert len(request_id) == len("req_") + 24
        assert response.json()["state"] == request_id

    def test_excluded_paths_untouched(self, client):
        response = client.get("/health")
        assert "X-Request-Id" not in response.headers
