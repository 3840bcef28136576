"""
Sage Router - Pytest Configuration

Configures:
- Integration test markers (skip by default)
- Scripted backends for unit tests
- Fresh ledger/metrics/settings fixtures
"""

import asyncio
import os
import logging
from typing import Dict, List, Optional, Sequence, Union

import pytest
from prometheus_client import CollectorRegistry

from sage_router.adapters.base import AdapterConfig, GenerationBackend
from sage_router.config import RouterSettings, RunMode
from sage_router.core.models import ProviderIdentity
from sage_router.observability.metrics import MetricsCollector
from sage_router.routing.health import ProviderHealthLedger


# ============================================================
# Environment Configuration
# ============================================================

def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


RUN_INTEGRATION = _is_truthy(os.getenv("RUN_INTEGRATION"))


# ============================================================
# Pytest Markers
# ============================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires RUN_INTEGRATION=1)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION=1."""
    skip_integration = pytest.mark.skip(
        reason="Integration test - set RUN_INTEGRATION=1 to run"
    )
    for item in items:
        if "integration" in item.keywords and not RUN_INTEGRATION:
            item.add_marker(skip_integration)


# ============================================================
# Scripted Backends (for unit tests)
# ============================================================

Step = Union[str, Exception, float]


class ScriptedBackend(GenerationBackend):
    """
    Backend that replays a script.

    Each call consumes the next step: a string is returned, an exception
    is raised, a float sleeps that many seconds first and then returns
    "slow". When the script runs out the last step repeats.

    Usage:
        backend = ScriptedBackend(ProviderIdentity.OPENAI, ["draft one", RuntimeError("boom")])
    """

    def __init__(self, provider: ProviderIdentity, script: Sequence[Step] = ("ok",)):
        super().__init__(AdapterConfig(api_key="test"))
        self.provider = provider
        self.script: List[Step] = list(script)
        self.calls: List[Dict] = []
        self.closed = False

    async def generate(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 2000,
        request_id: str = "",
    ) -> str:
        self.calls.append({
            "model": model,
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        index = min(len(self.calls) - 1, len(self.script) - 1)
        step = self.script[index]
        if isinstance(step, Exception):
            raise step
        if isinstance(step, float):
            await asyncio.sleep(step)
            return "slow"
        return step

    async def close(self):
        self.closed = True


@pytest.fixture
def scripted_backend():
    """Factory for ScriptedBackend instances."""
    return ScriptedBackend


@pytest.fixture
def metrics():
    """Metrics collector with its own registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def ledger():
    """Fresh health ledger with the default threshold."""
    return ProviderHealthLedger(failure_threshold=3)


@pytest.fixture
def settings():
    """Test settings: short timeouts, no backoff."""
    return RouterSettings(
        mode=RunMode.TEST,
        call_timeout_seconds=1.0,
        reasoning_budget_seconds=30.0,
        use_stub_adapters=True,
    )


# ============================================================
# Logging Configuration
# ============================================================

@pytest.fixture(autouse=True)
def configure_test_logging():
    """Configure logging for tests."""
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    yield


# ============================================================
# Skip Helpers
# ============================================================

requires_integration = pytest.mark.skipif(
    not RUN_INTEGRATION,
    reason="Requires RUN_INTEGRATION=1"
)
