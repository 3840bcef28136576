"""
Sage Router - Router Service

Inbound facade: route a request, execute a decision, or both.
Owns the health ledger, the decision engine and the fallback loop for
one process.
"""

from typing import Dict, List, Optional, Tuple

from ..adapters.base import GenerationBackend
from ..config import RouterSettings
from ..core.errors import InvalidRequestError
from ..core.models import (
    ExecutionOutcome,
    ProviderHealthState,
    ProviderIdentity,
    RoutingDecision,
    RoutingRequest,
)
from ..observability.logging import LogContext
from ..observability.metrics import MetricsCollector, get_metrics
from ..reasoning.prompts import DEFAULT_SYSTEM_PROMPT
from .engine import RoutingEngine
from .fallback import FallbackExecutor
from .health import ProviderHealthLedger


class RouterService:
    """
    Routing and resilience layer entry point.

    Usage:
        service = RouterService(settings, backends)
        decision = service.route(request)
        outcome = await service.execute(decision, request)
    """

    def __init__(
        self,
        settings: RouterSettings,
        backends: Dict[ProviderIdentity, GenerationBackend],
        ledger: Optional[ProviderHealthLedger] = None,
        metrics: Optional[MetricsCollector] = None,
        default_system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ):
        self.settings = settings
        self.backends = backends
        self.metrics = metrics or get_metrics()
        self.ledger = ledger or ProviderHealthLedger(
            failure_threshold=settings.failure_threshold,
            listener=self.metrics.set_provider_health,
        )
        self.engine = RoutingEngine(self.ledger, settings)
        self.executor = FallbackExecutor(
            backends,
            self.ledger,
            settings,
            metrics=self.metrics,
            default_system_prompt=default_system_prompt,
        )

    def _bind_context(self, request: RoutingRequest, decision: Optional[RoutingDecision] = None):
        # The HTTP middleware owns the context; library callers may have none
        ctx = LogContext.get_current()
        if ctx is None:
            return
        if not request.request_id:
            request.request_id = ctx.request_id
        if decision is not None:
            ctx.update(profile=decision.profile.value)

    @staticmethod
    def _validate(request: RoutingRequest):
        if not request.query or not request.query.strip():
            raise InvalidRequestError(
                "query must not be empty",
                param="query",
                request_id=request.request_id,
            )

    def route(self, request: RoutingRequest) -> RoutingDecision:
        """Decide provider, model and reasoning flag. No network calls."""
        self._bind_context(request)
        decision = self.engine.route(request)
        self._bind_context(request, decision)
        self.metrics.record_decision(
            profile=decision.profile.value,
            provider=decision.provider.value,
            rule_kind=decision.rule.split(":", 1)[0],
            use_reasoning=decision.use_reasoning,
        )
        return decision

    async def execute(
        self,
        decision: RoutingDecision,
        request: RoutingRequest,
    ) -> ExecutionOutcome:
        """
        Realize a decision.

        Raises:
            InvalidRequestError: query is empty
            AllProvidersExhaustedError: every candidate failed
        """
        self._validate(request)
        self._bind_context(request, decision)
        return await self.executor.execute(decision, request)

    async def handle(
        self,
        request: RoutingRequest,
    ) -> Tuple[RoutingDecision, ExecutionOutcome]:
        """Route, then execute."""
        decision = self.route(request)
        outcome = await self.execute(decision, request)
        return decision, outcome

    def provider_health(self) -> List[ProviderHealthState]:
        """Ledger snapshot for every known provider, configured or not."""
        snapshots = self.ledger.snapshot_all(list(ProviderIdentity))
        return [snapshots[p] for p in ProviderIdentity]

    def reset(self):
        self.ledger.reset()

    async def close(self):
        for backend in self.backends.values():
            await backend.close()
