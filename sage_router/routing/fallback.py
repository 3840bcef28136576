"""
Sage Router - Fallback Execution Loop

Realizes a routing decision against live backends.

Rules:
- Candidates are exactly decision.fallback_chain, fixed when the
  decision was made
- One attempt per candidate, strictly sequential
- Every failure is recorded into the health ledger before moving on
- Only AllProvidersExhaustedError leaves the loop
"""

import asyncio
import time
from typing import Dict, List, Optional

from ..adapters.base import GenerationBackend, call_with_timeout
from ..config import RouterSettings
from ..core.errors import (
    AllProvidersExhaustedError,
    BackendNotConfiguredError,
    ProviderCallError,
    ProviderTimeoutError,
)
from ..core.models import (
    ExecutionOutcome,
    FallbackAttempt,
    ProviderIdentity,
    ReasoningResult,
    RoutingDecision,
    RoutingRequest,
)
from ..observability.logging import get_logger
from ..observability.metrics import MetricsCollector, get_metrics
from ..observability.tracing import trace_provider_call
from ..reasoning.engine import ReasoningPass
from ..reasoning.prompts import DEFAULT_SYSTEM_PROMPT, compose_user_prompt
from .health import ProviderHealthLedger
from .profiles import DEFAULT_MODELS

logger = get_logger(__name__)


class FallbackExecutor:
    """
    Sequential fallback over a decision's candidate chain.

    Usage:
        executor = FallbackExecutor(backends, ledger, settings)
        outcome = await executor.execute(decision, request)
    """

    def __init__(
        self,
        backends: Dict[ProviderIdentity, GenerationBackend],
        ledger: ProviderHealthLedger,
        settings: Optional[RouterSettings] = None,
        reasoning: Optional[ReasoningPass] = None,
        metrics: Optional[MetricsCollector] = None,
        default_system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ):
        self.backends = backends
        self.ledger = ledger
        self.settings = settings or RouterSettings()
        self.reasoning = reasoning or ReasoningPass(
            call_timeout_seconds=self.settings.call_timeout_seconds,
            max_iterations=self.settings.reasoning_max_iterations,
            convergence_threshold=self.settings.reasoning_convergence,
            budget_seconds=self.settings.reasoning_budget_seconds,
        )
        self.metrics = metrics or get_metrics()
        self.default_system_prompt = default_system_prompt

    def candidates_for(
        self,
        decision: RoutingDecision,
        request: RoutingRequest,
    ) -> List[ProviderIdentity]:
        candidates = list(decision.fallback_chain) or [decision.provider]
        strict = (
            self.settings.strict_override
            and request.override is not None
            and request.override.provider is not None
        )
        if strict:
            return candidates[:1]
        return candidates

    async def _attempt(
        self,
        provider: ProviderIdentity,
        model: str,
        decision: RoutingDecision,
        request: RoutingRequest,
        system_prompt: str,
    ):
        backend = self.backends.get(provider)
        if backend is None:
            raise BackendNotConfiguredError(provider.value, request.request_id)

        mode = "reasoning" if decision.use_reasoning else "direct"
        with trace_provider_call(provider.value, model, mode):
            if decision.use_reasoning:
                result = await self.reasoning.run(
                    backend,
                    model,
                    query=request.query,
                    context=request.context,
                    system_prompt=system_prompt,
                    params=decision.params,
                    request_id=request.request_id,
                )
                return result.text, result

            text = await call_with_timeout(
                backend,
                self.settings.call_timeout_seconds,
                model=model,
                system_prompt=system_prompt,
                user_prompt=compose_user_prompt(request.query, request.context),
                temperature=decision.params.temperature,
                max_tokens=decision.params.max_tokens,
                request_id=request.request_id,
            )
            return text, None

    async def execute(
        self,
        decision: RoutingDecision,
        request: RoutingRequest,
    ) -> ExecutionOutcome:
        """
        Walk the candidate chain until one provider succeeds.

        Raises:
            AllProvidersExhaustedError: every candidate failed
        """
        candidates = self.candidates_for(decision, request)
        system_prompt = request.system_prompt or self.default_system_prompt
        mode = "reasoning" if decision.use_reasoning else "direct"
        backoff = self.settings.fallback_backoff_seconds

        attempts: List[FallbackAttempt] = []
        failed: List[str] = []
        last_error = ""
        started = time.perf_counter()

        for index, provider in enumerate(candidates):
            if index > 0 and backoff > 0:
                await asyncio.sleep(backoff)

            model = decision.model_for(provider) or DEFAULT_MODELS[provider]
            attempt_started = time.perf_counter()
            try:
                text, reasoning = await self._attempt(
                    provider, model, decision, request, system_prompt
                )
            except ProviderCallError as e:
                elapsed = time.perf_counter() - attempt_started
                last_error = e.error.message
                failed.append(provider.value)
                attempts.append(
                    FallbackAttempt(provider, model, int(elapsed * 1000), last_error)
                )
                self.ledger.record_failure(provider, last_error)
                self.metrics.record_attempt(
                    provider.value,
                    "timeout" if isinstance(e, ProviderTimeoutError) else "failure",
                    mode,
                    elapsed,
                )
                logger.warning(
                    "Provider attempt failed",
                    provider=provider.value,
                    model=model,
                    attempt=index + 1,
                    error=last_error,
                    error_code=e.error.code,
                )
                if index + 1 < len(candidates):
                    self.metrics.record_fallback(provider.value, candidates[index + 1].value)
                continue

            elapsed = time.perf_counter() - attempt_started
            latency_ms = int(elapsed * 1000)
            attempts.append(FallbackAttempt(provider, model, latency_ms))
            self.ledger.record_success(provider, latency_ms=latency_ms)
            self.metrics.record_attempt(provider.value, "success", mode, elapsed)
            if isinstance(reasoning, ReasoningResult):
                self.metrics.record_reasoning_iterations(reasoning.iterations)

            fallback_note = None
            if index > 0:
                fallback_note = (
                    f"Served by {provider.value} after {', '.join(failed)} failed"
                )
                logger.info(
                    "Fallback succeeded",
                    provider=provider.value,
                    skipped=failed,
                )

            return ExecutionOutcome(
                provider=provider,
                model=model,
                text=text,
                fallback_used=index > 0,
                fallback_note=fallback_note,
                attempts=attempts,
                reasoning=reasoning,
                latency_ms=int((time.perf_counter() - started) * 1000),
            )

        self.metrics.record_exhausted(decision.profile.value)
        logger.error(
            "All providers failed",
            providers=[p.value for p in candidates],
            last_error=last_error,
            profile=decision.profile.value,
        )
        raise AllProvidersExhaustedError(
            [p.value for p in candidates],
            last_error,
            request.request_id,
        )
