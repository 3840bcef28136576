"""
Sage Router - Reasoning Pass

Multi-turn elaboration used instead of a single generation call:

1. Initial draft from the query plus auxiliary context
2. Refinement turns, each focused on one marketing follow-up aspect
3. Stop on max iterations, convergence, exhausted aspects or budget

A failed call at any turn aborts the whole pass; the fallback loop
decides what happens next.
"""

import difflib
import time
from typing import List, Optional

from ..adapters.base import GenerationBackend, call_with_timeout
from ..core.errors import ProviderCallError, ReasoningPassAborted
from ..core.models import GenerationParams, ReasoningResult, ReasoningStep
from ..observability.logging import get_logger
from .patterns import aspects_for, extract_entities
from .prompts import compose_refinement_prompt, compose_user_prompt

logger = get_logger(__name__)


STOP_MAX_ITERATIONS = "max_iterations"
STOP_CONVERGED = "converged"
STOP_ASPECTS_EXHAUSTED = "aspects_exhausted"
STOP_BUDGET = "budget_exhausted"


def draft_similarity(previous: str, current: str) -> float:
    """Similarity ratio between two drafts, 1.0 for identical text."""
    return difflib.SequenceMatcher(None, previous, current).ratio()


class ReasoningPass:
    """
    Runs the reasoning pass against one backend.

    Usage:
        reasoning = ReasoningPass(call_timeout_seconds=60)
        result = await reasoning.run(backend, "claude-sonnet-4-20250514",
                                     query, context, system_prompt)
    """

    def __init__(
        self,
        call_timeout_seconds: float = 60.0,
        max_iterations: int = 3,
        convergence_threshold: float = 0.92,
        budget_seconds: float = 90.0,
    ):
        self.call_timeout_seconds = call_timeout_seconds
        self.max_iterations = max_iterations
        self.convergence_threshold = convergence_threshold
        self.budget_seconds = budget_seconds

    async def _call(
        self,
        backend: GenerationBackend,
        model: str,
        system_prompt: str,
        user_prompt: str,
        params: GenerationParams,
        iteration: int,
        request_id: str,
    ) -> str:
        try:
            return await call_with_timeout(
                backend,
                self.call_timeout_seconds,
                model=model,
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                temperature=params.temperature,
                max_tokens=params.max_tokens,
                request_id=request_id,
            )
        except ProviderCallError as e:
            raise ReasoningPassAborted(backend.provider.value, iteration, e, request_id) from e

    async def run(
        self,
        backend: GenerationBackend,
        model: str,
        query: str,
        context: str,
        system_prompt: str,
        params: Optional[GenerationParams] = None,
        request_id: str = "",
    ) -> ReasoningResult:
        """
        Run the pass and return the final draft with its trace.

        Raises:
            ReasoningPassAborted: any turn failed or timed out
        """
        params = params or GenerationParams()
        started = time.monotonic()

        call_started = time.monotonic()
        draft = await self._call(
            backend, model, system_prompt,
            compose_user_prompt(query, context),
            params, 0, request_id,
        )
        trace: List[ReasoningStep] = [
            ReasoningStep(
                iteration=0,
                focus="initial draft",
                draft=draft,
                duration_ms=int((time.monotonic() - call_started) * 1000),
            )
        ]

        aspects = aspects_for(query)
        subject = extract_entities(query)[0]
        converged = False
        stop_reason = STOP_MAX_ITERATIONS

        for iteration in range(1, self.max_iterations + 1):
            if time.monotonic() - started >= self.budget_seconds:
                stop_reason = STOP_BUDGET
                break
            if not aspects:
                stop_reason = STOP_ASPECTS_EXHAUSTED
                break

            focus = f"{subject} {aspects.pop(0)}"
            call_started = time.monotonic()
            revised = await self._call(
                backend, model, system_prompt,
                compose_refinement_prompt(query, draft, focus, context),
                params, iteration, request_id,
            )
            similarity = draft_similarity(draft, revised)
            trace.append(
                ReasoningStep(
                    iteration=iteration,
                    focus=focus,
                    draft=revised,
                    similarity=round(similarity, 4),
                    duration_ms=int((time.monotonic() - call_started) * 1000),
                )
            )
            draft = revised

            if similarity >= self.convergence_threshold:
                converged = True
                stop_reason = STOP_CONVERGED
                break

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.debug(
            "Reasoning pass finished",
            provider=backend.provider.value,
            model=model,
            iterations=len(trace) - 1,
            stop_reason=stop_reason,
            duration_ms=duration_ms,
        )
        return ReasoningResult(
            text=draft,
            trace=trace,
            converged=converged,
            stop_reason=stop_reason,
            duration_ms=duration_ms,
        )
