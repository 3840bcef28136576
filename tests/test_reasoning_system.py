"""
Sage Router - Reasoning Pass Tests

Verifies:
- Initial draft plus focused refinement turns
- Stop conditions (iterations, convergence, aspects, budget)
- Abort semantics on a failed or timed-out turn
- Marketing pattern helpers
"""

import pytest

from sage_router.core.errors import ProviderCallError, ProviderTimeoutError, ReasoningPassAborted
from sage_router.core.models import GenerationParams, ProviderIdentity
from sage_router.reasoning import (
    MARKETING_PATTERNS,
    QueryType,
    ReasoningPass,
    compose_user_prompt,
    draft_similarity,
    extract_entities,
    identify_query_type,
)
from sage_router.reasoning.engine import (
    STOP_ASPECTS_EXHAUSTED,
    STOP_BUDGET,
    STOP_CONVERGED,
    STOP_MAX_ITERATIONS,
)


ANTHROPIC = ProviderIdentity.ANTHROPIC

QUERY = "Compare Nike and Adidas brand strategy"

DISTINCT_DRAFTS = [
    "Draft zero covers reach.",
    "A second version that talks about positioning in considerable depth.",
    "Third: sentiment tables, survey numbers and an entirely new structure.",
    "4) Market share by region with a closing recommendation list.",
    "Fifth and final pass about audience behaviour patterns over time.",
]


async def _run(backend, **kwargs):
    reasoning = ReasoningPass(call_timeout_seconds=kwargs.pop("timeout", 1.0), **kwargs)
    return await reasoning.run(
        backend,
        "claude-sonnet-4-20250514",
        query=QUERY,
        context="Nike leads share of voice.",
        system_prompt="system",
        params=GenerationParams(temperature=0.7, max_tokens=500),
    )


# ============================================================
# Refinement loop
# ============================================================

class TestReasoningLoop:
    """Test the draft/refine loop."""

    @pytest.mark.asyncio
    async def test_runs_max_iterations_refinements(self, scripted_backend):
        backend = scripted_backend(ANTHROPIC, DISTINCT_DRAFTS)
        result = await _run(backend, max_iterations=3)

        assert len(backend.calls) == 4
        assert result.iterations == 3
        assert result.stop_reason == STOP_MAX_ITERATIONS
        assert result.converged is False
        assert result.text == DISTINCT_DRAFTS[3]

    @pytest.mark.asyncio
    async def test_trace_records_every_draft(self, scripted_backend):
        backend = scripted_backend(ANTHROPIC, DISTINCT_DRAFTS)
        result = await _run(backend, max_iterations=2)

        assert [s.iteration for s in result.trace] == [0, 1, 2]
        assert result.trace[0].focus == "initial draft"
        assert result.trace[0].similarity is None
        assert all(0.0 <= s.similarity <= 1.0 for s in result.trace[1:])

    @pytest.mark.asyncio
    async def test_refinement_turns_focus_on_aspects(self, scripted_backend):
        backend = scripted_backend(ANTHROPIC, DISTINCT_DRAFTS)
        result = await _run(backend, max_iterations=2)

        aspects = MARKETING_PATTERNS[QueryType.BRAND_STRATEGY]
        assert result.trace[1].focus == f"Nike {aspects[0]}"
        assert result.trace[2].focus == f"Nike {aspects[1]}"
        # Refinement prompts carry the previous draft and the context
        refine_prompt = backend.calls[1]["user_prompt"]
        assert DISTINCT_DRAFTS[0] in refine_prompt
        assert "Nike leads share of voice." in refine_prompt
        assert aspects[0] in refine_prompt

    @pytest.mark.asyncio
    async def test_initial_prompt_includes_context(self, scripted_backend):
        backend = scripted_backend(ANTHROPIC, DISTINCT_DRAFTS)
        await _run(backend, max_iterations=0)

        assert backend.calls[0]["user_prompt"] == compose_user_prompt(QUERY, "Nike leads share of voice.")
        assert backend.calls[0]["max_tokens"] == 500

    @pytest.mark.asyncio
    async def test_stops_on_convergence(self, scripted_backend):
        backend = scripted_backend(ANTHROPIC, ["same draft text", "same draft text"])
        result = await _run(backend, max_iterations=3)

        assert result.converged is True
        assert result.stop_reason == STOP_CONVERGED
        assert result.iterations == 1
        assert result.trace[1].similarity == 1.0

    @pytest.mark.asyncio
    async def test_stops_when_aspects_exhausted(self, scripted_backend):
        backend = scripted_backend(ANTHROPIC, DISTINCT_DRAFTS)
        result = await _run(backend, max_iterations=10)

        # Four aspects per query type
        assert result.iterations == 4
        assert result.stop_reason == STOP_ASPECTS_EXHAUSTED
        assert result.text == DISTINCT_DRAFTS[4]

    @pytest.mark.asyncio
    async def test_budget_exhaustion_is_normal_stop(self, scripted_backend):
        backend = scripted_backend(ANTHROPIC, DISTINCT_DRAFTS)
        result = await _run(backend, max_iterations=3, budget_seconds=0.0)

        assert result.stop_reason == STOP_BUDGET
        assert result.iterations == 0
        assert result.text == DISTINCT_DRAFTS[0]


# ============================================================
# Failures
# ============================================================

class TestReasoningAbort:
    """A failed turn aborts the whole pass."""

    @pytest.mark.asyncio
    async def test_initial_failure_aborts_at_iteration_zero(self, scripted_backend):
        backend = scripted_backend(ANTHROPIC, [RuntimeError("connection reset")])

        with pytest.raises(ReasoningPassAborted) as exc_info:
            await _run(backend, max_iterations=3)

        assert exc_info.value.iteration == 0
        assert exc_info.value.provider == "anthropic"
        assert "connection reset" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_mid_pass_failure_aborts_with_iteration(self, scripted_backend):
        backend = scripted_backend(ANTHROPIC, [DISTINCT_DRAFTS[0], DISTINCT_DRAFTS[1], RuntimeError("overloaded")])

        with pytest.raises(ReasoningPassAborted) as exc_info:
            await _run(backend, max_iterations=3)

        assert exc_info.value.iteration == 2
        assert len(backend.calls) == 3

    @pytest.mark.asyncio
    async def test_abort_is_a_provider_call_error(self, scripted_backend):
        backend = scripted_backend(ANTHROPIC, [RuntimeError("boom")])

        with pytest.raises(ProviderCallError):
            await _run(backend, max_iterations=1)

    @pytest.mark.asyncio
    async def test_timeout_turn_aborts(self, scripted_backend):
        backend = scripted_backend(ANTHROPIC, [DISTINCT_DRAFTS[0], 0.5])

        with pytest.raises(ReasoningPassAborted) as exc_info:
            await _run(backend, max_iterations=3, timeout=0.05)

        assert exc_info.value.iteration == 1
        assert isinstance(exc_info.value.cause, ProviderTimeoutError)


# ============================================================
# Patterns
# ============================================================

class TestMarketingPatterns:
    """Test query typing and entity extraction."""

    @pytest.mark.parametrize("query,query_type", [
        ("How did the Super Bowl ad perform?", QueryType.CAMPAIGN_ANALYSIS),
        ("Review our brand positioning", QueryType.BRAND_STRATEGY),
        ("Which emerging trends matter for skincare?", QueryType.TREND_RESEARCH),
        ("Critique the visual design language", QueryType.CREATIVE_ANALYSIS),
        ("Tell me something useful", QueryType.CAMPAIGN_ANALYSIS),
    ])
    def test_identify_query_type(self, query, query_type):
        assert identify_query_type(query) == query_type

    def test_ad_is_matched_as_a_word(self):
        # "ad" inside "adoption" must not make this a campaign question
        assert identify_query_type("adoption of future tools") == QueryType.TREND_RESEARCH

    def test_known_brands_come_first(self):
        assert extract_entities("Why did Liquid Death outsell Pepsi?")[0] == "Pepsi"

    def test_stop_words_skipped(self):
        assert extract_entities("What made Duolingo viral")[0] == "Duolingo"

    def test_fallback_entity(self):
        assert extract_entities("how do we grow") == ["the brand"]

    def test_similarity_bounds(self):
        assert draft_similarity("abc", "abc") == 1.0
        assert draft_similarity("abc", "xyz") == 0.0
