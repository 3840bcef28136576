"""
Sage Router - Core Data Models

Value types shared by the routing engine, the health ledger,
the reasoning pass and the fallback loop.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# ============================================================
# Enums
# ============================================================

class ProviderIdentity(str, Enum):
    """Upstream generation backends known to the router."""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


class HealthStatus(str, Enum):
    """Derived provider status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    @property
    def rank(self) -> int:
        """Sort rank: healthy first, unhealthy last."""
        return _STATUS_RANK[self]


_STATUS_RANK = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.UNHEALTHY: 2,
}


class RoutingProfile(str, Enum):
    """Request profiles selected by the classification table."""
    DEEP_ANALYSIS = "deep_analysis"
    FAST_CREATIVE = "fast_creative"
    PRECISION = "precision"
    BASELINE = "baseline"


class TurnRole(str, Enum):
    """Conversation turn roles."""
    USER = "user"
    ASSISTANT = "assistant"


# ============================================================
# Health
# ============================================================

@dataclass(frozen=True)
class ProviderError:
    """Most recent failure reported for a provider."""
    message: str
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ProviderHealthState:
    """Point-in-time copy of one provider's ledger entry."""
    provider: ProviderIdentity
    status: HealthStatus
    consecutive_failures: int = 0
    last_error: Optional[ProviderError] = None
    last_success_at: Optional[float] = None
    total_successes: int = 0
    total_failures: int = 0
    last_latency_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "provider": self.provider.value,
            "status": self.status.value,
            "consecutive_failures": self.consecutive_failures,
            "last_success_at": self.last_success_at,
            "total_successes": self.total_successes,
            "total_failures": self.total_failures,
            "last_latency_ms": self.last_latency_ms,
        }
        if self.last_error:
            result["last_error"] = {
                "message": self.last_error.message,
                "timestamp": self.last_error.timestamp,
            }
        else:
            result["last_error"] = None
        return result


# ============================================================
# Requests
# ============================================================

@dataclass
class ConversationTurn:
    """One prior turn of the conversation."""
    role: TurnRole
    content: str

    @classmethod
    def user(cls, content: str) -> ConversationTurn:
        return cls(role=TurnRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> ConversationTurn:
        return cls(role=TurnRole.ASSISTANT, content=content)


@dataclass
class RoutingOverride:
    """
    Manual routing override.

    reasoning: True forces the reasoning pass, False forbids it,
    None leaves the decision to the heuristics.
    """
    provider: Optional[ProviderIdentity] = None
    model: Optional[str] = None
    reasoning: Optional[bool] = None

    @property
    def is_empty(self) -> bool:
        return self.provider is None and self.model is None and self.reasoning is None


@dataclass
class WorkflowHint:
    """Stage label and free text supplied by the campaign workflow tracker."""
    stage: Optional[str] = None
    context: str = ""


@dataclass
class RoutingRequest:
    """
    One natural-language request to be routed.

    Example:
        request = RoutingRequest(
            query="Compare Brand X and Brand Y social strategy",
            context=research_notes,
            history=[ConversationTurn.user("..."), ConversationTurn.assistant("...")],
        )
    """
    query: str
    context: str = ""
    history: List[ConversationTurn] = field(default_factory=list)
    override: Optional[RoutingOverride] = None
    workflow: Optional[WorkflowHint] = None
    system_prompt: Optional[str] = None
    request_id: str = ""

    @property
    def workflow_stage(self) -> Optional[str]:
        return self.workflow.stage if self.workflow else None

    @property
    def auxiliary_text(self) -> str:
        """Auxiliary context plus any workflow context, for heuristic matching."""
        parts = [self.context]
        if self.workflow and self.workflow.context:
            parts.append(self.workflow.context)
        return "\n".join(p for p in parts if p)


@dataclass(frozen=True)
class GenerationParams:
    """Sampling parameters for one generation call."""
    temperature: float = 0.7
    max_tokens: int = 2000


# ============================================================
# Decisions and outcomes
# ============================================================

@dataclass(frozen=True)
class RoutingDecision:
    """
    Provider/model/reasoning decision for one request.

    fallback_chain is computed once, at decision time, and is the
    exact candidate order the fallback loop walks for this request.
    rationale is for logs only.
    """
    provider: ProviderIdentity
    model: str
    use_reasoning: bool
    rationale: str
    profile: RoutingProfile = RoutingProfile.BASELINE
    fallback_chain: Tuple[ProviderIdentity, ...] = ()
    models: Tuple[Tuple[ProviderIdentity, str], ...] = ()
    rule: str = ""
    override_applied: bool = False
    params: GenerationParams = field(default_factory=GenerationParams)

    def model_for(self, provider: ProviderIdentity) -> Optional[str]:
        """Model to use when the chain reaches the given provider."""
        for candidate, model in self.models:
            if candidate == provider:
                return model
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "model": self.model,
            "use_reasoning": self.use_reasoning,
            "rationale": self.rationale,
            "profile": self.profile.value,
            "rule": self.rule,
            "override_applied": self.override_applied,
            "fallback_chain": [p.value for p in self.fallback_chain],
        }


@dataclass
class FallbackAttempt:
    """Record of one candidate attempt."""
    provider: ProviderIdentity
    model: str
    duration_ms: int
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class ReasoningStep:
    """One draft produced by the reasoning pass."""
    iteration: int
    focus: str
    draft: str
    similarity: Optional[float] = None
    duration_ms: int = 0


@dataclass
class ReasoningResult:
    """Consolidated output of the reasoning pass plus its trace."""
    text: str
    trace: List[ReasoningStep] = field(default_factory=list)
    converged: bool = False
    stop_reason: str = ""
    duration_ms: int = 0

    @property
    def iterations(self) -> int:
        """Refinement turns run after the initial draft."""
        return max(0, len(self.trace) - 1)


@dataclass
class ExecutionOutcome:
    """Result of realizing a decision against live backends."""
    provider: ProviderIdentity
    model: str
    text: str
    fallback_used: bool = False
    fallback_note: Optional[str] = None
    attempts: List[FallbackAttempt] = field(default_factory=list)
    reasoning: Optional[ReasoningResult] = None
    latency_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "provider": self.provider.value,
            "model": self.model,
            "text": self.text,
            "fallback_used": self.fallback_used,
            "fallback_note": self.fallback_note,
            "latency_ms": self.latency_ms,
            "attempts": [
                {
                    "provider": a.provider.value,
                    "model": a.model,
                    "duration_ms": a.duration_ms,
                    "error": a.error,
                }
                for a in self.attempts
            ],
        }
        if self.reasoning:
            result["reasoning"] = {
                "iterations": self.reasoning.iterations,
                "converged": self.reasoning.converged,
                "stop_reason": self.reasoning.stop_reason,
                "duration_ms": self.reasoning.duration_ms,
                "trace": [
                    {
                        "iteration": s.iteration,
                        "focus": s.focus,
                        "similarity": s.similarity,
                        "duration_ms": s.duration_ms,
                    }
                    for s in self.reasoning.trace
                ],
            }
        return result
