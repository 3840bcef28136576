"""
Sage Router - API Request/Response Models

Pydantic models for the HTTP surface, plus conversion into the
internal dataclasses.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.models import (
    ConversationTurn,
    ProviderIdentity,
    RoutingOverride,
    RoutingRequest,
    TurnRole,
    WorkflowHint,
)


# ============================================================
# Enums
# ============================================================

class ProviderEnum(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


class TurnRoleEnum(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


# ============================================================
# Requests
# ============================================================

class TurnInput(BaseModel):
    """One prior conversation turn."""
    role: TurnRoleEnum
    content: str


class OverrideInput(BaseModel):
    """Manual routing override."""
    provider: Optional[ProviderEnum] = None
    model: Optional[str] = Field(default=None, min_length=1)
    reasoning: Optional[bool] = None


class WorkflowInput(BaseModel):
    """Hint from the campaign workflow tracker."""
    stage: Optional[str] = None
    context: str = ""


class RouteRequest(BaseModel):
    """
    Body for /v1/route and /v1/generate.

    An empty query is rejected by the router with a 400, not here.
    """
    query: str
    context: str = ""
    history: List[TurnInput] = Field(default_factory=list)
    override: Optional[OverrideInput] = None
    workflow: Optional[WorkflowInput] = None
    system_prompt: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    def to_internal(self, request_id: str = "") -> RoutingRequest:
        override = None
        if self.override is not None:
            override = RoutingOverride(
                provider=ProviderIdentity(self.override.provider.value) if self.override.provider else None,
                model=self.override.model,
                reasoning=self.override.reasoning,
            )
        workflow = None
        if self.workflow is not None:
            workflow = WorkflowHint(stage=self.workflow.stage, context=self.workflow.context)
        return RoutingRequest(
            query=self.query,
            context=self.context,
            history=[
                ConversationTurn(role=TurnRole(t.role.value), content=t.content)
                for t in self.history
            ],
            override=override,
            workflow=workflow,
            system_prompt=self.system_prompt,
            request_id=request_id,
        )


# ============================================================
# Responses
# ============================================================

class DecisionResponse(BaseModel):
    provider: str
    model: str
    use_reasoning: bool
    rationale: str
    profile: str
    rule: str
    override_applied: bool
    fallback_chain: List[str]


class AttemptResponse(BaseModel):
    provider: str
    model: str
    duration_ms: int
    error: Optional[str] = None


class OutcomeResponse(BaseModel):
    provider: str
    model: str
    text: str
    fallback_used: bool
    fallback_note: Optional[str] = None
    latency_ms: int
    attempts: List[AttemptResponse]
    reasoning: Optional[Dict[str, Any]] = None


class GenerateResponse(BaseModel):
    request_id: str
    decision: DecisionResponse
    outcome: OutcomeResponse


class ProviderHealthResponse(BaseModel):
    provider: str
    status: str
    consecutive_failures: int
    last_error: Optional[Dict[str, Any]] = None
    last_success_at: Optional[float] = None
    total_successes: int
    total_failures: int
    last_latency_ms: Optional[int] = None
    configured: bool


class ProvidersHealthResponse(BaseModel):
    providers: List[ProviderHealthResponse]


class ValidationCaseResponse(BaseModel):
    name: str
    passed: bool
    expected: Any
    actual: Any
    error: Optional[str] = None


class ValidationReportResponse(BaseModel):
    passed: int
    total: int
    results: List[ValidationCaseResponse]
    report: str
