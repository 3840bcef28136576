"""
Sage Router Core Module

Data models and error taxonomy shared by every component.
"""

from .models import (
    # Enums
    ProviderIdentity,
    HealthStatus,
    RoutingProfile,
    TurnRole,

    # Health
    ProviderError,
    ProviderHealthState,

    # Requests
    ConversationTurn,
    RoutingOverride,
    WorkflowHint,
    RoutingRequest,
    GenerationParams,

    # Decisions and outcomes
    RoutingDecision,
    FallbackAttempt,
    ReasoningStep,
    ReasoningResult,
    ExecutionOutcome,
)

from .errors import (
    ErrorType,
    ErrorDetails,
    RouterException,
    InfraError,
    ProviderCallError,
    ProviderTimeoutError,
    ProviderRateLimitedError,
    ProviderUpstreamError,
    ProviderAuthError,
    BackendNotConfiguredError,
    ReasoningPassAborted,
    AllProvidersExhaustedError,
    SemanticError,
    InvalidRequestError,
    handle_provider_error,
)

__all__ = [
    # Enums
    "ProviderIdentity",
    "HealthStatus",
    "RoutingProfile",
    "TurnRole",

    # Health
    "ProviderError",
    "ProviderHealthState",

    # Requests
    "ConversationTurn",
    "RoutingOverride",
    "WorkflowHint",
    "RoutingRequest",
    "GenerationParams",

    # Decisions and outcomes
    "RoutingDecision",
    "FallbackAttempt",
    "ReasoningStep",
    "ReasoningResult",
    "ExecutionOutcome",

    # Errors
    "ErrorType",
    "ErrorDetails",
    "RouterException",
    "InfraError",
    "ProviderCallError",
    "ProviderTimeoutError",
    "ProviderRateLimitedError",
    "ProviderUpstreamError",
    "ProviderAuthError",
    "BackendNotConfiguredError",
    "ReasoningPassAborted",
    "AllProvidersExhaustedError",
    "SemanticError",
    "InvalidRequestError",
    "handle_provider_error",
]
