"""
Sage Router - Error Definitions

Error taxonomy with infra vs semantic classification.

Infra errors come from a single backend attempt and are absorbed by the
fallback loop. Only AllProvidersExhaustedError and InvalidRequestError
ever reach the caller.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorType(str, Enum):
    """Error classification."""
    INFRA = "infra_error"
    SEMANTIC = "semantic_error"


@dataclass
class ErrorDetails:
    """Full error information for API response."""
    # Core fields (always present)
    code: str
    message: str
    type: ErrorType

    # Context fields
    provider: Optional[str] = None
    param: Optional[str] = None

    # Trace fields
    request_id: str = ""
    provider_request_id: Optional[str] = None

    # Recovery fields
    retryable: bool = False
    retry_after: Optional[int] = None
    fallback_attempted: Optional[bool] = None

    # Debug fields
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "code": self.code,
            "message": self.message,
            "type": self.type.value,
            "request_id": self.request_id,
            "retryable": self.retryable,
        }

        if self.provider:
            result["provider"] = self.provider
        if self.param:
            result["param"] = self.param
        if self.provider_request_id:
            result["provider_request_id"] = self.provider_request_id
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        if self.fallback_attempted is not None:
            result["fallback_attempted"] = self.fallback_attempted
        if self.details:
            result["details"] = self.details

        return {"error": result}


class RouterException(Exception):
    """Base exception for all Sage Router errors."""

    def __init__(self, error: ErrorDetails, status_code: int = 500):
        self.error = error
        self.status_code = status_code
        super().__init__(error.message)


# ============================================================
# Infra Errors
# ============================================================

class InfraError(RouterException):
    """Base class for infrastructure errors."""
    pass


class ProviderCallError(InfraError):
    """
    One backend attempt was rejected or timed out.

    Always recorded into the health ledger and retried on the next
    candidate; never surfaces past the fallback loop.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        code: str = "provider_call_failed",
        request_id: str = "",
        provider_request_id: str = "",
        retry_after: Optional[int] = None,
        status_code: int = 502,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            ErrorDetails(
                code=code,
                message=message,
                type=ErrorType.INFRA,
                provider=provider,
                request_id=request_id,
                provider_request_id=provider_request_id or None,
                retryable=True,
                retry_after=retry_after,
                details=details or {}
            ),
            status_code=status_code
        )

    @property
    def provider(self) -> str:
        return self.error.provider or ""


class ProviderTimeoutError(ProviderCallError):
    """Provider did not answer within the per-call timeout."""

    def __init__(self, provider: str, timeout_seconds: float, request_id: str = ""):
        super().__init__(
            provider,
            f"{provider} did not respond within {timeout_seconds:g}s",
            code="provider_timeout",
            request_id=request_id,
            status_code=504,
            details={"timeout_seconds": timeout_seconds}
        )


class ProviderRateLimitedError(ProviderCallError):
    """Provider rejected the call with a rate limit."""

    def __init__(self, provider: str, retry_after: int = 60, request_id: str = ""):
        super().__init__(
            provider,
            f"{provider} rate limit exceeded. Retry after {retry_after} seconds.",
            code="provider_rate_limited",
            request_id=request_id,
            retry_after=retry_after,
            status_code=429
        )


class ProviderUpstreamError(ProviderCallError):
    """Provider returned an HTTP error."""

    def __init__(
        self,
        provider: str,
        http_status: int,
        message: str = "",
        request_id: str = "",
        provider_request_id: str = ""
    ):
        super().__init__(
            provider,
            message or f"{provider} returned error {http_status}",
            code=f"upstream_{http_status}",
            request_id=request_id,
            provider_request_id=provider_request_id,
            details={"http_status": http_status}
        )


class ProviderAuthError(ProviderCallError):
    """Provider rejected the configured credentials."""

    def __init__(self, provider: str, message: str = "", request_id: str = ""):
        super().__init__(
            provider,
            f"{provider} authentication failed: {message}" if message
            else f"{provider} authentication failed",
            code="provider_auth_error",
            request_id=request_id
        )


class BackendNotConfiguredError(ProviderCallError):
    """The chain reached a provider with no backend registered."""

    def __init__(self, provider: str, request_id: str = ""):
        super().__init__(
            provider,
            f"No backend configured for {provider}",
            code="backend_not_configured",
            request_id=request_id,
            status_code=503
        )


class ReasoningPassAborted(ProviderCallError):
    """
    A reasoning iteration failed mid-pass.

    Raised against the provider that was running the pass so it shares
    the same fallback bookkeeping as a plain generation failure.
    """

    def __init__(
        self,
        provider: str,
        iteration: int,
        cause: Exception,
        request_id: str = ""
    ):
        self.iteration = iteration
        self.cause = cause
        super().__init__(
            provider,
            f"Reasoning pass aborted at iteration {iteration}: {cause}",
            code="reasoning_pass_aborted",
            request_id=request_id,
            details={"iteration": iteration}
        )


class AllProvidersExhaustedError(InfraError):
    """Every candidate in the fallback chain failed."""

    def __init__(self, providers: List[str], last_error: str = "", request_id: str = ""):
        self.providers = list(providers)
        self.last_error = last_error
        message = "All AI providers failed"
        if last_error:
            message = f"All AI providers failed. Last error: {last_error}"
        super().__init__(
            ErrorDetails(
                code="all_providers_exhausted",
                message=message,
                type=ErrorType.INFRA,
                request_id=request_id,
                retryable=False,
                fallback_attempted=True,
                details={
                    "providers_tried": self.providers,
                    "last_error": last_error
                }
            ),
            status_code=503
        )


# ============================================================
# Semantic Errors
# ============================================================

class SemanticError(RouterException):
    """Base class for semantic errors (client must fix request)."""
    pass


class InvalidRequestError(SemanticError):
    """Request validation failed."""

    def __init__(
        self,
        message: str,
        param: str = "",
        request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                code="invalid_request",
                message=message,
                type=ErrorType.SEMANTIC,
                param=param or None,
                request_id=request_id,
                retryable=False
            ),
            status_code=400
        )


# ============================================================
# Provider error mapping
# ============================================================

def _extract_error_message(response: Any, fallback: str) -> str:
    """Pull the message out of an OpenAI/Anthropic/Gemini style error body."""
    try:
        data = response.json()
    except Exception:
        return fallback
    error_info = data.get("error") if isinstance(data, dict) else None
    if isinstance(error_info, dict):
        return error_info.get("message") or fallback
    if isinstance(error_info, str):
        return error_info
    return fallback


def handle_provider_error(
    provider: str,
    error: Exception,
    request_id: str = ""
) -> ProviderCallError:
    """
    Convert an httpx error raised while calling a provider into a
    ProviderCallError.

    All three providers wrap failures as {"error": {"message": ...}}.
    """
    import httpx

    if isinstance(error, ProviderCallError):
        return error

    if isinstance(error, httpx.TimeoutException):
        return ProviderCallError(
            provider,
            f"{provider} connection timed out",
            code="connection_timeout",
            request_id=request_id,
            status_code=504
        )

    if isinstance(error, httpx.ConnectError):
        return ProviderCallError(
            provider,
            f"Failed to connect to {provider} API",
            code="connection_failed",
            request_id=request_id
        )

    if isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code
        message = _extract_error_message(error.response, str(error))
        provider_req_id = (
            error.response.headers.get("x-request-id")
            or error.response.headers.get("request-id")
            or ""
        )

        if status_code in (401, 403):
            return ProviderAuthError(provider, message, request_id)

        if status_code == 429:
            retry_after = 60
            if "retry-after" in error.response.headers:
                try:
                    retry_after = int(error.response.headers["retry-after"])
                except ValueError:
                    pass
            return ProviderRateLimitedError(provider, retry_after, request_id)

        return ProviderUpstreamError(
            provider, status_code, message, request_id, provider_req_id
        )

    return ProviderCallError(
        provider,
        str(error) or error.__class__.__name__,
        request_id=request_id
    )
