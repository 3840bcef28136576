"""
Sage Router - Routing API

Endpoints for routing decisions, generation and provider health.
"""

from fastapi import APIRouter, Depends

from ..routing.service import RouterService
from ..routing.validation import RoutingValidator
from .dependencies import get_request_id, get_service
from .models import (
    DecisionResponse,
    GenerateResponse,
    OutcomeResponse,
    ProviderHealthResponse,
    ProvidersHealthResponse,
    RouteRequest,
    ValidationCaseResponse,
    ValidationReportResponse,
)


router = APIRouter(prefix="/v1", tags=["routing"])


@router.post("/route", response_model=DecisionResponse)
async def route(
    body: RouteRequest,
    request_id: str = Depends(get_request_id),
    service: RouterService = Depends(get_service),
):
    """Routing decision only; no provider is called."""
    decision = service.route(body.to_internal(request_id))
    return DecisionResponse(**decision.to_dict())


@router.post("/generate", response_model=GenerateResponse)
async def generate(
    body: RouteRequest,
    request_id: str = Depends(get_request_id),
    service: RouterService = Depends(get_service),
):
    """
    Route and execute.

    Exhaustion surfaces as a 503 with the last provider error; individual
    provider failures only appear in the attempts list and the logs.
    """
    decision, outcome = await service.handle(body.to_internal(request_id))
    return GenerateResponse(
        request_id=request_id,
        decision=DecisionResponse(**decision.to_dict()),
        outcome=OutcomeResponse(**outcome.to_dict()),
    )


@router.get("/providers/health", response_model=ProvidersHealthResponse)
async def providers_health(service: RouterService = Depends(get_service)):
    return ProvidersHealthResponse(
        providers=[
            ProviderHealthResponse(
                **state.to_dict(),
                configured=state.provider in service.backends,
            )
            for state in service.provider_health()
        ]
    )


@router.get("/routing/validate", response_model=ValidationReportResponse)
async def validate_routing(service: RouterService = Depends(get_service)):
    """Run the canonical routing cases against the current rule table."""
    validator = RoutingValidator(settings=service.settings)
    results = validator.run_all()
    return ValidationReportResponse(
        passed=sum(1 for r in results if r.passed),
        total=len(results),
        results=[ValidationCaseResponse(**r.to_dict()) for r in results],
        report=validator.generate_report(results),
    )
