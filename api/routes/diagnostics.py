"""
Diagnostics Routes
==================

Provider diagnostics and probe-only health checks.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_gateway
from api.schemas import (
    DiagnosticResultResponse,
    ErrorResponse,
    ProviderHealthReportResponse,
)
from nl2sql_gateway.gateway import Gateway
from observability.metrics import track_probe_metrics
from security.auth import verify_api_key

router = APIRouter(
    prefix="/api/v1/diagnostics",
    tags=["Diagnostics"],
    dependencies=[Depends(verify_api_key)],
)


@router.get(
    "",
    response_model=list[DiagnosticResultResponse],
    summary="Diagnose all active providers",
)
def diagnose_all(gateway: Gateway = Depends(get_gateway)) -> list[DiagnosticResultResponse]:
    results = gateway.diagnostics.diagnose_all_providers()
    return [DiagnosticResultResponse.model_validate(r) for r in results]


@router.get(
    "/health",
    response_model=ProviderHealthReportResponse,
    summary="Probe every active provider",
)
def providers_health(gateway: Gateway = Depends(get_gateway)) -> ProviderHealthReportResponse:
    report = gateway.diagnostics.health_check()
    for entry in report.providers:
        track_probe_metrics(entry.name, entry.status == "healthy")
    return ProviderHealthReportResponse.model_validate(report)


@router.get(
    "/{provider_id}",
    response_model=DiagnosticResultResponse,
    responses={404: {"model": ErrorResponse, "description": "Unknown provider"}},
    summary="Diagnose one provider",
)
def diagnose_provider(
    provider_id: str,
    gateway: Gateway = Depends(get_gateway),
) -> DiagnosticResultResponse:
    result = gateway.diagnostics.diagnose_provider(provider_id)
    return DiagnosticResultResponse.model_validate(result)
