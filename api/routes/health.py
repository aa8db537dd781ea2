"""
Health Check Routes
===================

Kubernetes-compatible health and readiness endpoints.
"""

from fastapi import APIRouter, Depends

from api import __version__
from api.dependencies import get_gateway
from api.schemas import HealthResponse, HealthStatus, ReadinessResponse
from nl2sql_gateway.gateway import Gateway

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the service",
)
def health_check(gateway: Gateway = Depends(get_gateway)) -> HealthResponse:
    """
    Health check endpoint for load balancers and monitoring.

    Reports configuration presence only; use the diagnostics endpoints
    to probe provider connectivity.

    Returns:
        HealthResponse with current service status
    """
    checks = {
        "api": True,
        "providers_configured": bool(gateway.store.find_active_providers()),
        "models_configured": bool(gateway.store.find_active_models()),
        "security_policy_active": gateway.security.get_active_policy() is not None,
    }

    if all(checks.values()):
        status = HealthStatus.HEALTHY
    elif checks["providers_configured"] and checks["models_configured"]:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.UNHEALTHY

    return HealthResponse(status=status, version=__version__, checks=checks)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Returns whether the service is ready to handle requests",
)
def readiness_check(gateway: Gateway = Depends(get_gateway)) -> ReadinessResponse:
    """
    Readiness check for Kubernetes.

    Used to determine if the pod should receive traffic.

    Returns:
        ReadinessResponse indicating readiness status
    """
    checks = {
        "gateway_loaded": gateway is not None,
        "models_configured": bool(gateway.store.find_active_models()),
    }

    return ReadinessResponse(
        ready=all(checks.values()),
        checks=checks,
    )


@router.get(
    "/live",
    summary="Liveness check",
    description="Simple liveness probe",
)
async def liveness_check() -> dict:
    """Simple endpoint to verify the process is running."""
    return {"status": "ok"}
