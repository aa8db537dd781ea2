"""
Monitoring Routes
=================

Usage reports and execution-log queries.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_gateway
from api.schemas import LogPageResponse, UsageReportResponse
from nl2sql_gateway.gateway import Gateway
from security.auth import verify_api_key

router = APIRouter(
    prefix="/api/v1",
    tags=["Monitoring"],
    dependencies=[Depends(verify_api_key)],
)


@router.get(
    "/usage",
    response_model=UsageReportResponse,
    summary="Token usage by provider, model and user",
)
def usage_report(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    gateway: Gateway = Depends(get_gateway),
) -> UsageReportResponse:
    return UsageReportResponse.model_validate(gateway.monitor.usage_report(start, end))


@router.get(
    "/logs",
    response_model=LogPageResponse,
    summary="Query execution logs",
)
def query_logs(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    user_id: Optional[str] = None,
    success: Optional[bool] = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    gateway: Gateway = Depends(get_gateway),
) -> LogPageResponse:
    page = gateway.monitor.query_logs(
        start=start,
        end=end,
        user_id=user_id,
        success=success,
        limit=limit,
        offset=offset,
    )
    return LogPageResponse.model_validate(page)
