"""
API Schemas
===========

Pydantic models for API request/response validation.

Response models read the core dataclasses through ``from_attributes``.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from nl2sql_gateway.security.rules import FindingType, Severity


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# SQL generation


class GenerateSqlRequest(BaseModel):
    """Request body for SQL generation."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="Natural language question to convert to SQL",
        examples=["Show me all premium customers"],
    )
    connection_id: str = Field(..., min_length=1, description="Target database connection")
    db_type: str | None = Field(
        default=None,
        description="Database dialect hint (e.g. postgresql, mysql, oracle)",
    )
    preferred_provider_id: str | None = Field(default=None, description="Provider to prefer")
    preferred_model_id: str | None = Field(default=None, description="Model to prefer")


class SecurityFindingResponse(ORMModel):
    type: FindingType
    severity: Severity
    description: str
    location: str | None = None


class SecurityCheckResponse(ORMModel):
    is_blocked: bool
    reason: str | None = None
    sanitized_sql: str | None = None
    findings: list[SecurityFindingResponse] = Field(default_factory=list)


class GenerateSqlResponse(BaseModel):
    """Response body for SQL generation."""

    success: bool = Field(..., description="Whether SQL generation succeeded")
    sql: str | None = Field(None, description="Generated SQL (also set when the SQL was blocked)")
    explanation: str | None = Field(None, description="Model explanation after the SQL block")
    error: str | None = Field(None, description="Failure or block reason")
    security_check: SecurityCheckResponse | None = None
    execution_log_id: str | None = Field(None, description="Audit log record for this run")
    routing_reason: str | None = Field(None, description="Why the model was chosen")
    request_id: str = Field(..., description="Unique request identifier")
    processing_time_ms: float = Field(..., description="Processing time in milliseconds")


# Assistants


class SuggestedQuestionsResponse(BaseModel):
    connection_id: str
    questions: list[str]
    source: str = Field(..., description="ai, template or default")


class AnalyzeErrorRequest(BaseModel):
    connection_id: str = Field(..., min_length=1)
    sql: str = Field(..., min_length=1, description="Statement that failed")
    error_message: str = Field(..., min_length=1, description="Database error text")


class AnalyzeErrorResponse(ORMModel):
    cause: str
    solution: str
    source: str = Field(..., description="ai or rules")


# Diagnostics


class DiagnosticTestResponse(ORMModel):
    name: str
    success: bool
    message: str
    latency_ms: int
    details: dict[str, Any] = Field(default_factory=dict)


class DiagnosticSummaryResponse(ORMModel):
    passed: int
    failed: int
    total_latency_ms: int
    status: str


class DiagnosticResultResponse(ORMModel):
    provider_id: str
    provider_name: str
    provider_type: str
    endpoint: str
    timestamp: datetime
    tests: list[DiagnosticTestResponse]
    summary: DiagnosticSummaryResponse
    available_models: list[str] = Field(default_factory=list)


class ProviderHealthResponse(ORMModel):
    id: str
    name: str
    status: str
    latency_ms: int = 0
    message: str = ""


class ProviderHealthReportResponse(ORMModel):
    providers: list[ProviderHealthResponse]
    overall_healthy: bool
    timestamp: datetime


# Monitoring


class UsageBucketResponse(ORMModel):
    key: str
    name: str
    requests: int
    input_tokens: int
    output_tokens: int
    total_tokens: int


class UsageReportResponse(ORMModel):
    start: datetime | None = None
    end: datetime | None = None
    by_provider: list[UsageBucketResponse]
    by_model: list[UsageBucketResponse]
    by_user: list[UsageBucketResponse]
    total: UsageBucketResponse


class ExecutionLogResponse(ORMModel):
    id: str
    user_input: str
    connection_id: str | None = None
    user_id: str | None = None
    provider_id: str | None = None
    model_id: str | None = None
    prompt_template_id: str | None = None
    generated_sql: str | None = None
    input_tokens: int
    output_tokens: int
    latency_ms: int
    success: bool
    error_message: str | None = None
    was_blocked: bool
    block_reason: str | None = None
    created_at: datetime


class LogPageResponse(ORMModel):
    items: list[ExecutionLogResponse]
    total: int
    limit: int
    offset: int


# Health


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Health check response."""

    status: HealthStatus = Field(..., description="Overall health status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(default_factory=_utcnow)
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual component health checks",
    )


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool = Field(..., description="Whether the service is ready to handle requests")
    checks: dict[str, bool] = Field(
        default_factory=dict,
        description="Individual readiness checks",
    )


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    request_id: str | None = Field(None, description="Request ID if available")
    details: dict[str, Any] | None = Field(None, description="Additional error details")
