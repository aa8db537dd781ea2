"""
Query Routes
============

SQL generation and the companion assistant endpoints.
"""

import time

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_gateway
from api.schemas import (
    AnalyzeErrorRequest,
    AnalyzeErrorResponse,
    ErrorResponse,
    GenerateSqlRequest,
    GenerateSqlResponse,
    SecurityCheckResponse,
    SuggestedQuestionsResponse,
)
from nl2sql_gateway.gateway import Gateway
from nl2sql_gateway.pipeline import GenerationRequest
from observability.metrics import track_generation_metrics
from security.auth import verify_api_key

router = APIRouter(prefix="/api/v1", tags=["Query"])


@router.post(
    "/generate-sql",
    response_model=GenerateSqlResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid API key"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    },
    summary="Convert natural language to screened SQL",
    description=(
        "Routes the question to a SQL model, screens the input and the generated "
        "SQL against the active security policy and applies the row-limit guard"
    ),
)
def generate_sql(
    body: GenerateSqlRequest,
    request: Request,
    gateway: Gateway = Depends(get_gateway),
    key_data: dict = Depends(verify_api_key),
) -> GenerateSqlResponse:
    """
    Generate SQL for a natural language question.

    Blocked and unavailable outcomes are regular responses with
    ``success=false``; the execution log id is returned either way.

    Args:
        body: Question, target connection and routing hints
        request: Incoming request (for the request id)
        gateway: Injected gateway services
        key_data: Authenticated key metadata (actor becomes the log's user)

    Returns:
        GenerateSqlResponse with SQL or the failure reason
    """
    start_time = time.perf_counter()

    result = gateway.pipeline.generate(
        GenerationRequest(
            query=body.query,
            connection_id=body.connection_id,
            user_id=key_data.get("actor"),
            db_type=body.db_type,
            preferred_provider_id=body.preferred_provider_id,
            preferred_model_id=body.preferred_model_id,
        )
    )

    duration = time.perf_counter() - start_time
    log = result.execution_log
    findings = result.security_check.findings if result.security_check else []
    track_generation_metrics(
        outcome=result.outcome,
        duration_seconds=duration,
        input_tokens=log.input_tokens if log else 0,
        output_tokens=log.output_tokens if log else 0,
        finding_types=[f.type.value for f in findings],
    )

    return GenerateSqlResponse(
        success=result.success,
        sql=result.sql,
        explanation=result.explanation,
        error=result.error,
        security_check=(
            SecurityCheckResponse.model_validate(result.security_check)
            if result.security_check
            else None
        ),
        execution_log_id=log.id if log else None,
        routing_reason=result.routing_reason,
        request_id=getattr(request.state, "request_id", ""),
        processing_time_ms=duration * 1000,
    )


@router.get(
    "/connections/{connection_id}/suggested-questions",
    response_model=SuggestedQuestionsResponse,
    summary="Suggested questions for a connection",
)
def suggested_questions(
    connection_id: str,
    gateway: Gateway = Depends(get_gateway),
    key_data: dict = Depends(verify_api_key),
) -> SuggestedQuestionsResponse:
    suggestions = gateway.assistant.suggest_questions(connection_id)
    return SuggestedQuestionsResponse(
        connection_id=connection_id,
        questions=suggestions.questions,
        source=suggestions.source,
    )


@router.post(
    "/analyze-error",
    response_model=AnalyzeErrorResponse,
    summary="Explain a failed SQL statement",
)
def analyze_error(
    body: AnalyzeErrorRequest,
    gateway: Gateway = Depends(get_gateway),
    key_data: dict = Depends(verify_api_key),
) -> AnalyzeErrorResponse:
    analysis = gateway.assistant.analyze_error(body.connection_id, body.sql, body.error_message)
    return AnalyzeErrorResponse.model_validate(analysis)
