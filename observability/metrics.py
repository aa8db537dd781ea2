"""
Prometheus Metrics
==================

Application metrics for monitoring and alerting.
"""

import time
from typing import Callable, Iterable

from fastapi import FastAPI, Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
    multiprocess,
)

# Custom registry for this application
REGISTRY = CollectorRegistry()

APP_INFO = Info(
    "nl2sql_gateway",
    "NL2SQL gateway information",
    registry=REGISTRY,
)

# Generation metrics
GENERATIONS_TOTAL = Counter(
    "nl2sql_generations_total",
    "Total SQL generation requests by outcome",
    ["outcome"],  # success, blocked, unavailable, error
    registry=REGISTRY,
)

GENERATION_DURATION = Histogram(
    "nl2sql_generation_duration_seconds",
    "SQL generation duration in seconds",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=REGISTRY,
)

TOKENS_TOTAL = Counter(
    "nl2sql_tokens_total",
    "Completion tokens consumed",
    ["direction"],  # input, output
    registry=REGISTRY,
)

SECURITY_FINDINGS_TOTAL = Counter(
    "nl2sql_security_findings_total",
    "Security findings by type",
    ["type"],
    registry=REGISTRY,
)

# Provider metrics
PROVIDER_PROBES_TOTAL = Counter(
    "nl2sql_provider_probes_total",
    "Provider connection probes by result",
    ["provider", "result"],  # healthy, unhealthy
    registry=REGISTRY,
)

# HTTP metrics
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    registry=REGISTRY,
)

ACTIVE_GENERATIONS = Gauge(
    "nl2sql_active_generations",
    "Number of SQL generations currently being processed",
    registry=REGISTRY,
)

GENERATION_PATH = "/api/v1/generate-sql"


def _endpoint_label(request: Request) -> str:
    # Route templates keep path parameters out of the label set
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


def setup_metrics(app: FastAPI, version: str = "0.1.0", environment: str = "development") -> None:
    """
    Set up Prometheus metrics for the FastAPI application.

    Args:
        app: FastAPI application instance
        version: Application version for the info metric
        environment: Deployment environment for the info metric
    """
    APP_INFO.info({
        "version": version,
        "environment": environment,
    })

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next: Callable) -> Response:
        """Middleware to track HTTP metrics."""
        start_time = time.perf_counter()

        is_generation = request.url.path == GENERATION_PATH
        if is_generation:
            ACTIVE_GENERATIONS.inc()

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time
            endpoint = _endpoint_label(request)

            HTTP_REQUESTS_TOTAL.labels(
                method=request.method,
                endpoint=endpoint,
                status=response.status_code,
            ).inc()

            HTTP_REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(duration)

            return response
        finally:
            if is_generation:
                ACTIVE_GENERATIONS.dec()


def track_generation_metrics(
    outcome: str,
    duration_seconds: float,
    input_tokens: int = 0,
    output_tokens: int = 0,
    finding_types: Iterable[str] = (),
) -> None:
    """
    Track metrics for a completed SQL generation.

    Args:
        outcome: success, blocked, unavailable or error
        duration_seconds: Total processing time
        input_tokens: Prompt tokens consumed
        output_tokens: Completion tokens produced
        finding_types: Security finding types raised for the request
    """
    GENERATIONS_TOTAL.labels(outcome=outcome).inc()
    GENERATION_DURATION.observe(duration_seconds)

    if input_tokens:
        TOKENS_TOTAL.labels(direction="input").inc(input_tokens)
    if output_tokens:
        TOKENS_TOTAL.labels(direction="output").inc(output_tokens)

    for finding_type in finding_types:
        SECURITY_FINDINGS_TOTAL.labels(type=finding_type).inc()


def track_probe_metrics(provider: str, healthy: bool) -> None:
    """Record one provider connection probe."""
    PROVIDER_PROBES_TOTAL.labels(
        provider=provider,
        result="healthy" if healthy else "unhealthy",
    ).inc()


async def metrics_endpoint(request: Request) -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format.
    """
    # Handle multiprocess mode if using gunicorn
    try:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        metrics = generate_latest(registry)
    except ValueError:
        # Not in multiprocess mode
        metrics = generate_latest(REGISTRY)

    return Response(
        content=metrics,
        media_type=CONTENT_TYPE_LATEST,
    )
