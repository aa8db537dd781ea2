"""
OpenTelemetry Tracing
=====================

Tracer provider setup and FastAPI instrumentation. Core services create
their own spans through ``opentelemetry.trace``; this module decides where
those spans go.
"""

import os
from typing import Optional

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from observability.logging_config import SERVICE_NAME as DEFAULT_SERVICE_NAME
from observability.logging_config import get_logger

logger = get_logger(__name__)

# Probe and scrape endpoints are polled constantly and carry no request flow
UNTRACED_URLS = "health,ready,live,metrics"


def _build_provider(service_name: str, version: str, environment: str, endpoint: Optional[str]) -> TracerProvider:
    resource = Resource.create({
        SERVICE_NAME: service_name,
        "service.version": version,
        "deployment.environment": environment,
    })
    provider = TracerProvider(resource=resource)

    if endpoint and endpoint != "disabled":
        try:
            provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True)))
        except Exception as e:
            logger.warning("otlp_exporter_failed", endpoint=endpoint, error=str(e))
        else:
            logger.info("otlp_exporter_configured", endpoint=endpoint)
    return provider


def setup_tracing(
    app: FastAPI,
    version: str = "0.1.0",
    environment: Optional[str] = None,
    otlp_endpoint: Optional[str] = None,
    service_name: str = DEFAULT_SERVICE_NAME,
) -> TracerProvider:
    """
    Install the tracer provider (once per process) and instrument the app.

    Spans are exported only when an OTLP endpoint is configured (parameter
    or OTEL_EXPORTER_OTLP_ENDPOINT); "disabled" turns export off. Building
    several apps in one process (tests) reuses the first provider, since
    OpenTelemetry refuses to replace a global provider.

    Args:
        app: FastAPI application instance
        version: Service version resource attribute
        environment: Deployment environment (default: ENVIRONMENT env)
        otlp_endpoint: OTLP collector endpoint
        service_name: Name of the service for traces

    Returns:
        The active tracer provider
    """
    provider = trace.get_tracer_provider()
    if not isinstance(provider, TracerProvider):
        provider = _build_provider(
            service_name,
            version,
            environment or os.getenv("ENVIRONMENT", "development"),
            otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"),
        )
        trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider, excluded_urls=UNTRACED_URLS)
    logger.info("tracing_configured", service=service_name)
    return provider
