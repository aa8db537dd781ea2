"""
FastAPI Application
===================

Main FastAPI application for the NL2SQL gateway.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import __version__
from api.middleware.telemetry import TelemetryMiddleware
from api.routes.diagnostics import router as diagnostics_router
from api.routes.health import router as health_router
from api.routes.monitor import router as monitor_router
from api.routes.query import router as query_router
from api.schemas import ErrorResponse
from nl2sql_gateway.config import Settings
from nl2sql_gateway.exceptions import GatewayError, NotFoundError
from nl2sql_gateway.gateway import Gateway, build_gateway
from observability.logging_config import get_logger, setup_logging
from observability.metrics import metrics_endpoint, setup_metrics
from observability.tracing import setup_tracing
from security.auth import APIKeyAuth

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan handler."""
    settings: Settings = app.state.settings

    setup_logging(environment=settings.environment)
    logger.info("gateway_starting", version=__version__, environment=settings.environment)

    if getattr(app.state, "gateway", None) is None:
        app.state.gateway = build_gateway(settings)
    if getattr(app.state, "auth", None) is None:
        app.state.auth = APIKeyAuth(
            api_keys=settings.api_keys,
            rate_limit=settings.rate_limit,
            enabled=settings.auth_enabled,
        )

    yield

    logger.info("gateway_stopping")


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[Gateway] = None,
    auth: Optional[APIKeyAuth] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Runtime settings (defaults to environment, or the
            gateway's settings when a gateway is given)
        gateway: Pre-assembled gateway; built during startup when omitted
        auth: API key authenticator; built from settings when omitted

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = gateway.settings if gateway is not None else Settings.from_env()

    app = FastAPI(
        title="NL2SQL Gateway",
        description=(
            "Routes natural language questions to configured LLM providers, "
            "screens the generated SQL against security policies and audits every run."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.auth = auth

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(query_router)
    app.include_router(diagnostics_router)
    app.include_router(monitor_router)

    setup_metrics(app, version=__version__, environment=settings.environment)
    app.add_route("/metrics", metrics_endpoint)

    # Instrumentation adds middleware, so it must run before startup
    setup_tracing(app, version=__version__, environment=settings.environment)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(
                error="NotFound",
                message=str(exc),
                request_id=getattr(request.state, "request_id", None),
                details={"kind": exc.kind, "id": exc.record_id},
            ).model_dump(),
        )

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                error=type(exc).__name__,
                message=str(exc),
                request_id=getattr(request.state, "request_id", None),
            ).model_dump(),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        request_id = getattr(request.state, "request_id", None)
        logger.exception("unhandled_error", request_id=request_id)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="InternalServerError",
                message="An unexpected error occurred",
                request_id=request_id,
            ).model_dump(),
        )

    return app


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
