"""
Telemetry Middleware
====================

Correlation IDs and one structured log line per request.
"""

import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from observability.logging_config import bind_context, clear_context, get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class TelemetryMiddleware(BaseHTTPMiddleware):
    """
    Binds ``request_id`` (from the caller's X-Request-ID or a fresh uuid)
    into the structlog context, so every event logged while the request is
    served, including pipeline and diagnostics events, carries it. The id is
    echoed back together with the server-side duration.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        clear_context()
        bind_context(request_id=request_id, path=request.url.path, method=request.method)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000

            # Set by the API key dependency on authenticated routes
            key_data = getattr(request.state, "api_key_data", None) or {}
            log = logger.warning if response.status_code >= 500 else logger.info
            log(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
                actor=key_data.get("actor"),
            )
        finally:
            clear_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time-Ms"] = f"{duration_ms:.2f}"
        return response
