"""API Routes."""

from api.routes.diagnostics import router as diagnostics_router
from api.routes.health import router as health_router
from api.routes.monitor import router as monitor_router
from api.routes.query import router as query_router

__all__ = ["query_router", "health_router", "diagnostics_router", "monitor_router"]
