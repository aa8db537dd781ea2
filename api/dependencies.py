"""Shared FastAPI dependencies."""

from fastapi import Request

from nl2sql_gateway.gateway import Gateway


def get_gateway(request: Request) -> Gateway:
    """Dependency to get the assembled gateway from app state."""
    return request.app.state.gateway
