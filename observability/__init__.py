"""
Observability Module
====================

Full-stack observability: metrics, tracing, and structured logging.
"""

from observability.metrics import (
    metrics_endpoint,
    setup_metrics,
    track_generation_metrics,
    track_probe_metrics,
)
from observability.tracing import setup_tracing
from observability.logging_config import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    "metrics_endpoint",
    "setup_metrics",
    "track_generation_metrics",
    "track_probe_metrics",
    "setup_tracing",
    "bind_context",
    "clear_context",
    "get_logger",
    "setup_logging",
]
