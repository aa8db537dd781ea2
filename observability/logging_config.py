"""
Structured Logging Configuration
================================

structlog setup for the gateway. Core modules log event names with key/value
context; request context (``request_id``, path, method) is bound per request
by the telemetry middleware and merged into every event.
"""

import logging
import os
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SERVICE_NAME = "nl2sql-gateway"

# Provider credentials and caller keys must never reach log output
SENSITIVE_FIELDS = frozenset({"api_key", "authorization", "password", "x-api-key"})

REDACTED = "***"

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "openai")


def redact_sensitive(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace values of credential-like keys, including one level of nested dicts."""
    for key, value in event_dict.items():
        if key.lower() in SENSITIVE_FIELDS and value:
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {
                k: REDACTED if k.lower() in SENSITIVE_FIELDS and v else v
                for k, v in value.items()
            }
    return event_dict


def _service_info(environment: str) -> Processor:
    def add_service_info(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_service_info


def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
    environment: Optional[str] = None,
) -> None:
    """
    Configure structlog and route stdlib logging through it.

    Args:
        level: Log level (default: LOG_LEVEL env or INFO)
        json_format: Render JSON lines (default: LOG_FORMAT=json, or production)
        environment: Deployment environment stamped on every event
            (default: ENVIRONMENT env or development)
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    environment = environment or os.getenv("ENVIRONMENT", "development")

    if json_format is None:
        json_format = os.getenv("LOG_FORMAT", "").lower() == "json" or environment == "production"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _service_info(environment),
        redact_sensitive,
    ]

    if json_format:
        renderer: Processor = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> Any:
    """Return a structlog logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Bind values to every subsequent event in the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
