"""
Structured logging for Tallyboard, built on structlog.

Every log line carries the service name and a severity field. Request-scoped
values (request id, tenant) live in structlog's contextvars so that engine and
storage modules pick them up without passing them around.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from tallyboard.config import Settings, get_settings

SERVICE_NAME = "tallyboard"

# Third-party loggers that are chatty at INFO.
_QUIET_LOGGERS = ("httpx", "uvicorn.access")


def add_severity(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add severity level for structured logging."""
    event_dict["severity"] = method_name.upper()
    return event_dict


def add_service(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _level(settings: Settings) -> int:
    # Test runs only need warnings and errors.
    if settings.testing:
        return logging.WARNING
    return getattr(logging, settings.log_level.upper(), logging.INFO)


def _renderer(settings: Settings) -> Processor:
    if settings.log_format == "json" and not settings.dev_mode:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=not settings.testing)


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure stdlib logging and structlog.

    JSON lines in production, coloured console output in development.

    Args:
        settings: Settings to read level and format from (defaults to get_settings())
    """
    settings = settings or get_settings()
    level = _level(settings)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_service,
            add_severity,
            structlog.processors.UnicodeDecoder(),
            _renderer(settings),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def bind_request_context(request_id: str, **fields: Any) -> None:
    """Start a fresh log context for one HTTP request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **fields)


def bind_tenant(tenant_id: str) -> None:
    """Attach the resolved tenant to the current request's log context."""
    structlog.contextvars.bind_contextvars(tenant_id=tenant_id)
