"""
Structured logging configuration using structlog.

- Console output while developing, JSON for log aggregation in production
- Correlation IDs to follow one matching run across async tasks
- Sensitive data filtering
- Timing helper for batch operations
- Audit helpers for attachment changes
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, cast

import structlog
from structlog.types import EventDict, Processor

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Set correlation ID for the current context.

    Args:
        correlation_id: Custom correlation ID. If None, generates a new UUID.

    Returns:
        The correlation ID that was set.
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    _correlation_id_var.set(correlation_id)
    return correlation_id


def get_correlation_id() -> str | None:
    """Get the current correlation ID from context."""
    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    """Clear the correlation ID from context."""
    _correlation_id_var.set(None)


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add the current correlation ID to every log entry."""
    if "correlation_id" not in event_dict:
        event_dict["correlation_id"] = get_correlation_id()
    return event_dict


SENSITIVE_KEYS = frozenset(
    {
        "password",
        "api_key",
        "secret",
        "token",
        "database_url",
        "iban",
    }
)


def filter_sensitive_data(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Redact credentials and account numbers before rendering."""
    for key in SENSITIVE_KEYS:
        if key in event_dict:
            event_dict[key] = "***REDACTED***"
    return event_dict


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add application context to every log entry."""
    from taxfiler import __version__

    event_dict["app"] = "taxfiler"
    event_dict["version"] = __version__
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    dev_mode: bool = True,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Whether to output JSON logs (recommended for production)
        dev_mode: Whether to use development-friendly output
    """
    shared_processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        add_app_context,
        filter_sensitive_data,
    ]

    if dev_mode:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    elif json_logs:
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "event"]),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("auto_assign_completed", processed=12, assigned=9)
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))


class LogPerformance:
    """
    Context manager for logging how long an operation took.

    Usage:
        with LogPerformance("auto_assign", logger):
            ...
    """

    def __init__(self, operation: str, logger: structlog.stdlib.BoundLogger, **context: Any):
        self.operation = operation
        self.logger = logger
        self.context = context
        self.start_time: float = 0

    def __enter__(self) -> "LogPerformance":
        self.start_time = time.perf_counter()
        self.logger.debug(f"{self.operation}_started", **self.context)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        duration = time.perf_counter() - self.start_time

        if exc_type is None:
            self.logger.info(
                f"{self.operation}_completed",
                duration_ms=round(duration * 1000, 2),
                operation=self.operation,
                **self.context,
            )
        else:
            self.logger.error(
                f"{self.operation}_failed",
                duration_ms=round(duration * 1000, 2),
                operation=self.operation,
                error=str(exc_val),
                error_type=exc_type.__name__,
                **self.context,
            )


# Audit logging helpers
def log_attachment_created(
    logger: structlog.stdlib.BoundLogger,
    transaction_id: int,
    document_id: int,
    attached_by: str | None,
    is_automatic: bool,
) -> None:
    """Log attachment creation for audit trail."""
    logger.info(
        "attachment_created",
        action="attach",
        resource="attachment",
        transaction_id=transaction_id,
        document_id=document_id,
        attached_by=attached_by,
        is_automatic=is_automatic,
    )


def log_attachment_removed(
    logger: structlog.stdlib.BoundLogger,
    transaction_id: int,
    document_id: int,
) -> None:
    """Log attachment removal for audit trail."""
    logger.info(
        "attachment_removed",
        action="detach",
        resource="attachment",
        transaction_id=transaction_id,
        document_id=document_id,
    )


# Initialize logging on module import
configure_logging()
