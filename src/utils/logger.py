"""
Structured logging configuration using structlog.

Provides:
- Structured logging with JSON output (production) or console (development)
- Correlation context variables propagated across async generation runs
- Utilities for setting/clearing correlation context
"""
import logging
import sys
from contextvars import ContextVar
from typing import Any, Optional

import structlog
from config import settings


# =============================================================================
# CORRELATION CONTEXT VARIABLES
# =============================================================================
# Context variables follow the asyncio task that set them, so every log line
# emitted while generating a pack carries the request and cache key.

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
cache_key_var: ContextVar[Optional[str]] = ContextVar("cache_key", default=None)


def set_correlation_context(
    request_id: Optional[str] = None,
    cache_key: Optional[str] = None,
) -> None:
    """
    Set correlation IDs in context for automatic log propagation.

    Args:
        request_id: HTTP request identifier
        cache_key: Overlay pack cache key being resolved
    """
    if request_id is not None:
        request_id_var.set(request_id)
    if cache_key is not None:
        cache_key_var.set(cache_key)


def clear_correlation_context() -> None:
    """Clear all correlation context variables."""
    request_id_var.set(None)
    cache_key_var.set(None)


def add_correlation_ids(
    logger: Any,
    method_name: str,
    event_dict: dict,
) -> dict:
    """Structlog processor that adds correlation IDs to all log entries."""
    if request_id_var.get():
        event_dict["request_id"] = request_id_var.get()
    if cache_key_var.get():
        event_dict.setdefault("cache_key", cache_key_var.get())
    return event_dict


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================


def configure_logging() -> None:
    """Configure structured logging."""

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        add_correlation_ids,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.enable_structured_logging:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)


# Initialize logging on import
configure_logging()
