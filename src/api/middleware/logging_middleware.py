"""
Request/response logging middleware with correlation ID tracking.

Every request gets a request ID (from X-Request-ID or generated) bound to
the logging context. Overlay routes record the resolved pack on
request.state; the middleware echoes its cache key in X-Overlay-Cache-Key
and adds it, with the pack's model tier, to the completion log line.
"""
import time
import uuid
from typing import Any, Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.utils.logger import (
    get_logger,
    set_correlation_context,
    clear_correlation_context,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
CACHE_KEY_HEADER = "X-Overlay-Cache-Key"


def _pack_fields(request: Request) -> Dict[str, Any]:
    """Pack attributes recorded by the overlay routes, if any."""
    fields = {}
    for name in ("cache_key", "gpt_model"):
        value = getattr(request.state, name, None)
        if value is not None:
            fields[name] = value
    return fields


class LoggingMiddleware(BaseHTTPMiddleware):
    """Request/response logging with correlation and pack context."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        set_correlation_context(request_id=request_id)
        started = time.perf_counter()

        logger.info(
            "api.request.start",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "api.request.error",
                method=request.method,
                path=request.url.path,
                duration_ms=int((time.perf_counter() - started) * 1000),
                error_detail=str(e),
                error_type=type(e).__name__,
            )
            raise
        else:
            pack = _pack_fields(request)
            logger.info(
                "api.request.complete",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=int((time.perf_counter() - started) * 1000),
                **pack,
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            if "cache_key" in pack:
                response.headers[CACHE_KEY_HEADER] = pack["cache_key"]
            return response
        finally:
            clear_correlation_context()
