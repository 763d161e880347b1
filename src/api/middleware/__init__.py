"""
HTTP middleware for the overlay pack API.
"""
from .logging_middleware import CACHE_KEY_HEADER, REQUEST_ID_HEADER, LoggingMiddleware

__all__ = ["LoggingMiddleware", "CACHE_KEY_HEADER", "REQUEST_ID_HEADER"]
