"""
Structured exceptions for overlay pack generation.

Every error raised by the generation pipeline derives from OverlayPackError
and carries a machine-readable error code, an HTTP status for the API layer,
and a details mapping for logs and responses.
"""

from typing import Any, Dict, List, Optional


class OverlayPackError(Exception):
    """
    Base exception for all overlay pack errors.

    Provides consistent error code and detail handling across the pipeline.
    """

    error_code: str = "OVERLAY_PACK_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ConfigError(OverlayPackError):
    """Raised when required configuration is missing or invalid."""

    error_code = "CONFIG_ERROR"
    http_status = 500


class ProviderError(OverlayPackError):
    """
    External provider failure.

    Raised on non-2xx responses and transport failures. Carries the HTTP
    status (None for transport errors) and the response body.
    """

    error_code = "PROVIDER_ERROR"
    http_status = 502

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: str = "",
        provider: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status = status
        self.body = body
        self.provider = provider
        self.details["status"] = status
        if provider:
            self.details["provider"] = provider
        if body:
            self.details["body"] = body[:500]


class RateLimitError(ProviderError):
    """
    Provider rate limit exceeded.

    Always retryable by the backoff wrapper.
    """

    error_code = "RATE_LIMIT_ERROR"
    http_status = 429

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        **kwargs,
    ):
        kwargs.setdefault("status", 429)
        super().__init__(message, **kwargs)
        self.retry_after = retry_after
        if retry_after:
            self.details["retry_after"] = retry_after


class ParseError(OverlayPackError):
    """Raised when a provider response is malformed or incomplete."""

    error_code = "PARSE_ERROR"
    http_status = 502

    def __init__(
        self,
        message: str,
        missing_fields: Optional[List[str]] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.missing_fields = missing_fields or []
        if self.missing_fields:
            self.details["missing_fields"] = self.missing_fields


class ValidationError(OverlayPackError):
    """
    Geometric or schema invariant violated.

    An artifact that raises this is never cached and never handed to a
    renderer.
    """

    error_code = "VALIDATION_ERROR"
    http_status = 422

    def __init__(
        self,
        message: str,
        violations: Optional[List[str]] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.violations = violations or []
        self.details["violations"] = self.violations


class GenerationError(OverlayPackError):
    """Raised when the image provider returns empty or unusable media."""

    error_code = "GENERATION_ERROR"
    http_status = 502


class LockTimeoutError(OverlayPackError):
    """
    Generation deadline exceeded.

    Delivered to the leader and every waiter on the same cache key.
    """

    error_code = "LOCK_TIMEOUT"
    http_status = 504

    def __init__(
        self,
        message: str,
        cache_key: Optional[str] = None,
        deadline_seconds: Optional[float] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.cache_key = cache_key
        self.deadline_seconds = deadline_seconds
        if cache_key:
            self.details["cache_key"] = cache_key
        if deadline_seconds is not None:
            self.details["deadline_seconds"] = deadline_seconds


class CacheError(OverlayPackError):
    """
    Artifact store read/write failure.

    Non-fatal: callers log it and continue with the in-memory artifact.
    """

    error_code = "CACHE_ERROR"
    http_status = 503


class StorageError(GenerationError):
    """Raised when re-hosting a generated image to durable storage fails."""

    error_code = "STORAGE_ERROR"
    http_status = 502
