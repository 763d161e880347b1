"""
Core infrastructure for overlay pack generation.

Exceptions, policy configuration, retry/backoff, JSON extraction and the
provider clients.
"""

from overlay_packs.core.exceptions import (
    OverlayPackError,
    ConfigError,
    ProviderError,
    RateLimitError,
    ParseError,
    ValidationError,
    GenerationError,
    LockTimeoutError,
    CacheError,
    StorageError,
)
from overlay_packs.core.config import (
    PhaseProfile,
    CanvasConfig,
    OverlayConfig,
    load_config,
    get_config,
    get_phase_profile,
    reset_config,
)
from overlay_packs.core.retry import (
    retry_with_backoff,
    rate_limited,
    is_rate_limit_error,
)
from overlay_packs.core.json_extraction import extract_json_object, require_fields
from overlay_packs.core.llm_client import (
    ReasoningProvider,
    ReasoningClient,
    CompletionResponse,
    complete_with_profile,
)
from overlay_packs.core.image_client import ImageProvider, ImageClient, ImageRequest

__all__ = [
    # Exceptions
    "OverlayPackError",
    "ConfigError",
    "ProviderError",
    "RateLimitError",
    "ParseError",
    "ValidationError",
    "GenerationError",
    "LockTimeoutError",
    "CacheError",
    "StorageError",
    # Config
    "PhaseProfile",
    "CanvasConfig",
    "OverlayConfig",
    "load_config",
    "get_config",
    "get_phase_profile",
    "reset_config",
    # Retry
    "retry_with_backoff",
    "rate_limited",
    "is_rate_limit_error",
    # JSON
    "extract_json_object",
    "require_fields",
    # Providers
    "ReasoningProvider",
    "ReasoningClient",
    "CompletionResponse",
    "complete_with_profile",
    "ImageProvider",
    "ImageClient",
    "ImageRequest",
]
