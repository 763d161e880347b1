"""
Reasoning provider client.

This module defines the ReasoningProvider interface the generation phases
depend on, and an httpx implementation for OpenAI-compatible chat
completion endpoints (DeepSeek by default).
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from config import settings
from overlay_packs.core.config import PhaseProfile
from overlay_packs.core.exceptions import (
    ConfigError,
    ParseError,
    ProviderError,
    RateLimitError,
)
from overlay_packs.core.retry import retry_with_backoff
from src.utils.logger import get_logger
from src.utils.metrics import provider_call_count

logger = get_logger(__name__)

PROVIDER_NAME = "reasoning"


@dataclass
class CompletionResponse:
    """Text returned by a reasoning provider plus usage statistics."""
    content: str
    model: str
    tokens_input: int = 0
    tokens_output: int = 0
    latency_ms: int = 0
    raw_response: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "content": self.content,
            "model": self.model,
            "tokens_input": self.tokens_input,
            "tokens_output": self.tokens_output,
            "latency_ms": self.latency_ms,
        }


class ReasoningProvider(ABC):
    """
    Interface for text/reasoning model providers.

    Implementations return the raw completion text. Callers extract JSON
    from it themselves.
    """

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_output_tokens: int = 1500,
    ) -> str:
        """
        Run a single-turn completion.

        Raises:
            RateLimitError: On HTTP 429
            ProviderError: On other non-2xx responses or transport failures
            ParseError: When the response carries no content
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""
        return None


class ReasoningClient(ReasoningProvider):
    """
    httpx client for OpenAI-compatible ``/chat/completions`` endpoints.

    Retries are not performed here; phases wrap calls in retry_with_backoff.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Provider API key. Defaults to settings.reasoning_api_key.
            base_url: API base URL. Defaults to settings.reasoning_base_url.
            model: Default model ID. Defaults to settings.reasoning_model.
            timeout: Request timeout in seconds
            http_client: Pre-built client (used by tests with MockTransport)
        """
        self.api_key = api_key if api_key is not None else settings.reasoning_api_key
        self.base_url = (base_url or settings.reasoning_base_url).rstrip("/")
        self.model = model or settings.reasoning_model
        self.timeout = timeout or settings.reasoning_timeout_seconds
        self._client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            if not self.api_key:
                raise ConfigError("Reasoning provider API key is not configured")
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def complete(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_output_tokens: int = 1500,
    ) -> str:
        response = await self.chat(prompt, model=model, max_output_tokens=max_output_tokens)
        return response.content

    async def chat(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_output_tokens: int = 1500,
    ) -> CompletionResponse:
        """
        Send a chat completion request with a single user message.

        Returns:
            CompletionResponse with the generated content and usage stats
        """
        model = model or self.model
        payload = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_output_tokens,
        }

        client = await self._get_client()
        start_time = time.time()
        try:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
            )
        except httpx.TimeoutException as e:
            raise ProviderError(
                f"Reasoning request timed out after {self.timeout}s",
                provider=PROVIDER_NAME,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Reasoning transport error: {e}",
                provider=PROVIDER_NAME,
            ) from e
        latency_ms = int((time.time() - start_time) * 1000)

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"Rate limit exceeded for {model}",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
                body=response.text,
                provider=PROVIDER_NAME,
            )

        if not response.is_success:
            raise ProviderError(
                f"Reasoning API error ({response.status_code})",
                status=response.status_code,
                body=response.text,
                provider=PROVIDER_NAME,
            )

        try:
            data = response.json()
            choice = data["choices"][0]
            content = choice.get("message", {}).get("content") or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ParseError(f"Malformed chat completion response: {e}") from e

        if not content.strip():
            raise ParseError("Reasoning provider returned no content")

        usage = data.get("usage") or {}
        logger.debug(
            "provider.reasoning.completed",
            model=data.get("model", model),
            latency_ms=latency_ms,
            tokens_output=usage.get("completion_tokens", 0),
        )

        return CompletionResponse(
            content=content,
            model=data.get("model", model),
            tokens_input=usage.get("prompt_tokens", 0),
            tokens_output=usage.get("completion_tokens", 0),
            latency_ms=latency_ms,
            raw_response=data,
        )

    async def __aenter__(self) -> "ReasoningClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


async def complete_with_profile(
    reasoning: ReasoningProvider,
    prompt: str,
    profile: PhaseProfile,
) -> str:
    """
    Run one completion under a phase's model, token and retry policy.

    Rate-limit errors are retried per the profile; everything else
    propagates. Each call is counted in provider metrics by phase.
    """

    async def call() -> str:
        return await reasoning.complete(
            prompt,
            model=profile.model or None,
            max_output_tokens=profile.max_output_tokens,
        )

    try:
        content = await retry_with_backoff(
            call,
            max_attempts=profile.max_attempts,
            base_delay=profile.base_delay,
            backoff_factor=profile.backoff_factor,
            max_delay=profile.max_delay,
            attempt_timeout=profile.timeout,
        )
    except Exception:
        provider_call_count.labels(provider=PROVIDER_NAME, phase=profile.name, status="error").inc()
        raise
    provider_call_count.labels(provider=PROVIDER_NAME, phase=profile.name, status="success").inc()
    return content
