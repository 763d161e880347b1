"""
Image provider client.

Defines the ImageProvider interface used by the visual generation phase and
an httpx implementation for OpenAI-compatible ``/images/generations``.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from config import settings
from overlay_packs.core.exceptions import (
    ConfigError,
    GenerationError,
    ProviderError,
    RateLimitError,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)

PROVIDER_NAME = "image"


@dataclass
class ImageRequest:
    """Parameters for a single image generation call."""
    prompt: str
    model: str = "dall-e-3"
    size: str = "1792x1024"
    quality: str = "standard"
    n: int = 1

    def to_payload(self) -> dict:
        """Build the JSON request body."""
        return {
            "model": self.model,
            "prompt": self.prompt,
            "n": self.n,
            "size": self.size,
            "quality": self.quality,
        }


class ImageProvider(ABC):
    """Interface for image generation providers."""

    @abstractmethod
    async def generate(self, request: ImageRequest) -> str:
        """
        Generate one image and return its (possibly short-lived) URL.

        Raises:
            RateLimitError: On HTTP 429
            ProviderError: On other non-2xx responses or transport failures
            GenerationError: When the response carries no usable URL
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""
        return None


class ImageClient(ImageProvider):
    """httpx client for OpenAI-compatible image generation."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.image_api_key
        self.base_url = (base_url or settings.image_base_url).rstrip("/")
        self.timeout = timeout or settings.image_timeout_seconds
        self._client = http_client
        self._owns_client = http_client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            if not self.api_key:
                raise ConfigError("Image provider API key is not configured")
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def generate(self, request: ImageRequest) -> str:
        client = await self._get_client()
        start_time = time.time()
        try:
            response = await client.post(
                f"{self.base_url}/images/generations",
                json=request.to_payload(),
            )
        except httpx.TimeoutException as e:
            raise ProviderError(
                f"Image request timed out after {self.timeout}s",
                provider=PROVIDER_NAME,
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Image transport error: {e}",
                provider=PROVIDER_NAME,
            ) from e

        if response.status_code == 429:
            raise RateLimitError(
                f"Rate limit exceeded for {request.model}",
                body=response.text,
                provider=PROVIDER_NAME,
            )

        if not response.is_success:
            raise ProviderError(
                f"Image API error ({response.status_code})",
                status=response.status_code,
                body=response.text,
                provider=PROVIDER_NAME,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise GenerationError("Image provider returned a non-JSON body") from e

        items = data.get("data") if isinstance(data, dict) else None
        url = ""
        if items and isinstance(items[0], dict):
            url = items[0].get("url") or ""
        if not url.strip():
            raise GenerationError("No image URL returned by image provider")

        logger.debug(
            "provider.image.completed",
            model=request.model,
            latency_ms=int((time.time() - start_time) * 1000),
        )
        return url
