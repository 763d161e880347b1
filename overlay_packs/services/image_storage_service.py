"""
Image Storage Service

Downloads a short-lived provider image and uploads it to durable object
storage (Supabase-compatible storage REST API), returning a public URL.
"""

import re
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

import httpx

from config import settings
from overlay_packs.core.exceptions import StorageError
from src.utils.logger import get_logger

logger = get_logger(__name__)


class ImageHost(ABC):
    """Interface for durable image hosting."""

    @abstractmethod
    async def rehost(self, temporary_url: str, vehicle_family: str, workspace_type: str) -> str:
        """
        Copy an image to durable storage.

        Returns:
            Public URL of the stored copy.

        Raises:
            StorageError: Download or upload failed
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""
        return None


def _sanitize(value: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", value).lower()


def generate_file_name(
    vehicle_family: str,
    workspace_type: str,
    clock: Callable[[], float] = time.time,
) -> str:
    """
    Object path for an overlay image.

    e.g. ``overlays/toyota_camry_engine_front_1726000000000.png``
    """
    timestamp = int(clock() * 1000)
    return f"overlays/{_sanitize(vehicle_family)}_{_sanitize(workspace_type)}_{timestamp}.png"


class StorageImageHost(ImageHost):
    """
    Durable hosting on a storage bucket via REST.

    Upload: ``POST {base}/storage/v1/object/{bucket}/{path}`` with
    ``x-upsert: true``. Public URL:
    ``{base}/storage/v1/object/public/{bucket}/{path}``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        bucket: Optional[str] = None,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.base_url = (base_url if base_url is not None else settings.storage_url).rstrip("/")
        self.service_key = service_key if service_key is not None else settings.storage_service_key
        self.bucket = bucket or settings.storage_bucket
        self.timeout = timeout
        self._client = http_client
        self._owns_client = http_client is None
        self._clock = clock

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    async def close(self) -> None:
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    async def _download(self, client: httpx.AsyncClient, url: str) -> bytes:
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to download image: {e}") from e
        if not response.is_success:
            raise StorageError(
                f"Failed to download image: HTTP {response.status_code}",
                details={"status": response.status_code},
            )
        if not response.content:
            raise StorageError("Downloaded image is empty")
        return response.content

    async def store_bytes(
        self,
        data: bytes,
        path: str,
        content_type: str = "image/png",
    ) -> str:
        """Upload bytes to the bucket and return the public URL."""
        if not self.base_url or not self.service_key:
            raise StorageError("Image storage is not configured")

        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.base_url}/storage/v1/object/{self.bucket}/{path}",
                content=data,
                headers={
                    "Authorization": f"Bearer {self.service_key}",
                    "apikey": self.service_key,
                    "Content-Type": content_type,
                    "x-upsert": "true",
                },
            )
        except httpx.HTTPError as e:
            raise StorageError(f"Storage upload failed: {e}") from e

        if not response.is_success:
            raise StorageError(
                f"Storage upload failed: HTTP {response.status_code}",
                details={"status": response.status_code, "body": response.text[:500]},
            )
        return self.public_url(path)

    async def rehost(self, temporary_url: str, vehicle_family: str, workspace_type: str) -> str:
        if not self.base_url or not self.service_key:
            raise StorageError("Image storage is not configured")

        client = await self._get_client()
        path = generate_file_name(vehicle_family, workspace_type, self._clock)

        data = await self._download(client, temporary_url)
        logger.debug("overlay.image.downloaded", size=len(data), path=path)

        url = await self.store_bytes(data, path)
        logger.info("overlay.image.stored", path=path, bucket=self.bucket)
        return url
