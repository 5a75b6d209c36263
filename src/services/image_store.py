from __future__ import annotations

import logging
import mimetypes
from pathlib import PurePath
from urllib.parse import quote
import uuid

import httpx

from core.config import settings
from core.exceptions import ConfigurationError, PublicUrlError, StorageError

logger = logging.getLogger(__name__)

CACHE_CONTROL_SECONDS = "3600"


def unique_object_name(original_name: str | None, content_type: str) -> str:
    """Random object name keeping the original file extension."""
    suffix = PurePath(original_name or "").suffix.lower()
    if not suffix or suffix == ".":
        suffix = mimetypes.guess_extension(content_type) or ""
    return f"{uuid.uuid4().hex}{suffix}"


class ImageStore:
    """Uploads images to the provider's object storage (Supabase Storage REST API)."""

    def __init__(
        self,
        base_url: str | None,
        service_key: str | None,
        bucket: str,
        *,
        public_base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.service_key = service_key
        self.bucket = bucket
        self.public_base_url = public_base_url
        self.timeout = timeout
        self._transport = transport

    async def upload(self, name: str, data: bytes, content_type: str) -> None:
        """Store ``data`` under ``name``; never overwrites an existing object."""
        if not self.base_url or not self.service_key:
            logger.error("SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is not set")
            raise ConfigurationError("Storage provider URL or service key is not configured")

        url = f"{self.base_url}/storage/v1/object/{quote(self.bucket)}/{quote(name)}"
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
            "Content-Type": content_type,
            "cache-control": f"max-age={CACHE_CONTROL_SECONDS}",
            "x-upsert": "false",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, content=data, headers=headers)
        except httpx.HTTPError as e:
            logger.error("Storage upload request failed for %s: %s", name, e)
            raise StorageError("Failed to upload image to storage", details=str(e)) from e

        if response.is_error:
            details = response.text[:500]
            logger.error("Storage upload error %s for %s: %s", response.status_code, name, details)
            raise StorageError("Failed to upload image to storage", details=details)

    def public_url(self, name: str) -> str:
        base = self.public_base_url or (
            f"{self.base_url}/storage/v1/object/public/{quote(self.bucket)}" if self.base_url else None
        )
        if not base:
            raise PublicUrlError("Image uploaded but failed to get public URL")
        url = f"{base}/{quote(name)}"
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise PublicUrlError("Image uploaded but failed to get public URL", details=str(e)) from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise PublicUrlError("Image uploaded but failed to get public URL", details=url)
        return url


def get_image_store() -> ImageStore:
    cfg = settings.backend
    assert cfg is not None
    return ImageStore(
        cfg.url,
        cfg.service_role_key,
        cfg.storage_bucket,
        public_base_url=cfg.storage_public_url,
        timeout=max(cfg.request_timeout, 30.0),
    )
