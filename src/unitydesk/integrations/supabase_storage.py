"""Media uploads to Supabase Storage."""

from __future__ import annotations

import re
from typing import Optional, Protocol

import httpx

from unitydesk.config import Settings
from unitydesk.errors import ConfigurationError, ExternalServiceError
from unitydesk.utils.logging import get_logger
from unitydesk.utils.time import epoch_ms


logger = get_logger(__name__)


class MediaStorage(Protocol):
    async def upload(
        self, bucket: str, name: str, data: bytes, content_type: Optional[str] = None
    ) -> Optional[str]: ...


def object_name(filename: Optional[str], default: str = "upload") -> str:
    """Timestamp-prefixed object name with anything unsafe replaced."""
    cleaned = re.sub(r"[^A-Za-z0-9._-]", "_", filename or "") or default
    return f"{epoch_ms()}_{cleaned}"


class SupabaseStorage:
    """Uploads with the service-role key and returns public object URLs."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or Settings()
        if not self.settings.has_storage():
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        self._transport = transport

    @property
    def base_url(self) -> str:
        return (self.settings.supabase_url or "").rstrip("/")

    def public_url(self, bucket: str, name: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{name}"

    async def upload(
        self, bucket: str, name: str, data: bytes, content_type: Optional[str] = None
    ) -> Optional[str]:
        key = self.settings.supabase_service_role_key or ""
        headers = {
            "Authorization": f"Bearer {key}",
            "apikey": key,
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "false",
        }
        url = f"{self.base_url}/storage/v1/object/{bucket}/{name}"
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.supabase_timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(url, headers=headers, content=data)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"Failed to upload file: {exc}") from exc

        logger.info("storage.uploaded bucket=%s name=%s bytes=%s", bucket, name, len(data))
        return self.public_url(bucket, name)


class NullStorage:
    """Used when storage is not configured; media is not kept."""

    async def upload(
        self, bucket: str, name: str, data: bytes, content_type: Optional[str] = None
    ) -> Optional[str]:
        logger.warning("storage.skipped bucket=%s name=%s reason=not_configured", bucket, name)
        return None
