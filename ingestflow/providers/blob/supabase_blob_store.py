"""Supabase Storage blob store over its REST API.

Talks to ``{supabase_url}/storage/v1/object/{bucket}/{path}`` with the
service-role key.  The ``httpx.AsyncClient`` is injected for testability and
connection pooling.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog

from ingestflow.interfaces.blob_store import IBlobStore
from ingestflow.utils.errors import ConfigurationError, StorageError

logger = structlog.get_logger(logger_name=__name__)


class SupabaseBlobStore(IBlobStore):
    """Blob store backed by Supabase Storage.

    Parameters
    ----------
    http_client:
        Shared async HTTP client.
    supabase_url:
        Project URL, e.g. ``https://xyz.supabase.co``.
    service_key:
        Service-role key; sent as both ``apikey`` and bearer token.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        supabase_url: str,
        service_key: str,
    ) -> None:
        if not supabase_url or not service_key:
            raise ConfigurationError(
                message="SUPABASE_URL and SUPABASE_SERVICE_KEY are required",
                provider_name=self.get_provider_name(),
            )
        self._http = http_client
        self._base_url = supabase_url.rstrip("/")
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
        }

    def _object_url(self, bucket: str, path: str) -> str:
        return f"{self._base_url}/storage/v1/object/{quote(bucket)}/{quote(path.lstrip('/'))}"

    async def download(self, bucket: str, path: str) -> bytes:
        url = self._object_url(bucket, path)
        try:
            response = await self._http.get(url, headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                message=(
                    f"Failed to download {bucket}/{path}: "
                    f"HTTP {exc.response.status_code}"
                ),
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise StorageError(
                message=f"Failed to download {bucket}/{path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug("blob_downloaded", bucket=bucket, path=path, size=len(response.content))
        return response.content

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        url = self._object_url(bucket, path)
        headers = {
            **self._headers,
            "Content-Type": content_type,
            "x-upsert": "true",
        }
        try:
            response = await self._http.post(url, content=data, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                message=(
                    f"Failed to upload {bucket}/{path}: "
                    f"HTTP {exc.response.status_code}"
                ),
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise StorageError(
                message=f"Failed to upload {bucket}/{path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug("blob_uploaded", bucket=bucket, path=path, size=len(data))

    def get_provider_name(self) -> str:
        return "supabase-storage"
