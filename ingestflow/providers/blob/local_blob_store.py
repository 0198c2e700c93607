"""Filesystem-backed blob store.

Buckets map to directories under a root; paths map to files inside them.
Blocking file I/O runs via :func:`asyncio.to_thread` so the event loop is
never stalled by large audio files.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from ingestflow.interfaces.blob_store import IBlobStore
from ingestflow.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)


class LocalBlobStore(IBlobStore):
    """Blob store rooted at a local directory (``data/blobs`` by default)."""

    def __init__(self, root: str | Path = "data/blobs") -> None:
        self._root = Path(root)

    def _resolve(self, bucket: str, path: str) -> Path:
        bucket_dir = (self._root / bucket).resolve()
        target = (bucket_dir / path.lstrip("/")).resolve()
        if bucket_dir != target and bucket_dir not in target.parents:
            raise StorageError(
                message=f"Path escapes bucket: {bucket}/{path}",
                provider_name=self.get_provider_name(),
            )
        return target

    async def download(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        try:
            data = await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError as exc:
            raise StorageError(
                message=f"Blob not found: {bucket}/{path}",
                provider_name=self.get_provider_name(),
            ) from exc
        except OSError as exc:
            raise StorageError(
                message=f"Failed to read {bucket}/{path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("blob_downloaded", bucket=bucket, path=path, size=len(data))
        return data

    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        target = self._resolve(bucket, path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            raise StorageError(
                message=f"Failed to write {bucket}/{path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug(
            "blob_uploaded",
            bucket=bucket,
            path=path,
            size=len(data),
            content_type=content_type,
        )

    def get_provider_name(self) -> str:
        return "local-blob"
