"""Abstract base class for blob storage.

Raw sources live in their own bucket; durable extracted-text artifacts live
in the text bucket.  Paths are bucket-relative, ``/``-separated strings.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IBlobStore(ABC):
    """Contract for bucket/path addressed blob storage."""

    @abstractmethod
    async def download(self, bucket: str, path: str) -> bytes:
        """Return the blob at *bucket*/*path*.

        Raises
        ------
        ingestflow.utils.errors.StorageError
            If the blob is missing or the backend is unreachable.
        """

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Write *data* to *bucket*/*path*, replacing any existing blob."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this storage backend."""
