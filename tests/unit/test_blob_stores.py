"""Unit tests for the local filesystem and Supabase Storage blob stores."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from ingestflow.providers.blob.local_blob_store import LocalBlobStore
from ingestflow.providers.blob.supabase_blob_store import SupabaseBlobStore
from ingestflow.utils.errors import ConfigurationError, StorageError

# ======================================================================
# Local
# ======================================================================


class TestLocalBlobStore:
    @pytest.mark.asyncio
    async def test_upload_then_download(self, tmp_path: Path) -> None:
        store = LocalBlobStore(root=tmp_path)
        await store.upload("transcripts", "u/c/doc.txt", b"hello")

        assert (tmp_path / "transcripts" / "u" / "c" / "doc.txt").read_bytes() == b"hello"
        assert await store.download("transcripts", "u/c/doc.txt") == b"hello"

    @pytest.mark.asyncio
    async def test_upload_replaces_existing_blob(self, tmp_path: Path) -> None:
        store = LocalBlobStore(root=tmp_path)
        await store.upload("b", "x.txt", b"one")
        await store.upload("b", "x.txt", b"two")
        assert await store.download("b", "x.txt") == b"two"

    @pytest.mark.asyncio
    async def test_missing_blob(self, tmp_path: Path) -> None:
        with pytest.raises(StorageError, match="not found"):
            await LocalBlobStore(root=tmp_path).download("b", "nope.bin")

    @pytest.mark.asyncio
    async def test_path_escape_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(StorageError, match="escapes"):
            await LocalBlobStore(root=tmp_path).upload("b", "../../etc/passwd", b"x")


# ======================================================================
# Supabase
# ======================================================================


def _client(handler) -> httpx.AsyncClient:  # noqa: ANN001
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestSupabaseBlobStore:
    def test_requires_url_and_key(self) -> None:
        with pytest.raises(ConfigurationError):
            SupabaseBlobStore(MagicMock(), supabase_url="", service_key="k")

    @pytest.mark.asyncio
    async def test_download_sends_service_key(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"audio-bytes")

        async with _client(handler) as client:
            store = SupabaseBlobStore(client, "https://xyz.supabase.co/", "secret")
            data = await store.download("audio", "user 1/c/doc.mp3")

        assert data == b"audio-bytes"
        request = seen[0]
        assert request.method == "GET"
        assert request.url.raw_path == b"/storage/v1/object/audio/user%201/c/doc.mp3"
        assert request.headers["apikey"] == "secret"
        assert request.headers["authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_upload_upserts_with_content_type(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"Key": "transcripts/u/doc.txt"})

        async with _client(handler) as client:
            store = SupabaseBlobStore(client, "https://xyz.supabase.co", "secret")
            await store.upload("transcripts", "u/doc.txt", b"text", "text/plain; charset=utf-8")

        request = seen[0]
        assert request.method == "POST"
        assert request.content == b"text"
        assert request.headers["x-upsert"] == "true"
        assert request.headers["content-type"] == "text/plain; charset=utf-8"

    @pytest.mark.asyncio
    async def test_http_error_becomes_storage_error(self) -> None:
        async with _client(lambda request: httpx.Response(404)) as client:
            store = SupabaseBlobStore(client, "https://xyz.supabase.co", "secret")
            with pytest.raises(StorageError, match="HTTP 404"):
                await store.download("audio", "missing.mp3")

    @pytest.mark.asyncio
    async def test_transport_error_becomes_storage_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            store = SupabaseBlobStore(client, "https://xyz.supabase.co", "secret")
            with pytest.raises(StorageError):
                await store.upload("audio", "x.mp3", b"x")
