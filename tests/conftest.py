"""Shared pytest fixtures for the ingestflow test suite."""

from __future__ import annotations

import hashlib
import math
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from ingestflow.interfaces.embedding_provider import IEmbeddingProvider
from ingestflow.interfaces.transcription_provider import (
    ITranscriptionProvider,
    TranscriptionResult,
)
from ingestflow.models.document import SourceDocument, SourceKind
from ingestflow.models.events import Event, EventData
from ingestflow.pipeline.functions import PipelineDeps, build_functions
from ingestflow.pipeline.progress_tracker import ProgressTracker
from ingestflow.pipeline.runtime import JobRuntime
from ingestflow.providers.blob.local_blob_store import LocalBlobStore
from ingestflow.providers.checkpoint.memory_step_store import MemoryStepStore
from ingestflow.providers.store.sqlite_document_store import SQLiteDocumentStore
from ingestflow.services.ingestion.chunker import TextChunker
from ingestflow.services.ingestion.embedding_batcher import EmbeddingBatcher
from ingestflow.services.ingestion.extractors.audio_transcriber import AudioTranscriber
from ingestflow.services.ingestion.extractors.pdf_extractor import PDFExtractor
from ingestflow.services.ingestion.extractors.record_flattener import RecordFlattener
from ingestflow.services.ingestion.segment_writer import SegmentStoreWriter

FAKE_DIMENSION = 8


# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------


def fake_vector(text: str, dimension: int = FAKE_DIMENSION) -> list[float]:
    """Deterministic unit vector derived from a hash of *text*."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = [digest[i] / 255.0 + 0.01 for i in range(dimension)]
    norm = math.sqrt(sum(v * v for v in raw))
    return [v / norm for v in raw]


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider returning hash-derived vectors.

    ``errors`` is a list of exceptions raised by successive ``embed`` calls
    before the provider starts succeeding.
    """

    def __init__(
        self,
        dimension: int = FAKE_DIMENSION,
        model: str = "fake-embed-1",
        errors: list[BaseException] | None = None,
    ) -> None:
        self._dimension = dimension
        self._model = model
        self._errors = list(errors or [])
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self._errors:
            raise self._errors.pop(0)
        return [fake_vector(t, self._dimension) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_model_name(self) -> str:
        return self._model

    def get_provider_name(self) -> str:
        return "fake-embedding"

    def is_available(self) -> bool:
        return True


class FakeTranscriptionProvider(ITranscriptionProvider):
    """Transcription provider returning a fixed transcript."""

    def __init__(
        self,
        text: str = "Welcome to the lecture. Today we discuss cell division.",
        duration_seconds: float = 61.6,
        language: str = "en",
        errors: list[BaseException] | None = None,
    ) -> None:
        self._text = text
        self._duration = duration_seconds
        self._language = language
        self._errors = list(errors or [])
        self.calls: list[dict[str, Any]] = []

    async def transcribe(
        self,
        audio: bytes,
        filename: str,
        language: str | None = None,
        mime_type: str | None = None,
    ) -> TranscriptionResult:
        self.calls.append(
            {"size": len(audio), "filename": filename, "language": language, "mime_type": mime_type}
        )
        if self._errors:
            raise self._errors.pop(0)
        return TranscriptionResult(
            text=self._text,
            language=language or self._language,
            duration_seconds=self._duration,
            model="fake-whisper",
        )

    def get_provider_name(self) -> str:
        return "fake-transcription"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_document(
    kind: SourceKind = SourceKind.PDF,
    document_id: str = "doc-1",
    **overrides: Any,
) -> SourceDocument:
    """Build a pending document with sensible defaults for *kind*."""
    extension = {SourceKind.AUDIO: "mp3", SourceKind.PDF: "pdf", SourceKind.RESEARCH: "json"}[kind]
    bucket = {SourceKind.AUDIO: "audio", SourceKind.PDF: "documents", SourceKind.RESEARCH: "research"}[
        kind
    ]
    fields: dict[str, Any] = {
        "id": document_id,
        "owner_id": "user_1",
        "collection_id": "class_2",
        "kind": kind,
        "storage_bucket": bucket,
        "file_path": f"user_1/class_2/{document_id}.{extension}",
        "original_filename": f"source.{extension}",
    }
    fields.update(overrides)
    return SourceDocument(**fields)


def make_event(name: str, document_id: str = "doc-1", **data: Any) -> Event:
    return Event(name=name, data=EventData(document_id=document_id, **data))


def sentences(count: int, words_per_sentence: int = 10) -> str:
    """Return *count* sentences of *words_per_sentence* words each."""
    return " ".join(
        " ".join(f"w{i}x{j}" for j in range(words_per_sentence - 1)) + f" end{i}."
        for i in range(count)
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def embedder() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def transcription_provider() -> FakeTranscriptionProvider:
    return FakeTranscriptionProvider()


@pytest_asyncio.fixture
async def store(tmp_path: Path) -> SQLiteDocumentStore:
    document_store = SQLiteDocumentStore(db_path=tmp_path / "ingestflow.db")
    await document_store.initialize()
    return document_store


@pytest.fixture
def blobs(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(root=tmp_path / "blobs")


@pytest.fixture
def step_store() -> MemoryStepStore:
    return MemoryStepStore()


@pytest.fixture
def tracker() -> ProgressTracker:
    return ProgressTracker()


@pytest.fixture
def deps(
    store: SQLiteDocumentStore,
    blobs: LocalBlobStore,
    embedder: FakeEmbeddingProvider,
    transcription_provider: FakeTranscriptionProvider,
    tracker: ProgressTracker,
) -> PipelineDeps:
    return PipelineDeps(
        store=store,
        blobs=blobs,
        chunker=TextChunker(chunk_size=500, overlap=50),
        batcher=EmbeddingBatcher(embedder, batch_size=100),
        writer=SegmentStoreWriter(store, batch_size=100),
        transcriber=AudioTranscriber(transcription_provider),
        pdf_extractor=PDFExtractor(),
        flattener=RecordFlattener(),
        tracker=tracker,
    )


@pytest.fixture
def runtime(deps: PipelineDeps, step_store: MemoryStepStore) -> JobRuntime:
    job_runtime = JobRuntime(step_store, retry_backoff_seconds=0)
    for function in build_functions(deps, {"runtime": {"step_retries": 3}}):
        job_runtime.register(function)
    return job_runtime
