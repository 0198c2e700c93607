"""ingestflow worker assembly.

Wires together all providers, services and job functions via dependency
injection.  Loads configuration from ``.env`` and ``config/config.yaml``.
Any collaborator can be overridden by keyword, which is how tests and
scripts plug in fakes without touching the network.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from ingestflow.config.loader import load_config
from ingestflow.config.settings import Settings
from ingestflow.interfaces.blob_store import IBlobStore
from ingestflow.interfaces.document_store import IDocumentStore
from ingestflow.interfaces.embedding_provider import IEmbeddingProvider
from ingestflow.interfaces.step_store import IStepStore
from ingestflow.interfaces.transcription_provider import ITranscriptionProvider
from ingestflow.pipeline.functions import PipelineDeps, build_functions
from ingestflow.pipeline.progress_tracker import ProgressTracker
from ingestflow.pipeline.runtime import JobRuntime
from ingestflow.providers.blob.local_blob_store import LocalBlobStore
from ingestflow.providers.blob.supabase_blob_store import SupabaseBlobStore
from ingestflow.providers.checkpoint.sqlite_step_store import SQLiteStepStore
from ingestflow.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from ingestflow.providers.store.sqlite_document_store import SQLiteDocumentStore
from ingestflow.providers.transcription.whisper_api_provider import WhisperAPIProvider
from ingestflow.services.ingestion.chunker import TextChunker
from ingestflow.services.ingestion.embedding_batcher import EmbeddingBatcher
from ingestflow.services.ingestion.extractors.audio_transcriber import AudioTranscriber
from ingestflow.services.ingestion.extractors.pdf_extractor import PDFExtractor
from ingestflow.services.ingestion.extractors.record_flattener import RecordFlattener
from ingestflow.services.ingestion.segment_writer import SegmentStoreWriter
from ingestflow.services.search_service import SegmentSearchService
from ingestflow.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    if not app_settings.is_embedding_configured():
        raise ConfigurationError(
            message="No embedding provider available. Set OPENAI_API_KEY.",
            provider_name="openai_embedding",
        )
    return OpenAIEmbeddingProvider(settings=app_settings)


def _build_blob_store(app_settings: Settings, http_client: httpx.AsyncClient) -> IBlobStore:
    """Select the blob backend named by ``STORAGE_BACKEND``."""
    backend = app_settings.storage_backend.lower()
    if backend == "supabase":
        return SupabaseBlobStore(
            http_client=http_client,
            supabase_url=app_settings.supabase_url,
            service_key=app_settings.supabase_service_key,
        )
    if backend == "local":
        return LocalBlobStore(root=app_settings.blob_root)
    raise ConfigurationError(message=f"Unknown STORAGE_BACKEND '{app_settings.storage_backend}'")


# ---------------------------------------------------------------------------
# Full assembly
# ---------------------------------------------------------------------------


def build_pipeline(
    custom_settings: Settings | None = None,
    config: dict | None = None,
    *,
    embedding_provider: IEmbeddingProvider | None = None,
    transcription_provider: ITranscriptionProvider | None = None,
    blob_store: IBlobStore | None = None,
    document_store: IDocumentStore | None = None,
    step_store: IStepStore | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Construct the runtime and every service it drives.

    Parameters
    ----------
    custom_settings:
        Application settings.  A fresh :class:`Settings` is read if omitted.
    config:
        Resolved config dict from :func:`load_config`; loaded if omitted.

    Returns
    -------
    dict
        Components keyed by role name: ``runtime``, ``deps``, ``store``,
        ``step_store``, ``blobs``, ``search``, ``tracker``, ``settings``,
        ``config``, ``http_client``.
    """
    s = custom_settings or Settings()
    cfg = config if config is not None else load_config(settings=s)

    http_client = http_client or httpx.AsyncClient(timeout=60.0)
    embedder = embedding_provider or _build_embedding_provider(s)
    transcriber_provider = transcription_provider or WhisperAPIProvider(settings=s)
    blobs = blob_store or _build_blob_store(s, http_client)
    store = document_store or SQLiteDocumentStore(db_path=s.database_path)
    steps = step_store or SQLiteStepStore(db_path=s.database_path)

    chunking = cfg.get("chunking", {})
    batching = cfg.get("batching", {})
    runtime_cfg = cfg.get("runtime", {})

    batcher = EmbeddingBatcher(
        embedder, batch_size=int(batching.get("embedding_batch_size", s.embedding_batch_size))
    )
    tracker = ProgressTracker()
    deps = PipelineDeps(
        store=store,
        blobs=blobs,
        chunker=TextChunker(
            chunk_size=int(chunking.get("chunk_size_tokens", s.chunk_size_tokens)),
            overlap=int(chunking.get("overlap_tokens", s.chunk_overlap_tokens)),
        ),
        batcher=batcher,
        writer=SegmentStoreWriter(
            store, batch_size=int(batching.get("insert_batch_size", s.insert_batch_size))
        ),
        transcriber=AudioTranscriber(
            transcriber_provider,
            default_language=s.default_transcription_language,
        ),
        pdf_extractor=PDFExtractor(),
        flattener=RecordFlattener(),
        tracker=tracker,
        text_bucket=s.text_bucket,
    )

    runtime = JobRuntime(
        steps,
        retry_backoff_seconds=float(
            runtime_cfg.get("retry_backoff_seconds", s.retry_backoff_seconds)
        ),
    )
    for function in build_functions(deps, cfg):
        runtime.register(function)

    logger.info(
        "pipeline_built",
        embedding=embedder.get_provider_name(),
        transcription=transcriber_provider.get_provider_name(),
        blobs=blobs.get_provider_name(),
        functions=[fn.id for fn in runtime.functions],
    )

    return {
        "runtime": runtime,
        "deps": deps,
        "store": store,
        "step_store": steps,
        "blobs": blobs,
        "search": SegmentSearchService(batcher, store),
        "tracker": tracker,
        "settings": s,
        "config": cfg,
        "http_client": http_client,
    }


async def initialize_stores(components: dict[str, Any]) -> None:
    """Create database tables for the SQLite-backed stores, if used."""
    for key in ("store", "step_store"):
        component = components[key]
        if isinstance(component, (SQLiteDocumentStore, SQLiteStepStore)):
            await component.initialize()
