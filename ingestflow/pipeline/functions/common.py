"""Shared dependencies and helpers for the ingestion job functions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from ingestflow.interfaces.blob_store import IBlobStore
from ingestflow.interfaces.document_store import IDocumentStore
from ingestflow.models.document import SourceDocument
from ingestflow.models.events import Event
from ingestflow.models.status import (
    IngestionStage,
    ProcessingStatus,
    can_transition,
    check_transition,
)
from ingestflow.pipeline.progress_tracker import ProgressTracker
from ingestflow.pipeline.runtime import FailureHook, failure_message
from ingestflow.services.ingestion.chunker import TextChunker
from ingestflow.services.ingestion.embedding_batcher import EmbeddingBatcher
from ingestflow.services.ingestion.extractors.audio_transcriber import AudioTranscriber
from ingestflow.services.ingestion.extractors.pdf_extractor import PDFExtractor
from ingestflow.services.ingestion.extractors.record_flattener import RecordFlattener
from ingestflow.services.ingestion.segment_writer import SegmentStoreWriter
from ingestflow.services.ingestion.storage_paths import DEFAULT_TEXT_BUCKET
from ingestflow.utils.errors import DocumentNotFoundError

logger = structlog.get_logger(logger_name=__name__)

EXTRACTION_STATUS = "extraction_status"
EMBEDDING_STATUS = "embedding_status"


@dataclass
class PipelineDeps:
    """Everything the job functions need, injected once at startup."""

    store: IDocumentStore
    blobs: IBlobStore
    chunker: TextChunker
    batcher: EmbeddingBatcher
    writer: SegmentStoreWriter
    transcriber: AudioTranscriber | None = None
    pdf_extractor: PDFExtractor | None = None
    flattener: RecordFlattener | None = None
    tracker: ProgressTracker | None = None
    text_bucket: str = DEFAULT_TEXT_BUCKET

    async def report(
        self,
        document_id: str,
        stage: IngestionStage,
        processed: int = 0,
        total: int = 0,
    ) -> None:
        if self.tracker is not None:
            await self.tracker.update(document_id, stage, processed, total)


async def load_document(store: IDocumentStore, document_id: str) -> SourceDocument:
    """Return the document or raise the terminal not-found error."""
    document = await store.get_document(document_id)
    if document is None:
        raise DocumentNotFoundError(message=f"Document not found: {document_id}")
    return document


async def set_status(
    store: IDocumentStore,
    document: SourceDocument,
    field: str,
    target: ProcessingStatus,
    restart: bool = False,
    **fields: Any,
) -> SourceDocument:
    """Move *field* of *document* to *target* and patch *fields* alongside it.

    Returns the document as it now stands in the store.

    Raises
    ------
    StatusTransitionError
        If the move would go backward.
    """
    check_transition(field, getattr(document, field), target, restart=restart)
    patch = {field: target, **fields}
    await store.update_document(document.id, patch)
    return document.model_copy(update=patch)


def make_failure_hook(deps: PipelineDeps, field: str | None = None) -> FailureHook:
    """Build the ``on_failure`` hook shared by every ingestion job.

    The hook re-reads the document rather than trusting any step output:
    the failing step may have been the very first one.  Without *field* the
    stage that has not completed yet is the one that failed; a job that only
    ever owns one stage passes that stage's field so its failures never
    touch the other.
    """

    async def on_failure(event: Event, error: BaseException) -> None:
        document_id = event.data.document_id
        message = failure_message(error)

        document = await deps.store.get_document(document_id)
        if document is None:
            logger.warning("failure_hook_document_missing", document_id=document_id, error=message)
            return

        failed_field = field or (
            EMBEDDING_STATUS
            if document.extraction_status == ProcessingStatus.COMPLETED
            else EXTRACTION_STATUS
        )
        current = getattr(document, failed_field)
        if not can_transition(current, ProcessingStatus.FAILED):
            logger.warning(
                "failure_hook_status_final",
                document_id=document_id,
                field=failed_field,
                status=current.value,
            )
            return

        await deps.store.update_document(
            document_id,
            {failed_field: ProcessingStatus.FAILED, "error_message": message},
        )
        await deps.report(document_id, IngestionStage.FAILED)
        logger.error(
            "document_failed",
            document_id=document_id,
            field=failed_field,
            error=message,
        )

    return on_failure
