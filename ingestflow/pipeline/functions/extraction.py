"""Extraction stage shared by the audio and PDF jobs.

fetch-document → download-and-extract → persist-extracted-text →
trigger-continuation.  The blob download and its extractor call run in the
same step, so raw bytes never reach the step log.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog

from ingestflow.models.document import SourceDocument
from ingestflow.models.events import TEXT_EXTRACTED, Event, EventData
from ingestflow.models.extraction import ExtractedText
from ingestflow.models.status import IngestionStage, ProcessingStatus
from ingestflow.pipeline.functions.common import (
    EXTRACTION_STATUS,
    PipelineDeps,
    load_document,
    set_status,
)
from ingestflow.pipeline.runtime import JobHandler
from ingestflow.pipeline.steps import StepContext
from ingestflow.services.ingestion.storage_paths import text_artifact_file

logger = structlog.get_logger(logger_name=__name__)

Extractor = Callable[[SourceDocument, bytes], Awaitable[ExtractedText]]


async def fetch_for_extraction(deps: PipelineDeps, document_id: str) -> SourceDocument:
    """Load the document and mark its extraction as processing.

    An explicit re-trigger of a finished document restarts extraction.
    """
    document = await load_document(deps.store, document_id)
    document = await set_status(
        deps.store,
        document,
        EXTRACTION_STATUS,
        ProcessingStatus.PROCESSING,
        restart=True,
        error_message=None,
    )
    await deps.report(document_id, IngestionStage.EXTRACTING)
    return document


async def persist_extracted_text(
    deps: PipelineDeps,
    document: SourceDocument,
    extracted: ExtractedText,
) -> str:
    """Upload the text artifact and record extraction metadata on the document.

    Returns the artifact's path in the text bucket.
    """
    location = text_artifact_file(document, deps.text_bucket)
    await deps.blobs.upload(
        location.bucket,
        location.path,
        extracted.text.encode("utf-8"),
        content_type="text/plain; charset=utf-8",
    )

    current = await load_document(deps.store, document.id)
    await set_status(
        deps.store,
        current,
        EXTRACTION_STATUS,
        ProcessingStatus.COMPLETED,
        extraction_model=extracted.model,
        extracted_text=extracted.text,
        word_count=extracted.word_count,
        duration_seconds=extracted.duration_seconds,
        page_count=extracted.page_count,
        title=current.title or extracted.title,
        author=current.author or extracted.author,
        language=extracted.language or current.language,
    )
    logger.info(
        "extracted_text_persisted",
        document_id=document.id,
        bucket=location.bucket,
        path=location.path,
        word_count=extracted.word_count,
    )
    return location.path


def extraction_handler(deps: PipelineDeps, extract: Extractor) -> JobHandler:
    """Build the handler of an extraction job around *extract*."""

    async def handler(event: Event, step: StepContext) -> dict:
        document_id = event.data.document_id

        document = await step.run(
            "fetch-document",
            lambda: fetch_for_extraction(deps, document_id),
            result_type=SourceDocument,
        )

        async def download_and_extract() -> ExtractedText:
            data = await deps.blobs.download(document.storage_bucket, document.file_path)
            return await extract(document, data)

        extracted = await step.run(
            "download-and-extract",
            download_and_extract,
            result_type=ExtractedText,
        )

        text_path = await step.run(
            "persist-extracted-text",
            lambda: persist_extracted_text(deps, document, extracted),
            result_type=str,
        )

        await step.send_event(
            "trigger-continuation",
            Event(
                name=TEXT_EXTRACTED,
                data=EventData(
                    document_id=document_id,
                    kind=document.kind,
                    actor_id=event.data.actor_id,
                ),
            ),
        )

        return {
            "document_id": document_id,
            "text_path": text_path,
            "word_count": extracted.word_count,
        }

    return handler
