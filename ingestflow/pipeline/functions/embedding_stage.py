"""The chunk → embed → persist → complete stage shared by every source type.

Each stage is its own memoized step, so a crash between embedding and
persisting resumes at the insert without calling the embedding provider
again.
"""

from __future__ import annotations

import structlog

from ingestflow.models.document import SourceDocument
from ingestflow.models.segment import SegmentParent, TextChunk
from ingestflow.models.status import IngestionStage, ProcessingStatus
from ingestflow.pipeline.functions.common import (
    EMBEDDING_STATUS,
    PipelineDeps,
    load_document,
    set_status,
)
from ingestflow.pipeline.steps import StepContext
from ingestflow.utils.errors import DocumentNotFoundError, QuotaExceededError

logger = structlog.get_logger(logger_name=__name__)

QUOTA_MESSAGE = "Embedding provider quota exceeded. Please check your billing."


async def run_embedding_stage(
    deps: PipelineDeps,
    step: StepContext,
    document: SourceDocument,
    text: str,
    owner_id: str | None,
    link_segments: bool = False,
) -> dict:
    """Chunk *text*, embed the chunks and persist them as *document*'s segments.

    Returns a summary dict recorded as the run's output.
    """
    document_id = document.id

    async def chunk_text() -> list[TextChunk]:
        chunks = deps.chunker.chunk(text)
        await deps.store.update_document(
            document_id,
            {"total_segments": len(chunks), "processed_segments": 0},
        )
        await deps.report(document_id, IngestionStage.CHUNKING, 0, len(chunks))
        logger.info("document_chunked", document_id=document_id, chunks=len(chunks))
        return chunks

    chunks = await step.run("chunk-text", chunk_text, result_type=list[TextChunk])

    async def generate_embeddings() -> list[list[float]]:
        async def on_progress(done: int, total: int) -> None:
            await deps.store.update_document(document_id, {"processed_segments": done})
            await deps.report(document_id, IngestionStage.EMBEDDING, done, total)

        try:
            return await deps.batcher.embed_all(chunks, on_progress=on_progress)
        except QuotaExceededError as exc:
            # Every sibling report of the batch would fail the same way.
            if document.batch_id:
                await deps.store.update_research_batch(
                    document.batch_id,
                    {"status": "failed", "error_message": QUOTA_MESSAGE},
                )
                logger.error(
                    "research_batch_quota_exceeded",
                    batch_id=document.batch_id,
                    document_id=document_id,
                )
            raise QuotaExceededError(message=QUOTA_MESSAGE, provider_name=exc.provider_name) from exc

    vectors = await step.run(
        "generate-embeddings",
        generate_embeddings,
        result_type=list[list[float]],
    )

    parent = SegmentParent(
        document_id=document_id,
        owner_id=owner_id,
        collection_id=document.collection_id,
    )

    async def insert_segments() -> list[str]:
        await deps.report(document_id, IngestionStage.PERSISTING, len(vectors), len(chunks))
        return await deps.writer.persist(chunks, vectors, parent, deps.batcher.model_name)

    segment_ids = await step.run("insert-segments", insert_segments, result_type=list[str])

    if link_segments:

        async def link() -> int:
            current = await deps.store.get_document(document_id)
            if current is None:
                raise DocumentNotFoundError(
                    message=f"Document {document_id} not found when linking segments"
                )
            return await deps.writer.link(
                document_id,
                segment_ids,
                subject=current.subject,
                category=current.category,
            )

        await step.run("link-segments", link, result_type=int)

    async def mark_completed() -> int:
        current = await load_document(deps.store, document_id)
        await set_status(
            deps.store,
            current,
            EMBEDDING_STATUS,
            ProcessingStatus.COMPLETED,
            total_segments=len(segment_ids),
            processed_segments=len(segment_ids),
            error_message=None,
        )
        await deps.report(
            document_id,
            IngestionStage.COMPLETED,
            len(segment_ids),
            len(segment_ids),
        )
        logger.info("document_completed", document_id=document_id, segments=len(segment_ids))
        return len(segment_ids)

    segments_created = await step.run("mark-completed", mark_completed, result_type=int)

    return {
        "document_id": document_id,
        "segments_created": segments_created,
    }
