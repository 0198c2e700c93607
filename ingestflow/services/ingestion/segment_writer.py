"""Persists chunk + embedding pairs as segment rows.

Inserts are issued in bounded batches (at most 100 rows per call) to keep
each transaction small.  Segment ids are derived deterministically from the
parent document and the segment index, and the store ignores rows whose id
already exists, so re-running an interrupted insert never duplicates a
segment.
"""

from __future__ import annotations

import uuid

import structlog

from ingestflow.interfaces.document_store import IDocumentStore
from ingestflow.models.segment import Segment, SegmentLink, SegmentParent, TextChunk
from ingestflow.utils.errors import PipelineError
from ingestflow.utils.vectors import format_vector

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_INSERT_BATCH_SIZE = 100

_SEGMENT_NAMESPACE = uuid.UUID("6f1c2a9e-3b47-5d0e-9a8c-2e51d7b4c013")


def segment_id(document_id: str, segment_index: int) -> str:
    """Return the stable id of segment *segment_index* of *document_id*."""
    return str(uuid.uuid5(_SEGMENT_NAMESPACE, f"{document_id}:{segment_index}"))


class SegmentStoreWriter:
    """Writes segments and research tag links through an :class:`IDocumentStore`."""

    def __init__(
        self,
        store: IDocumentStore,
        batch_size: int = DEFAULT_INSERT_BATCH_SIZE,
    ) -> None:
        if batch_size <= 0:
            msg = f"batch_size must be positive, got {batch_size}"
            raise ValueError(msg)
        self._store = store
        self._batch_size = batch_size

    async def persist(
        self,
        chunks: list[TextChunk],
        vectors: list[list[float]],
        parent: SegmentParent,
        embedding_model: str,
    ) -> list[str]:
        """Insert one segment per ``(chunk, vector)`` pair.

        Returns
        -------
        list[str]
            Segment ids in the same order as *chunks*.
        """
        if len(chunks) != len(vectors):
            raise PipelineError(
                message=f"{len(chunks)} chunks but {len(vectors)} vectors",
            )

        segments = [
            Segment(
                id=segment_id(parent.document_id, chunk.segment_index),
                document_id=parent.document_id,
                owner_id=parent.owner_id,
                collection_id=parent.collection_id,
                content=chunk.content,
                embedding=format_vector(vector),
                segment_index=chunk.segment_index,
                char_start=chunk.char_start,
                char_end=chunk.char_end,
                embedding_model=embedding_model,
            )
            for chunk, vector in zip(chunks, vectors)
        ]

        ids: list[str] = []
        for start in range(0, len(segments), self._batch_size):
            batch = segments[start : start + self._batch_size]
            ids.extend(await self._store.insert_segments(batch))

        logger.info(
            "segments_persisted",
            document_id=parent.document_id,
            count=len(ids),
            batches=-(-len(segments) // self._batch_size),
        )
        return ids

    async def link(
        self,
        document_id: str,
        segment_ids: list[str],
        subject: str | None,
        category: str | None,
    ) -> int:
        """Tag research segments with the report's subject and category."""
        links = [
            SegmentLink(
                document_id=document_id,
                segment_id=sid,
                subject=subject,
                category=category,
            )
            for sid in segment_ids
        ]
        for start in range(0, len(links), self._batch_size):
            await self._store.insert_segment_links(links[start : start + self._batch_size])
        logger.info("segment_links_inserted", document_id=document_id, count=len(links))
        return len(links)
