"""Query-time semantic search over stored segments.

Embeds the query with the same provider used at ingestion time and ranks an
owner's segments by cosine similarity.  Segments embedded with a different
model are skipped: vectors from different models are not comparable even
when their dimensions happen to match.
"""

from __future__ import annotations

import structlog
from pydantic import BaseModel, ConfigDict

from ingestflow.interfaces.document_store import IDocumentStore
from ingestflow.services.ingestion.embedding_batcher import EmbeddingBatcher
from ingestflow.utils.vectors import cosine_similarity, parse_vector

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_MATCH_COUNT = 20
DEFAULT_MATCH_THRESHOLD = 0.3


class SearchResult(BaseModel):
    """One ranked segment."""

    model_config = ConfigDict(frozen=True)

    segment_id: str
    document_id: str
    segment_index: int
    content: str
    similarity: float


class SegmentSearchService:
    """Cosine-similarity search across an owner's segments."""

    def __init__(self, batcher: EmbeddingBatcher, store: IDocumentStore) -> None:
        self._batcher = batcher
        self._store = store

    async def search(
        self,
        query: str,
        owner_id: str | None,
        collection_id: str | None = None,
        limit: int = DEFAULT_MATCH_COUNT,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
    ) -> list[SearchResult]:
        """Return up to *limit* segments scoring at least *threshold*."""
        if not query.strip():
            return []

        segments = await self._store.list_segments(owner_id=owner_id, collection_id=collection_id)
        model = self._batcher.model_name
        candidates = [s for s in segments if s.embedding_model == model]
        skipped = len(segments) - len(candidates)
        if not candidates:
            logger.info("search_no_candidates", owner_id=owner_id, skipped=skipped)
            return []

        query_vec = await self._batcher.embed_one(query)
        scored: list[tuple[float, int]] = []
        for idx, seg in enumerate(candidates):
            vector = parse_vector(seg.embedding)
            if len(vector) != len(query_vec):
                skipped += 1
                continue
            score = cosine_similarity(query_vec, vector)
            if score >= threshold:
                scored.append((score, idx))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        results = [
            SearchResult(
                segment_id=candidates[idx].id,
                document_id=candidates[idx].document_id,
                segment_index=candidates[idx].segment_index,
                content=candidates[idx].content,
                similarity=score,
            )
            for score, idx in scored[:limit]
        ]

        logger.info(
            "search_complete",
            owner_id=owner_id,
            candidates=len(candidates),
            skipped=skipped,
            results=len(results),
        )
        return results
