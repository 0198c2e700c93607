"""Unit tests for SegmentSearchService - cosine ranking over stored segments."""

from __future__ import annotations

import pytest

from ingestflow.models.segment import Segment
from ingestflow.providers.store.sqlite_document_store import SQLiteDocumentStore
from ingestflow.services.ingestion.embedding_batcher import EmbeddingBatcher
from ingestflow.services.search_service import SegmentSearchService
from ingestflow.utils.vectors import format_vector
from tests.conftest import FakeEmbeddingProvider, fake_vector


def _segment(
    seg_id: str,
    vector: list[float],
    index: int = 0,
    owner: str = "user_1",
    model: str = "fake-embed-1",
) -> Segment:
    return Segment(
        id=seg_id,
        document_id=f"doc-{seg_id}",
        owner_id=owner,
        collection_id="c",
        content=f"content {seg_id}",
        embedding=format_vector(vector),
        segment_index=index,
        char_start=0,
        char_end=len(f"content {seg_id}"),
        embedding_model=model,
    )


@pytest.fixture
def provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


class TestSearch:
    @pytest.mark.asyncio
    async def test_ranks_and_filters(
        self, store: SQLiteDocumentStore, provider: FakeEmbeddingProvider
    ) -> None:
        query = fake_vector("photosynthesis")
        near = [v + 0.05 if i == 0 else v for i, v in enumerate(query)]
        await store.insert_segments(
            [
                _segment("exact", query),
                _segment("near", near),
                _segment("opposite", [-v for v in query]),
                _segment("other-model", query, model="other"),
                _segment("short", [1.0, 0.0]),
                _segment("foreign", query, owner="user_2"),
            ]
        )
        service = SegmentSearchService(EmbeddingBatcher(provider), store)

        results = await service.search("photosynthesis", owner_id="user_1")

        assert [r.segment_id for r in results] == ["exact", "near"]
        assert results[0].similarity == pytest.approx(1.0)
        assert results[0].similarity >= results[1].similarity
        assert results[0].content == "content exact"

    @pytest.mark.asyncio
    async def test_limit_and_threshold(
        self, store: SQLiteDocumentStore, provider: FakeEmbeddingProvider
    ) -> None:
        query = fake_vector("q")
        await store.insert_segments([_segment(f"s{i}", query, index=i) for i in range(5)])
        service = SegmentSearchService(EmbeddingBatcher(provider), store)

        assert len(await service.search("q", owner_id="user_1", limit=2)) == 2
        assert await service.search("q", owner_id="user_1", threshold=1.01) == []

    @pytest.mark.asyncio
    async def test_blank_query_skips_embedding(
        self, store: SQLiteDocumentStore, provider: FakeEmbeddingProvider
    ) -> None:
        service = SegmentSearchService(EmbeddingBatcher(provider), store)
        assert await service.search("   ", owner_id="user_1") == []
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_no_candidates_skips_embedding(
        self, store: SQLiteDocumentStore, provider: FakeEmbeddingProvider
    ) -> None:
        service = SegmentSearchService(EmbeddingBatcher(provider), store)
        assert await service.search("anything", owner_id="nobody") == []
        assert provider.calls == []
