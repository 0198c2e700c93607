"""Ingestion building blocks: chunking, embedding, extraction and persistence."""

from ingestflow.services.ingestion.chunker import TextChunker, word_count
from ingestflow.services.ingestion.embedding_batcher import EmbeddingBatcher
from ingestflow.services.ingestion.segment_writer import SegmentStoreWriter, segment_id

__all__ = [
    "EmbeddingBatcher",
    "SegmentStoreWriter",
    "TextChunker",
    "segment_id",
    "word_count",
]
