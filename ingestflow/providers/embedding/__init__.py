"""Embedding provider implementations.

Embeddings convert text into numeric vectors that capture semantic meaning.
They are stored on segment rows and compared at query time by cosine
similarity.

    OpenAIEmbeddingProvider - text-embedding-3-small (1536 dims).
"""

from ingestflow.providers.embedding.openai_embedding_provider import (
    EMBEDDING_DIMENSIONS,
    EMBEDDING_MODEL,
    OpenAIEmbeddingProvider,
)

__all__ = ["EMBEDDING_DIMENSIONS", "EMBEDDING_MODEL", "OpenAIEmbeddingProvider"]
