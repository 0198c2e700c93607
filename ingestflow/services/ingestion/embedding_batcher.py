"""Batched embedding generation for chunked text.

Groups chunks into consecutive batches, submits each batch to the embedding
provider as one call, and reports cumulative progress after every successful
batch so the pipeline can persist ``processed_segments`` while a long
document is still being embedded.

A batch failure fails the whole operation.  Retrying is the job runtime's
responsibility: the surrounding step is re-run as a unit.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable

import structlog

from ingestflow.interfaces.embedding_provider import IEmbeddingProvider
from ingestflow.models.segment import TextChunk
from ingestflow.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_BATCH_SIZE = 100

ProgressCallback = Callable[[int, int], Awaitable[None] | None]


class EmbeddingBatcher:
    """Embeds chunks in provider-sized batches, preserving order.

    Parameters
    ----------
    provider:
        The embedding provider; its model name and dimension are recorded on
        every segment written from these vectors.
    batch_size:
        Maximum number of chunks per provider call (default 100).
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        if batch_size <= 0:
            msg = f"batch_size must be positive, got {batch_size}"
            raise ValueError(msg)
        self._provider = provider
        self._batch_size = batch_size

    @property
    def model_name(self) -> str:
        return self._provider.get_model_name()

    @property
    def dimension(self) -> int:
        return self._provider.get_dimension()

    async def embed_all(
        self,
        chunks: list[TextChunk],
        on_progress: ProgressCallback | None = None,
    ) -> list[list[float]]:
        """Return one vector per chunk, in input order.

        Parameters
        ----------
        chunks:
            Chunks to embed.  An empty list returns ``[]`` without calling
            the provider.
        on_progress:
            Called as ``on_progress(done, total)`` after each batch with the
            cumulative number of embedded chunks.  May be sync or async.

        Raises
        ------
        EmbeddingError
            If the provider returns a different number of vectors than it was
            given, or a vector of the wrong dimension.
        """
        total = len(chunks)
        if total == 0:
            return []

        dimension = self.dimension
        vectors: list[list[float]] = []
        for start in range(0, total, self._batch_size):
            batch = chunks[start : start + self._batch_size]
            batch_vectors = await self._provider.embed([c.content for c in batch])

            if len(batch_vectors) != len(batch):
                raise EmbeddingError(
                    message=(
                        f"Provider returned {len(batch_vectors)} vectors "
                        f"for a batch of {len(batch)} chunks"
                    ),
                    provider_name=self._provider.get_provider_name(),
                )
            for vector in batch_vectors:
                if len(vector) != dimension:
                    raise EmbeddingError(
                        message=f"Expected {dimension}-dim vectors, got {len(vector)}",
                        provider_name=self._provider.get_provider_name(),
                    )

            vectors.extend(batch_vectors)
            logger.debug(
                "embedding_batch_complete",
                done=len(vectors),
                total=total,
                batch_size=len(batch),
            )
            if on_progress is not None:
                result = on_progress(len(vectors), total)
                if inspect.isawaitable(result):
                    await result

        return vectors

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single query string with the ingestion model."""
        return await self._provider.embed_single(text)
