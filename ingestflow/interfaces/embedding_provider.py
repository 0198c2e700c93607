"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.  The same
provider instance must serve both ingestion (batched ``embed``) and query
time (``embed_single``): vectors from different models or dimensions are not
comparable, so similarity scores between them are meaningless.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   OpenAIEmbeddingProvider - text-embedding-3-small (requires API key)
# Located in: ingestflow/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the ingestion pipeline."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed in a single provider call.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.  Each
            inner list has length equal to :meth:`get_dimension`.

        Raises
        ------
        ingestflow.utils.errors.RateLimitError
            If the provider throttled the call (retryable).
        ingestflow.utils.errors.QuotaExceededError
            If the provider account is out of quota (terminal).
        ingestflow.utils.errors.EmbeddingError
            For any other API failure.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Used for query-time search; must use the same model as :meth:`embed`.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Example values: ``1536`` (OpenAI ``text-embedding-3-small``).
        """

    @abstractmethod
    def get_model_name(self) -> str:
        """Return the model identifier recorded on every stored segment."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and reachable."""
