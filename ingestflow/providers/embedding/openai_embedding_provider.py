"""OpenAI embedding provider adapter.

Implements :class:`IEmbeddingProvider` over ``AsyncOpenAI.embeddings``.  An
OpenAI-compatible endpoint can be targeted through ``openai_base_url``; the
provider label changes accordingly so logs and errors show which one failed.
"""

from __future__ import annotations

import openai
import structlog

from ingestflow.config.settings import Settings
from ingestflow.interfaces.embedding_provider import IEmbeddingProvider
from ingestflow.providers.openai_client import build_async_client, translate_error
from ingestflow.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

EMBEDDING_MODEL = "text-embedding-3-small"
EMBEDDING_DIMENSIONS = 1536

_QUOTA_MESSAGE = "Embedding API key has no remaining quota"

# Per-request input ceiling of the embeddings endpoint.
_API_INPUT_LIMIT = 2048

_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embeds text with ``text-embedding-3-small`` (1536 dims) unless configured otherwise."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        self._client = build_async_client(settings)
        self._model = settings.openai_embedding_model or EMBEDDING_MODEL
        self._dimension = _MODEL_DIMENSIONS.get(self._model, EMBEDDING_DIMENSIONS)
        self._label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per text, in input order.

        Raises
        ------
        QuotaExceededError
            The account is out of quota; retrying cannot help.
        RateLimitError, ProviderUnavailableError
            Transient failures the step runner retries.
        EmbeddingError
            Any other API rejection.
        """
        vectors: list[list[float]] = []
        for start in range(0, len(texts), _API_INPUT_LIMIT):
            vectors.extend(await self._create(texts[start : start + _API_INPUT_LIMIT]))
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_model_name(self) -> str:
        return self._model

    def get_provider_name(self) -> str:
        return self._label

    def is_available(self) -> bool:
        return bool(self._api_key)

    async def _create(self, batch: list[str]) -> list[list[float]]:
        try:
            response = await self._client.embeddings.create(input=batch, model=self._model)
        except openai.APIError as exc:
            raise translate_error(exc, self._label, EmbeddingError, _QUOTA_MESSAGE) from exc

        # ``index`` is authoritative; items are not guaranteed to arrive in order.
        items = sorted(response.data, key=lambda item: item.index)
        logger.info(
            "embedding_request_complete",
            provider=self._label,
            model=self._model,
            inputs=len(batch),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return [item.embedding for item in items]
