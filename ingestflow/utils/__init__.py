"""Utility modules for ingestflow.

- **errors** -- Domain exception hierarchy rooted at IngestFlowError; each
  error class declares whether the step runner may retry it.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **vectors** -- Embedding literal encoding/decoding and cosine similarity.
"""

from ingestflow.utils.errors import (
    ConfigurationError,
    ContentError,
    DocumentNotFoundError,
    EmbeddingError,
    IngestFlowError,
    PipelineError,
    ProviderUnavailableError,
    QuotaExceededError,
    RateLimitError,
    StatusTransitionError,
    StepFailedError,
    StorageError,
    TranscriptionError,
    is_retryable,
)
from ingestflow.utils.logging import configure_logging, get_logger
from ingestflow.utils.vectors import cosine_similarity, format_vector, parse_vector

__all__ = [
    "ConfigurationError",
    "ContentError",
    "DocumentNotFoundError",
    "EmbeddingError",
    "IngestFlowError",
    "PipelineError",
    "ProviderUnavailableError",
    "QuotaExceededError",
    "RateLimitError",
    "StatusTransitionError",
    "StepFailedError",
    "StorageError",
    "TranscriptionError",
    "configure_logging",
    "cosine_similarity",
    "format_vector",
    "get_logger",
    "is_retryable",
    "parse_vector",
]
