"""Custom exception hierarchy for ingestflow.

All application exceptions inherit from :class:`IngestFlowError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "supabase-storage", "sqlite") caused the
failure, and a class-level ``retryable`` flag that the step runner reads to
decide between another attempt and an immediate terminal failure.

The hierarchy is organized by error taxonomy:

    IngestFlowError  (base -- catch-all for any ingestflow error)
    +-- DocumentNotFoundError    (entity missing at job start, terminal)
    +-- ContentError             (no extractable text / malformed record, terminal)
    +-- QuotaExceededError       (provider account-level failure, terminal)
    +-- RequestRejectedError     (provider refused the request itself, terminal)
    +-- ProviderUnavailableError (external service down / unreachable)
    +-- RateLimitError           (provider rate-limit exceeded)
    +-- EmbeddingError           (embedding call failed)
    +-- TranscriptionError       (transcription call failed)
    +-- StorageError             (blob or row I/O failed)
    +-- PipelineError            (orchestration misuse)
    |   +-- StatusTransitionError
    +-- StepFailedError          (a step exhausted its retries)
    +-- ConfigurationError       (startup / missing config)
"""


class IngestFlowError(Exception):
    """Base exception for all ingestflow errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    retryable: bool = True

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


def is_retryable(exc: BaseException) -> bool:
    """Return ``False`` for errors that another attempt cannot fix."""
    return getattr(exc, "retryable", True)


# ---------------------------------------------------------------------------
# Terminal errors -- retrying cannot change the outcome
# ---------------------------------------------------------------------------

class DocumentNotFoundError(IngestFlowError):
    """Raised when the entity a job was triggered for does not exist."""

    retryable = False

    def __init__(
        self,
        message: str = "Document not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ContentError(IngestFlowError):
    """Raised when a source has no usable text or is structurally malformed.

    Examples: a scanned PDF without a text layer, a JSON research report
    that fails to parse.
    """

    retryable = False

    def __init__(
        self,
        message: str = "Source content could not be extracted",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class QuotaExceededError(IngestFlowError):
    """Raised when a provider rejects calls at the account/billing level.

    Every sibling job would fail identically, so the pipeline also marks the
    owning research batch as failed.
    """

    retryable = False

    def __init__(
        self,
        message: str = "Provider quota exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RequestRejectedError(IngestFlowError):
    """Raised when a provider refuses the request itself.

    Examples: an invalid or revoked API key (401/403), a malformed or
    oversized request (400/422), an unknown model (404).  Sending the same
    request again gets the same answer.
    """

    retryable = False

    def __init__(
        self,
        message: str = "Provider rejected the request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Transient provider / I/O errors
# ---------------------------------------------------------------------------

class ProviderUnavailableError(IngestFlowError):
    """Raised when an external service or provider is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(IngestFlowError):
    """Raised when an API rate limit is exceeded.

    The step runner backs off and retries when this is raised.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(IngestFlowError):
    """Raised when an embedding API call fails or returns a malformed result."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class TranscriptionError(IngestFlowError):
    """Raised when an audio transcription call fails."""

    def __init__(
        self,
        message: str = "Audio transcription failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StorageError(IngestFlowError):
    """Raised when a blob download/upload or a row write fails."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration / configuration errors
# ---------------------------------------------------------------------------

class PipelineError(IngestFlowError):
    """Raised when pipeline orchestration is misused (bad step output, etc.)."""

    retryable = False

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StatusTransitionError(PipelineError):
    """Raised when a status field would move backward within a run."""

    def __init__(
        self,
        message: str = "Illegal status transition",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StepFailedError(IngestFlowError):
    """Raised when a step gives up, either exhausted or non-retryable.

    ``cause`` holds the last underlying exception; ``step_name`` and
    ``attempts`` describe where and how hard the runtime tried.
    """

    retryable = False

    def __init__(
        self,
        step_name: str,
        cause: BaseException,
        attempts: int,
    ) -> None:
        self.step_name = step_name
        self.cause = cause
        self.attempts = attempts
        super().__init__(message=str(cause))


class ConfigurationError(IngestFlowError):
    """Raised when configuration is invalid or missing at startup."""

    retryable = False

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
