"""Shared plumbing for the adapters that call the OpenAI API.

Both the embedding and the Whisper adapter build their ``AsyncOpenAI``
client the same way and translate SDK exceptions into the ingestflow
taxonomy here, so a throttled call (retryable) and an exhausted account
(terminal) are told apart identically for every OpenAI-backed stage.
"""

from __future__ import annotations

import openai

from ingestflow.config.settings import Settings
from ingestflow.utils.errors import (
    IngestFlowError,
    ProviderUnavailableError,
    QuotaExceededError,
    RateLimitError,
    RequestRejectedError,
)

# 4xx answers that describe the request itself; resending it cannot succeed.
_REJECTED = (
    openai.BadRequestError,
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.NotFoundError,
    openai.UnprocessableEntityError,
)


def build_async_client(settings: Settings) -> openai.AsyncOpenAI:
    """Create a client for OpenAI, or an OpenAI-compatible ``openai_base_url``."""
    if settings.openai_base_url:
        return openai.AsyncOpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
        )
    return openai.AsyncOpenAI(api_key=settings.openai_api_key)


def is_quota_error(exc: openai.APIError) -> bool:
    """Return ``True`` when *exc* is an account-level quota/billing rejection."""
    if getattr(exc, "code", None) == "insufficient_quota":
        return True
    return "quota" in str(exc).lower()


def translate_error(
    exc: openai.APIError,
    provider_name: str,
    fallback: type[IngestFlowError],
    quota_message: str,
) -> IngestFlowError:
    """Map an SDK exception onto the ingestflow error a step should see.

    Parameters
    ----------
    exc:
        The exception raised by the ``openai`` client.
    provider_name:
        Label recorded on the translated error.
    fallback:
        Error class for API failures that are neither quota, throttling,
        connectivity nor a rejected request (e.g. :class:`EmbeddingError`).
    quota_message:
        User-facing message for quota exhaustion.
    """
    if is_quota_error(exc):
        return QuotaExceededError(message=quota_message, provider_name=provider_name)
    if isinstance(exc, openai.RateLimitError):
        return RateLimitError(message=f"rate limited: {exc}", provider_name=provider_name)
    if isinstance(exc, (openai.APIConnectionError, openai.InternalServerError)):
        return ProviderUnavailableError(
            message=f"unreachable: {exc}",
            provider_name=provider_name,
        )
    if isinstance(exc, _REJECTED):
        return RequestRejectedError(
            message=f"request rejected: {exc}",
            provider_name=provider_name,
        )
    return fallback(message=f"API error: {exc}", provider_name=provider_name)
