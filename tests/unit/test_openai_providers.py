"""Unit tests for the OpenAI embedding and Whisper transcription adapters."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from ingestflow.config.settings import Settings
from ingestflow.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from ingestflow.providers.openai_client import is_quota_error, translate_error
from ingestflow.providers.transcription.whisper_api_provider import WhisperAPIProvider
from ingestflow.utils.errors import (
    EmbeddingError,
    ProviderUnavailableError,
    QuotaExceededError,
    RateLimitError,
    RequestRejectedError,
    TranscriptionError,
    is_retryable,
)

_EMBED_TARGET = "ingestflow.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"
_WHISPER_TARGET = "ingestflow.providers.transcription.whisper_api_provider.openai.AsyncOpenAI"

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/embeddings")


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "",
        "openai_transcription_model": "whisper-1",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _rate_limit(code: str | None) -> openai.RateLimitError:
    body = {"code": code, "message": "slow down"} if code else None
    return openai.RateLimitError(
        "Error code: 429",
        response=httpx.Response(429, request=_REQUEST),
        body=body,
    )


def _server_error() -> openai.InternalServerError:
    return openai.InternalServerError(
        "Error code: 500",
        response=httpx.Response(500, request=_REQUEST),
        body=None,
    )


def _bad_request() -> openai.BadRequestError:
    return openai.BadRequestError(
        "Error code: 400",
        response=httpx.Response(400, request=_REQUEST),
        body={"code": "invalid_request", "message": "input too long"},
    )


def _bad_key() -> openai.AuthenticationError:
    return openai.AuthenticationError(
        "Error code: 401",
        response=httpx.Response(401, request=_REQUEST),
        body={"code": "invalid_api_key", "message": "Incorrect API key provided"},
    )


def _conflict() -> openai.ConflictError:
    return openai.ConflictError(
        "Error code: 409",
        response=httpx.Response(409, request=_REQUEST),
        body=None,
    )


# ======================================================================
# OpenAI Embedding Provider
# ======================================================================


class TestOpenAIEmbeddingProvider:
    def test_metadata(self) -> None:
        provider = OpenAIEmbeddingProvider(_settings())
        assert provider.get_model_name() == "text-embedding-3-small"
        assert provider.get_dimension() == 1536
        assert provider.get_provider_name() == "openai_embedding"
        assert provider.is_available() is True

    def test_custom_base_url_and_model(self) -> None:
        provider = OpenAIEmbeddingProvider(
            _settings(
                openai_base_url="https://proxy.local/v1",
                openai_embedding_model="text-embedding-3-large",
            )
        )
        assert provider.get_provider_name() == "openai-compatible_embedding"
        assert provider.get_dimension() == 3072

    def test_unavailable_without_key(self) -> None:
        assert OpenAIEmbeddingProvider(_settings(openai_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_embed_orders_results_by_index(self) -> None:
        response = MagicMock()
        response.data = [
            MagicMock(embedding=[0.2, 0.2], index=1),
            MagicMock(embedding=[0.1, 0.1], index=0),
        ]
        response.usage = MagicMock(total_tokens=10)
        client = AsyncMock()
        client.embeddings.create = AsyncMock(return_value=response)

        with patch(_EMBED_TARGET, return_value=client):
            provider = OpenAIEmbeddingProvider(_settings())
            result = await provider.embed(["a", "b"])

        assert result == [[0.1, 0.1], [0.2, 0.2]]
        client.embeddings.create.assert_awaited_once_with(
            input=["a", "b"], model="text-embedding-3-small"
        )

    @pytest.mark.asyncio
    async def test_embed_empty_skips_api(self) -> None:
        client = AsyncMock()
        with patch(_EMBED_TARGET, return_value=client):
            assert await OpenAIEmbeddingProvider(_settings()).embed([]) == []
        client.embeddings.create.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "expected", "retryable"),
        [
            (_rate_limit("insufficient_quota"), QuotaExceededError, False),
            (_rate_limit("rate_limit_exceeded"), RateLimitError, True),
            (openai.APIConnectionError(request=_REQUEST), ProviderUnavailableError, True),
            (_server_error(), ProviderUnavailableError, True),
            (_bad_request(), RequestRejectedError, False),
            (_bad_key(), RequestRejectedError, False),
            (_conflict(), EmbeddingError, True),
        ],
    )
    async def test_error_mapping(
        self, error: Exception, expected: type[Exception], retryable: bool
    ) -> None:
        client = AsyncMock()
        client.embeddings.create = AsyncMock(side_effect=error)

        with patch(_EMBED_TARGET, return_value=client):
            provider = OpenAIEmbeddingProvider(_settings())
            with pytest.raises(expected) as exc_info:
                await provider.embed(["a"])

        assert is_retryable(exc_info.value) is retryable
        assert exc_info.value.provider_name == "openai_embedding"


# ======================================================================
# Shared error translation
# ======================================================================


class TestTranslateError:
    def test_quota_detection(self) -> None:
        assert is_quota_error(_rate_limit("insufficient_quota"))
        assert not is_quota_error(_rate_limit("rate_limit_exceeded"))

    def test_quota_wins_over_rate_limit(self) -> None:
        error = translate_error(
            _rate_limit("insufficient_quota"), "p", EmbeddingError, "out of credits"
        )
        assert isinstance(error, QuotaExceededError)
        assert error.message == "out of credits"
        assert error.provider_name == "p"

    def test_fallback_class_used_for_other_api_errors(self) -> None:
        error = translate_error(_conflict(), "whisper_api", TranscriptionError, "quota")
        assert type(error) is TranscriptionError
        assert str(error).startswith("[whisper_api] API error")

    @pytest.mark.parametrize("make_error", [_bad_request, _bad_key])
    def test_rejected_requests_are_not_retried(self, make_error) -> None:  # noqa: ANN001
        error = translate_error(make_error(), "openai_embedding", EmbeddingError, "quota")
        assert isinstance(error, RequestRejectedError)
        assert is_retryable(error) is False
        assert str(error).startswith("[openai_embedding] request rejected")


# ======================================================================
# Whisper API Provider
# ======================================================================


class TestWhisperAPIProvider:
    @pytest.mark.asyncio
    async def test_transcribe_uses_verbose_json(self) -> None:
        response = MagicMock(text="Hello there.", duration=12.4, language="english")
        client = AsyncMock()
        client.audio.transcriptions.create = AsyncMock(return_value=response)

        with patch(_WHISPER_TARGET, return_value=client):
            provider = WhisperAPIProvider(_settings())
            result = await provider.transcribe(
                b"audio", "lecture.mp3", language="en", mime_type="audio/mpeg"
            )

        assert result.text == "Hello there."
        assert result.duration_seconds == pytest.approx(12.4)
        assert result.language == "english"
        assert result.model == "whisper-1"
        client.audio.transcriptions.create.assert_awaited_once_with(
            model="whisper-1",
            file=("lecture.mp3", b"audio", "audio/mpeg"),
            response_format="verbose_json",
            language="en",
        )

    @pytest.mark.asyncio
    async def test_language_omitted_when_not_given(self) -> None:
        response = MagicMock(text="Hi.", duration=None, language=None)
        client = AsyncMock()
        client.audio.transcriptions.create = AsyncMock(return_value=response)

        with patch(_WHISPER_TARGET, return_value=client):
            result = await WhisperAPIProvider(_settings()).transcribe(b"a", "x.wav")

        kwargs = client.audio.transcriptions.create.await_args.kwargs
        assert "language" not in kwargs
        assert kwargs["file"] == ("x.wav", b"a")
        assert result.duration_seconds == 0.0
        assert result.language == "en"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (_rate_limit("insufficient_quota"), QuotaExceededError),
            (_rate_limit(None), RateLimitError),
            (openai.APITimeoutError(request=_REQUEST), ProviderUnavailableError),
            (_server_error(), ProviderUnavailableError),
            (_bad_request(), RequestRejectedError),
            (_bad_key(), RequestRejectedError),
            (_conflict(), TranscriptionError),
        ],
    )
    async def test_error_mapping(self, error: Exception, expected: type[Exception]) -> None:
        client = AsyncMock()
        client.audio.transcriptions.create = AsyncMock(side_effect=error)

        with patch(_WHISPER_TARGET, return_value=client):
            with pytest.raises(expected):
                await WhisperAPIProvider(_settings()).transcribe(b"a", "x.mp3")

    def test_availability(self) -> None:
        assert WhisperAPIProvider(_settings()).is_available()
        assert not WhisperAPIProvider(_settings(openai_api_key="")).is_available()
        assert WhisperAPIProvider(_settings()).get_provider_name() == "whisper_api"
