"""OpenAI Whisper API transcription provider.

The API takes the audio file as-is (mp3, mp4, mpeg, mpga, m4a, wav, webm;
25 MB per request) and picks the decoder from the filename's extension.
``verbose_json`` is requested so the recording's duration and detected
language come back alongside the text.
"""

from __future__ import annotations

import openai
import structlog

from ingestflow.config.settings import Settings
from ingestflow.interfaces.transcription_provider import (
    ITranscriptionProvider,
    TranscriptionResult,
)
from ingestflow.providers.openai_client import build_async_client, translate_error
from ingestflow.utils.errors import TranscriptionError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_TRANSCRIPTION_MODEL = "whisper-1"

_PROVIDER_NAME = "whisper_api"
_QUOTA_MESSAGE = "Transcription API key has no remaining quota"


class WhisperAPIProvider(ITranscriptionProvider):
    """Transcription via the hosted Whisper model."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        self._model = settings.openai_transcription_model or DEFAULT_TRANSCRIPTION_MODEL
        self._client = build_async_client(settings)

    async def transcribe(
        self,
        audio: bytes,
        filename: str,
        language: str | None = None,
        mime_type: str | None = None,
    ) -> TranscriptionResult:
        request: dict = {
            "model": self._model,
            "file": (filename, audio, mime_type) if mime_type else (filename, audio),
            "response_format": "verbose_json",
        }
        if language:
            request["language"] = language

        try:
            response = await self._client.audio.transcriptions.create(**request)
        except openai.APIError as exc:
            raise translate_error(exc, _PROVIDER_NAME, TranscriptionError, _QUOTA_MESSAGE) from exc

        result = TranscriptionResult(
            text=response.text or "",
            language=getattr(response, "language", None) or language or "en",
            duration_seconds=float(getattr(response, "duration", None) or 0.0),
            model=self._model,
        )
        logger.info(
            "transcription_complete",
            filename=filename,
            bytes=len(audio),
            duration_seconds=result.duration_seconds,
            language=result.language,
        )
        return result

    def get_provider_name(self) -> str:
        return _PROVIDER_NAME

    def is_available(self) -> bool:
        return bool(self._api_key)
