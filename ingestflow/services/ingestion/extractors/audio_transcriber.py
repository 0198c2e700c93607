"""Audio source extractor.

Turns one raw audio blob into a transcript by delegating to an
:class:`ITranscriptionProvider` (the Whisper API in production).
"""

from __future__ import annotations

import structlog

from ingestflow.interfaces.transcription_provider import ITranscriptionProvider
from ingestflow.models.extraction import ExtractedText
from ingestflow.utils.errors import ContentError

logger = structlog.get_logger(logger_name=__name__)


class AudioTranscriber:
    """Transcribes lecture recordings and other audio sources."""

    def __init__(
        self,
        provider: ITranscriptionProvider,
        default_language: str = "en",
    ) -> None:
        self._provider = provider
        self._default_language = default_language

    async def extract(
        self,
        audio: bytes,
        filename: str,
        language: str | None = None,
        mime_type: str | None = None,
    ) -> ExtractedText:
        """Transcribe *audio* and return the transcript with its duration.

        Raises
        ------
        ContentError
            If the blob is empty or the provider hears no speech.
        """
        if not audio:
            raise ContentError(
                message=f"Audio file {filename} is empty",
                provider_name=self._provider.get_provider_name(),
            )

        result = await self._provider.transcribe(
            audio,
            filename,
            language=language or self._default_language,
            mime_type=mime_type,
        )
        text = result.text.strip()
        if not text:
            raise ContentError(
                message="No speech detected in the audio file.",
                provider_name=self._provider.get_provider_name(),
            )

        extracted = ExtractedText(
            text=text,
            model=result.model,
            language=result.language,
            duration_seconds=round(result.duration_seconds),
        )
        logger.info(
            "audio_transcribed",
            filename=filename,
            duration_seconds=extracted.duration_seconds,
            word_count=extracted.word_count,
            provider=self._provider.get_provider_name(),
        )
        return extracted
