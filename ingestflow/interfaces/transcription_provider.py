"""Abstract base class for audio transcription providers.

Concrete implementations wrap a specific transcription backend behind this
common interface so the audio extraction step does not need to know which
backend is in use.  Providers receive the raw audio bytes rather than a
path: the blob is downloaded and transcribed inside one pipeline step.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field


class TranscriptionResult(BaseModel):
    """Immutable result from an audio transcription."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Full transcribed text.")
    language: str = Field(default="en", description="Detected or specified language code.")
    duration_seconds: float = Field(default=0.0, description="Audio duration in seconds.")
    model: str = Field(default="", description="Model identifier that produced the text.")


class ITranscriptionProvider(ABC):
    """Contract for audio transcription backends."""

    @abstractmethod
    async def transcribe(
        self,
        audio: bytes,
        filename: str,
        language: str | None = None,
        mime_type: str | None = None,
    ) -> TranscriptionResult:
        """Transcribe audio bytes to text.

        Parameters
        ----------
        audio:
            Raw audio file content.
        filename:
            Original filename; backends use its extension to detect format.
        language:
            Optional ISO 639-1 language code (e.g. "en", "de").
        mime_type:
            Optional content type of *audio*.

        Returns
        -------
        TranscriptionResult
            The transcription with full text, language and duration.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable name for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the provider is ready to accept transcription requests."""
