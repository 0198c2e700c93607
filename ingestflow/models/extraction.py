"""Output of the source extractors."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ExtractedText(BaseModel):
    """Plain text recovered from one raw source plus provenance metadata."""

    model_config = ConfigDict(frozen=True)

    text: str
    model: str
    language: str | None = None
    duration_seconds: int | None = None
    page_count: int | None = None
    title: str | None = None
    author: str | None = None

    @property
    def word_count(self) -> int:
        return len(self.text.split())
