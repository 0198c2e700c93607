"""Chunk and segment models.

:class:`TextChunk` is the transient unit produced by the chunker and submitted
for embedding.  :class:`Segment` is its persisted form: the chunk plus its
embedding vector, permanently linked to the parent document.  For research
reports a :class:`SegmentLink` additionally tags each segment with a
subject/category label; the vector stays on the segment row.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TextChunk(BaseModel):
    """One contiguous span of extracted text.

    ``content == source_text[char_start:char_end]``; chunks from one document
    carry contiguous ``segment_index`` values starting at 0.
    """

    model_config = ConfigDict(frozen=True)

    content: str = Field(min_length=1)
    segment_index: int = Field(ge=0)
    char_start: int = Field(ge=0)
    char_end: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_span(self) -> TextChunk:
        if self.char_end - self.char_start != len(self.content):
            msg = (
                f"char span {self.char_start}:{self.char_end} does not match "
                f"content length {len(self.content)}"
            )
            raise ValueError(msg)
        return self

    @property
    def word_count(self) -> int:
        return len(self.content.split())


class SegmentParent(BaseModel):
    """Ownership fields copied onto every segment of one document."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    owner_id: str | None = None
    collection_id: str | None = None


class Segment(BaseModel):
    """A persisted chunk + embedding row.

    ``embedding`` holds the storage literal (``[0.1,0.2,...]``) exactly as
    written; use :func:`ingestflow.utils.vectors.parse_vector` to read it.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    owner_id: str | None = None
    collection_id: str | None = None
    content: str
    embedding: str
    segment_index: int
    char_start: int
    char_end: int
    embedding_model: str


class SegmentLink(BaseModel):
    """Tags a research segment with the report's subject and category."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    segment_id: str
    subject: str | None = None
    category: str | None = None
