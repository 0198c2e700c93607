"""Source document and research batch models.

A :class:`SourceDocument` is one uploaded or generated artifact awaiting
processing: a lecture recording, a PDF, or a JSON research report.  It is
created in ``pending`` by the upload collaborator and mutated exclusively by
pipeline steps.  The core never deletes it.

A :class:`ResearchBatch` is the coarser-grained tracking entity that groups
research reports produced by one research run.  The pipeline only writes to
it when a failure is known to affect every sibling document (provider quota).
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ingestflow.models.status import ProcessingStatus


class SourceKind(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Which extractor turns the raw blob into text."""

    AUDIO = "audio"
    PDF = "pdf"
    RESEARCH = "research"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class SourceDocument(BaseModel):
    """One artifact moving through extraction and embedding.

    Invariant: ``embedding_status`` only leaves ``pending`` once
    ``extraction_status`` is ``completed``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str | None = None
    collection_id: str | None = Field(
        default=None, description="Grouping the owner filed this under (e.g. a class)."
    )
    kind: SourceKind
    storage_bucket: str
    file_path: str
    original_filename: str | None = None
    mime_type: str | None = None
    language: str | None = None

    extraction_status: ProcessingStatus = ProcessingStatus.PENDING
    embedding_status: ProcessingStatus = ProcessingStatus.PENDING

    extraction_model: str | None = None
    extracted_text: str | None = None
    word_count: int | None = None
    duration_seconds: int | None = None
    page_count: int | None = None
    title: str | None = None
    author: str | None = None

    total_segments: int = 0
    processed_segments: int = 0
    error_message: str | None = None

    # Research-report fields.
    batch_id: str | None = None
    subject: str | None = None
    category: str | None = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class ResearchBatch(BaseModel):
    """A research run whose reports are vectorized as sibling documents."""

    model_config = ConfigDict(frozen=True)

    id: str
    owner_id: str | None = None
    status: str = "pending"
    error_message: str | None = None
