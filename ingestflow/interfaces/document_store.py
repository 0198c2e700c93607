"""Abstract base class for the relational entity store.

The pipeline reads documents, patches their fields, and appends segment and
link rows.  It never deletes anything; removing a document and cascading to
its segments is the store owner's concern.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ingestflow.models.document import ResearchBatch, SourceDocument
from ingestflow.models.segment import Segment, SegmentLink


class IDocumentStore(ABC):
    """Contract for document, segment and research-batch persistence."""

    @abstractmethod
    async def get_document(self, document_id: str) -> SourceDocument | None:
        """Return the document, or ``None`` if it does not exist."""

    @abstractmethod
    async def insert_document(self, document: SourceDocument) -> None:
        """Create a document row (used by upload collaborators and the CLI)."""

    @abstractmethod
    async def update_document(self, document_id: str, fields: dict[str, Any]) -> None:
        """Patch *fields* on the document.

        Raises
        ------
        ingestflow.utils.errors.DocumentNotFoundError
            If the document does not exist.
        """

    @abstractmethod
    async def insert_segments(self, segments: list[Segment]) -> list[str]:
        """Insert segment rows, returning their ids in input order.

        Rows whose id already exists are left untouched, so replaying an
        insert is harmless.
        """

    @abstractmethod
    async def insert_segment_links(self, links: list[SegmentLink]) -> None:
        """Insert research tag rows; existing (document, segment) pairs are kept."""

    @abstractmethod
    async def list_segments(
        self,
        owner_id: str | None = None,
        collection_id: str | None = None,
        document_id: str | None = None,
    ) -> list[Segment]:
        """Return segments matching the filters, ordered by document then index."""

    @abstractmethod
    async def get_research_batch(self, batch_id: str) -> ResearchBatch | None:
        """Return the research batch, or ``None`` if it does not exist."""

    @abstractmethod
    async def insert_research_batch(self, batch: ResearchBatch) -> None:
        """Create a research batch row."""

    @abstractmethod
    async def update_research_batch(self, batch_id: str, fields: dict[str, Any]) -> None:
        """Patch *fields* on the research batch."""
