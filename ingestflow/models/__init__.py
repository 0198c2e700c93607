"""ingestflow domain models - re-exports all public model classes.

Submodules by concern:
    - document.py - SourceDocument, SourceKind, ResearchBatch
    - events.py   - pipeline events and job-run log entries
    - extraction.py - ExtractedText (extractor output)
    - segment.py  - TextChunk, Segment, SegmentLink, SegmentParent
    - status.py   - ProcessingStatus, its transition rules, IngestionStage
"""

from __future__ import annotations

from ingestflow.models.document import ResearchBatch, SourceDocument, SourceKind
from ingestflow.models.events import (
    RESEARCH_SOURCE_CREATED,
    SOURCE_UPLOADED,
    TEXT_EXTRACTED,
    Event,
    EventData,
    JobRun,
    RunStatus,
)
from ingestflow.models.extraction import ExtractedText
from ingestflow.models.segment import Segment, SegmentLink, SegmentParent, TextChunk
from ingestflow.models.status import (
    IngestionStage,
    ProcessingStatus,
    can_transition,
    check_transition,
)

__all__ = [
    "Event",
    "EventData",
    "ExtractedText",
    "IngestionStage",
    "JobRun",
    "ProcessingStatus",
    "RESEARCH_SOURCE_CREATED",
    "ResearchBatch",
    "RunStatus",
    "SOURCE_UPLOADED",
    "Segment",
    "SegmentLink",
    "SegmentParent",
    "SourceDocument",
    "SourceKind",
    "TEXT_EXTRACTED",
    "TextChunk",
    "can_transition",
    "check_transition",
]
