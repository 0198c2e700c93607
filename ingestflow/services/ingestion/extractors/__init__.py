"""Source extractors: each turns one raw source into plain text."""

from ingestflow.services.ingestion.extractors.audio_transcriber import AudioTranscriber
from ingestflow.services.ingestion.extractors.pdf_extractor import PDFExtractor
from ingestflow.services.ingestion.extractors.record_flattener import RecordFlattener

__all__ = ["AudioTranscriber", "PDFExtractor", "RecordFlattener"]
