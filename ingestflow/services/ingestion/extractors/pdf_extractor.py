"""PDF source extractor.

Reads PDF bytes using PyMuPDF (fitz) and extracts the text layer page by
page.  Scanned PDFs without a text layer are rejected: OCR is not part of
this pipeline.
"""

from __future__ import annotations

import asyncio

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from ingestflow.models.extraction import ExtractedText
from ingestflow.utils.errors import ContentError

logger = structlog.get_logger(logger_name=__name__)

PDF_EXTRACTION_MODEL = "pymupdf"

NO_TEXT_MESSAGE = "No text content found in PDF. The PDF may be scanned or image-based."


class PDFExtractor:
    """Extracts plain text and light metadata from PDF documents."""

    async def extract(self, data: bytes, filename: str = "document.pdf") -> ExtractedText:
        """Return the text of every page joined by blank lines.

        Parsing runs in a worker thread; PyMuPDF is synchronous.

        Raises
        ------
        ContentError
            If the bytes are not a readable PDF or contain no text layer.
        """
        if not data:
            raise ContentError(message=f"PDF file {filename} is empty")
        return await asyncio.to_thread(self._extract_sync, data, filename)

    def _extract_sync(self, data: bytes, filename: str) -> ExtractedText:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:  # noqa: BLE001
            logger.error("pdf_open_failed", filename=filename, error=str(exc))
            raise ContentError(message=f"Could not open PDF {filename}: {exc}") from exc

        try:
            page_texts = [doc[i].get_text("text").strip() for i in range(len(doc))]
            page_count = len(doc)
            title, author = self._read_metadata(doc)
        finally:
            doc.close()

        text = "\n\n".join(t for t in page_texts if t)
        if not text.strip():
            logger.warning("pdf_no_text_extracted", filename=filename, pages=page_count)
            raise ContentError(message=NO_TEXT_MESSAGE)

        extracted = ExtractedText(
            text=text,
            model=PDF_EXTRACTION_MODEL,
            page_count=page_count,
            title=title,
            author=author,
        )
        logger.info(
            "pdf_extracted",
            filename=filename,
            pages=page_count,
            word_count=extracted.word_count,
        )
        return extracted

    @staticmethod
    def _read_metadata(doc: fitz.Document) -> tuple[str | None, str | None]:
        """Return ``(title, author)``; either is ``None`` when absent or unreadable."""
        try:
            metadata = doc.metadata or {}
        except (RuntimeError, ValueError) as exc:
            logger.debug("pdf_metadata_unavailable", error=str(exc))
            return None, None
        title = (metadata.get("title") or "").strip() or None
        author = (metadata.get("author") or "").strip() or None
        return title, author
