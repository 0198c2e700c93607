"""``process-pdf``: extract a PDF's text layer, then hand off to embedding."""

from __future__ import annotations

from ingestflow.models.document import SourceDocument, SourceKind
from ingestflow.models.events import SOURCE_UPLOADED
from ingestflow.models.extraction import ExtractedText
from ingestflow.pipeline.functions.common import PipelineDeps, make_failure_hook
from ingestflow.pipeline.functions.extraction import extraction_handler
from ingestflow.pipeline.runtime import JobFunction
from ingestflow.utils.errors import ConfigurationError

FUNCTION_ID = "process-pdf"


def create_process_pdf(
    deps: PipelineDeps,
    concurrency: int = 10,
    retries: int = 3,
) -> JobFunction:
    if deps.pdf_extractor is None:
        raise ConfigurationError(message="process-pdf requires a PDF extractor")
    extractor = deps.pdf_extractor

    async def extract(document: SourceDocument, data: bytes) -> ExtractedText:
        return await extractor.extract(data, document.original_filename or document.file_path)

    return JobFunction(
        id=FUNCTION_ID,
        trigger=SOURCE_UPLOADED,
        kind=SourceKind.PDF,
        handler=extraction_handler(deps, extract),
        retries=retries,
        concurrency=concurrency,
        on_failure=make_failure_hook(deps),
    )
