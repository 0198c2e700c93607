"""``process-audio``: transcribe an uploaded recording, then hand off to embedding."""

from __future__ import annotations

from ingestflow.models.document import SourceDocument, SourceKind
from ingestflow.models.events import SOURCE_UPLOADED
from ingestflow.models.extraction import ExtractedText
from ingestflow.pipeline.functions.common import PipelineDeps, make_failure_hook
from ingestflow.pipeline.functions.extraction import extraction_handler
from ingestflow.pipeline.runtime import JobFunction
from ingestflow.services.ingestion.storage_paths import file_extension, filename_without_extension
from ingestflow.utils.errors import ConfigurationError

FUNCTION_ID = "process-audio"


def _upload_filename(document: SourceDocument) -> str:
    """Filename sent to the transcription API; its extension selects the decoder."""
    if document.original_filename:
        return document.original_filename
    name = filename_without_extension(document.file_path)
    extension = file_extension(document.file_path)
    return f"{name}.{extension}" if extension else name


def create_process_audio(
    deps: PipelineDeps,
    concurrency: int = 5,
    retries: int = 3,
) -> JobFunction:
    if deps.transcriber is None:
        raise ConfigurationError(message="process-audio requires an audio transcriber")
    transcriber = deps.transcriber

    async def transcribe(document: SourceDocument, data: bytes) -> ExtractedText:
        return await transcriber.extract(
            data,
            _upload_filename(document),
            language=document.language,
            mime_type=document.mime_type,
        )

    return JobFunction(
        id=FUNCTION_ID,
        trigger=SOURCE_UPLOADED,
        kind=SourceKind.AUDIO,
        handler=extraction_handler(deps, transcribe),
        retries=retries,
        concurrency=concurrency,
        on_failure=make_failure_hook(deps),
    )
