"""``process-text``: chunk, embed and persist a document's extracted text.

Triggered by the ``text/extracted`` continuation event that the extraction
jobs emit once the text artifact is durable.
"""

from __future__ import annotations

from ingestflow.models.document import SourceDocument, SourceKind
from ingestflow.models.events import TEXT_EXTRACTED, Event
from ingestflow.models.status import ProcessingStatus
from ingestflow.pipeline.functions.common import (
    EMBEDDING_STATUS,
    PipelineDeps,
    load_document,
    make_failure_hook,
    set_status,
)
from ingestflow.pipeline.functions.embedding_stage import run_embedding_stage
from ingestflow.pipeline.runtime import JobFunction
from ingestflow.pipeline.steps import StepContext
from ingestflow.services.ingestion.storage_paths import text_artifact_file
from ingestflow.utils.errors import PipelineError

FUNCTION_ID = "process-text"


def create_process_text(
    deps: PipelineDeps,
    concurrency: int = 5,
    retries: int = 3,
) -> JobFunction:
    async def handler(event: Event, step: StepContext) -> dict:
        document_id = event.data.document_id

        async def fetch() -> SourceDocument:
            document = await load_document(deps.store, document_id)
            if document.extraction_status != ProcessingStatus.COMPLETED:
                raise PipelineError(
                    message=(
                        f"Text extraction for {document_id} is "
                        f"{document.extraction_status.value}, not completed"
                    )
                )
            return await set_status(
                deps.store,
                document,
                EMBEDDING_STATUS,
                ProcessingStatus.PROCESSING,
                restart=True,
                error_message=None,
            )

        document = await step.run("fetch-document", fetch, result_type=SourceDocument)

        async def download_text() -> str:
            location = text_artifact_file(document, deps.text_bucket)
            data = await deps.blobs.download(location.bucket, location.path)
            return data.decode("utf-8", errors="replace")

        text = await step.run("download-extracted-text", download_text, result_type=str)

        return await run_embedding_stage(
            deps,
            step,
            document,
            text,
            owner_id=event.data.actor_id or document.owner_id,
            link_segments=document.kind == SourceKind.RESEARCH,
        )

    return JobFunction(
        id=FUNCTION_ID,
        trigger=TEXT_EXTRACTED,
        handler=handler,
        retries=retries,
        concurrency=concurrency,
        on_failure=make_failure_hook(deps, field=EMBEDDING_STATUS),
    )
