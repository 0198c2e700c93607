"""``process-research-source``: flatten a JSON research report and embed it.

Flattening is cheap and deterministic, so the report goes through
extraction and the embedding stage in a single run instead of hopping
through a continuation event.  Segments are additionally tagged with the
report's subject and category.
"""

from __future__ import annotations

from ingestflow.models.document import SourceDocument
from ingestflow.models.events import RESEARCH_SOURCE_CREATED, Event
from ingestflow.models.extraction import ExtractedText
from ingestflow.models.status import ProcessingStatus
from ingestflow.pipeline.functions.common import (
    EMBEDDING_STATUS,
    PipelineDeps,
    load_document,
    make_failure_hook,
    set_status,
)
from ingestflow.pipeline.functions.embedding_stage import run_embedding_stage
from ingestflow.pipeline.functions.extraction import fetch_for_extraction, persist_extracted_text
from ingestflow.pipeline.runtime import JobFunction
from ingestflow.pipeline.steps import StepContext
from ingestflow.utils.errors import ConfigurationError, PipelineError

FUNCTION_ID = "process-research-source"

FLATTENER_MODEL = "json-flattener"


def create_process_research_source(
    deps: PipelineDeps,
    concurrency: int = 5,
    retries: int = 3,
) -> JobFunction:
    if deps.flattener is None:
        raise ConfigurationError(message="process-research-source requires a record flattener")
    flattener = deps.flattener

    async def handler(event: Event, step: StepContext) -> dict:
        document_id = event.data.document_id

        document = await step.run(
            "fetch-document",
            lambda: fetch_for_extraction(deps, document_id),
            result_type=SourceDocument,
        )

        async def download_and_flatten() -> ExtractedText:
            data = await deps.blobs.download(document.storage_bucket, document.file_path)
            text = flattener.flatten(data, subject=document.subject, category=document.category)
            return ExtractedText(text=text, model=FLATTENER_MODEL)

        extracted = await step.run(
            "download-and-flatten",
            download_and_flatten,
            result_type=ExtractedText,
        )

        async def resolve_owner() -> str:
            if event.data.actor_id:
                return event.data.actor_id
            if document.batch_id:
                batch = await deps.store.get_research_batch(document.batch_id)
                if batch is not None and batch.owner_id:
                    return batch.owner_id
            if document.owner_id:
                return document.owner_id
            raise PipelineError(
                message=(
                    f"Could not resolve an owner for research document {document_id}: "
                    "no actor on the event, batch owner, or document owner"
                )
            )

        owner_id = await step.run("resolve-owner", resolve_owner, result_type=str)

        async def persist() -> str:
            path = await persist_extracted_text(deps, document, extracted)
            current = await load_document(deps.store, document_id)
            await set_status(
                deps.store,
                current,
                EMBEDDING_STATUS,
                ProcessingStatus.PROCESSING,
                restart=True,
            )
            return path

        await step.run("persist-extracted-text", persist, result_type=str)

        return await run_embedding_stage(
            deps,
            step,
            document,
            extracted.text,
            owner_id=owner_id,
            link_segments=True,
        )

    return JobFunction(
        id=FUNCTION_ID,
        trigger=RESEARCH_SOURCE_CREATED,
        handler=handler,
        retries=retries,
        concurrency=concurrency,
        on_failure=make_failure_hook(deps),
    )
