# =============================================================================
# ingestflow/cli/ingest.py - CLI Ingest Command (Source Ingestion Worker)
# =============================================================================
#
# Standalone CLI for pushing source material through the ingestion pipeline
# on a single host.  It plays the role of the upload collaborator: it writes
# the pending document row, stores the original file in the blob store,
# emits the trigger event, and then drains the job runtime until every
# follow-up run (extraction -> embedding) has finished.
#
# Supported subcommands:
#
#   audio     - Upload and transcribe a lecture recording
#   pdf       - Upload a PDF and extract its text layer
#   research  - Upload a JSON research report (optionally into a batch)
#   retry     - Re-trigger processing for a failed document
#   status    - Show a document's extraction/embedding status
#   search    - Similarity search over an owner's stored segments
#
# Each ingest command runs these job functions, in order:
#   1. process-audio / process-pdf / process-research-source (extraction)
#   2. process-text (chunk -> embed -> persist segments); research reports
#      run this stage inside the same job
#
# Usage examples:
#   python -m ingestflow.cli.ingest audio --file lecture.mp3 \
#       --owner user_1 --collection class_2
#   python -m ingestflow.cli.ingest pdf --file notes.pdf --owner user_1
#   python -m ingestflow.cli.ingest research --file report.json --owner user_1 \
#       --subject "Cell biology" --category "summary" --batch batch_7
#   python -m ingestflow.cli.ingest retry --document <id>
#   python -m ingestflow.cli.ingest search --owner user_1 --query "mitosis"
# =============================================================================

"""Standalone CLI for running the ingestflow pipeline locally.

Usage::

    python -m ingestflow.cli.ingest audio --file lecture.mp3 --owner user_1

    python -m ingestflow.cli.ingest pdf --file notes.pdf --owner user_1

    python -m ingestflow.cli.ingest status --document <id>

No extra dependencies beyond the core project requirements.
"""

from __future__ import annotations

import argparse
import asyncio
import mimetypes
import sys
import uuid
from pathlib import Path
from typing import Any

from ingestflow.config.settings import Settings
from ingestflow.main import build_pipeline, initialize_stores
from ingestflow.models.document import ResearchBatch, SourceDocument, SourceKind
from ingestflow.models.events import (
    RESEARCH_SOURCE_CREATED,
    SOURCE_UPLOADED,
    TEXT_EXTRACTED,
    Event,
    EventData,
)
from ingestflow.models.status import IngestionStage, ProcessingStatus
from ingestflow.services.ingestion.storage_paths import build_storage_path
from ingestflow.utils.errors import IngestFlowError
from ingestflow.utils.logging import configure_logging

# Bucket that receives original uploads of each kind.
_SOURCE_BUCKETS = {
    SourceKind.AUDIO: "audio",
    SourceKind.PDF: "documents",
    SourceKind.RESEARCH: "research",
}

_DEFAULT_COLLECTION = "default"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _trigger_for(document: SourceDocument) -> str:
    """Pick the event that restarts *document* from its first unfinished stage."""
    if document.kind == SourceKind.RESEARCH:
        return RESEARCH_SOURCE_CREATED
    if document.extraction_status == ProcessingStatus.COMPLETED:
        return TEXT_EXTRACTED
    return SOURCE_UPLOADED


def _print_document(document: SourceDocument) -> None:
    print(f"  Document:        {document.id}")
    print(f"  Kind:            {document.kind.value}")
    print(f"  Extraction:      {document.extraction_status.value}")
    print(f"  Embedding:       {document.embedding_status.value}")
    print(f"  Segments:        {document.processed_segments}/{document.total_segments}")
    if document.word_count is not None:
        print(f"  Words:           {document.word_count}")
    if document.duration_seconds is not None:
        print(f"  Duration:        {document.duration_seconds}s")
    if document.page_count is not None:
        print(f"  Pages:           {document.page_count}")
    if document.title:
        print(f"  Title:           {document.title}")
    if document.error_message:
        print(f"  Error:           {document.error_message}")


def _print_progress(
    document_id: str, stage: IngestionStage, processed: int, total: int
) -> None:
    """Progress listener: one line per stage update of the ingested document."""
    line = f"  [{stage.value}]"
    if total:
        line += f" {processed}/{total} segments"
    print(line)


async def _drain(components: dict[str, Any], document_id: str) -> int:
    """Run the pipeline to completion and report the document's final state."""
    tracker = components["tracker"]
    tracker.register_listener(document_id, _print_progress)
    try:
        runs = await components["runtime"].run_until_idle()
    finally:
        tracker.unregister_listener(document_id, _print_progress)

    for run in runs:
        line = f"  {run.function_id:<26} {run.status.value}"
        if run.error:
            line += f" ({run.error})"
        print(line)

    document = await components["store"].get_document(document_id)
    if document is None:
        print(f"Error: document {document_id} not found", file=sys.stderr)
        return 1

    print("\nIngestion finished:")
    _print_document(document)
    failed = ProcessingStatus.FAILED in (document.extraction_status, document.embedding_status)
    return 1 if failed else 0


async def _ingest_file(
    args: argparse.Namespace,
    components: dict[str, Any],
    kind: SourceKind,
    trigger: str,
    **document_fields: Any,
) -> int:
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    document_id = str(uuid.uuid4())
    bucket = _SOURCE_BUCKETS[kind]
    storage_path = build_storage_path(args.owner, args.collection, path.name, document_id)
    mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"

    print(f"Ingesting {kind.value}: {path}")
    print(f"  Stored as: {bucket}/{storage_path}")

    await components["blobs"].upload(bucket, storage_path, path.read_bytes(), mime_type)
    document = SourceDocument(
        id=document_id,
        owner_id=args.owner,
        collection_id=args.collection,
        kind=kind,
        storage_bucket=bucket,
        file_path=storage_path,
        original_filename=path.name,
        mime_type=mime_type,
        **document_fields,
    )
    await components["store"].insert_document(document)
    await components["runtime"].send(
        Event(
            name=trigger,
            data=EventData(document_id=document_id, kind=kind, actor_id=args.owner),
        )
    )
    return await _drain(components, document_id)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_audio(args: argparse.Namespace, components: dict[str, Any]) -> int:
    return await _ingest_file(
        args, components, SourceKind.AUDIO, SOURCE_UPLOADED, language=args.language
    )


async def _handle_pdf(args: argparse.Namespace, components: dict[str, Any]) -> int:
    return await _ingest_file(args, components, SourceKind.PDF, SOURCE_UPLOADED)


async def _handle_research(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Register the research batch (if any) before handing over the report."""
    if args.batch:
        store = components["store"]
        if await store.get_research_batch(args.batch) is None:
            await store.insert_research_batch(
                ResearchBatch(id=args.batch, owner_id=args.owner, status="processing")
            )
    return await _ingest_file(
        args,
        components,
        SourceKind.RESEARCH,
        RESEARCH_SOURCE_CREATED,
        batch_id=args.batch,
        subject=args.subject,
        category=args.category,
    )


async def _handle_retry(args: argparse.Namespace, components: dict[str, Any]) -> int:
    document = await components["store"].get_document(args.document)
    if document is None:
        print(f"Error: document {args.document} not found", file=sys.stderr)
        return 1

    trigger = _trigger_for(document)
    print(f"Retrying {document.id} via '{trigger}'")
    # A fresh event id starts a new run; the step log of the failed run is kept.
    await components["runtime"].send(
        Event(
            name=trigger,
            data=EventData(document_id=document.id, kind=document.kind, actor_id=document.owner_id),
        )
    )
    return await _drain(components, document.id)


async def _handle_status(args: argparse.Namespace, components: dict[str, Any]) -> int:
    document = await components["store"].get_document(args.document)
    if document is None:
        print(f"Error: document {args.document} not found", file=sys.stderr)
        return 1
    print("Document status")
    print("=" * 40)
    _print_document(document)
    return 0


async def _handle_search(args: argparse.Namespace, components: dict[str, Any]) -> int:
    results = await components["search"].search(
        args.query,
        owner_id=args.owner,
        collection_id=args.collection,
        limit=args.limit,
        threshold=args.threshold,
    )
    if not results:
        print("No matching segments.")
        return 0

    print(f"Top {len(results)} segments for: {args.query!r}")
    print("=" * 40)
    for result in results:
        preview = " ".join(result.content.split())[:160]
        print(f"  [{result.similarity:.3f}] {result.document_id}#{result.segment_index}")
        print(f"      {preview}")
    return 0


_HANDLERS = {
    "audio": _handle_audio,
    "pdf": _handle_pdf,
    "research": _handle_research,
    "retry": _handle_retry,
    "status": _handle_status,
    "search": _handle_search,
}

# Commands that drain the runtime, and so also finish runs interrupted by a
# previous worker.
_WORKER_COMMANDS = frozenset({"audio", "pdf", "research", "retry"})


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    components = build_pipeline(app_settings)
    try:
        await initialize_stores(components)
        if args.command in _WORKER_COMMANDS:
            resumed = await components["runtime"].resume_incomplete()
            if resumed:
                print(f"Resuming {resumed} interrupted run(s)")
        return await _HANDLERS[args.command](args, components)
    except IngestFlowError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await components["http_client"].aclose()


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _add_upload_arguments(parser: argparse.ArgumentParser, help_text: str) -> None:
    parser.add_argument("--file", required=True, help=help_text)
    parser.add_argument("--owner", required=True, help="Owning user id")
    parser.add_argument(
        "--collection",
        default=_DEFAULT_COLLECTION,
        help=f"Collection id (default: {_DEFAULT_COLLECTION})",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m ingestflow.cli.ingest",
        description="Run audio, PDF and research sources through the ingestion pipeline.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Ingestion commands")

    # -- audio --
    audio_parser = subparsers.add_parser("audio", help="Transcribe and embed a recording")
    _add_upload_arguments(audio_parser, "Path to the audio file")
    audio_parser.add_argument(
        "--language",
        default=None,
        help="ISO-639-1 language hint (default: the DEFAULT_TRANSCRIPTION_LANGUAGE setting)",
    )

    # -- pdf --
    pdf_parser = subparsers.add_parser("pdf", help="Extract and embed a PDF")
    _add_upload_arguments(pdf_parser, "Path to the PDF file")

    # -- research --
    research_parser = subparsers.add_parser("research", help="Flatten and embed a JSON report")
    _add_upload_arguments(research_parser, "Path to the JSON report")
    research_parser.add_argument("--subject", default=None, help="Report subject")
    research_parser.add_argument("--category", default=None, help="Report category")
    research_parser.add_argument("--batch", default=None, help="Research batch id")

    # -- retry --
    retry_parser = subparsers.add_parser("retry", help="Re-trigger a failed document")
    retry_parser.add_argument("--document", required=True, help="Document id")

    # -- status --
    status_parser = subparsers.add_parser("status", help="Show a document's status")
    status_parser.add_argument("--document", required=True, help="Document id")

    # -- search --
    search_parser = subparsers.add_parser("search", help="Search stored segments")
    search_parser.add_argument("--owner", required=True, help="Owning user id")
    search_parser.add_argument("--query", required=True, help="Free-text query")
    search_parser.add_argument("--collection", default=None, help="Restrict to a collection")
    search_parser.add_argument("--limit", type=int, default=10, help="Max results (default: 10)")
    search_parser.add_argument(
        "--threshold",
        type=float,
        default=0.3,
        help="Minimum cosine similarity (default: 0.3)",
    )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """CLI entry point for the ingestion tool.

    Parses the subcommand and arguments, initializes the Settings from
    environment variables / .env file, and dispatches to the matching
    handler inside a single event loop.
    """
    parser = _build_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(app_settings.log_level, app_env=app_settings.app_env)

    exit_code = asyncio.run(_run(args, app_settings))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
