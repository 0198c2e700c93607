"""Unit tests for the ingestion CLI - ingestflow.cli.ingest."""

from __future__ import annotations

import json
from argparse import Namespace
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import fitz
import pytest
import pytest_asyncio

from ingestflow.cli.ingest import (
    _build_parser,
    _handle_pdf,
    _handle_research,
    _handle_retry,
    _handle_search,
    _handle_status,
    _run,
    _trigger_for,
    main,
)
from ingestflow.config.settings import Settings
from ingestflow.main import build_pipeline, initialize_stores
from ingestflow.models.document import SourceKind
from ingestflow.models.events import (
    RESEARCH_SOURCE_CREATED,
    SOURCE_UPLOADED,
    TEXT_EXTRACTED,
    Event,
    EventData,
)
from ingestflow.models.status import ProcessingStatus
from ingestflow.pipeline.runtime import run_id_for
from tests.conftest import FakeEmbeddingProvider, FakeTranscriptionProvider, make_document

# ======================================================================
# Shared helpers
# ======================================================================


def _settings(tmp_path: Path) -> Settings:
    return Settings(
        openai_api_key="",
        storage_backend="local",
        blob_root=str(tmp_path / "blobs"),
        database_path=str(tmp_path / "cli.db"),
        retry_backoff_seconds=0,
        app_env="test",
    )


@pytest_asyncio.fixture
async def components(tmp_path: Path) -> dict:
    built = build_pipeline(
        _settings(tmp_path),
        embedding_provider=FakeEmbeddingProvider(),
        transcription_provider=FakeTranscriptionProvider(),
        http_client=MagicMock(),
    )
    await initialize_stores(built)
    return built


def _pdf_file(tmp_path: Path, text: str) -> Path:
    doc = fitz.open()
    page = doc.new_page()
    if text:
        page.insert_text((72, 72), text)
    path = tmp_path / "notes.pdf"
    doc.save(str(path))
    doc.close()
    return path


# ======================================================================
# Parser
# ======================================================================


class TestParser:
    def test_audio_arguments(self) -> None:
        args = _build_parser().parse_args(
            ["audio", "--file", "a.mp3", "--owner", "u1", "--language", "de"]
        )
        assert args.command == "audio"
        assert args.collection == "default"
        assert args.language == "de"

    def test_search_defaults(self) -> None:
        args = _build_parser().parse_args(["search", "--owner", "u1", "--query", "cells"])
        assert args.limit == 10
        assert args.threshold == pytest.approx(0.3)
        assert args.collection is None

    def test_no_command_exits_with_help(self) -> None:
        with patch("sys.argv", ["ingest"]), pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1


class TestTriggerFor:
    def test_picks_first_unfinished_stage(self) -> None:
        assert _trigger_for(make_document(SourceKind.PDF)) == SOURCE_UPLOADED
        extracted = make_document(SourceKind.AUDIO, extraction_status=ProcessingStatus.COMPLETED)
        assert _trigger_for(extracted) == TEXT_EXTRACTED
        assert _trigger_for(make_document(SourceKind.RESEARCH)) == RESEARCH_SOURCE_CREATED


# ======================================================================
# Handlers
# ======================================================================


class TestHandlers:
    @pytest.mark.asyncio
    async def test_pdf_ingestion_completes(
        self, tmp_path: Path, components: dict, capsys: pytest.CaptureFixture
    ) -> None:
        path = _pdf_file(tmp_path, "Cells divide by mitosis.")
        args = Namespace(file=str(path), owner="u1", collection="bio")

        exit_code = await _handle_pdf(args, components)

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "process-pdf" in out and "process-text" in out
        assert "Embedding:       completed" in out
        segments = await components["store"].list_segments(owner_id="u1", collection_id="bio")
        assert len(segments) == 1

    @pytest.mark.asyncio
    async def test_scanned_pdf_reports_failure(self, tmp_path: Path, components: dict) -> None:
        args = Namespace(file=str(_pdf_file(tmp_path, "")), owner="u1", collection="bio")
        assert await _handle_pdf(args, components) == 1

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path: Path, components: dict) -> None:
        args = Namespace(file=str(tmp_path / "nope.pdf"), owner="u1", collection="bio")
        assert await _handle_pdf(args, components) == 1

    @pytest.mark.asyncio
    async def test_research_creates_batch(self, tmp_path: Path, components: dict) -> None:
        path = tmp_path / "report.json"
        path.write_text(json.dumps({"summary": "Plants convert light.", "score": 4}))
        args = Namespace(
            file=str(path),
            owner="u1",
            collection="bio",
            subject="Photosynthesis",
            category="summary",
            batch="batch-1",
        )

        assert await _handle_research(args, components) == 0
        batch = await components["store"].get_research_batch("batch-1")
        assert batch.owner_id == "u1"

    @pytest.mark.asyncio
    async def test_status_and_retry_unknown_document(self, components: dict) -> None:
        assert await _handle_status(Namespace(document="missing"), components) == 1
        assert await _handle_retry(Namespace(document="missing"), components) == 1

    @pytest.mark.asyncio
    async def test_retry_failed_document(
        self, tmp_path: Path, components: dict, capsys: pytest.CaptureFixture
    ) -> None:
        store = components["store"]
        document = make_document(SourceKind.PDF, storage_bucket="documents")
        await store.insert_document(document)
        await store.update_document(
            document.id,
            {"extraction_status": ProcessingStatus.FAILED, "error_message": "earlier"},
        )
        pdf = _pdf_file(tmp_path, "Recovered text.")
        await components["blobs"].upload("documents", document.file_path, pdf.read_bytes())

        assert await _handle_retry(Namespace(document=document.id), components) == 0

        reloaded = await store.get_document(document.id)
        assert reloaded.extraction_status == ProcessingStatus.COMPLETED
        assert reloaded.embedding_status == ProcessingStatus.COMPLETED
        assert reloaded.error_message is None
        assert "via 'source/uploaded'" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_search_prints_matches(
        self, tmp_path: Path, components: dict, capsys: pytest.CaptureFixture
    ) -> None:
        text = "Chlorophyll absorbs light."
        await _handle_pdf(
            Namespace(file=str(_pdf_file(tmp_path, text)), owner="u1", collection="bio"),
            components,
        )
        capsys.readouterr()
        args = Namespace(owner="u1", query=text, collection=None, limit=5, threshold=0.0)

        assert await _handle_search(args, components) == 0
        assert "Chlorophyll" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_progress_printed_while_draining(
        self, tmp_path: Path, components: dict, capsys: pytest.CaptureFixture
    ) -> None:
        path = _pdf_file(tmp_path, "Cells divide by mitosis.")

        await _handle_pdf(Namespace(file=str(path), owner="u1", collection="bio"), components)

        out = capsys.readouterr().out
        assert "  [extracting]\n" in out
        assert "  [chunking] 0/1 segments" in out
        assert "  [completed] 1/1 segments" in out
        assert not any(components["tracker"]._listeners.values())


# ======================================================================
# Worker start-up
# ======================================================================


class TestRun:
    @pytest.mark.asyncio
    async def test_interrupted_runs_finish_on_next_ingest(
        self, tmp_path: Path, components: dict, capsys: pytest.CaptureFixture
    ) -> None:
        store = components["store"]
        stranded = make_document(SourceKind.PDF, storage_bucket="documents")
        await store.insert_document(stranded)
        pdf = _pdf_file(tmp_path, "Stranded upload.")
        await components["blobs"].upload("documents", stranded.file_path, pdf.read_bytes())
        event = Event(
            name=SOURCE_UPLOADED,
            data=EventData(document_id=stranded.id, kind=SourceKind.PDF),
        )
        process_pdf = components["runtime"].get_function("process-pdf")
        await components["step_store"].start_run(
            run_id_for(process_pdf, event), process_pdf.id, event
        )
        components["http_client"] = AsyncMock()

        fresh = tmp_path / "fresh.pdf"
        fresh.write_bytes(pdf.read_bytes())
        args = Namespace(command="pdf", file=str(fresh), owner="u1", collection="bio")
        with patch("ingestflow.cli.ingest.build_pipeline", return_value=components):
            exit_code = await _run(args, _settings(tmp_path))

        assert exit_code == 0
        assert "Resuming 1 interrupted run(s)" in capsys.readouterr().out
        reloaded = await store.get_document(stranded.id)
        assert reloaded.extraction_status == ProcessingStatus.COMPLETED
        assert reloaded.embedding_status == ProcessingStatus.COMPLETED
        components["http_client"].aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_status_command_does_not_resume(self, tmp_path: Path, components: dict) -> None:
        components["http_client"] = AsyncMock()
        components["runtime"].resume_incomplete = AsyncMock(return_value=0)

        with patch("ingestflow.cli.ingest.build_pipeline", return_value=components):
            await _run(Namespace(command="status", document="missing"), _settings(tmp_path))

        components["runtime"].resume_incomplete.assert_not_awaited()
