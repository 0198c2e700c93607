"""Unit tests for storage path helpers."""

from __future__ import annotations

import pytest

from ingestflow.models.document import SourceKind
from ingestflow.services.ingestion.storage_paths import (
    BlobLocation,
    build_storage_path,
    file_extension,
    filename_without_extension,
    original_file,
    text_artifact_file,
    text_artifact_path,
)
from tests.conftest import make_document


class TestTextArtifactPath:
    @pytest.mark.parametrize(
        ("file_path", "expected"),
        [
            ("user_1/class_2/abc.mp3", "user_1/class_2/abc.txt"),
            ("user_1/v1.2/report.final.json", "user_1/v1.2/report.final.txt"),
            ("user_1/notes", "user_1/notes.txt"),
            ("user_1/v1.2/notes", "user_1/v1.2/notes.txt"),
        ],
    )
    def test_swaps_only_the_last_extension(self, file_path: str, expected: str) -> None:
        assert text_artifact_path(file_path) == expected

    def test_locations_from_document(self) -> None:
        document = make_document(SourceKind.AUDIO, document_id="abc")
        assert original_file(document) == BlobLocation("audio", "user_1/class_2/abc.mp3")
        assert text_artifact_file(document) == BlobLocation("transcripts", "user_1/class_2/abc.txt")
        assert text_artifact_file(document, "texts").bucket == "texts"


class TestFilenameHelpers:
    def test_filename_without_extension(self) -> None:
        assert filename_without_extension("a/b/lecture.week1.mp3") == "lecture.week1"
        assert filename_without_extension("README") == "README"

    def test_file_extension(self) -> None:
        assert file_extension("a/b/lecture.MP3") == "MP3"
        assert file_extension("a/b.c/README") == ""

    def test_build_storage_path(self) -> None:
        assert build_storage_path("u", "c", "Lecture 1.m4a", "doc") == "u/c/doc.m4a"
        assert build_storage_path("u", "c", "noext", "doc") == "u/c/doc"
