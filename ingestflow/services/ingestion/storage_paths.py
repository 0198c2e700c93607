"""Storage path helpers shared by uploaders and the pipeline.

Original files stay in their own bucket.  Extracted text lives in the text
bucket at the original path with its extension swapped for ``.txt``, so the
artifact can always be located from the document row alone::

    user_1/class_2/abc.mp3  ->  transcripts / user_1/class_2/abc.txt
"""

from __future__ import annotations

import re
from typing import NamedTuple

from ingestflow.models.document import SourceDocument

DEFAULT_TEXT_BUCKET = "transcripts"

# Only the last path component's extension; dots in directory names are kept.
_EXTENSION_RE = re.compile(r"\.([^./]+)$")


class BlobLocation(NamedTuple):
    bucket: str
    path: str


def text_artifact_path(file_path: str) -> str:
    """Return *file_path* with its extension replaced by ``.txt``."""
    return f"{_EXTENSION_RE.sub('', file_path)}.txt"


def original_file(document: SourceDocument) -> BlobLocation:
    return BlobLocation(document.storage_bucket, document.file_path)


def text_artifact_file(
    document: SourceDocument,
    text_bucket: str = DEFAULT_TEXT_BUCKET,
) -> BlobLocation:
    return BlobLocation(text_bucket, text_artifact_path(document.file_path))


def filename_without_extension(file_path: str) -> str:
    filename = file_path.rsplit("/", 1)[-1]
    return _EXTENSION_RE.sub("", filename)


def file_extension(file_path: str) -> str:
    """Return the extension without its dot, or ``""`` if there is none."""
    match = _EXTENSION_RE.search(file_path)
    return match.group(1) if match else ""


def build_storage_path(owner_id: str, collection_id: str, filename: str, document_id: str) -> str:
    """Return the upload path ``{owner}/{collection}/{document_id}.{ext}``."""
    extension = file_extension(filename)
    name = f"{document_id}.{extension}" if extension else document_id
    return f"{owner_id}/{collection_id}/{name}"
