"""SQLite-backed document store.

Persists source documents, their embedded segments, research segment links
and research batches to a local SQLite database at ``data/ingestflow.db``.
Uses ``aiosqlite`` for async I/O.  Vectors are stored as their text literal
(``[0.1,0.2,...]``), the same wire form a pgvector column accepts.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from ingestflow.interfaces.document_store import IDocumentStore
from ingestflow.models.document import ResearchBatch, SourceDocument
from ingestflow.models.segment import Segment, SegmentLink
from ingestflow.utils.errors import DocumentNotFoundError, StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/ingestflow.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS documents (
    id                 TEXT PRIMARY KEY,
    owner_id           TEXT,
    collection_id      TEXT,
    kind               TEXT NOT NULL,
    storage_bucket     TEXT NOT NULL,
    file_path          TEXT NOT NULL,
    original_filename  TEXT,
    mime_type          TEXT,
    language           TEXT,
    extraction_status  TEXT NOT NULL DEFAULT 'pending',
    embedding_status   TEXT NOT NULL DEFAULT 'pending',
    extraction_model   TEXT,
    extracted_text     TEXT,
    word_count         INTEGER,
    duration_seconds   INTEGER,
    page_count         INTEGER,
    title              TEXT,
    author             TEXT,
    total_segments     INTEGER NOT NULL DEFAULT 0,
    processed_segments INTEGER NOT NULL DEFAULT 0,
    error_message      TEXT,
    batch_id           TEXT,
    subject            TEXT,
    category           TEXT,
    created_at         TEXT NOT NULL,
    updated_at         TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS segments (
    id               TEXT PRIMARY KEY,
    document_id      TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    owner_id         TEXT,
    collection_id    TEXT,
    content          TEXT NOT NULL,
    embedding        TEXT NOT NULL,
    segment_index    INTEGER NOT NULL,
    char_start       INTEGER NOT NULL,
    char_end         INTEGER NOT NULL,
    embedding_model  TEXT NOT NULL,
    created_at       TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
""",
    """\
CREATE TABLE IF NOT EXISTS segment_links (
    document_id  TEXT NOT NULL,
    segment_id   TEXT NOT NULL REFERENCES segments(id) ON DELETE CASCADE,
    subject      TEXT,
    category     TEXT,
    PRIMARY KEY (document_id, segment_id)
);
""",
    """\
CREATE TABLE IF NOT EXISTS research_batches (
    id             TEXT PRIMARY KEY,
    owner_id       TEXT,
    status         TEXT NOT NULL DEFAULT 'pending',
    error_message  TEXT,
    updated_at     TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_segments_document ON segments(document_id, segment_index);",
    "CREATE INDEX IF NOT EXISTS idx_segments_owner ON segments(owner_id, collection_id);",
    "CREATE INDEX IF NOT EXISTS idx_documents_batch ON documents(batch_id);",
]

_DOCUMENT_COLUMNS = tuple(SourceDocument.model_fields)

_SEGMENT_COLUMNS = (
    "id",
    "document_id",
    "owner_id",
    "collection_id",
    "content",
    "embedding",
    "segment_index",
    "char_start",
    "char_end",
    "embedding_model",
)

_BATCH_COLUMNS = ("owner_id", "status", "error_message")


def _to_db(value: Any) -> Any:
    """Convert a model value into something sqlite3 can bind."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()  # noqa: UP017


class SQLiteDocumentStore(IDocumentStore):
    """SQLite-backed document, segment and research-batch persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("document_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def get_document(self, document_id: str) -> SourceDocument | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM documents WHERE id = ?", (document_id,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return SourceDocument.model_validate(dict(row))

    async def insert_document(self, document: SourceDocument) -> None:
        values = [_to_db(getattr(document, col)) for col in _DOCUMENT_COLUMNS]
        placeholders = ", ".join("?" for _ in _DOCUMENT_COLUMNS)
        sql = f"INSERT INTO documents ({', '.join(_DOCUMENT_COLUMNS)}) VALUES ({placeholders})"
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(sql, values)
                await db.commit()
        except aiosqlite.IntegrityError as exc:
            raise StorageError(
                message=f"Document {document.id} already exists",
                provider_name="sqlite",
            ) from exc
        logger.debug("document_inserted", document_id=document.id, kind=document.kind.value)

    async def update_document(self, document_id: str, fields: dict[str, Any]) -> None:
        unknown = set(fields) - set(_DOCUMENT_COLUMNS)
        if unknown or "id" in fields:
            msg = f"Cannot update document columns: {sorted(unknown | ({'id'} & set(fields)))}"
            raise ValueError(msg)

        patch = {**fields, "updated_at": _now_iso()}
        assignments = ", ".join(f"{col} = ?" for col in patch)
        values = [_to_db(v) for v in patch.values()]
        values.append(document_id)

        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                f"UPDATE documents SET {assignments} WHERE id = ?",  # noqa: S608
                values,
            )
            await db.commit()
            updated = cursor.rowcount

        if updated == 0:
            raise DocumentNotFoundError(
                message=f"Document {document_id} not found",
                provider_name="sqlite",
            )
        logger.debug("document_updated", document_id=document_id, fields=sorted(fields))

    # ------------------------------------------------------------------
    # Segments
    # ------------------------------------------------------------------

    async def insert_segments(self, segments: list[Segment]) -> list[str]:
        if not segments:
            return []
        placeholders = ", ".join("?" for _ in _SEGMENT_COLUMNS)
        sql = (
            f"INSERT OR IGNORE INTO segments ({', '.join(_SEGMENT_COLUMNS)}) "
            f"VALUES ({placeholders})"
        )
        rows = [tuple(getattr(seg, col) for col in _SEGMENT_COLUMNS) for seg in segments]
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.executemany(sql, rows)
            await db.commit()
        return [seg.id for seg in segments]

    async def insert_segment_links(self, links: list[SegmentLink]) -> None:
        if not links:
            return
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.executemany(
                "INSERT OR IGNORE INTO segment_links (document_id, segment_id, subject, category) "
                "VALUES (?, ?, ?, ?)",
                [(lk.document_id, lk.segment_id, lk.subject, lk.category) for lk in links],
            )
            await db.commit()

    async def list_segments(
        self,
        owner_id: str | None = None,
        collection_id: str | None = None,
        document_id: str | None = None,
    ) -> list[Segment]:
        clauses: list[str] = []
        params: list[Any] = []
        for column, value in (
            ("owner_id", owner_id),
            ("collection_id", collection_id),
            ("document_id", document_id),
        ):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {', '.join(_SEGMENT_COLUMNS)} FROM segments {where} "  # noqa: S608
                "ORDER BY document_id, segment_index",
                params,
            )
            rows = await cursor.fetchall()
        return [Segment.model_validate(dict(r)) for r in rows]

    async def list_segment_links(self, document_id: str) -> list[SegmentLink]:
        """Return the research tags recorded for *document_id*."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT document_id, segment_id, subject, category FROM segment_links "
                "WHERE document_id = ?",
                (document_id,),
            )
            rows = await cursor.fetchall()
        return [SegmentLink.model_validate(dict(r)) for r in rows]

    # ------------------------------------------------------------------
    # Research batches
    # ------------------------------------------------------------------

    async def get_research_batch(self, batch_id: str) -> ResearchBatch | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT id, owner_id, status, error_message FROM research_batches WHERE id = ?",
                (batch_id,),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return ResearchBatch.model_validate(dict(row))

    async def insert_research_batch(self, batch: ResearchBatch) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "INSERT INTO research_batches (id, owner_id, status, error_message) "
                "VALUES (?, ?, ?, ?)",
                (batch.id, batch.owner_id, batch.status, batch.error_message),
            )
            await db.commit()

    async def update_research_batch(self, batch_id: str, fields: dict[str, Any]) -> None:
        unknown = set(fields) - set(_BATCH_COLUMNS)
        if unknown:
            msg = f"Cannot update research batch columns: {sorted(unknown)}"
            raise ValueError(msg)
        patch = {**fields, "updated_at": _now_iso()}
        assignments = ", ".join(f"{col} = ?" for col in patch)
        values = [_to_db(v) for v in patch.values()]
        values.append(batch_id)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                f"UPDATE research_batches SET {assignments} WHERE id = ?",  # noqa: S608
                values,
            )
            await db.commit()
        logger.info("research_batch_updated", batch_id=batch_id, fields=sorted(fields))
