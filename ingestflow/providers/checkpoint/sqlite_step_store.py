"""SQLite-backed step log.

Persists memoized step outputs and job-run records so a worker restart
resumes every in-flight run from its last completed step.  Uses
``aiosqlite`` for async I/O; outputs are stored as JSON text.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from ingestflow.interfaces.step_store import IStepStore
from ingestflow.models.events import Event, JobRun, RunStatus

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/ingestflow.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS job_runs (
    run_id       TEXT PRIMARY KEY,
    function_id  TEXT NOT NULL,
    event_id     TEXT NOT NULL,
    status       TEXT NOT NULL DEFAULT 'running',
    error        TEXT,
    output       TEXT,
    event        TEXT,
    created_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
""",
    """\
CREATE TABLE IF NOT EXISTS job_steps (
    run_id     TEXT NOT NULL,
    step_name  TEXT NOT NULL,
    output     TEXT NOT NULL,
    saved_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    PRIMARY KEY (run_id, step_name)
);
""",
]

_RUN_COLUMNS = "run_id, function_id, event_id, status, error, output, event"

_SELECT_RUN_SQL = f"SELECT {_RUN_COLUMNS} FROM job_runs WHERE run_id = ?;"

_SELECT_RUNNING_SQL = (
    f"SELECT {_RUN_COLUMNS} FROM job_runs WHERE status = ? ORDER BY created_at, rowid;"
)


def _row_to_run(row: aiosqlite.Row) -> JobRun:
    data = dict(row)
    raw_output = data.pop("output")
    raw_event = data.pop("event")
    return JobRun(
        **data,
        output=json.loads(raw_output) if raw_output is not None else None,
        event=Event.model_validate_json(raw_event) if raw_event is not None else None,
    )


class SQLiteStepStore(IStepStore):
    """Durable step log sharing the worker's SQLite database file."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the step-log tables if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            await db.commit()
        logger.info("step_log_initialized", path=str(self._db_path))

    async def load_steps(self, run_id: str) -> dict[str, Any]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT step_name, output FROM job_steps WHERE run_id = ?",
                (run_id,),
            )
            rows = await cursor.fetchall()
        return {name: json.loads(output) for name, output in rows}

    async def save_step(self, run_id: str, step_name: str, output: Any) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "INSERT OR REPLACE INTO job_steps (run_id, step_name, output) VALUES (?, ?, ?)",
                (run_id, step_name, json.dumps(output)),
            )
            await db.commit()

    async def get_run(self, run_id: str) -> JobRun | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_RUN_SQL, (run_id,))
            row = await cursor.fetchone()
        return _row_to_run(row) if row is not None else None

    async def start_run(self, run_id: str, function_id: str, event: Event) -> JobRun:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            await db.execute(
                "INSERT OR IGNORE INTO job_runs (run_id, function_id, event_id, event) "
                "VALUES (?, ?, ?, ?)",
                (run_id, function_id, event.id, event.model_dump_json()),
            )
            await db.commit()
            cursor = await db.execute(_SELECT_RUN_SQL, (run_id,))
            row = await cursor.fetchone()
        return _row_to_run(row)

    async def list_running_runs(self) -> list[JobRun]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_RUNNING_SQL, (RunStatus.RUNNING.value,))
            rows = await cursor.fetchall()
        return [_row_to_run(row) for row in rows]

    async def complete_run(self, run_id: str, output: Any) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "UPDATE job_runs SET status = ?, output = ?, "
                "updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now') "
                "WHERE run_id = ?",
                (RunStatus.COMPLETED.value, json.dumps(output), run_id),
            )
            await db.commit()

    async def fail_run(self, run_id: str, error: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "UPDATE job_runs SET status = ?, error = ?, "
                "updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now') "
                "WHERE run_id = ? AND status = ?",
                (RunStatus.FAILED.value, error, run_id, RunStatus.RUNNING.value),
            )
            await db.commit()
            changed = cursor.rowcount
        return changed == 1
