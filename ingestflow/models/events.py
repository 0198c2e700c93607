"""Event and job-run models for the ingestion job runtime.

Events are the only way work enters the pipeline.  Each event carries the
identifier of the document it concerns plus an optional actor (the user on
whose behalf the work happens); the event ``id`` doubles as the idempotency
key for the job run it triggers.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ingestflow.models.document import SourceKind

# Event names consumed and emitted by the pipeline.
SOURCE_UPLOADED = "source/uploaded"
TEXT_EXTRACTED = "text/extracted"
RESEARCH_SOURCE_CREATED = "research-source/created"


class EventData(BaseModel):
    """Payload shared by every pipeline event."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    kind: SourceKind | None = None
    actor_id: str | None = None


class Event(BaseModel):
    """A named, immutable message handed to the job runtime."""

    model_config = ConfigDict(frozen=True)

    name: str
    data: EventData
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    ts: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )


class RunStatus(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Lifecycle of one job run in the step log."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobRun(BaseModel):
    """The run-log entry of one job invocation.

    ``event`` is the triggering event as delivered, kept so a run left
    ``running`` by a dead worker can be re-queued after a restart.
    """

    model_config = ConfigDict(frozen=True)

    run_id: str
    function_id: str
    event_id: str
    status: RunStatus = RunStatus.RUNNING
    error: str | None = None
    output: Any = None
    event: Event | None = None
