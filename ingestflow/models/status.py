"""Processing status state machine for source documents.

A document carries two independent status fields, ``extraction_status`` and
``embedding_status``, each moving through::

    pending -> processing -> completed
       |            |
       +------------+--> failed

``completed`` and ``failed`` are terminal for a run: nothing inside the
pipeline moves a status out of them.  Only an explicit re-trigger (a new
run's first step, ``restart=True``) may put a terminal status back to
``processing``.
"""

from __future__ import annotations

from enum import Enum

from ingestflow.utils.errors import StatusTransitionError


class ProcessingStatus(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Lifecycle status of one processing stage of a document."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.FAILED)


_FORWARD: dict[ProcessingStatus, frozenset[ProcessingStatus]] = {
    ProcessingStatus.PENDING: frozenset(
        {ProcessingStatus.PROCESSING, ProcessingStatus.FAILED}
    ),
    ProcessingStatus.PROCESSING: frozenset(
        {ProcessingStatus.COMPLETED, ProcessingStatus.FAILED}
    ),
    ProcessingStatus.COMPLETED: frozenset(),
    ProcessingStatus.FAILED: frozenset(),
}


def can_transition(
    current: ProcessingStatus,
    target: ProcessingStatus,
    restart: bool = False,
) -> bool:
    """Return ``True`` if *current* may move to *target*.

    Re-asserting the same status is allowed so replayed steps stay
    idempotent.
    """
    if current == target:
        return True
    if target in _FORWARD[current]:
        return True
    return restart and current.is_terminal and target == ProcessingStatus.PROCESSING


def check_transition(
    field: str,
    current: ProcessingStatus,
    target: ProcessingStatus,
    restart: bool = False,
) -> None:
    """Raise :class:`StatusTransitionError` unless the move is legal."""
    if not can_transition(current, target, restart=restart):
        raise StatusTransitionError(
            message=f"{field} cannot move from {current.value} to {target.value}"
        )


class IngestionStage(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Coarse stage reported to progress listeners."""

    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    PERSISTING = "persisting"
    COMPLETED = "completed"
    FAILED = "failed"
