"""Abstract base class for the job runtime's step log.

The step log is a key-value checkpoint store: ``(run_id, step_name)`` maps to
the JSON-serializable output of a step that already succeeded.  Alongside it
the store keeps one run-log entry per job run so a finished run is never
re-executed and its failure hook fires once.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ingestflow.models.events import Event, JobRun


class IStepStore(ABC):
    """Contract for memoized step outputs and job-run records."""

    @abstractmethod
    async def load_steps(self, run_id: str) -> dict[str, Any]:
        """Return every recorded step output for *run_id*, keyed by step name."""

    @abstractmethod
    async def save_step(self, run_id: str, step_name: str, output: Any) -> None:
        """Record *output* (JSON-compatible) as the result of *step_name*."""

    @abstractmethod
    async def get_run(self, run_id: str) -> JobRun | None:
        """Return the run-log entry, or ``None`` for a run never started."""

    @abstractmethod
    async def start_run(self, run_id: str, function_id: str, event: Event) -> JobRun:
        """Return the existing entry for *run_id* or create a running one.

        A new entry records *event* in full so the run can be re-queued
        if the worker executing it dies.
        """

    @abstractmethod
    async def list_running_runs(self) -> list[JobRun]:
        """Return every run still ``running``, oldest first."""

    @abstractmethod
    async def complete_run(self, run_id: str, output: Any) -> None:
        """Mark the run completed with its final *output*."""

    @abstractmethod
    async def fail_run(self, run_id: str, error: str) -> bool:
        """Mark the run failed.

        Returns ``True`` only for the call that moved the run out of
        ``running``; the failure hook runs only when this is ``True``.
        """
