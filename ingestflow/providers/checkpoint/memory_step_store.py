"""In-memory step log.

Suitable for tests and one-shot CLI runs where resuming after a process
restart is not needed.  Outputs are deep-copied through JSON on save so a
replay sees exactly what the durable store would return.
"""

from __future__ import annotations

import json
from typing import Any

from ingestflow.interfaces.step_store import IStepStore
from ingestflow.models.events import Event, JobRun, RunStatus


class MemoryStepStore(IStepStore):
    """Dict-backed step log."""

    def __init__(self) -> None:
        self._steps: dict[str, dict[str, str]] = {}
        self._runs: dict[str, JobRun] = {}

    async def load_steps(self, run_id: str) -> dict[str, Any]:
        return {name: json.loads(raw) for name, raw in self._steps.get(run_id, {}).items()}

    async def save_step(self, run_id: str, step_name: str, output: Any) -> None:
        self._steps.setdefault(run_id, {})[step_name] = json.dumps(output)

    async def get_run(self, run_id: str) -> JobRun | None:
        return self._runs.get(run_id)

    async def start_run(self, run_id: str, function_id: str, event: Event) -> JobRun:
        run = self._runs.get(run_id)
        if run is None:
            run = JobRun(run_id=run_id, function_id=function_id, event_id=event.id, event=event)
            self._runs[run_id] = run
        return run

    async def list_running_runs(self) -> list[JobRun]:
        return [run for run in self._runs.values() if run.status == RunStatus.RUNNING]

    async def complete_run(self, run_id: str, output: Any) -> None:
        run = self._runs[run_id]
        self._runs[run_id] = run.model_copy(
            update={"status": RunStatus.COMPLETED, "output": json.loads(json.dumps(output))}
        )

    async def fail_run(self, run_id: str, error: str) -> bool:
        run = self._runs.get(run_id)
        if run is None or run.status != RunStatus.RUNNING:
            return False
        self._runs[run_id] = run.model_copy(update={"status": RunStatus.FAILED, "error": error})
        return True

    def step_names(self, run_id: str) -> list[str]:
        """Return the names of the steps recorded for *run_id*, in save order."""
        return list(self._steps.get(run_id, {}))
