"""Event-driven job runtime with a durable step log.

The runtime owns the registered job functions, an in-process event queue,
and one :class:`asyncio.Semaphore` per function enforcing its declared
concurrency ceiling.  Events enter through :meth:`JobRuntime.send`; each
event starts one run of every function whose trigger matches it.

Runs are idempotent per ``(function, event)``: the run id is
``"{function_id}:{event_id}"`` and the step log records whether it is
running, completed or failed.

- Invoking a **running** run (a previous attempt crashed) replays it:
  succeeded steps return their recorded results, the rest execute.
- Invoking a **completed** run returns the recorded output.
- Invoking a **failed** run does nothing; failure is terminal.  Re-processing
  a failed document means sending a new event.

When a run fails, the function's ``on_failure`` hook is called exactly once
with the triggering event and the error.

The run log keeps each run's triggering event.  After a restart
:meth:`JobRuntime.resume_incomplete` re-queues the events of runs still
``running``, and a replayed ``send_event`` step publishes its follow-up
event again, so no hand-off is lost with the previous worker's queue.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import TypeAdapter

from ingestflow.interfaces.step_store import IStepStore
from ingestflow.models.document import SourceKind
from ingestflow.models.events import Event, JobRun, RunStatus
from ingestflow.pipeline.steps import StepContext
from ingestflow.utils.errors import IngestFlowError, PipelineError, StepFailedError
from ingestflow.utils.logging import get_logger

JobHandler = Callable[[Event, StepContext], Awaitable[Any]]
FailureHook = Callable[[Event, BaseException], Awaitable[None]]

_OUTPUT_ADAPTER: TypeAdapter[Any] = TypeAdapter(Any)


def failure_message(error: BaseException) -> str:
    """Return the user-facing message of the error that failed a run."""
    cause = error.cause if isinstance(error, StepFailedError) else error
    if isinstance(cause, IngestFlowError):
        return cause.message
    return str(cause) or type(cause).__name__


def run_id_for(function: JobFunction, event: Event) -> str:
    return f"{function.id}:{event.id}"


@dataclass
class JobFunction:
    """A registered job: trigger, handler, and execution policy."""

    id: str
    trigger: str
    handler: JobHandler
    kind: SourceKind | None = None
    retries: int = 3
    concurrency: int = 5
    on_failure: FailureHook | None = None
    _semaphore: asyncio.Semaphore | None = field(default=None, init=False, repr=False)

    def matches(self, event: Event) -> bool:
        if event.name != self.trigger:
            return False
        return self.kind is None or event.data.kind == self.kind

    @property
    def semaphore(self) -> asyncio.Semaphore:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.concurrency)
        return self._semaphore


class JobRuntime:
    """Dispatches events to job functions and executes their runs.

    Parameters
    ----------
    step_store:
        Durable step log and run log.
    retry_backoff_seconds:
        Base delay between step retries (0 disables sleeping, for tests).
    """

    def __init__(self, step_store: IStepStore, retry_backoff_seconds: float = 1.0) -> None:
        self._store = step_store
        self._backoff = retry_backoff_seconds
        self._functions: dict[str, JobFunction] = {}
        self._queue: deque[Event] = deque()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, function: JobFunction) -> JobFunction:
        if function.id in self._functions:
            raise PipelineError(message=f"Job function '{function.id}' is already registered")
        if function.concurrency < 1:
            raise PipelineError(message=f"Job function '{function.id}' needs concurrency >= 1")
        self._functions[function.id] = function
        self._logger.debug(
            "job_function_registered",
            function_id=function.id,
            trigger=function.trigger,
            kind=function.kind.value if function.kind else None,
            concurrency=function.concurrency,
            retries=function.retries,
        )
        return function

    def get_function(self, function_id: str) -> JobFunction:
        try:
            return self._functions[function_id]
        except KeyError as exc:
            raise PipelineError(message=f"Unknown job function '{function_id}'") from exc

    @property
    def functions(self) -> list[JobFunction]:
        return list(self._functions.values())

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def send(self, event: Event) -> None:
        """Queue *event*; it is dispatched by :meth:`run_until_idle`."""
        self._queue.append(event)
        self._logger.info(
            "event_queued",
            event_name=event.name,
            event_id=event.id,
            document_id=event.data.document_id,
        )

    @property
    def pending_events(self) -> int:
        return len(self._queue)

    async def resume_incomplete(self) -> int:
        """Re-queue the triggering event of every run left ``running``.

        Called once at worker start-up: a run is still ``running`` only if
        the worker executing it died.  Dispatching the event again resumes
        the run from its last recorded step.  Returns the number of events
        queued.
        """
        queued: set[str] = set()
        for run in await self._store.list_running_runs():
            if run.event is None:
                self._logger.warning("run_not_resumable", run_id=run.run_id)
                continue
            if run.function_id not in self._functions:
                self._logger.warning(
                    "run_function_unregistered",
                    run_id=run.run_id,
                    function_id=run.function_id,
                )
                continue
            if run.event.id in queued:
                continue
            queued.add(run.event.id)
            self._logger.info("run_resumed", run_id=run.run_id)
            await self.send(run.event)
        return len(queued)

    async def run_until_idle(self) -> list[JobRun]:
        """Dispatch queued events, including follow-ups, until none remain.

        Returns the final run-log entry of every run executed, in completion
        order.
        """
        runs: list[JobRun] = []
        pending: set[asyncio.Task[JobRun]] = set()
        in_flight: set[str] = set()
        try:
            while self._queue or pending:
                while self._queue:
                    event = self._queue.popleft()
                    matched = [fn for fn in self._functions.values() if fn.matches(event)]
                    if not matched:
                        self._logger.warning(
                            "event_unhandled",
                            event_name=event.name,
                            event_id=event.id,
                        )
                    for fn in matched:
                        run_id = run_id_for(fn, event)
                        # Redelivered while its run is still executing.
                        if run_id in in_flight:
                            self._logger.info("event_duplicate_skipped", run_id=run_id)
                            continue
                        in_flight.add(run_id)
                        pending.add(asyncio.create_task(self._dispatch(fn, event)))

                if not pending:
                    break
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    run = task.result()
                    in_flight.discard(run.run_id)
                    runs.append(run)
        finally:
            for task in pending:
                task.cancel()
        return runs

    async def _dispatch(self, function: JobFunction, event: Event) -> JobRun:
        async with function.semaphore:
            return await self.invoke(function, event)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def invoke(self, function: JobFunction, event: Event) -> JobRun:
        """Execute (or resume) the run of *function* for *event*."""
        run_id = run_id_for(function, event)
        run = await self._store.start_run(run_id, function.id, event)
        if run.status != RunStatus.RUNNING:
            self._logger.info("run_already_finished", run_id=run_id, status=run.status.value)
            return run

        completed = await self._store.load_steps(run_id)
        step = StepContext(
            run_id=run_id,
            store=self._store,
            completed=completed,
            publish=self.send,
            retries=function.retries,
            backoff_seconds=self._backoff,
        )

        with structlog.contextvars.bound_contextvars(
            run_id=run_id,
            function_id=function.id,
            document_id=event.data.document_id,
        ):
            self._logger.info("run_started", resumed_steps=len(completed))
            try:
                output = await function.handler(event, step)
            except Exception as exc:
                await self._fail(function, event, run_id, exc)
            else:
                await self._store.complete_run(
                    run_id, _OUTPUT_ADAPTER.dump_python(output, mode="json")
                )
                self._logger.info("run_completed", executed_steps=step.executed)

        final = await self._store.get_run(run_id)
        if final is None:
            raise PipelineError(message=f"Run {run_id} disappeared from the step log")
        return final

    async def _fail(
        self,
        function: JobFunction,
        event: Event,
        run_id: str,
        error: Exception,
    ) -> None:
        message = failure_message(error)
        if not await self._store.fail_run(run_id, message):
            return

        self._logger.error(
            "run_failed",
            step=error.step_name if isinstance(error, StepFailedError) else None,
            attempts=error.attempts if isinstance(error, StepFailedError) else None,
            error=message,
        )
        if function.on_failure is None:
            return
        try:
            await function.on_failure(event, error)
        except Exception as hook_exc:
            self._logger.exception("failure_hook_error", error=str(hook_exc))
