"""Memoized, individually retryable pipeline steps.

A job function is an ordinary coroutine that performs its work through
``await step.run(name, fn)``.  The first time a step succeeds its result is
written to the step log under ``(run_id, name)``; when the run is invoked
again (after a crash, a worker restart, or a later step failing) every
step that already succeeded returns its recorded result instead of running.
Step boundaries are therefore the only suspension/resume points of a job.

Step results must be JSON-serializable through pydantic.  Raw ``bytes`` are
rejected: a blob download and the transform that consumes it belong in the
same step, so large payloads never pass through the step log.
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from pydantic import TypeAdapter

from ingestflow.interfaces.step_store import IStepStore
from ingestflow.models.events import Event
from ingestflow.utils.errors import PipelineError, StepFailedError, is_retryable

logger = structlog.get_logger(logger_name=__name__)

T = TypeVar("T")

_EVENT_NAMESPACE = uuid.UUID("0b9d3f5e-7c21-5a84-b6e0-4d2f8a1c9e37")

_ANY_ADAPTER: TypeAdapter[Any] = TypeAdapter(Any)


class StepContext:
    """Per-run handle through which a job function executes its steps.

    Parameters
    ----------
    run_id:
        Identifier of the job run; step outputs are recorded under it.
    store:
        The step log.
    completed:
        Step outputs already recorded for this run (from
        :meth:`IStepStore.load_steps`).
    publish:
        Coroutine that queues an event on the runtime.
    retries:
        Extra attempts allowed per step for retryable errors.
    backoff_seconds:
        Base delay before the first retry; doubles on each further attempt.
    """

    def __init__(
        self,
        run_id: str,
        store: IStepStore,
        completed: dict[str, Any],
        publish: Callable[[Event], Awaitable[None]],
        retries: int = 3,
        backoff_seconds: float = 1.0,
    ) -> None:
        self._run_id = run_id
        self._store = store
        self._completed = dict(completed)
        self._publish = publish
        self._retries = retries
        self._backoff = backoff_seconds
        self._executed: list[str] = []

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def executed(self) -> list[str]:
        """Names of the steps actually executed (not replayed) in this invocation."""
        return list(self._executed)

    async def run(
        self,
        name: str,
        fn: Callable[[], Awaitable[T] | T],
        result_type: Any = None,
    ) -> T:
        """Run *fn* once per job run and return its result.

        Parameters
        ----------
        name:
            Step name, unique within the job function.
        fn:
            Zero-argument callable (sync or async) doing the step's work.
        result_type:
            Type used to rebuild the recorded result on replay, e.g.
            ``list[TextChunk]``.  Without it, replays return plain JSON data.

        Raises
        ------
        StepFailedError
            When *fn* raised a non-retryable error, or kept raising retryable
            errors through every allowed attempt.
        PipelineError
            When *fn* returned raw bytes.
        """
        adapter = TypeAdapter(result_type) if result_type is not None else _ANY_ADAPTER

        if name in self._completed:
            logger.debug("step_replayed", run_id=self._run_id, step=name)
            return adapter.validate_python(self._completed[name])

        result = await self._attempt(name, fn)

        if isinstance(result, (bytes, bytearray, memoryview)):
            raise PipelineError(
                message=(
                    f"Step '{name}' returned raw bytes; download and transform "
                    "blobs inside a single step"
                )
            )

        recorded = adapter.dump_python(result, mode="json")
        await self._store.save_step(self._run_id, name, recorded)
        self._completed[name] = recorded
        self._executed.append(name)
        logger.debug("step_completed", run_id=self._run_id, step=name)
        return result

    async def send_event(self, name: str, event: Event) -> str:
        """Publish *event* as a memoized step and return its id.

        The published id is derived from the run and step name, so an event
        re-published after a crash reaches the runtime with the same id and
        therefore the same downstream run.  A replayed send step publishes
        again: the run is still executing, so the earlier publication may
        have been lost with the previous worker's queue.  Downstream runs
        that already exist turn the duplicate into a no-op.
        """
        stable_id = uuid.uuid5(_EVENT_NAMESPACE, f"{self._run_id}:{name}").hex
        stable = event.model_copy(update={"id": stable_id})

        if name in self._completed:
            await self._publish(stable)
            logger.info(
                "event_republished",
                run_id=self._run_id,
                event_name=stable.name,
                event_id=stable.id,
                document_id=stable.data.document_id,
            )
            return stable.id

        async def _publish() -> str:
            await self._publish(stable)
            logger.info(
                "event_sent",
                run_id=self._run_id,
                event_name=stable.name,
                event_id=stable.id,
                document_id=stable.data.document_id,
            )
            return stable.id

        return await self.run(name, _publish)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _attempt(self, name: str, fn: Callable[[], Any]) -> Any:
        attempt = 0
        while True:
            attempt += 1
            try:
                result = fn()
                if inspect.isawaitable(result):
                    result = await result
                return result
            except Exception as exc:
                if not is_retryable(exc) or attempt > self._retries:
                    logger.warning(
                        "step_failed",
                        run_id=self._run_id,
                        step=name,
                        attempts=attempt,
                        retryable=is_retryable(exc),
                        error=str(exc),
                    )
                    raise StepFailedError(step_name=name, cause=exc, attempts=attempt) from exc

                delay = self._backoff * (2 ** (attempt - 1))
                logger.warning(
                    "step_retry",
                    run_id=self._run_id,
                    step=name,
                    attempt=attempt,
                    delay_seconds=delay,
                    error=str(exc),
                )
                if delay > 0:
                    await asyncio.sleep(delay)
