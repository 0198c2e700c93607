"""Ingestion progress tracking with callback-based listener notification.

Tracks the current stage and segment counts for each document moving
through the pipeline and broadcasts updates to registered listener
callbacks.  Listeners are keyed by document id so many jobs can run
concurrently without cross-talk; a listener registered under ``"*"``
receives every document's updates.

    job step ──update()──→ ProgressTracker ──callback()──→ CLI printer
                                            ──→ (any other listener)

Listener errors are caught and logged so a broken listener can't fail a
pipeline step.  Both sync and async callbacks are supported.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from ingestflow.models.status import IngestionStage
from ingestflow.utils.logging import get_logger

ALL_DOCUMENTS = "*"


@dataclass
class _DocumentProgress:
    """Internal snapshot of a single document's progress."""

    stage: IngestionStage = IngestionStage.EXTRACTING
    processed: int = 0
    total: int = 0


class ProgressTracker:
    """Tracks and broadcasts per-document ingestion progress via callbacks."""

    def __init__(self) -> None:
        self._statuses: dict[str, _DocumentProgress] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def update(
        self,
        document_id: str,
        stage: IngestionStage,
        processed: int = 0,
        total: int = 0,
    ) -> None:
        """Record a progress update and notify all registered listeners.

        Parameters
        ----------
        document_id:
            The document being processed.
        stage:
            The current ingestion stage.
        processed:
            Segments embedded so far (0 outside the embedding stage).
        total:
            Total segments for the document, once known.
        """
        self._statuses[document_id] = _DocumentProgress(
            stage=stage,
            processed=processed,
            total=total,
        )

        self._logger.debug(
            "progress_update",
            document_id=document_id,
            stage=stage.value,
            processed=processed,
            total=total,
        )

        await self._notify_listeners(document_id, stage, processed, total)

    def register_listener(self, document_id: str, callback: Callable) -> None:
        """Register *callback* for one document, or for all with ``"*"``.

        The callback receives ``(document_id, stage, processed, total)``.
        """
        listeners = self._listeners.setdefault(document_id, [])
        if callback not in listeners:
            listeners.append(callback)

    def unregister_listener(self, document_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(document_id, [])
        if callback in listeners:
            listeners.remove(callback)

    def get_status(self, document_id: str) -> dict:
        """Return the latest stage and counts for a document.

        Returns zeroed defaults when the document has not been tracked yet.
        """
        status = self._statuses.get(document_id) or _DocumentProgress()
        return {
            "stage": status.stage.value,
            "processed": status.processed,
            "total": status.total,
        }

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(
        self,
        document_id: str,
        stage: IngestionStage,
        processed: int,
        total: int,
    ) -> None:
        listeners = [
            *self._listeners.get(document_id, []),
            *self._listeners.get(ALL_DOCUMENTS, []),
        ]
        for callback in listeners:
            try:
                result = callback(document_id, stage, processed, total)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    document_id=document_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
