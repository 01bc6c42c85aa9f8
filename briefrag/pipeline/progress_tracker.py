"""Per-document ingestion progress with listener notification.

The ingestion service reports every stage change and embedding step here.
Callers either poll :meth:`ProgressTracker.get_status` (the HTTP status
endpoint does) or register a listener for a document and receive each
:class:`~briefrag.models.pipeline.IngestionStatus` snapshot as it is
recorded.  Listeners may be sync or async; one that raises is logged and
skipped, never allowed to interrupt ingestion.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from briefrag.models.pipeline import IngestionStage, IngestionStatus
from briefrag.utils.logging import get_logger

StatusListener = Callable[[IngestionStatus], object]


class ProgressTracker:
    """Stores the latest status per document and broadcasts updates."""

    def __init__(self) -> None:
        self._statuses: dict[str, IngestionStatus] = {}
        self._listeners: dict[str, list[StatusListener]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def update(
        self,
        document_id: str,
        stage: IngestionStage,
        progress: float,
        message: str = "",
        chunks_done: int | None = None,
        chunks_total: int | None = None,
    ) -> IngestionStatus:
        """Record a snapshot and notify the document's listeners.

        Parameters
        ----------
        document_id:
            Document being ingested.
        stage:
            Current stage.
        progress:
            Completion percentage, clamped to 0-100.
        message:
            Human-readable status line.
        chunks_done, chunks_total:
            Embedding counters; omitted values carry over from the previous
            snapshot.
        """
        previous = self._statuses.get(document_id)
        status = IngestionStatus(
            document_id=document_id,
            stage=stage,
            progress=max(0.0, min(100.0, progress)),
            message=message,
            chunks_done=chunks_done if chunks_done is not None else (previous.chunks_done if previous else 0),
            chunks_total=chunks_total if chunks_total is not None else (previous.chunks_total if previous else 0),
        )
        self._statuses[document_id] = status

        self._logger.debug(
            "progress_update",
            document_id=document_id,
            stage=stage.value,
            progress=round(status.progress, 1),
            message=message,
        )
        await self._notify_listeners(status)
        return status

    def get_status(self, document_id: str) -> IngestionStatus:
        """Return the latest snapshot; an untracked document reports ``queued`` at 0%."""
        return self._statuses.get(document_id) or IngestionStatus(document_id=document_id)

    def is_tracked(self, document_id: str) -> bool:
        return document_id in self._statuses

    def register_listener(self, document_id: str, callback: StatusListener) -> None:
        listeners = self._listeners.setdefault(document_id, [])
        if callback not in listeners:
            listeners.append(callback)

    def unregister_listener(self, document_id: str, callback: StatusListener) -> None:
        listeners = self._listeners.get(document_id, [])
        if callback in listeners:
            listeners.remove(callback)
        if not listeners:
            self._listeners.pop(document_id, None)

    def forget(self, document_id: str) -> None:
        """Drop the stored snapshot and listeners for a deleted document."""
        self._statuses.pop(document_id, None)
        self._listeners.pop(document_id, None)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(self, status: IngestionStatus) -> None:
        for callback in list(self._listeners.get(status.document_id, [])):
            try:
                result = callback(status)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:  # noqa: BLE001
                self._logger.warning(
                    "listener_callback_error",
                    document_id=status.document_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
