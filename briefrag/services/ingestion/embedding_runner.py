"""Bounded-concurrency embedding of a document's chunks.

Each chunk is embedded with its own provider call; at most ``concurrency``
calls are in flight at once.  The provider retries rate-limited and
timed-out calls with exponential backoff, so by the time an error reaches
the runner it is final for that chunk:

* :class:`ChunkTooLargeError` -- the chunk is recorded as *skipped*.
* any other :class:`BriefRagError` -- the chunk is recorded as *failed*
  and logged; the remaining chunks carry on.

Unexpected exceptions are programming errors and propagate.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog

from briefrag.interfaces.embedding_provider import IEmbeddingProvider
from briefrag.utils.concurrency import throttled_gather
from briefrag.utils.errors import BriefRagError, ChunkTooLargeError
from briefrag.utils.logging import get_logger

ProgressCallback = Callable[[int, int], Awaitable[None]]


@dataclass
class EmbeddingBatch:
    """Per-chunk outcome of one run, keyed by chunk index."""

    vectors: dict[int, list[float]] = field(default_factory=dict)
    skipped: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    @property
    def embedded(self) -> int:
        return len(self.vectors)


class EmbeddingRunner:
    """Embeds chunk texts through an :class:`IEmbeddingProvider` with a bounded pool."""

    def __init__(self, embedding_provider: IEmbeddingProvider, concurrency: int = 4) -> None:
        self._provider = embedding_provider
        self._concurrency = max(1, concurrency)
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def embed_chunks(
        self,
        texts: list[str],
        on_progress: ProgressCallback | None = None,
        document_id: str | None = None,
    ) -> EmbeddingBatch:
        """Embed every text, reporting ``(done, total)`` after each one.

        Parameters
        ----------
        texts:
            Chunk texts in chunk order.
        on_progress:
            Optional coroutine called after every chunk finishes.
        document_id:
            Used only for log context.

        Returns
        -------
        EmbeddingBatch
            Vectors for the chunks that succeeded plus skipped and failed
            indexes, each list in ascending order.
        """
        batch = EmbeddingBatch()
        total = len(texts)
        done = 0

        async def _embed_one(index: int, text: str) -> None:
            nonlocal done
            try:
                batch.vectors[index] = await self._provider.embed_single(text)
            except ChunkTooLargeError as exc:
                batch.skipped.append(index)
                self._logger.warning(
                    "chunk_skipped_too_large",
                    document_id=document_id,
                    chunk_index=index,
                    estimated_tokens=exc.estimated_tokens,
                )
            except BriefRagError as exc:
                batch.failed.append(index)
                self._logger.warning(
                    "chunk_embedding_failed",
                    document_id=document_id,
                    chunk_index=index,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
            done += 1
            if on_progress is not None:
                await on_progress(done, total)

        await throttled_gather(
            [_embed_one(i, t) for i, t in enumerate(texts)],
            limit=self._concurrency,
            return_exceptions=False,
        )

        batch.skipped.sort()
        batch.failed.sort()
        self._logger.info(
            "chunks_embedded",
            document_id=document_id,
            total=total,
            embedded=batch.embedded,
            skipped=len(batch.skipped),
            failed=len(batch.failed),
        )
        return batch
