"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **extract -> sanitize -> chunk -> embed -> store**.

:class:`IngestionService` coordinates the collaborators (document registry,
file storage, text extractor, chunker, embedding runner, vector store)
without any of them knowing about each other.  Each run follows the same
flow:

    1. IDocumentRegistry -- look up the SourceDocument
    2. TextExtractor -- bytes -> text (skipped when text is supplied)
    3. sanitize_text -- paragraph-preserving cleanup
    4. TextChunker -- bounded, overlapping chunks
    5. EmbeddingRunner -- bounded-pool embedding with per-chunk accounting
    6. IVectorStoreProvider -- all-or-nothing replace of the chunk set

Every stage change is reported to the :class:`ProgressTracker`.  Runs of
the same document are serialized; runs of different documents are
independent.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, AsyncIterator

import structlog

from briefrag.models.document import SourceDocument
from briefrag.models.pipeline import IngestionStage
from briefrag.models.rag import Chunk, ChunkMetadata, IngestionOutcome, IngestionResult
from briefrag.pipeline.progress_tracker import ProgressTracker
from briefrag.services.ingestion.chunker import TextChunker
from briefrag.services.ingestion.embedding_runner import EmbeddingBatch, EmbeddingRunner
from briefrag.services.ingestion.text_extractor import TextExtractor
from briefrag.utils.concurrency import throttled_gather
from briefrag.utils.errors import BriefRagError, DocumentNotFoundError, NoReadableTextError
from briefrag.utils.text_normalizer import sanitize_text

if TYPE_CHECKING:
    from briefrag.interfaces.document_registry import IDocumentRegistry
    from briefrag.interfaces.file_storage import IFileStorage
    from briefrag.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)

# Progress percentages at each stage boundary.
_PROGRESS_EXTRACTING = 5.0
_PROGRESS_CHUNKING = 20.0
_PROGRESS_EMBEDDING = 30.0
_PROGRESS_STORING = 90.0


class IngestionService:
    """Turns registered source documents into stored, embedded chunks.

    Parameters
    ----------
    registry:
        Source document catalogue.
    file_storage:
        Read access to uploaded bytes.
    extractor:
        Bytes -> text conversion.
    chunker:
        Text -> bounded chunks.
    embedding_runner:
        Bounded-concurrency embedding of one document's chunks.
    vector_store:
        Chunk persistence and similarity search.
    progress_tracker:
        Receives stage updates; a private tracker is created when omitted.
    ingestion_concurrency:
        Default number of documents :meth:`ingest_many` runs at once.
    """

    def __init__(
        self,
        registry: IDocumentRegistry,
        file_storage: IFileStorage,
        extractor: TextExtractor,
        chunker: TextChunker,
        embedding_runner: EmbeddingRunner,
        vector_store: IVectorStoreProvider,
        progress_tracker: ProgressTracker | None = None,
        ingestion_concurrency: int = 2,
    ) -> None:
        self._registry = registry
        self._file_storage = file_storage
        self._extractor = extractor
        self._chunker = chunker
        self._embedding_runner = embedding_runner
        self._vector_store = vector_store
        self._tracker = progress_tracker or ProgressTracker()
        self._ingestion_concurrency = max(1, ingestion_concurrency)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @property
    def progress_tracker(self) -> ProgressTracker:
        return self._tracker

    # ------------------------------------------------------------------
    # Registry boundary
    # ------------------------------------------------------------------

    async def register_document(
        self,
        name: str,
        media_type: str,
        collection_id: str,
        size_bytes: int = 0,
        storage_path: str = "",
        document_id: str | None = None,
    ) -> SourceDocument:
        """Add a SourceDocument to the registry so it can be ingested."""
        document_id = document_id or str(uuid.uuid4())
        document = SourceDocument(
            document_id=document_id,
            name=name,
            size_bytes=size_bytes,
            media_type=media_type,
            collection_id=collection_id,
            storage_path=storage_path or document_id,
        )
        stored = await self._registry.add(document)
        logger.info(
            "document_registered",
            document_id=stored.document_id,
            collection_id=collection_id,
            media_type=media_type,
        )
        return stored

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest(self, file_id: str, extracted_text: str | None = None) -> IngestionResult:
        """Run the full pipeline for one registered document.

        Parameters
        ----------
        file_id:
            Registry id of the document.
        extracted_text:
            Pre-extracted text; when given, file storage and the extractor
            are not consulted.

        Returns
        -------
        IngestionResult
            Counters and the ``completed`` / ``partial`` / ``failed``
            status.  ``failed`` means nothing was written and any previous
            chunk set is untouched.

        Raises
        ------
        DocumentNotFoundError
            *file_id* is not registered.
        ExtractionError
            The document yielded no usable text.
        StorageError
            The vector store write failed; the previous set stays intact.
        """
        document = await self._registry.get(file_id)
        if document is None:
            raise DocumentNotFoundError(document_id=file_id)

        async with self._document_lock(file_id):
            try:
                return await self._run(document, extracted_text)
            except BriefRagError as exc:
                await self._tracker.update(file_id, IngestionStage.FAILED, 100.0, exc.message)
                logger.error(
                    "ingestion_failed",
                    document_id=file_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise

    async def ingest_many(
        self,
        file_ids: list[str],
        concurrency: int | None = None,
    ) -> list[IngestionResult | BaseException]:
        """Ingest several documents concurrently.

        Each document runs independently; a failing one yields its
        exception in the returned list instead of cancelling the rest.
        Results are in *file_ids* order.
        """
        results = await throttled_gather(
            [self.ingest(file_id) for file_id in file_ids],
            limit=concurrency or self._ingestion_concurrency,
            return_exceptions=True,
        )
        failures = sum(1 for r in results if isinstance(r, BaseException))
        logger.info(
            "batch_ingestion_complete",
            documents=len(file_ids),
            failed=failures,
        )
        return results

    async def delete_document(self, file_id: str) -> int:
        """Remove a document's chunks, then its registry entry.

        Returns the number of chunks removed.  Chunks go first so a failed
        cascade leaves the registry row in place for a retry.
        """
        document = await self._registry.get(file_id)
        if document is None:
            raise DocumentNotFoundError(document_id=file_id)

        async with self._document_lock(file_id):
            removed = await self._vector_store.delete_by_document(file_id)
            await self._registry.delete(file_id)
            self._tracker.forget(file_id)

        logger.info("document_deleted", document_id=file_id, chunks_removed=removed)
        return removed

    async def list_documents(self, collection_id: str) -> list[SourceDocument]:
        """Registered documents of one collection, oldest first."""
        return await self._registry.list_by_collection(collection_id)

    @asynccontextmanager
    async def _document_lock(self, file_id: str) -> AsyncIterator[None]:
        # The lock is dropped once no run holds or awaits it.
        lock = self._locks.setdefault(file_id, asyncio.Lock())
        self._lock_users[file_id] = self._lock_users.get(file_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[file_id] -= 1
            if self._lock_users[file_id] == 0:
                del self._lock_users[file_id]
                del self._locks[file_id]

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _run(self, document: SourceDocument, extracted_text: str | None) -> IngestionResult:
        start = time.monotonic()
        doc_id = document.document_id
        logger.info("ingestion_started", document_id=doc_id, file_name=document.name)

        await self._tracker.update(
            doc_id, IngestionStage.EXTRACTING, _PROGRESS_EXTRACTING, "Extracting text"
        )
        strategy: str | None = None
        units_skipped = 0
        if extracted_text is not None:
            raw_text = extracted_text
        else:
            data = await self._file_storage.read(document.storage_path or doc_id)
            extraction = await asyncio.to_thread(
                self._extractor.extract, data, document.media_type
            )
            raw_text = extraction.text
            strategy = extraction.strategy.value
            units_skipped = extraction.units_skipped

        text = sanitize_text(raw_text, preserve_paragraphs=True)
        if not text:
            raise NoReadableTextError()

        await self._tracker.update(
            doc_id, IngestionStage.CHUNKING, _PROGRESS_CHUNKING, "Splitting into chunks"
        )
        contents = [sanitize_text(piece) for piece in self._chunker.chunk(text)]
        total = len(contents)

        await self._tracker.update(
            doc_id,
            IngestionStage.EMBEDDING,
            _PROGRESS_EMBEDDING,
            "Generating embeddings",
            chunks_done=0,
            chunks_total=total,
        )

        async def _on_progress(done: int, count: int) -> None:
            span = _PROGRESS_STORING - _PROGRESS_EMBEDDING
            await self._tracker.update(
                doc_id,
                IngestionStage.EMBEDDING,
                _PROGRESS_EMBEDDING + span * done / max(count, 1),
                f"Embedded {done}/{count} chunks",
                chunks_done=done,
            )

        batch = await self._embedding_runner.embed_chunks(
            contents, on_progress=_on_progress, document_id=doc_id
        )
        status = self._outcome(total, batch)

        if status is not IngestionOutcome.FAILED:
            await self._tracker.update(
                doc_id, IngestionStage.STORING, _PROGRESS_STORING, "Storing chunks"
            )
            chunks = self._build_chunks(document, contents, batch)
            await self._vector_store.put(doc_id, chunks, replace_existing=True)
            await self._tracker.update(
                doc_id,
                IngestionStage.COMPLETED,
                100.0,
                f"Stored {len(chunks)} of {total} chunks",
            )
        else:
            await self._tracker.update(
                doc_id, IngestionStage.FAILED, 100.0, "No chunk could be embedded"
            )

        result = IngestionResult(
            document_id=doc_id,
            file_name=document.name,
            status=status,
            chunks_total=total,
            chunks_embedded=batch.embedded,
            chunks_skipped=len(batch.skipped),
            chunks_failed=len(batch.failed),
            text_length=len(text),
            units_skipped=units_skipped,
            extraction_strategy=strategy,
            ingestion_time=round(time.monotonic() - start, 3),
        )
        logger.info(
            "ingestion_complete",
            document_id=doc_id,
            status=status.value,
            chunks_total=total,
            chunks_embedded=batch.embedded,
            chunks_skipped=result.chunks_skipped,
            chunks_failed=result.chunks_failed,
            elapsed_s=result.ingestion_time,
        )
        return result

    @staticmethod
    def _outcome(total: int, batch: EmbeddingBatch) -> IngestionOutcome:
        attempted = total - len(batch.skipped)
        if batch.embedded == 0:
            return IngestionOutcome.FAILED
        if batch.embedded < attempted:
            return IngestionOutcome.PARTIAL
        return IngestionOutcome.COMPLETED

    @staticmethod
    def _build_chunks(
        document: SourceDocument,
        contents: list[str],
        batch: EmbeddingBatch,
    ) -> list[Chunk]:
        created_at = datetime.now(timezone.utc)
        total = len(contents)
        return [
            Chunk(
                chunk_id=str(uuid.uuid4()),
                document_id=document.document_id,
                collection_id=document.collection_id,
                content=contents[index],
                embedding=vector,
                metadata=ChunkMetadata(
                    chunk_index=index,
                    total_chunks=total,
                    file_name=document.name,
                    file_size=document.size_bytes,
                ),
                created_at=created_at,
            )
            for index, vector in sorted(batch.vectors.items())
        ]
