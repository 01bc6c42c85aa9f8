"""ChromaDB vector store provider adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`IVectorStoreProvider`.
One collection holds every chunk of the deployment, indexed with cosine
distance.  Chunk provenance (document, collection, position, file name and
size) is stored as flat metadata so deletes and scoped searches can use
``where`` filters.  A monotonically increasing ``seq`` value records
insertion order, which breaks similarity ties deterministically.
"""

from __future__ import annotations

import os
import time
from typing import Any

# Telemetry must be off before chromadb is imported.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from briefrag.interfaces.vector_store_provider import IVectorStoreProvider
from briefrag.models.rag import Chunk, ChunkMetadata, ScoredChunk
from briefrag.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)

_UPSERT_BATCH_SIZE = 500


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Keeps ChromaDB from loading its default ONNX model.

    briefrag always passes pre-computed vectors, so this is never called.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError("briefrag stores pre-computed embeddings only")

    def name(self) -> str:
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store backed by a persistent local ChromaDB collection.

    Parameters
    ----------
    persist_directory:
        Directory ChromaDB writes its SQLite and index files to.
    collection_name:
        Collection holding every chunk.
    dimension:
        Expected vector length.  When given, writes with other lengths are
        refused and a mismatch with already stored vectors fails at startup.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "document_chunks",
        dimension: int | None = None,
    ) -> None:
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._dimension = dimension
        self._last_seq = 0
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            # Collection persisted with a different embedding function.
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )
        self._validate_stored_dimension()

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    def _validate_stored_dimension(self) -> None:
        if self._dimension is None or self._collection.count() == 0:
            return
        sample = self._collection.peek(limit=1)
        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return
        stored_dim = len(embeddings[0])
        if stored_dim != self._dimension:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=self._dimension,
                collection=self._collection_name,
            )
            raise StorageError(
                message=(
                    f"Collection '{self._collection_name}' holds {stored_dim}-dim vectors "
                    f"but {self._dimension}-dim vectors are configured"
                ),
                provider_name=self.get_provider_name(),
            )

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def put(
        self,
        document_id: str,
        chunks: list[Chunk],
        replace_existing: bool = False,
    ) -> int:
        """Upsert *chunks* in batches; compensating delete on failure."""
        for chunk in chunks:
            if chunk.document_id != document_id:
                raise ValueError(
                    f"chunk {chunk.chunk_id} belongs to {chunk.document_id}, not {document_id}"
                )
            if self._dimension is not None and len(chunk.embedding) != self._dimension:
                raise StorageError(
                    message=(
                        f"Chunk {chunk.chunk_id} has a {len(chunk.embedding)}-dim vector, "
                        f"expected {self._dimension}"
                    ),
                    provider_name=self.get_provider_name(),
                )

        previous_ids = self._ids_for_document(document_id) if replace_existing else []
        new_ids = {c.chunk_id for c in chunks}
        written: list[str] = []
        seq_base = self._reserve_seq(len(chunks))

        try:
            for start in range(0, len(chunks), _UPSERT_BATCH_SIZE):
                batch = chunks[start : start + _UPSERT_BATCH_SIZE]
                ids = [c.chunk_id for c in batch]
                self._collection.upsert(
                    ids=ids,
                    embeddings=[c.embedding for c in batch],
                    documents=[c.content for c in batch],
                    metadatas=[
                        self._chunk_to_metadata(c, seq_base + start + offset)
                        for offset, c in enumerate(batch)
                    ],
                )
                written.extend(ids)
        except Exception as exc:
            self._rollback(document_id, written)
            raise StorageError(
                message=f"ChromaDB put failed for document {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        stale = [cid for cid in previous_ids if cid not in new_ids]
        if stale:
            try:
                self._collection.delete(ids=stale)
            except Exception as exc:
                # chunk ids are fresh per ingestion run, so dropping them restores the previous set
                self._rollback(document_id, written)
                raise StorageError(
                    message=f"ChromaDB could not remove replaced chunks of {document_id}: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

        logger.info(
            "chromadb_put",
            document_id=document_id,
            stored=len(written),
            replaced=len(stale),
        )
        return len(written)

    async def similarity_search(
        self,
        query_vector: list[float],
        threshold: float,
        top_k: int,
        scope_id: str | None = None,
    ) -> list[ScoredChunk]:
        """Cosine search over the collection, thresholded and tie-stable."""
        if top_k < 1:
            return []
        try:
            total = self._collection.count()
            if total == 0:
                return []

            kwargs: dict[str, Any] = {
                "query_embeddings": [query_vector],
                # over-fetch so equal-similarity neighbours can be reordered by seq
                "n_results": min(total, top_k * 4),
                "include": ["documents", "metadatas", "distances"],
            }
            if scope_id:
                kwargs["where"] = {"collection_id": scope_id}
            results = self._collection.query(**kwargs)
        except Exception as exc:
            raise StorageError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = results["ids"][0] if results.get("ids") else []
        if not ids:
            return []
        documents = results["documents"][0] if results.get("documents") else [""] * len(ids)
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [1.0] * len(ids)

        ranked: list[tuple[float, int, ScoredChunk]] = []
        for chunk_id, content, meta, distance in zip(ids, documents, metadatas, distances, strict=True):
            similarity = max(0.0, min(1.0, 1.0 - float(distance)))
            if similarity < threshold:
                continue
            scored = self._metadata_to_scored(chunk_id, content or "", meta, similarity)
            ranked.append((similarity, int(meta.get("seq", 0)), scored))
        ranked.sort(key=lambda entry: (-entry[0], entry[1]))
        hits = [entry[2] for entry in ranked[:top_k]]

        logger.info(
            "vector_search",
            scope_id=scope_id,
            candidates=len(ids),
            results_count=len(hits),
            top_score=hits[0].similarity if hits else 0.0,
        )
        return hits

    async def delete_by_document(self, document_id: str) -> int:
        try:
            ids = self._ids_for_document(document_id)
            if ids:
                self._collection.delete(ids=ids)
        except Exception as exc:
            raise StorageError(
                message=f"ChromaDB delete failed for document {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_delete_by_document", document_id=document_id, deleted_count=len(ids))
        return len(ids)

    async def count(self, document_id: str | None = None) -> int:
        try:
            if document_id is None:
                return self._collection.count()
            return len(self._ids_for_document(document_id))
        except Exception as exc:
            raise StorageError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        try:
            self._collection.count()
        except Exception as exc:  # noqa: BLE001
            logger.warning("chromadb_unavailable", error=str(exc))
            return False
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ids_for_document(self, document_id: str) -> list[str]:
        existing = self._collection.get(where={"document_id": document_id}, include=["metadatas"])
        return list(existing["ids"] or [])

    def _reserve_seq(self, count: int) -> int:
        base = max(time.time_ns(), self._last_seq + 1)
        self._last_seq = base + max(count, 1) - 1
        return base

    def _rollback(self, document_id: str, written: list[str]) -> None:
        if not written:
            return
        try:
            self._collection.delete(ids=written)
        except Exception as exc:  # noqa: BLE001
            # the original failure is raised by the caller
            logger.error(
                "chromadb_rollback_failed",
                document_id=document_id,
                orphaned=len(written),
                error=str(exc),
            )
        else:
            logger.warning("chromadb_put_rolled_back", document_id=document_id, removed=len(written))

    @staticmethod
    def _chunk_to_metadata(chunk: Chunk, seq: int) -> dict[str, Any]:
        return {
            "document_id": chunk.document_id,
            "collection_id": chunk.collection_id,
            "chunk_index": chunk.metadata.chunk_index,
            "total_chunks": chunk.metadata.total_chunks,
            "file_name": chunk.metadata.file_name,
            "file_size": chunk.metadata.file_size,
            "created_at": chunk.created_at.isoformat(),
            "seq": seq,
        }

    @staticmethod
    def _metadata_to_scored(
        chunk_id: str,
        content: str,
        meta: dict[str, Any],
        similarity: float,
    ) -> ScoredChunk:
        total = max(1, int(meta.get("total_chunks", 1)))
        index = min(max(0, int(meta.get("chunk_index", 0))), total - 1)
        return ScoredChunk(
            chunk_id=chunk_id,
            document_id=str(meta.get("document_id", "")),
            content=content,
            similarity=similarity,
            metadata=ChunkMetadata(
                chunk_index=index,
                total_chunks=total,
                file_name=str(meta.get("file_name", "")),
                file_size=max(0, int(meta.get("file_size", 0))),
            ),
        )
