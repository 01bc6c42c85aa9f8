"""Similarity retrieval over the stored chunk corpus.

Query text is embedded with the same provider used at ingestion, matched
against the vector store, and the hits are enriched with their source
document's display name and size.  Enrichment uses one batched registry
lookup per query; documents the registry no longer knows fall back to the
name and size stored in the chunk's own metadata.

An empty result list is a normal outcome.  Embedding and storage failures
propagate as typed errors and are never turned into "no results".
"""

from __future__ import annotations

import math

import structlog

from briefrag.interfaces.document_registry import IDocumentRegistry
from briefrag.interfaces.embedding_provider import IEmbeddingProvider
from briefrag.interfaces.vector_store_provider import IVectorStoreProvider
from briefrag.models.document import SourceDocument
from briefrag.models.rag import RetrievalQuery, RetrievalResponse, ScoredChunk, SearchResult
from briefrag.utils.errors import BriefRagError, InvalidQueryError
from briefrag.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

UNKNOWN_FILE_NAME = "Unknown File"


class RetrievalService:
    """Embeds queries and returns the most similar stored chunks.

    Parameters
    ----------
    embedding_provider:
        Must produce vectors in the same space the corpus was embedded in.
    vector_store:
        Chunk store searched by cosine similarity.
    registry:
        Source of display metadata for result enrichment.
    default_max_results:
        Used when a call does not pass ``max_results``.
    default_threshold:
        Used when a call does not pass ``threshold``.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        registry: IDocumentRegistry,
        default_max_results: int = 5,
        default_threshold: float = 0.3,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._registry = registry
        self._default_max_results = default_max_results
        self._default_threshold = default_threshold

    @property
    def default_max_results(self) -> int:
        return self._default_max_results

    @property
    def default_threshold(self) -> float:
        return self._default_threshold

    async def retrieve(
        self,
        query_text: str,
        scope_id: str | None = None,
        max_results: int | None = None,
        threshold: float | None = None,
    ) -> list[SearchResult]:
        """Return up to *max_results* chunks with similarity >= *threshold*.

        Results are ordered by similarity descending.

        Raises
        ------
        InvalidQueryError
            Empty query, ``max_results < 1`` or a threshold outside ``[0, 1]``.
        ProviderError
            The query could not be embedded.
        StorageError
            The vector store search failed.
        """
        max_results = self._default_max_results if max_results is None else max_results
        threshold = self._default_threshold if threshold is None else threshold
        self._validate(query_text, max_results, threshold)

        query_vector = await self._embedding_provider.embed_single(query_text.strip())
        hits = await self._vector_store.similarity_search(
            query_vector,
            threshold=threshold,
            top_k=max_results,
            scope_id=scope_id,
        )
        if not hits:
            logger.info("retrieval_empty", scope_id=scope_id, threshold=threshold)
            return []

        results = await self._enrich(hits)
        logger.info(
            "retrieval_complete",
            scope_id=scope_id,
            results=len(results),
            top_similarity=round(results[0].similarity, 4),
        )
        return results

    async def search(self, query: RetrievalQuery) -> RetrievalResponse:
        """Run :meth:`retrieve` for a :class:`RetrievalQuery` and echo the query."""
        results = await self.retrieve(
            query.query,
            scope_id=query.scope_id,
            max_results=query.max_results,
            threshold=query.threshold,
        )
        return RetrievalResponse(query=query.query, results=results, result_count=len(results))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(query_text: str, max_results: int, threshold: float) -> None:
        if not query_text or not query_text.strip():
            raise InvalidQueryError("Query text must not be empty")
        if max_results < 1:
            raise InvalidQueryError(f"max_results must be at least 1, got {max_results}")
        if math.isnan(threshold) or not 0.0 <= threshold <= 1.0:
            raise InvalidQueryError(f"threshold must be within [0, 1], got {threshold}")

    async def _enrich(self, hits: list[ScoredChunk]) -> list[SearchResult]:
        document_ids = list(dict.fromkeys(hit.document_id for hit in hits))
        try:
            documents = await self._registry.get_many(document_ids)
        except BriefRagError as exc:
            # Results stay usable with the names stored on the chunks.
            logger.warning(
                "retrieval_enrichment_failed",
                documents=len(document_ids),
                error=str(exc),
            )
            documents = {}
        return [self._to_result(hit, documents.get(hit.document_id)) for hit in hits]

    @staticmethod
    def _to_result(hit: ScoredChunk, document: SourceDocument | None) -> SearchResult:
        if document is not None:
            file_name = document.name
            file_size = document.size_bytes
        else:
            file_name = hit.metadata.file_name or UNKNOWN_FILE_NAME
            file_size = hit.metadata.file_size
        return SearchResult(
            chunk_id=hit.chunk_id,
            document_id=hit.document_id,
            content=hit.content,
            similarity=hit.similarity,
            file_name=file_name,
            file_size=file_size,
            chunk_index=hit.metadata.chunk_index,
            total_chunks=hit.metadata.total_chunks,
        )
