"""Abstract base class for vector storage backends.

Concrete implementation: ``ChromaDBProvider`` in
``briefrag/providers/vector_store/``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from briefrag.models.rag import Chunk, ScoredChunk


class IVectorStoreProvider(ABC):
    """Contract for storing chunk vectors and searching them by similarity.

    Similarity is ``1 - cosine distance`` clamped to ``[0, 1]``.
    """

    @abstractmethod
    async def put(
        self,
        document_id: str,
        chunks: list[Chunk],
        replace_existing: bool = False,
    ) -> int:
        """Store *chunks* for *document_id*.

        The write is all-or-nothing: if any part fails, chunks written by
        this call are removed again and
        :class:`~briefrag.utils.errors.StorageError` is raised.

        Parameters
        ----------
        document_id:
            Owning document; every chunk must reference it.
        chunks:
            Chunks with embeddings of the store's dimension.
        replace_existing:
            Remove the document's previously stored chunks once the new set
            is in place.  On failure the previous set is left untouched.

        Returns
        -------
        int
            Number of chunks stored.
        """

    @abstractmethod
    async def similarity_search(
        self,
        query_vector: list[float],
        threshold: float,
        top_k: int,
        scope_id: str | None = None,
    ) -> list[ScoredChunk]:
        """Return at most *top_k* chunks with similarity >= *threshold*.

        Results are ordered by similarity descending; ties keep insertion
        order.  An empty store returns an empty list.

        Parameters
        ----------
        query_vector:
            Vector of the store's dimension.
        threshold:
            Minimum similarity in ``[0, 1]``.
        top_k:
            Maximum number of results.
        scope_id:
            Restrict to chunks of one collection.
        """

    @abstractmethod
    async def delete_by_document(self, document_id: str) -> int:
        """Remove every chunk of *document_id*; returns how many were removed."""

    @abstractmethod
    async def count(self, document_id: str | None = None) -> int:
        """Return the number of stored chunks, optionally for one document."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs and error messages."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store can serve requests."""
