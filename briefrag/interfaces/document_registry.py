"""Abstract base class for the source document catalogue."""

from __future__ import annotations

from abc import ABC, abstractmethod

from briefrag.models.document import SourceDocument


class IDocumentRegistry(ABC):
    """Contract for looking up uploaded files' metadata.

    Ingestion reads a document's media type and storage path from here;
    retrieval enriches results with display names through one batched
    :meth:`get_many` call.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create backing tables if they do not exist."""

    @abstractmethod
    async def add(self, document: SourceDocument) -> SourceDocument:
        """Insert *document*.

        Raises
        ------
        briefrag.utils.errors.DuplicateDocumentError
            A document with the same id already exists.
        briefrag.utils.errors.StorageError
            The write fails.
        """

    @abstractmethod
    async def get(self, document_id: str) -> SourceDocument | None:
        """Return the document, or ``None`` when unknown."""

    @abstractmethod
    async def get_many(self, document_ids: list[str]) -> dict[str, SourceDocument]:
        """Return the known documents among *document_ids*, keyed by id."""

    @abstractmethod
    async def list_by_collection(self, collection_id: str) -> list[SourceDocument]:
        """Return a collection's documents, oldest first."""

    @abstractmethod
    async def delete(self, document_id: str) -> bool:
        """Remove the entry; returns ``False`` when it did not exist."""
