"""Document registry implementations."""

from briefrag.providers.documents.sqlite_document_registry import SQLiteDocumentRegistry

__all__ = ["SQLiteDocumentRegistry"]
