"""Public interface definitions for every external collaborator.

Business logic talks to abstract providers only; concrete adapters live
in ``briefrag/providers/`` and are wired together in ``briefrag/main.py``.
Tests inject ``MagicMock(spec=I...)`` doubles in their place.

    Interface              ->  Concrete implementation
    --------------------------------------------------------------
    IEmbeddingProvider     ->  OpenAIEmbeddingProvider
    ILLMProvider           ->  OpenAILLMProvider
    IVectorStoreProvider   ->  ChromaDBProvider
    IDocumentRegistry      ->  SQLiteDocumentRegistry
    IFileStorage           ->  LocalFileStorage, HttpFileStorage
"""

from briefrag.interfaces.document_registry import IDocumentRegistry
from briefrag.interfaces.embedding_provider import IEmbeddingProvider
from briefrag.interfaces.file_storage import IFileStorage
from briefrag.interfaces.llm_provider import ILLMProvider
from briefrag.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IDocumentRegistry",
    "IEmbeddingProvider",
    "IFileStorage",
    "ILLMProvider",
    "IVectorStoreProvider",
]
