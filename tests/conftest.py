"""Shared pytest fixtures for the briefrag test suite."""

from __future__ import annotations

import hashlib
import math
import re
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from briefrag.interfaces.document_registry import IDocumentRegistry
from briefrag.interfaces.embedding_provider import IEmbeddingProvider
from briefrag.interfaces.file_storage import IFileStorage
from briefrag.interfaces.llm_provider import ILLMProvider
from briefrag.interfaces.vector_store_provider import IVectorStoreProvider
from briefrag.models.document import SourceDocument
from briefrag.models.rag import Chunk, ChunkMetadata, ScoredChunk, SearchResult

_WORD = re.compile(r"[a-z0-9]+")


# ---------------------------------------------------------------------------
# Deterministic embedder
# ---------------------------------------------------------------------------


class HashingEmbeddingProvider(IEmbeddingProvider):
    """Bag-of-words embedder: each word adds 1 to a hashed bucket.

    Texts sharing words get a positive cosine similarity, texts sharing
    none get (almost always) zero.  No network access.
    """

    def __init__(self, dimension: int = 512) -> None:
        self._dimension = dimension
        self.calls = 0

    def vector_for(self, text: str) -> list[float]:
        vector = [0.0] * self._dimension
        for word in _WORD.findall(text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self._dimension
            vector[bucket] += 1.0
        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0:
            vector[0] = 1.0
            return vector
        return [v / norm for v in vector]

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls += len(texts)
        return [self.vector_for(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls += 1
        return self.vector_for(text)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "hashing"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


def make_document(
    document_id: str = "doc-1",
    name: str = "report.txt",
    media_type: str = "text/plain",
    collection_id: str = "col-1",
    size_bytes: int = 1024,
    storage_path: str = "",
) -> SourceDocument:
    return SourceDocument(
        document_id=document_id,
        name=name,
        size_bytes=size_bytes,
        media_type=media_type,
        collection_id=collection_id,
        storage_path=storage_path or document_id,
    )


def make_chunk(
    chunk_id: str = "c1",
    document_id: str = "doc-1",
    content: str = "test text",
    embedding: list[float] | None = None,
    chunk_index: int = 0,
    total_chunks: int = 1,
    collection_id: str = "col-1",
    file_name: str = "report.txt",
    file_size: int = 1024,
) -> Chunk:
    return Chunk(
        chunk_id=chunk_id,
        document_id=document_id,
        collection_id=collection_id,
        content=content,
        embedding=embedding if embedding is not None else [1.0, 0.0, 0.0, 0.0],
        metadata=ChunkMetadata(
            chunk_index=chunk_index,
            total_chunks=total_chunks,
            file_name=file_name,
            file_size=file_size,
        ),
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def make_scored_chunk(
    chunk_id: str = "c1",
    document_id: str = "doc-1",
    content: str = "test text",
    similarity: float = 0.9,
    file_name: str = "report.txt",
    file_size: int = 1024,
) -> ScoredChunk:
    return ScoredChunk(
        chunk_id=chunk_id,
        document_id=document_id,
        content=content,
        similarity=similarity,
        metadata=ChunkMetadata(
            chunk_index=0,
            total_chunks=1,
            file_name=file_name,
            file_size=file_size,
        ),
    )


def make_search_result(
    content: str = "Invoice total is $4,250.",
    similarity: float = 0.82,
    file_name: str = "invoice.pdf",
    document_id: str = "doc-1",
) -> SearchResult:
    return SearchResult(
        chunk_id="c1",
        document_id=document_id,
        content=content,
        similarity=similarity,
        file_name=file_name,
        file_size=2048,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def sample_document() -> SourceDocument:
    return make_document()


@pytest.fixture
def hashing_embedder() -> HashingEmbeddingProvider:
    return HashingEmbeddingProvider()


@pytest.fixture
def mock_embedding_provider() -> MagicMock:
    mock = MagicMock(spec=IEmbeddingProvider)
    mock.embed = AsyncMock(return_value=[[0.1] * 4])
    mock.embed_single = AsyncMock(return_value=[0.1] * 4)
    mock.get_dimension.return_value = 4
    mock.get_provider_name.return_value = "mock_embedding"
    mock.is_available.return_value = True
    return mock


@pytest.fixture
def mock_llm_provider() -> MagicMock:
    mock = MagicMock(spec=ILLMProvider)
    mock.complete = AsyncMock(return_value="Mock answer.")
    mock.get_provider_name.return_value = "mock_llm"
    mock.is_available.return_value = True
    return mock


@pytest.fixture
def mock_vector_store() -> MagicMock:
    mock = MagicMock(spec=IVectorStoreProvider)
    mock.put = AsyncMock(side_effect=lambda document_id, chunks, replace_existing=False: len(chunks))
    mock.similarity_search = AsyncMock(return_value=[])
    mock.delete_by_document = AsyncMock(return_value=0)
    mock.count = AsyncMock(return_value=0)
    mock.get_provider_name.return_value = "mock_store"
    mock.is_available.return_value = True
    return mock


@pytest.fixture
def mock_registry(sample_document: SourceDocument) -> MagicMock:
    mock = MagicMock(spec=IDocumentRegistry)
    mock.initialize = AsyncMock(return_value=None)
    mock.add = AsyncMock(side_effect=lambda document: document)
    mock.get = AsyncMock(return_value=sample_document)
    mock.get_many = AsyncMock(return_value={sample_document.document_id: sample_document})
    mock.list_by_collection = AsyncMock(return_value=[sample_document])
    mock.delete = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def mock_file_storage() -> MagicMock:
    mock = MagicMock(spec=IFileStorage)
    mock.read = AsyncMock(return_value=b"First paragraph.\n\nSecond paragraph.")
    mock.get_provider_name.return_value = "mock_storage"
    return mock
