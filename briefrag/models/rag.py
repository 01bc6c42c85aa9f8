"""RAG data models: chunks, retrieval results, conversations and ingestion outcomes.

Ingestion turns a :class:`~briefrag.models.document.SourceDocument` into
ordered :class:`Chunk` objects, each with one embedding vector.  Retrieval
turns a :class:`RetrievalQuery` into zero or more :class:`SearchResult`
objects, which the grounded completion service folds into a prompt.
All models are frozen.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Chunks
# ---------------------------------------------------------------------------
class ChunkMetadata(BaseModel):
    """Provenance stored alongside every chunk."""

    model_config = ConfigDict(frozen=True)

    chunk_index: int = Field(ge=0, description="0-based position within the document.")
    total_chunks: int = Field(ge=1, description="Chunk count computed at chunking time.")
    file_name: str = Field(default="", description="Display name of the source file.")
    file_size: int = Field(default=0, ge=0, description="Source file size in bytes.")

    @model_validator(mode="after")
    def _index_within_total(self) -> ChunkMetadata:
        if self.chunk_index >= self.total_chunks:
            raise ValueError(
                f"chunk_index {self.chunk_index} must be < total_chunks {self.total_chunks}"
            )
        return self


class Chunk(BaseModel):
    """A contiguous piece of a document's sanitized text with its embedding."""

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(description="Unique identifier of this chunk.")
    document_id: str = Field(description="Owning source document.")
    collection_id: str = Field(default="", description="Owning collection, used as search scope.")
    content: str = Field(description="Sanitized chunk text.")
    embedding: list[float] = Field(description="Fixed-dimension vector for this chunk.")
    metadata: ChunkMetadata
    created_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------
class ScoredChunk(BaseModel):
    """Raw vector store hit before enrichment."""

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    document_id: str
    content: str
    similarity: float = Field(ge=0.0, le=1.0)
    metadata: ChunkMetadata


class SearchResult(BaseModel):
    """A retrieved chunk enriched with its document's display metadata."""

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    document_id: str
    content: str
    similarity: float = Field(ge=0.0, le=1.0, description="1 - cosine distance, clamped.")
    file_name: str = Field(default="Unknown File")
    file_size: int = Field(default=0, ge=0)
    chunk_index: int = Field(default=0, ge=0)
    total_chunks: int = Field(default=1, ge=1)


class RetrievalQuery(BaseModel):
    """Parameters of one similarity search."""

    model_config = ConfigDict(frozen=True)

    query: str
    scope_id: str | None = Field(default=None, description="Restrict results to one collection.")
    max_results: int = Field(default=5, description="Upper bound on returned results.")
    threshold: float = Field(default=0.3, description="Minimum similarity in [0, 1].")


class RetrievalResponse(BaseModel):
    """Search results plus the echoed query."""

    model_config = ConfigDict(frozen=True)

    query: str
    results: list[SearchResult] = Field(default_factory=list)
    result_count: int = 0


# ---------------------------------------------------------------------------
# Conversation / completion
# ---------------------------------------------------------------------------
class ChatMessage(BaseModel):
    """One turn of a conversation sent to the completion service."""

    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str


class GroundedAnswer(BaseModel):
    """A generated answer and the passages it was grounded in."""

    model_config = ConfigDict(frozen=True)

    content: str
    sources: list[SearchResult] = Field(default_factory=list)
    grounded: bool = Field(description="False when no passage cleared the threshold.")


# ---------------------------------------------------------------------------
# Ingestion outcome
# ---------------------------------------------------------------------------
class IngestionOutcome(str, Enum):
    """Final status of one ingestion run."""

    COMPLETED = "completed"  # every attempted chunk embedded and stored
    PARTIAL = "partial"  # at least one stored, at least one failed
    FAILED = "failed"  # nothing stored


class IngestionResult(BaseModel):
    """Summary returned after ingesting one document."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    file_name: str = ""
    status: IngestionOutcome
    chunks_total: int = Field(default=0, ge=0)
    chunks_embedded: int = Field(default=0, ge=0)
    chunks_skipped: int = Field(default=0, ge=0, description="Over the embedding token ceiling.")
    chunks_failed: int = Field(default=0, ge=0, description="Embedding failed after retries.")
    text_length: int = Field(default=0, ge=0)
    units_skipped: int = Field(default=0, ge=0, description="Pages past the extraction cap.")
    extraction_strategy: str | None = None
    ingestion_time: float = Field(default=0.0, ge=0.0, description="Wall-clock seconds.")

    @property
    def chunks_attempted(self) -> int:
        return self.chunks_total - self.chunks_skipped
