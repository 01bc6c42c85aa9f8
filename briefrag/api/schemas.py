"""Pydantic request/response schemas for the briefrag API.

Request schemas end with ``Request``, response schemas with ``Response``.
``Field(...)`` carries the validation constraints and the descriptions
shown in the generated OpenAPI docs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from briefrag.models.rag import SearchResult


class RegisterDocumentRequest(BaseModel):
    """Metadata of an uploaded file to add to the registry."""

    name: str = Field(..., min_length=1, max_length=512)
    media_type: str = Field(..., min_length=1, examples=["application/pdf"])
    collection_id: str = Field(..., min_length=1)
    size_bytes: int = Field(default=0, ge=0)
    storage_path: str = Field(
        default="",
        description="Location relative to file storage; defaults to the document id.",
    )
    document_id: str | None = Field(default=None, description="Generated when omitted.")


class DocumentResponse(BaseModel):
    document_id: str
    name: str
    size_bytes: int
    media_type: str
    collection_id: str
    storage_path: str
    created_at: datetime


class DeleteDocumentResponse(BaseModel):
    document_id: str
    chunks_removed: int


class IngestRequest(BaseModel):
    """Start ingestion of a registered document."""

    file_id: str = Field(..., min_length=1)
    extracted_text: str | None = Field(
        default=None,
        description="Text already extracted by the caller; skips server-side extraction.",
    )


class IngestResponse(BaseModel):
    document_id: str
    file_name: str
    status: str
    chunks_total: int
    chunks_embedded: int
    chunks_skipped: int
    chunks_failed: int
    text_length: int
    units_skipped: int
    extraction_strategy: str | None = None
    ingestion_time: float


class IngestionStatusResponse(BaseModel):
    document_id: str
    stage: str
    progress: float
    message: str | None = None
    chunks_done: int = 0
    chunks_total: int = 0


class SearchRequest(BaseModel):
    """Similarity search over a collection's chunks.

    Range checks on ``max_results`` and ``threshold`` happen in the
    retrieval service so API and CLI callers get the same error.
    """

    query: str = Field(..., max_length=4000)
    scope_id: str | None = None
    max_results: int | None = None
    threshold: float | None = None


class SearchResponse(BaseModel):
    results: list[SearchResult] = Field(default_factory=list)
    query: str
    result_count: int = 0


class ChatMessageInput(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1, max_length=8000)


class AnswerRequest(BaseModel):
    """Conversation to answer from a collection's files."""

    messages: list[ChatMessageInput] = Field(..., min_length=1)
    scope_id: str | None = None
    max_results: int | None = None
    threshold: float | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, ge=1)


class BriefingRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    request: str = Field(..., min_length=1, max_length=4000)
    scope_id: str | None = None


class GroundedAnswerResponse(BaseModel):
    content: str
    grounded: bool
    sources: list[SearchResult] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
