"""Source document model.

A :class:`SourceDocument` is the registry entry for one uploaded file.  The
upload itself happens outside briefrag; the registry only records what
ingestion needs to find the bytes and what retrieval needs to label
results.  Documents are immutable once stored except for deletion, which
cascades to their chunks.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SourceDocument(BaseModel):
    """One uploaded file owned by a collection."""

    model_config = ConfigDict(frozen=True)

    document_id: str = Field(description="Unique identifier of the file.")
    name: str = Field(description="Display name shown next to retrieved passages.")
    size_bytes: int = Field(default=0, ge=0, description="Size of the stored file in bytes.")
    media_type: str = Field(description='MIME type, e.g. "application/pdf".')
    collection_id: str = Field(description="Owning collection; retrieval can be scoped to it.")
    storage_path: str = Field(
        default="",
        description="Location of the raw bytes relative to the configured file storage.",
    )
    created_at: datetime = Field(default_factory=_utcnow)
