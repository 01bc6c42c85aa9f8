"""Ingestion progress models.

:class:`IngestionStage` enumerates the steps one document moves through;
:class:`IngestionStatus` is the snapshot callers poll while it runs.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class IngestionStage(str, Enum):
    QUEUED = "queued"
    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    STORING = "storing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (IngestionStage.COMPLETED, IngestionStage.FAILED)


class IngestionStatus(BaseModel):
    """Point-in-time progress of one document's ingestion."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    stage: IngestionStage = IngestionStage.QUEUED
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    message: str = ""
    chunks_done: int = Field(default=0, ge=0)
    chunks_total: int = Field(default=0, ge=0)
