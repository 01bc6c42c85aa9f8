"""briefrag domain models.

    - document.py   -- SourceDocument registry entries
    - extraction.py -- extraction strategies, candidates and results
    - pipeline.py   -- ingestion progress stages and snapshots
    - rag.py        -- chunks, search results, conversations, ingestion results
"""

from __future__ import annotations

from briefrag.models.document import SourceDocument
from briefrag.models.extraction import (
    ExtractionCandidate,
    ExtractionResult,
    ExtractionStrategy,
)
from briefrag.models.pipeline import IngestionStage, IngestionStatus
from briefrag.models.rag import (
    ChatMessage,
    Chunk,
    ChunkMetadata,
    GroundedAnswer,
    IngestionOutcome,
    IngestionResult,
    RetrievalQuery,
    RetrievalResponse,
    ScoredChunk,
    SearchResult,
)

__all__ = [
    "ChatMessage",
    "Chunk",
    "ChunkMetadata",
    "ExtractionCandidate",
    "ExtractionResult",
    "ExtractionStrategy",
    "GroundedAnswer",
    "IngestionOutcome",
    "IngestionResult",
    "IngestionStage",
    "IngestionStatus",
    "RetrievalQuery",
    "RetrievalResponse",
    "ScoredChunk",
    "SearchResult",
    "SourceDocument",
]
