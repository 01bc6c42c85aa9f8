"""Document ingestion pipeline for the briefrag knowledge base.

Orchestrates the full pipeline: **extract -> sanitize -> chunk -> embed -> store**.

1. **Extract** (text_extractor.py / TextExtractor) -- Plain text, markup
   and PDF bytes become text.  PDFs go through PyMuPDF first, then the
   byte-level heuristics in source_processors/.

2. **Chunk** (chunker.py / TextChunker) -- Splits sanitized text into
   bounded, overlapping chunks along paragraph and sentence boundaries.

3. **Embed** (embedding_runner.py / EmbeddingRunner) -- One embedding
   call per chunk through a bounded pool; oversized chunks are skipped and
   failed chunks counted.

4. **Store** (via IVectorStoreProvider) -- Replaces the document's chunk
   set in the vector store in one all-or-nothing write.

The IngestionService class orchestrates all stages and reports progress to
the ProgressTracker.
"""

from briefrag.services.ingestion.chunker import TextChunker
from briefrag.services.ingestion.embedding_runner import EmbeddingBatch, EmbeddingRunner
from briefrag.services.ingestion.ingestion_service import IngestionService
from briefrag.services.ingestion.text_extractor import TextExtractor

__all__ = [
    "EmbeddingBatch",
    "EmbeddingRunner",
    "IngestionService",
    "TextChunker",
    "TextExtractor",
]
