"""Utility modules for briefrag.

- **errors** -- exception hierarchy rooted at BriefRagError; each stage
  raises its own subclass so callers can handle failures granularly.
- **logging** -- structlog setup (console in development, JSON in
  production) with the stdlib root logger bridged through it.
- **concurrency** -- semaphore-bounded gather and exponential backoff used
  for provider calls.
- **text_normalizer** -- sanitization, readability ratio and token
  estimation for extracted text.
"""

from briefrag.utils.concurrency import retry_with_backoff, throttled_gather
from briefrag.utils.errors import (
    BriefRagError,
    ChunkTooLargeError,
    ConfigurationError,
    DocumentNotFoundError,
    DuplicateDocumentError,
    ExtractionError,
    ExtractionFailedError,
    InvalidQueryError,
    LowReadabilityError,
    NoReadableTextError,
    ProviderError,
    RateLimitError,
    StorageError,
    UnsupportedFormatError,
)
from briefrag.utils.logging import configure_logging, get_logger
from briefrag.utils.text_normalizer import estimate_tokens, readability_ratio, sanitize_text

__all__ = [
    "BriefRagError",
    "ChunkTooLargeError",
    "ConfigurationError",
    "DocumentNotFoundError",
    "DuplicateDocumentError",
    "ExtractionError",
    "ExtractionFailedError",
    "InvalidQueryError",
    "LowReadabilityError",
    "NoReadableTextError",
    "ProviderError",
    "RateLimitError",
    "StorageError",
    "UnsupportedFormatError",
    "configure_logging",
    "estimate_tokens",
    "get_logger",
    "readability_ratio",
    "retry_with_backoff",
    "sanitize_text",
    "throttled_gather",
]
