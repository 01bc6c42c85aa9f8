"""Custom exception hierarchy for briefrag.

All application exceptions inherit from :class:`BriefRagError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "sqlite") caused the failure.

The hierarchy is organized by pipeline stage:

    BriefRagError  (base -- catch-all for any briefrag error)
    +-- ExtractionError            (document bytes -> text)
    |   +-- UnsupportedFormatError (media type has no extraction path)
    |   +-- ExtractionFailedError  (decoder raised on malformed input)
    |   +-- LowReadabilityError    (selected text is mostly binary noise)
    |   +-- NoReadableTextError    (no strategy produced plausible text)
    +-- ChunkTooLargeError         (chunk exceeds the embedding token ceiling)
    +-- ProviderError              (embedding / completion service failure)
    |   +-- RateLimitError         (HTTP 429 from the provider)
    +-- StorageError               (vector store / registry persistence)
    +-- InvalidQueryError          (empty query, bad retrieval parameters)
    +-- DocumentNotFoundError      (unknown source document id)
    +-- DuplicateDocumentError     (document id already registered)
    +-- ConfigurationError         (startup / missing config)

Every class exposes ``retryable`` (backoff loops consult it) and
``http_status`` (the API middleware maps errors to status codes with it).
"""

from __future__ import annotations


class BriefRagError(Exception):
    """Base exception for all briefrag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    retryable: bool = False
    http_status: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Extraction errors (abort the current document only)
# ---------------------------------------------------------------------------

class ExtractionError(BriefRagError):
    """Base class for failures turning document bytes into text."""

    http_status = 422

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedFormatError(ExtractionError):
    """Raised when a media type has no extraction strategy."""

    http_status = 415

    def __init__(
        self,
        message: str = "Unsupported file type",
        provider_name: str | None = None,
        media_type: str | None = None,
    ) -> None:
        self._media_type = media_type
        if media_type and message == "Unsupported file type":
            message = f"Unsupported file type: {media_type}"
        super().__init__(message=message, provider_name=provider_name)

    @property
    def media_type(self) -> str | None:
        return self._media_type


class ExtractionFailedError(ExtractionError):
    """Raised when a decoder raises on malformed input."""

    def __init__(
        self,
        message: str = "Document could not be decoded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LowReadabilityError(ExtractionError):
    """Raised when the best extraction candidate is mostly non-text.

    ``diagnosis`` is ``"mostly_binary"`` when almost nothing readable came
    out (scanned or encrypted document, the user can re-upload a text-based
    version) and ``"mixed_encoding"`` when the text is partially readable
    but uses an encoding the heuristics cannot decode.
    """

    MOSTLY_BINARY = "mostly_binary"
    MIXED_ENCODING = "mixed_encoding"

    def __init__(
        self,
        message: str | None = None,
        provider_name: str | None = None,
        ratio: float = 0.0,
        diagnosis: str = MIXED_ENCODING,
    ) -> None:
        self._ratio = ratio
        self._diagnosis = diagnosis
        if message is None:
            if diagnosis == self.MOSTLY_BINARY:
                message = (
                    "The document appears to be mostly binary data (scanned or "
                    "encrypted). Please upload a text-based version of the file."
                )
            else:
                message = (
                    "The document uses an encoding that could not be decoded "
                    "into readable text."
                )
        super().__init__(message=message, provider_name=provider_name)

    @property
    def ratio(self) -> float:
        return self._ratio

    @property
    def diagnosis(self) -> str:
        return self._diagnosis


class NoReadableTextError(ExtractionError):
    """Raised when no extraction strategy produced plausible text."""

    def __init__(
        self,
        message: str = "No readable text could be extracted from the document",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Embedding / completion provider errors
# ---------------------------------------------------------------------------

class ChunkTooLargeError(BriefRagError):
    """Raised when a chunk's estimated token count exceeds the ceiling.

    The ingestion pipeline treats this as a skip, never as a run failure.
    """

    def __init__(
        self,
        message: str = "Chunk exceeds the embedding token ceiling",
        provider_name: str | None = None,
        estimated_tokens: int = 0,
    ) -> None:
        self._estimated_tokens = estimated_tokens
        super().__init__(message=message, provider_name=provider_name)

    @property
    def estimated_tokens(self) -> int:
        return self._estimated_tokens


class ProviderError(BriefRagError):
    """Raised when an embedding or completion call fails.

    ``status_code`` and ``body`` carry the provider's HTTP response when
    there was one.  Timeouts and 5xx responses are retryable; other client
    errors are not.
    """

    http_status = 502

    def __init__(
        self,
        message: str = "External provider call failed",
        provider_name: str | None = None,
        status_code: int | None = None,
        body: str | None = None,
        retryable: bool = False,
    ) -> None:
        self._status_code = status_code
        self._body = body
        self.retryable = retryable
        super().__init__(message=message, provider_name=provider_name)

    @property
    def status_code(self) -> int | None:
        return self._status_code

    @property
    def body(self) -> str | None:
        return self._body


class RateLimitError(ProviderError):
    """Raised when a provider's rate limit is exceeded (HTTP 429)."""

    http_status = 429

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
        status_code: int | None = 429,
        body: str | None = None,
    ) -> None:
        super().__init__(
            message=message,
            provider_name=provider_name,
            status_code=status_code,
            body=body,
            retryable=True,
        )


# ---------------------------------------------------------------------------
# Persistence / query errors
# ---------------------------------------------------------------------------

class StorageError(BriefRagError):
    """Raised when the vector store or document registry fails."""

    retryable = True
    http_status = 503

    def __init__(
        self,
        message: str = "Storage operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidQueryError(BriefRagError):
    """Raised when retrieval parameters are unusable."""

    http_status = 400

    def __init__(
        self,
        message: str = "Invalid query",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentNotFoundError(BriefRagError):
    """Raised when a source document id is not in the registry."""

    http_status = 404

    def __init__(
        self,
        message: str = "Document not found",
        provider_name: str | None = None,
        document_id: str | None = None,
    ) -> None:
        self._document_id = document_id
        if document_id and message == "Document not found":
            message = f"Document not found: {document_id}"
        super().__init__(message=message, provider_name=provider_name)

    @property
    def document_id(self) -> str | None:
        return self._document_id


class DuplicateDocumentError(BriefRagError):
    """Raised when a document id is registered a second time."""

    http_status = 409

    def __init__(
        self,
        message: str = "Document already registered",
        provider_name: str | None = None,
        document_id: str | None = None,
    ) -> None:
        self._document_id = document_id
        if document_id and message == "Document already registered":
            message = f"Document already registered: {document_id}"
        super().__init__(message=message, provider_name=provider_name)

    @property
    def document_id(self) -> str | None:
        return self._document_id


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(BriefRagError):
    """Raised when required configuration is missing or invalid."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
