"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Real OpenAI and OpenAI-compatible services (Azure proxies, TogetherAI,
local gateways) are both supported through ``ProviderConfig.base_url``.

Every request is ``{model, input, encoding_format: "float"}``.  Inputs whose
estimated token count exceeds the ceiling are refused before any request
is sent, vectors of the wrong length are rejected, and retryable failures
(timeouts, 429, 5xx) are retried with exponential backoff up to
``ProviderConfig.max_retries`` times.
"""

from __future__ import annotations

import openai
import structlog

from briefrag.config.settings import ProviderConfig
from briefrag.interfaces.embedding_provider import IEmbeddingProvider
from briefrag.providers.openai_errors import map_openai_error
from briefrag.utils.concurrency import retry_with_backoff
from briefrag.utils.errors import ChunkTooLargeError, ProviderError
from briefrag.utils.text_normalizer import estimate_tokens

logger = structlog.get_logger(logger_name=__name__)

_OPENAI_BATCH_LIMIT = 2048

DEFAULT_TOKEN_CEILING = 7000

# Native output sizes of known embedding models.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
}

# Models that accept a ``dimensions`` argument to shorten their output.
_SHORTENABLE_PREFIX = "text-embedding-3"


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Parameters
    ----------
    config:
        Connection settings (key, model, base URL, timeout, retries).
    dimension:
        Expected vector length.  Defaults to the model's native size (1536
        for ``text-embedding-3-small``).  For ``text-embedding-3-*`` models
        a smaller value is requested from the API directly.
    token_ceiling:
        Inputs estimated above this many tokens raise
        :class:`ChunkTooLargeError` without a request.
    backoff_base, backoff_max:
        Exponential backoff bounds in seconds.
    """

    def __init__(
        self,
        config: ProviderConfig,
        dimension: int | None = None,
        token_ceiling: int = DEFAULT_TOKEN_CEILING,
        backoff_base: float = 0.5,
        backoff_max: float = 8.0,
    ) -> None:
        self._config = config
        self._model = config.model
        native = _MODEL_DIMENSIONS.get(self._model)
        self._dimension = dimension or native or 1536
        self._request_dimensions = (
            self._dimension
            if self._model.startswith(_SHORTENABLE_PREFIX) and native and self._dimension != native
            else None
        )
        self._token_ceiling = token_ceiling
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self._provider_label = "openai-compatible_embedding" if config.base_url else "openai_embedding"

        client_kwargs: dict = {
            "api_key": config.api_key,
            "timeout": openai.Timeout(config.timeout, connect=5.0),
            "max_retries": 0,  # retries are handled by retry_with_backoff
        }
        if config.base_url:
            client_kwargs["base_url"] = config.base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts, in input order."""
        if not texts:
            return []
        for text in texts:
            self._check_size(text)

        vectors: list[list[float]] = []
        for start in range(0, len(texts), _OPENAI_BATCH_LIMIT):
            batch = texts[start : start + _OPENAI_BATCH_LIMIT]
            vectors.extend(
                await retry_with_backoff(
                    lambda batch=batch: self._request(batch),
                    max_retries=self._config.max_retries,
                    base_delay=self._backoff_base,
                    max_delay=self._backoff_max,
                    operation="embedding",
                )
            )
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._config.api_key)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_size(self, text: str) -> None:
        tokens = estimate_tokens(text)
        if tokens > self._token_ceiling:
            raise ChunkTooLargeError(
                message=(
                    f"Input of ~{tokens} tokens exceeds the {self._token_ceiling}-token "
                    "embedding ceiling"
                ),
                provider_name=self._provider_label,
                estimated_tokens=tokens,
            )

    async def _request(self, batch: list[str]) -> list[list[float]]:
        kwargs: dict = {
            "model": self._model,
            "input": batch,
            "encoding_format": "float",
        }
        if self._request_dimensions:
            kwargs["dimensions"] = self._request_dimensions

        try:
            response = await self._client.embeddings.create(**kwargs)
        except openai.APIError as exc:
            raise map_openai_error(exc, self._provider_label, "embedding request") from exc

        vectors = [item.embedding for item in response.data]
        if len(vectors) != len(batch):
            raise ProviderError(
                message=f"Expected {len(batch)} embeddings, received {len(vectors)}",
                provider_name=self._provider_label,
            )
        for vector in vectors:
            if len(vector) != self._dimension:
                raise ProviderError(
                    message=(
                        f"Embedding has {len(vector)} dimensions, expected {self._dimension}"
                    ),
                    provider_name=self._provider_label,
                )

        logger.debug(
            "openai_embedding_batch",
            model=self._model,
            provider=self._provider_label,
            batch_size=len(batch),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return vectors
