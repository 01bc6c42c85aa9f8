"""Abstract base class for text-embedding service providers.

Concrete implementation: ``OpenAIEmbeddingProvider`` in
``briefrag/providers/embedding/`` (OpenAI or any OpenAI-compatible API).
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IEmbeddingProvider(ABC):
    """Contract for the embedding service used at ingestion and query time.

    Vectors produced here are stored by
    :class:`~briefrag.interfaces.vector_store_provider.IVectorStoreProvider`;
    one deployment uses one embedding space, so :meth:`get_dimension` must
    match the store's configured dimension.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            Text strings to embed.

        Returns
        -------
        list[list[float]]
            Vectors corresponding positionally to *texts*.

        Raises
        ------
        briefrag.utils.errors.ChunkTooLargeError
            If any text's estimated token count exceeds the ceiling.  No
            request is sent in that case.
        briefrag.utils.errors.ProviderError
            If the call fails or returns vectors of the wrong dimension.
        briefrag.utils.errors.RateLimitError
            If the provider rejects the call with HTTP 429.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for one text.

        Raises the same errors as :meth:`embed`.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the length of every vector this provider produces."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs and error messages."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured."""
