"""Abstract base class for chat completion providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from briefrag.models.rag import ChatMessage


class ILLMProvider(ABC):
    """Contract for the completion service that writes grounded answers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str:
        """Send a conversation and return the assistant's reply.

        Parameters
        ----------
        messages:
            Ordered conversation, system instruction first.
        temperature:
            Sampling temperature.
        max_tokens:
            Upper bound on generated tokens.

        Returns
        -------
        str
            The reply text.

        Raises
        ------
        briefrag.utils.errors.ProviderError
            On timeouts, non-2xx responses or an empty reply.
        briefrag.utils.errors.RateLimitError
            On HTTP 429.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs and error messages."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured."""
