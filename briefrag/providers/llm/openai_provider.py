"""OpenAI-compatible chat completion provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
Requests are ``{model, messages, temperature, max_tokens}``; the reply's
first choice is returned.  Errors are classified by
:func:`~briefrag.providers.openai_errors.map_openai_error` and retryable
ones are retried with exponential backoff.
"""

from __future__ import annotations

import openai
import structlog

from briefrag.config.settings import ProviderConfig
from briefrag.interfaces.llm_provider import ILLMProvider
from briefrag.models.rag import ChatMessage
from briefrag.providers.openai_errors import map_openai_error
from briefrag.utils.concurrency import retry_with_backoff
from briefrag.utils.errors import ProviderError

logger = structlog.get_logger(logger_name=__name__)


class OpenAILLMProvider(ILLMProvider):
    """Completion provider backed by an OpenAI-compatible chat API.

    Uses ``gpt-4o-mini`` unless the config names another model.
    """

    def __init__(
        self,
        config: ProviderConfig,
        backoff_base: float = 0.5,
        backoff_max: float = 8.0,
    ) -> None:
        self._config = config
        self._model = config.model or "gpt-4o-mini"
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self._provider_label = "openai-compatible" if config.base_url else "openai"

        client_kwargs: dict = {
            "api_key": config.api_key,
            "timeout": openai.Timeout(config.timeout, connect=5.0),
            "max_retries": 0,
        }
        if config.base_url:
            client_kwargs["base_url"] = config.base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)

    async def complete(
        self,
        messages: list[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> str:
        """Generate the next assistant turn for *messages*."""
        payload = [{"role": m.role, "content": m.content} for m in messages]
        return await retry_with_backoff(
            lambda: self._request(payload, temperature, max_tokens),
            max_retries=self._config.max_retries,
            base_delay=self._backoff_base,
            max_delay=self._backoff_max,
            operation="chat_completion",
        )

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        return bool(self._config.api_key)

    async def _request(self, payload: list[dict], temperature: float, max_tokens: int) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=payload,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APIError as exc:
            raise map_openai_error(exc, self._provider_label, "chat completion") from exc

        if not response.choices:
            raise ProviderError(
                message=f"{self._provider_label} returned no choices",
                provider_name=self._provider_label,
            )
        content = response.choices[0].message.content
        if content is None:
            raise ProviderError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self._provider_label,
            )

        logger.info(
            "openai_completion",
            model=self._model,
            provider=self._provider_label,
            messages=len(payload),
            prompt_tokens=response.usage.prompt_tokens if response.usage else None,
            completion_tokens=response.usage.completion_tokens if response.usage else None,
        )
        return content
