"""Unit tests for the OpenAI-compatible chat completion adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from briefrag.config.settings import ProviderConfig
from briefrag.models.rag import ChatMessage
from briefrag.providers.llm.openai_provider import OpenAILLMProvider
from briefrag.utils.errors import ProviderError, RateLimitError

_CLIENT_PATH = "briefrag.providers.llm.openai_provider.openai.AsyncOpenAI"
_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _config(**overrides) -> ProviderConfig:
    defaults = {"api_key": "sk-test", "model": "gpt-4o-mini", "max_retries": 2}
    defaults.update(overrides)
    return ProviderConfig(**defaults)


def _completion(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    response.usage = MagicMock(prompt_tokens=30, completion_tokens=8)
    return response


def _client(create: AsyncMock) -> AsyncMock:
    client = AsyncMock()
    client.chat.completions.create = create
    return client


_MESSAGES = [
    ChatMessage(role="system", content="Answer briefly."),
    ChatMessage(role="user", content="What is the total?"),
]


class TestOpenAILLMProvider:
    def test_provider_name(self) -> None:
        with patch(_CLIENT_PATH):
            assert OpenAILLMProvider(_config()).get_provider_name() == "openai"
            assert (
                OpenAILLMProvider(_config(base_url="http://localhost/v1")).get_provider_name()
                == "openai-compatible"
            )

    def test_is_available(self) -> None:
        with patch(_CLIENT_PATH):
            assert OpenAILLMProvider(_config()).is_available() is True
            assert OpenAILLMProvider(_config(api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_complete_sends_messages(self) -> None:
        create = AsyncMock(return_value=_completion("It is $4,250."))
        with patch(_CLIENT_PATH, return_value=_client(create)):
            provider = OpenAILLMProvider(_config())
            answer = await provider.complete(_MESSAGES, temperature=0.2, max_tokens=64)

        assert answer == "It is $4,250."
        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 64
        assert kwargs["messages"] == [
            {"role": "system", "content": "Answer briefly."},
            {"role": "user", "content": "What is the total?"},
        ]

    @pytest.mark.asyncio
    async def test_empty_model_falls_back(self) -> None:
        create = AsyncMock(return_value=_completion("ok"))
        with patch(_CLIENT_PATH, return_value=_client(create)):
            await OpenAILLMProvider(_config(model="")).complete(_MESSAGES)
        assert create.await_args.kwargs["model"] == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_null_content_raises(self) -> None:
        create = AsyncMock(return_value=_completion(None))
        with patch(_CLIENT_PATH, return_value=_client(create)):
            with pytest.raises(ProviderError, match="empty response"):
                await OpenAILLMProvider(_config()).complete(_MESSAGES)

    @pytest.mark.asyncio
    async def test_no_choices_raises(self) -> None:
        response = _completion("x")
        response.choices = []
        create = AsyncMock(return_value=response)
        with patch(_CLIENT_PATH, return_value=_client(create)):
            with pytest.raises(ProviderError, match="no choices"):
                await OpenAILLMProvider(_config()).complete(_MESSAGES)

    @pytest.mark.asyncio
    async def test_rate_limit_retried(self) -> None:
        rate_limited = openai.RateLimitError(
            "slow down", response=httpx.Response(429, request=_REQUEST), body=None
        )
        create = AsyncMock(side_effect=[rate_limited, _completion("done")])
        with patch(_CLIENT_PATH, return_value=_client(create)):
            provider = OpenAILLMProvider(_config(), backoff_base=0)
            assert await provider.complete(_MESSAGES) == "done"
        assert create.await_count == 2

    @pytest.mark.asyncio
    async def test_rate_limit_exhausted(self) -> None:
        rate_limited = openai.RateLimitError(
            "slow down", response=httpx.Response(429, request=_REQUEST), body=None
        )
        create = AsyncMock(side_effect=rate_limited)
        with patch(_CLIENT_PATH, return_value=_client(create)):
            provider = OpenAILLMProvider(_config(max_retries=1), backoff_base=0)
            with pytest.raises(RateLimitError) as exc_info:
                await provider.complete(_MESSAGES)
        assert exc_info.value.provider_name == "openai"
        assert create.await_count == 2

    @pytest.mark.asyncio
    async def test_connection_error_maps_to_retryable(self) -> None:
        create = AsyncMock(side_effect=openai.APIConnectionError(request=_REQUEST))
        with patch(_CLIENT_PATH, return_value=_client(create)):
            provider = OpenAILLMProvider(_config(max_retries=0))
            with pytest.raises(ProviderError) as exc_info:
                await provider.complete(_MESSAGES)
        assert exc_info.value.retryable is True
        assert "connection failed" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_auth_error_not_retried(self) -> None:
        unauthorized = openai.AuthenticationError(
            "bad key", response=httpx.Response(401, request=_REQUEST), body=None
        )
        create = AsyncMock(side_effect=unauthorized)
        with patch(_CLIENT_PATH, return_value=_client(create)):
            with pytest.raises(ProviderError) as exc_info:
                await OpenAILLMProvider(_config(), backoff_base=0).complete(_MESSAGES)
        assert exc_info.value.status_code == 401
        assert create.await_count == 1
