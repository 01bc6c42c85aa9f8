"""Unit tests for the OpenAI-compatible embedding provider adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from briefrag.config.settings import ProviderConfig
from briefrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from briefrag.utils.errors import ChunkTooLargeError, ProviderError, RateLimitError

_CLIENT_PATH = "briefrag.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI"
_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/embeddings")


def _config(**overrides) -> ProviderConfig:
    defaults = {"api_key": "sk-test", "model": "text-embedding-3-small", "max_retries": 2}
    defaults.update(overrides)
    return ProviderConfig(**defaults)


def _response(vectors: list[list[float]]) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=v) for v in vectors]
    response.usage = MagicMock(total_tokens=12)
    return response


def _client(create: AsyncMock) -> AsyncMock:
    client = AsyncMock()
    client.embeddings.create = create
    return client


def _status_error(cls: type, status: int, body=None) -> openai.APIStatusError:
    return cls("upstream said no", response=httpx.Response(status, request=_REQUEST), body=body)


class TestMetadata:
    def test_provider_name(self) -> None:
        with patch(_CLIENT_PATH):
            assert OpenAIEmbeddingProvider(_config()).get_provider_name() == "openai_embedding"
            compatible = OpenAIEmbeddingProvider(_config(base_url="http://localhost:8080/v1"))
            assert compatible.get_provider_name() == "openai-compatible_embedding"

    def test_available_only_with_key(self) -> None:
        with patch(_CLIENT_PATH):
            assert OpenAIEmbeddingProvider(_config()).is_available() is True
            assert OpenAIEmbeddingProvider(_config(api_key="")).is_available() is False

    @pytest.mark.parametrize(
        ("model", "dimension", "expected"),
        [
            ("text-embedding-3-small", None, 1536),
            ("text-embedding-3-large", None, 3072),
            ("BAAI/bge-base-en-v1.5", None, 768),
            ("some-unknown-model", None, 1536),
            ("text-embedding-3-small", 256, 256),
        ],
    )
    def test_dimension(self, model: str, dimension: int | None, expected: int) -> None:
        with patch(_CLIENT_PATH):
            provider = OpenAIEmbeddingProvider(_config(model=model), dimension=dimension)
        assert provider.get_dimension() == expected

    def test_client_built_without_sdk_retries(self) -> None:
        with patch(_CLIENT_PATH) as client_cls:
            OpenAIEmbeddingProvider(_config(base_url="http://gateway/v1"))
        kwargs = client_cls.call_args.kwargs
        assert kwargs["max_retries"] == 0
        assert kwargs["base_url"] == "http://gateway/v1"
        assert kwargs["api_key"] == "sk-test"


class TestEmbed:
    @pytest.mark.asyncio
    async def test_embed_batch(self) -> None:
        create = AsyncMock(return_value=_response([[0.1] * 1536, [0.2] * 1536]))
        with patch(_CLIENT_PATH, return_value=_client(create)):
            provider = OpenAIEmbeddingProvider(_config())
            vectors = await provider.embed(["hello", "world"])

        assert len(vectors) == 2
        assert vectors[1][0] == 0.2
        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "text-embedding-3-small"
        assert kwargs["input"] == ["hello", "world"]
        assert kwargs["encoding_format"] == "float"
        assert "dimensions" not in kwargs

    @pytest.mark.asyncio
    async def test_shortened_dimensions_requested(self) -> None:
        create = AsyncMock(return_value=_response([[0.5] * 4]))
        with patch(_CLIENT_PATH, return_value=_client(create)):
            provider = OpenAIEmbeddingProvider(_config(), dimension=4)
            vector = await provider.embed_single("hello")

        assert vector == [0.5] * 4
        assert create.await_args.kwargs["dimensions"] == 4

    @pytest.mark.asyncio
    async def test_empty_batch_makes_no_request(self) -> None:
        create = AsyncMock()
        with patch(_CLIENT_PATH, return_value=_client(create)):
            assert await OpenAIEmbeddingProvider(_config()).embed([]) == []
        create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_oversized_input_refused_before_request(self) -> None:
        create = AsyncMock()
        with patch(_CLIENT_PATH, return_value=_client(create)):
            provider = OpenAIEmbeddingProvider(_config(), token_ceiling=7000)
            with pytest.raises(ChunkTooLargeError) as exc_info:
                await provider.embed_single("x" * 28_001)

        assert exc_info.value.estimated_tokens == 7001
        create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_input_at_ceiling_is_sent(self) -> None:
        create = AsyncMock(return_value=_response([[0.0] * 1536]))
        with patch(_CLIENT_PATH, return_value=_client(create)):
            await OpenAIEmbeddingProvider(_config()).embed_single("x" * 28_000)
        create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wrong_dimension_rejected(self) -> None:
        create = AsyncMock(return_value=_response([[0.1] * 3]))
        with patch(_CLIENT_PATH, return_value=_client(create)):
            with pytest.raises(ProviderError, match="dimensions"):
                await OpenAIEmbeddingProvider(_config()).embed_single("hello")

    @pytest.mark.asyncio
    async def test_wrong_count_rejected(self) -> None:
        create = AsyncMock(return_value=_response([[0.1] * 1536]))
        with patch(_CLIENT_PATH, return_value=_client(create)):
            with pytest.raises(ProviderError, match="Expected 2 embeddings"):
                await OpenAIEmbeddingProvider(_config()).embed(["a", "b"])


class TestErrorsAndRetries:
    @pytest.mark.asyncio
    async def test_rate_limit_retried_then_succeeds(self) -> None:
        create = AsyncMock(
            side_effect=[
                _status_error(openai.RateLimitError, 429),
                _response([[0.3] * 1536]),
            ]
        )
        with patch(_CLIENT_PATH, return_value=_client(create)):
            provider = OpenAIEmbeddingProvider(_config(), backoff_base=0)
            vector = await provider.embed_single("hello")

        assert vector[0] == 0.3
        assert create.await_count == 2

    @pytest.mark.asyncio
    async def test_rate_limit_exhausts_retries(self) -> None:
        create = AsyncMock(side_effect=_status_error(openai.RateLimitError, 429))
        with patch(_CLIENT_PATH, return_value=_client(create)):
            provider = OpenAIEmbeddingProvider(_config(max_retries=2), backoff_base=0)
            with pytest.raises(RateLimitError):
                await provider.embed_single("hello")
        assert create.await_count == 3

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(self) -> None:
        create = AsyncMock(
            side_effect=[openai.APITimeoutError(request=_REQUEST), _response([[0.1] * 1536])]
        )
        with patch(_CLIENT_PATH, return_value=_client(create)):
            provider = OpenAIEmbeddingProvider(_config(), backoff_base=0)
            await provider.embed_single("hello")
        assert create.await_count == 2

    @pytest.mark.asyncio
    async def test_server_error_is_retryable(self) -> None:
        create = AsyncMock(side_effect=_status_error(openai.InternalServerError, 500))
        with patch(_CLIENT_PATH, return_value=_client(create)):
            provider = OpenAIEmbeddingProvider(_config(max_retries=1), backoff_base=0)
            with pytest.raises(ProviderError) as exc_info:
                await provider.embed_single("hello")
        assert exc_info.value.status_code == 500
        assert exc_info.value.retryable is True
        assert create.await_count == 2

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self) -> None:
        create = AsyncMock(
            side_effect=_status_error(openai.BadRequestError, 400, body={"error": "bad input"})
        )
        with patch(_CLIENT_PATH, return_value=_client(create)):
            provider = OpenAIEmbeddingProvider(_config(), backoff_base=0)
            with pytest.raises(ProviderError) as exc_info:
                await provider.embed_single("hello")

        assert create.await_count == 1
        assert exc_info.value.status_code == 400
        assert exc_info.value.retryable is False
        assert "bad input" in exc_info.value.body
        assert exc_info.value.provider_name == "openai_embedding"
