"""Unit tests for the bounded-concurrency EmbeddingRunner."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from briefrag.interfaces.embedding_provider import IEmbeddingProvider
from briefrag.services.ingestion.embedding_runner import EmbeddingBatch, EmbeddingRunner
from briefrag.utils.errors import ChunkTooLargeError, ProviderError, RateLimitError


def _provider(side_effect) -> MagicMock:
    provider = MagicMock(spec=IEmbeddingProvider)
    provider.embed_single = AsyncMock(side_effect=side_effect)
    return provider


async def _by_text(text: str) -> list[float]:
    if text == "huge":
        raise ChunkTooLargeError(estimated_tokens=9000)
    if text == "broken":
        raise ProviderError("upstream 500", status_code=500)
    if text == "throttled":
        raise RateLimitError()
    return [float(len(text)), 1.0]


class TestEmbedChunks:
    @pytest.mark.asyncio
    async def test_all_succeed(self) -> None:
        runner = EmbeddingRunner(_provider(_by_text))
        batch = await runner.embed_chunks(["a", "bb", "ccc"])

        assert batch.embedded == 3
        assert batch.vectors == {0: [1.0, 1.0], 1: [2.0, 1.0], 2: [3.0, 1.0]}
        assert batch.skipped == []
        assert batch.failed == []

    @pytest.mark.asyncio
    async def test_oversized_chunk_is_skipped(self) -> None:
        batch = await EmbeddingRunner(_provider(_by_text)).embed_chunks(["ok", "huge", "fine"])

        assert batch.skipped == [1]
        assert sorted(batch.vectors) == [0, 2]

    @pytest.mark.asyncio
    async def test_provider_failures_are_recorded_per_chunk(self) -> None:
        batch = await EmbeddingRunner(_provider(_by_text), concurrency=2).embed_chunks(
            ["throttled", "ok", "broken", "huge", "fine"]
        )

        assert batch.failed == [0, 2]
        assert batch.skipped == [3]
        assert sorted(batch.vectors) == [1, 4]
        assert batch.embedded + len(batch.failed) + len(batch.skipped) == 5

    @pytest.mark.asyncio
    async def test_empty_input(self) -> None:
        provider = _provider(_by_text)
        batch = await EmbeddingRunner(provider).embed_chunks([])

        assert batch == EmbeddingBatch()
        provider.embed_single.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_exception_propagates(self) -> None:
        runner = EmbeddingRunner(_provider(RuntimeError("bug")))
        with pytest.raises(RuntimeError):
            await runner.embed_chunks(["a"])


class TestProgressAndConcurrency:
    @pytest.mark.asyncio
    async def test_progress_reported_after_every_chunk(self) -> None:
        on_progress = AsyncMock()
        await EmbeddingRunner(_provider(_by_text), concurrency=1).embed_chunks(
            ["a", "huge", "c"], on_progress=on_progress
        )

        assert [c.args for c in on_progress.await_args_list] == [(1, 3), (2, 3), (3, 3)]

    @pytest.mark.asyncio
    async def test_in_flight_calls_bounded(self) -> None:
        in_flight = 0
        peak = 0

        async def _slow(text: str) -> list[float]:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return [1.0]

        batch = await EmbeddingRunner(_provider(_slow), concurrency=3).embed_chunks(
            [str(i) for i in range(10)]
        )

        assert batch.embedded == 10
        assert peak == 3

    def test_concurrency_floor_is_one(self) -> None:
        runner = EmbeddingRunner(_provider(_by_text), concurrency=0)
        assert runner._concurrency == 1
