"""Unit tests for RetrievalService validation, delegation and enrichment."""

from __future__ import annotations

import pytest

from conftest import make_document, make_scored_chunk

from briefrag.models.rag import RetrievalQuery
from briefrag.services.retrieval_service import UNKNOWN_FILE_NAME, RetrievalService
from briefrag.utils.errors import InvalidQueryError, ProviderError, StorageError


@pytest.fixture
def service(mock_embedding_provider, mock_vector_store, mock_registry) -> RetrievalService:
    return RetrievalService(
        embedding_provider=mock_embedding_provider,
        vector_store=mock_vector_store,
        registry=mock_registry,
        default_max_results=5,
        default_threshold=0.3,
    )


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    async def test_empty_query(self, service: RetrievalService, query: str) -> None:
        with pytest.raises(InvalidQueryError):
            await service.retrieve(query)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_results", [0, -1])
    async def test_max_results_below_one(self, service: RetrievalService, max_results: int) -> None:
        with pytest.raises(InvalidQueryError):
            await service.retrieve("invoice", max_results=max_results)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("threshold", [-0.1, 1.01, float("nan")])
    async def test_threshold_out_of_range(self, service: RetrievalService, threshold: float) -> None:
        with pytest.raises(InvalidQueryError):
            await service.retrieve("invoice", threshold=threshold)

    @pytest.mark.asyncio
    async def test_invalid_query_makes_no_calls(
        self, service: RetrievalService, mock_embedding_provider, mock_vector_store
    ) -> None:
        with pytest.raises(InvalidQueryError):
            await service.retrieve("  ")
        mock_embedding_provider.embed_single.assert_not_awaited()
        mock_vector_store.similarity_search.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("threshold", [0.0, 1.0])
    async def test_threshold_bounds_accepted(self, service: RetrievalService, threshold: float) -> None:
        assert await service.retrieve("invoice", threshold=threshold) == []


class TestRetrieve:
    @pytest.mark.asyncio
    async def test_defaults_forwarded(
        self, service: RetrievalService, mock_embedding_provider, mock_vector_store
    ) -> None:
        await service.retrieve("  invoice total  ", scope_id="col-1")

        mock_embedding_provider.embed_single.assert_awaited_once_with("invoice total")
        mock_vector_store.similarity_search.assert_awaited_once_with(
            [0.1] * 4, threshold=0.3, top_k=5, scope_id="col-1"
        )

    @pytest.mark.asyncio
    async def test_overrides_forwarded(self, service: RetrievalService, mock_vector_store) -> None:
        await service.retrieve("invoice", max_results=2, threshold=0.75)
        kwargs = mock_vector_store.similarity_search.await_args.kwargs
        assert (kwargs["top_k"], kwargs["threshold"], kwargs["scope_id"]) == (2, 0.75, None)

    @pytest.mark.asyncio
    async def test_no_hits_skips_registry(
        self, service: RetrievalService, mock_registry
    ) -> None:
        assert await service.retrieve("invoice") == []
        mock_registry.get_many.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_results_enriched_from_registry(
        self, service: RetrievalService, mock_vector_store, mock_registry
    ) -> None:
        mock_vector_store.similarity_search.return_value = [
            make_scored_chunk("c1", similarity=0.9, file_name="stale.txt"),
            make_scored_chunk("c2", similarity=0.6, file_name="stale.txt"),
        ]
        mock_registry.get_many.return_value = {
            "doc-1": make_document(name="Q4 Report.txt", size_bytes=4096)
        }

        results = await service.retrieve("invoice")

        mock_registry.get_many.assert_awaited_once_with(["doc-1"])
        assert [r.chunk_id for r in results] == ["c1", "c2"]
        assert all(r.file_name == "Q4 Report.txt" for r in results)
        assert all(r.file_size == 4096 for r in results)
        assert results[0].similarity == 0.9

    @pytest.mark.asyncio
    async def test_unregistered_document_uses_chunk_metadata(
        self, service: RetrievalService, mock_vector_store, mock_registry
    ) -> None:
        mock_vector_store.similarity_search.return_value = [
            make_scored_chunk("c1", document_id="gone", file_name="archived.pdf", file_size=77),
            make_scored_chunk("c2", document_id="gone-too", file_name=""),
        ]
        mock_registry.get_many.return_value = {}

        results = await service.retrieve("invoice")

        assert (results[0].file_name, results[0].file_size) == ("archived.pdf", 77)
        assert results[1].file_name == UNKNOWN_FILE_NAME

    @pytest.mark.asyncio
    async def test_registry_failure_degrades_to_chunk_metadata(
        self, service: RetrievalService, mock_vector_store, mock_registry
    ) -> None:
        mock_vector_store.similarity_search.return_value = [
            make_scored_chunk("c1", file_name="kept.txt")
        ]
        mock_registry.get_many.side_effect = StorageError("sqlite locked")

        results = await service.retrieve("invoice")
        assert results[0].file_name == "kept.txt"

    @pytest.mark.asyncio
    async def test_embedding_failure_propagates(
        self, service: RetrievalService, mock_embedding_provider
    ) -> None:
        mock_embedding_provider.embed_single.side_effect = ProviderError("down")
        with pytest.raises(ProviderError):
            await service.retrieve("invoice")

    @pytest.mark.asyncio
    async def test_store_failure_propagates(
        self, service: RetrievalService, mock_vector_store
    ) -> None:
        mock_vector_store.similarity_search.side_effect = StorageError("chroma down")
        with pytest.raises(StorageError):
            await service.retrieve("invoice")


class TestSearch:
    @pytest.mark.asyncio
    async def test_search_wraps_results(self, service: RetrievalService, mock_vector_store) -> None:
        mock_vector_store.similarity_search.return_value = [make_scored_chunk("c1")]

        response = await service.search(
            RetrievalQuery(query="invoice", scope_id="col-1", max_results=3, threshold=0.2)
        )

        assert response.query == "invoice"
        assert response.result_count == 1
        assert response.results[0].chunk_id == "c1"
        kwargs = mock_vector_store.similarity_search.await_args.kwargs
        assert (kwargs["top_k"], kwargs["threshold"], kwargs["scope_id"]) == (3, 0.2, "col-1")

    def test_defaults_exposed(self, service: RetrievalService) -> None:
        assert service.default_max_results == 5
        assert service.default_threshold == 0.3
