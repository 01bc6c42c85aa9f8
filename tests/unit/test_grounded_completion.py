"""Unit tests for prompt construction and the GroundedCompletionService."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import make_search_result

from briefrag.models.rag import ChatMessage
from briefrag.services.grounded_completion import (
    GroundedCompletionService,
    build_messages,
    format_context,
)
from briefrag.services.retrieval_service import RetrievalService
from briefrag.utils.errors import ConfigurationError, InvalidQueryError, ProviderError


@pytest.fixture
def mock_retrieval() -> MagicMock:
    mock = MagicMock(spec=RetrievalService)
    mock.retrieve = AsyncMock(return_value=[make_search_result()])
    return mock


def _user(text: str) -> ChatMessage:
    return ChatMessage(role="user", content=text)


class TestPromptConstruction:
    def test_format_context_labels_passages(self) -> None:
        context = format_context(
            [
                make_search_result(),
                make_search_result(content="Due March 1.", similarity=0.5, file_name="terms.txt"),
            ]
        )
        assert context == (
            "[1] Source: invoice.pdf (similarity: 0.82)\nInvoice total is $4,250.\n\n"
            "[2] Source: terms.txt (similarity: 0.50)\nDue March 1."
        )

    def test_grounded_system_message_first(self) -> None:
        conversation = [_user("What is the total?")]
        messages = build_messages(conversation, [make_search_result()])

        assert [m.role for m in messages] == ["system", "user"]
        system = messages[0].content
        assert "Invoice total is $4,250." in system
        assert "Source: invoice.pdf" in system
        assert "Answer only from the content above" in system
        assert messages[1] == conversation[0]

    def test_no_content_instruction(self) -> None:
        messages = build_messages([_user("What is the total?")], [])
        assert "No relevant content was found" in messages[0].content
        assert "Do not make up information" in messages[0].content


class TestAnswer:
    @pytest.mark.asyncio
    async def test_answer_uses_defaults(self, mock_llm_provider) -> None:
        service = GroundedCompletionService(mock_llm_provider, temperature=0.4, max_tokens=300)

        reply = await service.answer([_user("Total?")], [make_search_result()])

        assert reply == "Mock answer."
        kwargs = mock_llm_provider.complete.await_args.kwargs
        assert (kwargs["temperature"], kwargs["max_tokens"]) == (0.4, 300)

    @pytest.mark.asyncio
    async def test_answer_overrides(self, mock_llm_provider) -> None:
        service = GroundedCompletionService(mock_llm_provider)
        await service.answer([_user("Total?")], [], temperature=0.0, max_tokens=10)
        kwargs = mock_llm_provider.complete.await_args.kwargs
        assert (kwargs["temperature"], kwargs["max_tokens"]) == (0.0, 10)

    @pytest.mark.asyncio
    async def test_provider_errors_propagate(self, mock_llm_provider) -> None:
        mock_llm_provider.complete.side_effect = ProviderError("quota")
        with pytest.raises(ProviderError):
            await GroundedCompletionService(mock_llm_provider).answer([_user("x")], [])


class TestAsk:
    @pytest.mark.asyncio
    async def test_retrieves_on_latest_user_message(self, mock_llm_provider, mock_retrieval) -> None:
        service = GroundedCompletionService(mock_llm_provider, retrieval=mock_retrieval)
        conversation = [
            _user("Hi"),
            ChatMessage(role="assistant", content="Hello!"),
            _user("What is the invoice total?"),
        ]

        answer = await service.ask(conversation, scope_id="col-1", max_results=3, threshold=0.4)

        mock_retrieval.retrieve.assert_awaited_once_with(
            "What is the invoice total?", scope_id="col-1", max_results=3, threshold=0.4
        )
        assert answer.grounded is True
        assert answer.content == "Mock answer."
        assert answer.sources[0].file_name == "invoice.pdf"
        sent = mock_llm_provider.complete.await_args.args[0]
        assert len(sent) == 4
        assert sent[0].role == "system"

    @pytest.mark.asyncio
    async def test_ungrounded_when_nothing_retrieved(self, mock_llm_provider, mock_retrieval) -> None:
        mock_retrieval.retrieve.return_value = []
        service = GroundedCompletionService(mock_llm_provider, retrieval=mock_retrieval)

        answer = await service.ask([_user("Anything about quantum physics?")])

        assert answer.grounded is False
        assert answer.sources == []
        system = mock_llm_provider.complete.await_args.args[0][0].content
        assert "No relevant content was found" in system

    @pytest.mark.asyncio
    async def test_requires_user_message(self, mock_llm_provider, mock_retrieval) -> None:
        service = GroundedCompletionService(mock_llm_provider, retrieval=mock_retrieval)
        with pytest.raises(InvalidQueryError):
            await service.ask([ChatMessage(role="assistant", content="Hello")])
        mock_retrieval.retrieve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_requires_retrieval(self, mock_llm_provider) -> None:
        with pytest.raises(ConfigurationError):
            await GroundedCompletionService(mock_llm_provider).ask([_user("Total?")])


class TestBriefing:
    @pytest.mark.asyncio
    async def test_briefing_with_sources(self, mock_llm_provider, mock_retrieval) -> None:
        service = GroundedCompletionService(mock_llm_provider, retrieval=mock_retrieval)

        answer = await service.generate_briefing(
            " Q4 Vendor Review ", "Summarize outstanding invoices", scope_id="col-1"
        )

        assert answer.grounded is True
        mock_retrieval.retrieve.assert_awaited_once_with(
            "Summarize outstanding invoices", scope_id="col-1", max_results=None, threshold=None
        )
        messages = mock_llm_provider.complete.await_args.args[0]
        assert messages[0].role == "system"
        assert "Invoice total is $4,250." in messages[0].content
        prompt = messages[1].content
        assert "# Q4 Vendor Review" in prompt
        assert "## Executive Summary" in prompt
        assert "## Next Steps" in prompt
        assert "User Request: Summarize outstanding invoices" in prompt

    @pytest.mark.asyncio
    async def test_briefing_without_sources(self, mock_llm_provider, mock_retrieval) -> None:
        mock_retrieval.retrieve.return_value = []
        service = GroundedCompletionService(mock_llm_provider, retrieval=mock_retrieval)

        answer = await service.generate_briefing("Q4", "Summarize invoices")

        assert answer.grounded is False
        messages = mock_llm_provider.complete.await_args.args[0]
        assert "refine their request" in messages[0].content
        assert messages[1].content == (
            'Generate a briefing titled "Q4" with the following requirements: Summarize invoices'
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("title", "request_text"), [("", "x"), ("T", "  ")])
    async def test_briefing_requires_title_and_request(
        self, mock_llm_provider, mock_retrieval, title: str, request_text: str
    ) -> None:
        service = GroundedCompletionService(mock_llm_provider, retrieval=mock_retrieval)
        with pytest.raises(InvalidQueryError):
            await service.generate_briefing(title, request_text)
