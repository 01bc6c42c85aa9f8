"""Grounded answer and briefing generation.

Retrieved passages are folded into a single system instruction that
labels each passage with its source file and similarity, followed by the
answering rules.  When retrieval found nothing, a different instruction
tells the model to say so plainly instead of inventing an answer.

Two entry points build on :meth:`GroundedCompletionService.answer`:

- :meth:`~GroundedCompletionService.ask` retrieves on the latest user
  message of a conversation and answers it.
- :meth:`~GroundedCompletionService.generate_briefing` writes a markdown
  briefing document for a collection from a title and a free-text request.
"""

from __future__ import annotations

import structlog

from briefrag.interfaces.llm_provider import ILLMProvider
from briefrag.models.rag import ChatMessage, GroundedAnswer, SearchResult
from briefrag.services.retrieval_service import RetrievalService
from briefrag.utils.errors import ConfigurationError, InvalidQueryError
from briefrag.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

_GROUNDED_PREAMBLE = (
    "You are an AI assistant for document analysis. Answer the user's "
    "questions using the following excerpts from their uploaded files.\n\n"
    "Relevant content:\n"
)

_GROUNDED_RULES = (
    "Guidelines:\n"
    "- Answer only from the content above.\n"
    "- If the answer is not in the content, say so clearly.\n"
    "- Write in a natural, conversational tone and use paragraph breaks "
    "for readability.\n"
    "- Mention which file information came from when it helps the user."
)

_NO_CONTENT_PROMPT = (
    "You are an AI assistant for document analysis. No relevant content "
    "was found in the user's uploaded files for this question. Tell the "
    "user plainly that their files do not appear to contain the answer. "
    "Do not make up information or answer from general knowledge."
)

_BRIEFING_NO_CONTENT_PROMPT = (
    "You are an AI assistant for document analysis. The user has uploaded "
    "files but no relevant content was found for their briefing request. "
    "Let them know and suggest they refine their request or check their "
    "uploaded files."
)

_BRIEFING_TEMPLATE = """Generate a comprehensive briefing document in markdown format with the following structure:

# {title}

## Executive Summary
[Provide a concise overview of the key findings and recommendations]

## Key Findings
[List the most important insights from the analysis]

## Detailed Analysis
[Provide in-depth analysis of the content]

## Risks and Challenges
[Identify potential risks and challenges]

## Recommendations
[Provide specific, actionable recommendations]

## Next Steps
[Outline clear next steps and action items]

## Conclusion
[Summarize the key takeaways]

User Request: {request}

Please create a professional, well-structured briefing document based on the uploaded content. Use proper markdown formatting with headers, bullet points, and emphasis where appropriate."""


def format_context(chunks: list[SearchResult]) -> str:
    """Render passages as numbered blocks labelled with file and similarity."""
    blocks = []
    for position, chunk in enumerate(chunks, start=1):
        blocks.append(
            f"[{position}] Source: {chunk.file_name} "
            f"(similarity: {chunk.similarity:.2f})\n{chunk.content}"
        )
    return "\n\n".join(blocks)


def build_messages(
    conversation: list[ChatMessage],
    chunks: list[SearchResult],
) -> list[ChatMessage]:
    """Prepend the grounded (or no-content) system instruction to *conversation*."""
    if chunks:
        system = f"{_GROUNDED_PREAMBLE}{format_context(chunks)}\n\n{_GROUNDED_RULES}"
    else:
        system = _NO_CONTENT_PROMPT
    return [ChatMessage(role="system", content=system), *conversation]


class GroundedCompletionService:
    """Generates answers grounded in retrieved passages.

    Parameters
    ----------
    llm:
        Chat completion provider.
    retrieval:
        Used by :meth:`ask` and :meth:`generate_briefing`; :meth:`answer`
        works without it.
    temperature, max_tokens:
        Defaults for every call; each method accepts overrides.
    """

    def __init__(
        self,
        llm: ILLMProvider,
        retrieval: RetrievalService | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ) -> None:
        self._llm = llm
        self._retrieval = retrieval
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def answer(
        self,
        conversation: list[ChatMessage],
        chunks: list[SearchResult],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Return the model's reply to *conversation* grounded in *chunks*."""
        messages = build_messages(conversation, chunks)
        reply = await self._llm.complete(
            messages,
            temperature=self._temperature if temperature is None else temperature,
            max_tokens=self._max_tokens if max_tokens is None else max_tokens,
        )
        logger.info(
            "grounded_answer",
            grounded=bool(chunks),
            passages=len(chunks),
            reply_chars=len(reply),
        )
        return reply

    async def ask(
        self,
        conversation: list[ChatMessage],
        scope_id: str | None = None,
        max_results: int | None = None,
        threshold: float | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> GroundedAnswer:
        """Retrieve on the latest user message and answer the conversation.

        Raises
        ------
        InvalidQueryError
            The conversation has no user message.
        """
        question = next(
            (m.content for m in reversed(conversation) if m.role == "user"),
            None,
        )
        if question is None:
            raise InvalidQueryError("Conversation has no user message")

        sources = await self._require_retrieval().retrieve(
            question,
            scope_id=scope_id,
            max_results=max_results,
            threshold=threshold,
        )
        content = await self.answer(
            conversation, sources, temperature=temperature, max_tokens=max_tokens
        )
        return GroundedAnswer(content=content, sources=sources, grounded=bool(sources))

    async def generate_briefing(
        self,
        title: str,
        request: str,
        scope_id: str | None = None,
        max_results: int | None = None,
        threshold: float | None = None,
    ) -> GroundedAnswer:
        """Write a markdown briefing for *request* from a collection's files.

        When nothing relevant is retrieved the model is asked to tell the
        user to refine the request instead of producing a briefing.
        """
        if not title.strip() or not request.strip():
            raise InvalidQueryError("Briefing title and request must not be empty")

        sources = await self._require_retrieval().retrieve(
            request,
            scope_id=scope_id,
            max_results=max_results,
            threshold=threshold,
        )
        if sources:
            prompt = _BRIEFING_TEMPLATE.format(title=title.strip(), request=request.strip())
            content = await self.answer([ChatMessage(role="user", content=prompt)], sources)
        else:
            logger.info("briefing_no_content", scope_id=scope_id, title=title)
            content = await self._llm.complete(
                [
                    ChatMessage(role="system", content=_BRIEFING_NO_CONTENT_PROMPT),
                    ChatMessage(
                        role="user",
                        content=(
                            f'Generate a briefing titled "{title.strip()}" with the '
                            f"following requirements: {request.strip()}"
                        ),
                    ),
                ],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        return GroundedAnswer(content=content, sources=sources, grounded=bool(sources))

    def _require_retrieval(self) -> RetrievalService:
        if self._retrieval is None:
            raise ConfigurationError("Retrieval is not configured for this service")
        return self._retrieval
