"""Paragraph-aware text chunking with overlapping windows.

Splits sanitized document text into strings of at most ``max_chunk_size``
characters (plus at most ``overlap`` characters of carried-over context),
preferring paragraph boundaries:

1. The text is split on blank lines; empty paragraphs are dropped.
2. Paragraphs accumulate into a buffer joined by ``"\\n\\n"``.  When the
   next paragraph would push the buffer past the bound, the buffer is
   emitted and the next one starts with the last ``overlap // 10`` words of
   the emitted chunk, so a thought spanning the boundary lands in both.
3. A paragraph that alone exceeds the bound flushes the buffer and is cut
   at sentence ends instead (terminal punctuation stays with its
   sentence).  The trailing sentence group becomes the new buffer.  A
   single sentence over the bound is cut between words, and a single word
   over the bound between characters.

Output is deterministic and never empty: when nothing is produced the
input itself is returned as the only chunk (``""`` -> ``[""]``).  Every
non-whitespace character of the input appears in the output.
"""

from __future__ import annotations

import re

import structlog

logger = structlog.get_logger(logger_name=__name__)

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")
_SEPARATOR = "\n\n"

DEFAULT_MAX_CHUNK_SIZE = 2000
DEFAULT_OVERLAP = 200


class TextChunker:
    """Splits text into bounded, overlapping chunks.

    Parameters
    ----------
    max_chunk_size:
        Target maximum characters per chunk (default 2000).
    overlap:
        Character budget for context carried into the next chunk (default
        200).  The carried context is the last ``overlap // 10`` words of
        the previous chunk, trimmed to fit the budget.
    """

    def __init__(
        self,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
        overlap: int = DEFAULT_OVERLAP,
    ) -> None:
        if max_chunk_size < 1:
            raise ValueError("max_chunk_size must be positive")
        if overlap < 0:
            raise ValueError("overlap must not be negative")
        self._max = max_chunk_size
        self._overlap = overlap

    @property
    def max_chunk_size(self) -> int:
        return self._max

    @property
    def overlap(self) -> int:
        return self._overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str) -> list[str]:
        """Split *text* into chunks of at most ``max_chunk_size + overlap`` characters."""
        chunks = self._accumulate_chunks(self._split_paragraphs(text))
        if not chunks:
            return [text]
        logger.debug("text_chunked", chars=len(text), chunks=len(chunks))
        return chunks

    # ------------------------------------------------------------------
    # Paragraph accumulation
    # ------------------------------------------------------------------

    @staticmethod
    def _split_paragraphs(text: str) -> list[str]:
        return [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]

    def _accumulate_chunks(self, paragraphs: list[str]) -> list[str]:
        chunks: list[str] = []
        buffer = ""

        for paragraph in paragraphs:
            if len(paragraph) > self._max:
                if buffer:
                    chunks.append(buffer)
                pieces = self._chunk_long_paragraph(paragraph)
                chunks.extend(pieces[:-1])
                buffer = pieces[-1]
                continue

            if buffer and len(buffer) + len(_SEPARATOR) + len(paragraph) > self._max:
                chunks.append(buffer)
                seed = self._build_overlap(buffer)
                buffer = f"{seed}{_SEPARATOR}{paragraph}" if seed else paragraph
            else:
                buffer = f"{buffer}{_SEPARATOR}{paragraph}" if buffer else paragraph

        if buffer:
            chunks.append(buffer)
        return chunks

    def _build_overlap(self, chunk: str) -> str:
        """Last ``overlap // 10`` words of *chunk*, dropping leading words until it fits."""
        word_count = self._overlap // 10
        if word_count == 0:
            return ""
        tail = chunk.split()[-word_count:]
        while tail and len(" ".join(tail)) + len(_SEPARATOR) > self._overlap:
            tail = tail[1:]
        return " ".join(tail)

    # ------------------------------------------------------------------
    # Oversized paragraphs
    # ------------------------------------------------------------------

    def _chunk_long_paragraph(self, paragraph: str) -> list[str]:
        pieces: list[str] = []
        current = ""
        for sentence in self._split_sentences(paragraph):
            if current and len(current) + 1 + len(sentence) > self._max:
                pieces.append(current)
                current = sentence
            else:
                current = f"{current} {sentence}" if current else sentence
        if current:
            pieces.append(current)
        return pieces

    def _split_sentences(self, paragraph: str) -> list[str]:
        sentences: list[str] = []
        for sentence in _SENTENCE_END.split(paragraph):
            sentence = sentence.strip()
            if not sentence:
                continue
            if len(sentence) <= self._max:
                sentences.append(sentence)
            else:
                sentences.extend(self._split_words(sentence))
        return sentences

    def _split_words(self, sentence: str) -> list[str]:
        pieces: list[str] = []
        current = ""
        for word in sentence.split():
            while len(word) > self._max:
                if current:
                    pieces.append(current)
                    current = ""
                pieces.append(word[: self._max])
                word = word[self._max :]
            if not word:
                continue
            if current and len(current) + 1 + len(word) > self._max:
                pieces.append(current)
                current = word
            else:
                current = f"{current} {word}" if current else word
        if current:
            pieces.append(current)
        return pieces
