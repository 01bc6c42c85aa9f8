"""Text normalization helpers shared by extraction, chunking and embedding.

1. **Sanitization** -- :func:`sanitize_text` strips non-printable control
   characters and Unicode replacement characters left behind by lossy
   decoding, collapses whitespace and trims.  It is pure and idempotent.
   With ``preserve_paragraphs=True`` the same rules apply inside each
   blank-line separated paragraph and the paragraphs are rejoined with a
   single blank line, so the chunker can still split on them.

2. **Readability** -- :func:`readability_ratio` is the share of ASCII
   letters, digits and whitespace in a string.  The extractor uses it to
   reject heuristic output that is mostly binary noise.

3. **Token estimation** -- :func:`estimate_tokens` is the ``ceil(len / 4)``
   approximation used for the embedding size ceiling.
"""

from __future__ import annotations

import math
import re

# C0 controls except \t \n \r, DEL, and the C1 block.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F]")
_REPLACEMENT_CHAR = "\ufffd"
_WHITESPACE_RUN = re.compile(r"\s+")
_LINE_ENDINGS = re.compile(r"\r\n?")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

PARAGRAPH_SEPARATOR = "\n\n"


def _sanitize_flat(text: str) -> str:
    text = _CONTROL_CHARS.sub("", text)
    text = text.replace(_REPLACEMENT_CHAR, "")
    return _WHITESPACE_RUN.sub(" ", text).strip()


def sanitize_text(text: str, preserve_paragraphs: bool = False) -> str:
    """Remove control characters and normalize whitespace.

    Args:
        text: Raw extracted text.
        preserve_paragraphs: Keep blank-line paragraph boundaries as
            ``"\\n\\n"`` instead of flattening everything to single spaces.

    Returns:
        Sanitized text.  ``sanitize_text(sanitize_text(x)) == sanitize_text(x)``
        holds in both modes.
    """
    if not preserve_paragraphs:
        return _sanitize_flat(text)

    text = _LINE_ENDINGS.sub("\n", _CONTROL_CHARS.sub("", text))
    paragraphs = (_sanitize_flat(p) for p in _PARAGRAPH_BREAK.split(text))
    return PARAGRAPH_SEPARATOR.join(p for p in paragraphs if p)


def readability_ratio(text: str) -> float:
    """Return the fraction of *text* made of ASCII letters, digits or whitespace."""
    if not text:
        return 0.0
    readable = sum(1 for ch in text if ch.isascii() and (ch.isalnum() or ch.isspace()))
    return readable / len(text)


def estimate_tokens(text: str) -> int:
    """Approximate token count as ``ceil(len(text) / 4)``."""
    return math.ceil(len(text) / 4)
