"""Byte-level PDF text heuristics.

Used when the layout extractor cannot read a PDF.  The raw bytes are
decoded as latin-1 (a lossless byte-to-char mapping) and scanned for text
the way it appears in uncompressed content streams:

* :func:`extract_literal_strings` -- every ``( ... )`` literal string in
  the file, unescaped, keeping fragments that contain at least one letter.
* :func:`extract_text_objects` -- only strings shown by ``Tj``, ``'``,
  ``"`` and ``TJ`` inside ``BT ... ET`` text objects, including hex
  strings.  Narrower than the literal scan, so it ignores metadata and
  font names that also live in ``( ... )``.

Both return an :class:`ExtractionCandidate` scored by text length; the
extractor decides which one to keep.
"""

from __future__ import annotations

import re

from briefrag.models.extraction import ExtractionCandidate, ExtractionStrategy


def _nested_body(depth: int) -> str:
    body = r"(?:\\.|[^\\()])*"
    for _ in range(depth):
        body = r"(?:\\.|[^\\()]|\(" + body + r"\))*"
    return body


# Unescaped parentheses inside a literal string are balanced; nesting is
# matched up to four levels deep.
_LITERAL_BODY = _nested_body(4)

_LITERAL_STRING = re.compile(r"\((" + _LITERAL_BODY + r")\)", re.DOTALL)
_HAS_LETTER = re.compile(r"[A-Za-z]")
_ESCAPE = re.compile(r"\\(?:([0-7]{1,3})|(\r\n|\n|\r)|(.))", re.DOTALL)
_ESCAPE_MAP = {"n": "\n", "r": "\r", "t": "\t", "b": "\b", "f": "\f", "(": "(", ")": ")", "\\": "\\"}

_TEXT_OBJECT = re.compile(r"\bBT\b(.*?)\bET\b", re.DOTALL)
_SHOW_STRING = re.compile(r"\((" + _LITERAL_BODY + r")\)\s*(?:Tj|'|\")", re.DOTALL)
_SHOW_HEX = re.compile(r"<([0-9A-Fa-f\s]+)>\s*Tj")
_SHOW_ARRAY = re.compile(r"\[(.*?)\]\s*TJ", re.DOTALL)
_ARRAY_ITEM = re.compile(
    r"\((" + _LITERAL_BODY + r")\)|<([0-9A-Fa-f\s]+)>|(-?\d+(?:\.\d+)?)", re.DOTALL
)

_PAGE_OBJECT = re.compile(r"/Type\s*/Page(?![A-Za-z])")

# TJ kerning beyond this (thousandths of an em) is treated as a word gap.
_WORD_GAP = -200


def _unescape(body: str) -> str:
    def _replace(match: re.Match[str]) -> str:
        octal, newline, char = match.groups()
        if octal is not None:
            return chr(int(octal, 8) & 0xFF)
        if newline is not None:
            return ""  # line continuation
        return _ESCAPE_MAP.get(char, char)

    return _ESCAPE.sub(_replace, body)


def _decode_hex(digits: str) -> str:
    digits = re.sub(r"\s+", "", digits)
    if len(digits) % 2:
        digits += "0"
    return bytes.fromhex(digits).decode("latin-1")


def decode_raw(data: bytes) -> str:
    return data.decode("latin-1")


def truncate_to_pages(raw: str, max_pages: int) -> tuple[str, int, int]:
    """Cut *raw* at the first page object past *max_pages*.

    Returns:
        ``(text, pages_processed, pages_skipped)``.  When no page objects
        are found the whole stream counts as one unit.
    """
    pages = list(_PAGE_OBJECT.finditer(raw))
    if not pages:
        return raw, 1, 0
    if len(pages) <= max_pages:
        return raw, len(pages), 0
    cut = pages[max_pages].start()
    return raw[:cut], max_pages, len(pages) - max_pages


def extract_literal_strings(raw: str) -> ExtractionCandidate:
    """Collect readable ``( ... )`` literal strings from a decoded PDF stream."""
    fragments: list[str] = []
    for match in _LITERAL_STRING.finditer(raw):
        text = _unescape(match.group(1)).strip()
        if text and _HAS_LETTER.search(text):
            fragments.append(text)
    text = " ".join(fragments)
    return ExtractionCandidate(strategy=ExtractionStrategy.LITERAL, text=text, score=float(len(text)))


def extract_text_objects(raw: str) -> ExtractionCandidate:
    """Collect strings shown by text operators inside ``BT ... ET`` blocks."""
    blocks: list[str] = []
    for block in _TEXT_OBJECT.finditer(raw):
        body = block.group(1)
        pieces: list[tuple[int, str]] = []
        for match in _SHOW_STRING.finditer(body):
            pieces.append((match.start(), _unescape(match.group(1))))
        for match in _SHOW_HEX.finditer(body):
            pieces.append((match.start(), _decode_hex(match.group(1))))
        for match in _SHOW_ARRAY.finditer(body):
            pieces.append((match.start(), _join_tj_array(match.group(1))))
        pieces.sort(key=lambda piece: piece[0])
        shown = " ".join(p.strip() for _, p in pieces if p.strip())
        if shown:
            blocks.append(shown)
    text = " ".join(blocks)
    return ExtractionCandidate(strategy=ExtractionStrategy.TEXT_OBJECT, text=text, score=float(len(text)))


def _join_tj_array(body: str) -> str:
    parts: list[str] = []
    for literal, hex_digits, number in _ARRAY_ITEM.findall(body):
        if number:
            if float(number) <= _WORD_GAP:
                parts.append(" ")
        elif hex_digits:
            parts.append(_decode_hex(hex_digits))
        else:
            parts.append(_unescape(literal))
    return "".join(parts)
