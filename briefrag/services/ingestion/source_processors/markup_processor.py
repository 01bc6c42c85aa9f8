"""Best-effort text recovery from RTF and HTML.

Neither format gets a real parser: a few regex passes remove control
words, destinations, tags and scripts, and decode the character escapes
that carry the actual text.  Paragraph structure is kept as blank lines.
"""

from __future__ import annotations

import html
import re

from briefrag.utils.errors import ExtractionFailedError

# -- RTF ------------------------------------------------------------------
_RTF_MAGIC = "{\\rtf"
# {\*\destination ...} groups and well-known non-text groups
_RTF_IGNORED_GROUP = re.compile(
    r"\{\\(?:\*|fonttbl|colortbl|stylesheet|info|pict|header|footer)[^{}]*(?:\{[^{}]*\}[^{}]*)*\}",
    re.DOTALL,
)
_RTF_PARAGRAPH = re.compile(r"\\(?:par|line|sect|page)\b ?")
_RTF_TAB = re.compile(r"\\tab\b ?")
_RTF_HEX = re.compile(r"\\'([0-9a-fA-F]{2})")
_RTF_UNICODE = re.compile(r"\\u(-?\d+) ?\??")
_RTF_CONTROL_WORD = re.compile(r"\\[a-zA-Z]+-?\d* ?")
_ESCAPED_SYMBOLS = {"\\\\": "\ue000", "\\{": "\ue001", "\\}": "\ue002"}
_RTF_OTHER_SYMBOL = re.compile(r"\\[^a-zA-Z\\{}']")

# -- HTML -----------------------------------------------------------------
_HTML_DROP = re.compile(r"<(script|style|head|noscript)\b.*?</\1\s*>", re.DOTALL | re.IGNORECASE)
_HTML_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_HTML_BLOCK_END = re.compile(r"</?(?:p|div|br|li|tr|h[1-6]|section|article|blockquote)\b[^>]*>", re.IGNORECASE)
_HTML_TAG = re.compile(r"<[^>]+>")


def strip_rtf(text: str) -> str:
    """Return the visible text of an RTF document.

    Raises:
        ExtractionFailedError: If *text* does not start with an RTF header.
    """
    if not text.lstrip().startswith(_RTF_MAGIC):
        raise ExtractionFailedError("Document is labelled RTF but has no RTF header")

    for escaped, placeholder in _ESCAPED_SYMBOLS.items():
        text = text.replace(escaped, placeholder)
    text = _RTF_IGNORED_GROUP.sub("", text)
    text = _RTF_PARAGRAPH.sub("\n\n", text)
    text = _RTF_TAB.sub("\t", text)
    text = _RTF_HEX.sub(lambda m: bytes([int(m.group(1), 16)]).decode("cp1252", errors="replace"), text)
    text = _RTF_UNICODE.sub(lambda m: chr(int(m.group(1)) % 0x10000), text)
    text = _RTF_CONTROL_WORD.sub("", text)
    text = _RTF_OTHER_SYMBOL.sub("", text)
    # unescaped braces are group delimiters
    text = text.replace("{", "").replace("}", "")
    for escaped, placeholder in _ESCAPED_SYMBOLS.items():
        text = text.replace(placeholder, escaped[1])
    return text


def strip_html(text: str) -> str:
    """Return the visible text of an HTML document."""
    text = _HTML_COMMENT.sub("", text)
    text = _HTML_DROP.sub("", text)
    text = _HTML_BLOCK_END.sub("\n\n", text)
    text = _HTML_TAG.sub("", text)
    return html.unescape(text)
