"""PDF layout extraction via PyMuPDF.

This is the high-fidelity path for PDFs: PyMuPDF parses the document
structure, decodes fonts and returns page text in reading order.  Pages
past ``max_pages`` are not read and are reported as skipped.  Anything
PyMuPDF cannot open (damaged xref tables, truncated uploads, encrypted
files) raises :class:`PDFLayoutError`, and the caller falls back to the
byte-level heuristics in :mod:`pdf_heuristics`.
"""

from __future__ import annotations

from dataclasses import dataclass

import fitz  # PyMuPDF
import structlog

logger = structlog.get_logger(logger_name=__name__)


class PDFLayoutError(Exception):
    """PyMuPDF could not open or read the document."""


@dataclass(frozen=True)
class LayoutText:
    text: str
    pages_read: int
    pages_skipped: int


class PDFLayoutExtractor:
    """Reads page text with PyMuPDF."""

    def extract(self, data: bytes, max_pages: int) -> LayoutText:
        """Return the text of the first *max_pages* pages, pages separated by blank lines.

        Raises:
            PDFLayoutError: If the bytes cannot be parsed or are encrypted.
        """
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:  # fitz raises several unrelated types on bad input
            raise PDFLayoutError(f"PyMuPDF could not open document: {exc}") from exc

        try:
            if doc.needs_pass:
                raise PDFLayoutError("document is password protected")

            total = doc.page_count
            limit = min(total, max_pages)
            pages: list[str] = []
            for index in range(limit):
                text = doc.load_page(index).get_text("text").strip()
                if text:
                    pages.append(text)
        except PDFLayoutError:
            raise
        except Exception as exc:
            raise PDFLayoutError(f"PyMuPDF failed while reading pages: {exc}") from exc
        finally:
            doc.close()

        logger.debug("pdf_layout_extracted", pages_total=total, pages_read=limit, chars=sum(map(len, pages)))
        return LayoutText(
            text="\n\n".join(pages),
            pages_read=limit,
            pages_skipped=max(0, total - limit),
        )
