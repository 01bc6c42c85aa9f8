"""Multi-strategy text extraction from uploaded document bytes.

:class:`TextExtractor` dispatches on media type:

* **Plain text** (txt, markdown, csv, json) is decoded directly, honouring
  a ``charset`` parameter or byte-order mark, with UTF-8, cp1252 and
  latin-1 as the fallback chain.
* **Markup** (RTF, HTML) is decoded and stripped with the regex passes in
  :mod:`source_processors.markup_processor`.
* **PDF** goes through PyMuPDF first.  When PyMuPDF cannot read the file
  or finds no text, every byte-level heuristic runs and
  :func:`select_best_candidate` picks the most plausible output, which must
  then pass the readability check.

Anything else raises :class:`UnsupportedFormatError`.
"""

from __future__ import annotations

import codecs
from typing import Iterable

import structlog

from briefrag.models.extraction import ExtractionCandidate, ExtractionResult, ExtractionStrategy
from briefrag.services.ingestion.source_processors import pdf_heuristics
from briefrag.services.ingestion.source_processors.markup_processor import strip_html, strip_rtf
from briefrag.services.ingestion.source_processors.pdf_processor import (
    PDFLayoutError,
    PDFLayoutExtractor,
)
from briefrag.utils.errors import (
    ExtractionFailedError,
    LowReadabilityError,
    NoReadableTextError,
    UnsupportedFormatError,
)
from briefrag.utils.text_normalizer import readability_ratio

logger = structlog.get_logger(logger_name=__name__)

PLAIN_TEXT_TYPES = frozenset({"text/plain", "text/markdown", "text/csv", "application/json"})
RTF_TYPES = frozenset({"text/rtf", "application/rtf"})
HTML_TYPES = frozenset({"text/html", "application/xhtml+xml"})
PDF_TYPES = frozenset({"application/pdf", "application/x-pdf"})

SUPPORTED_TYPES = PLAIN_TEXT_TYPES | RTF_TYPES | HTML_TYPES | PDF_TYPES

DEFAULT_MAX_UNITS = 50
DEFAULT_MIN_LENGTH = 10
READABILITY_FLOOR = 0.5
MOSTLY_BINARY_FLOOR = 0.1

_BOMS = (
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)


def select_best_candidate(
    candidates: Iterable[ExtractionCandidate],
    min_length: int = DEFAULT_MIN_LENGTH,
) -> ExtractionCandidate | None:
    """Return the highest-scoring candidate longer than *min_length*.

    Ties go to the earlier candidate.  ``None`` when nothing clears the floor.
    """
    best: ExtractionCandidate | None = None
    for candidate in candidates:
        if len(candidate.text.strip()) <= min_length:
            continue
        if best is None or candidate.score > best.score:
            best = candidate
    return best


def split_media_type(media_type: str) -> tuple[str, str | None]:
    """Split ``"text/plain; charset=utf-8"`` into ``("text/plain", "utf-8")``."""
    main, _, params = media_type.partition(";")
    charset = None
    for param in params.split(";"):
        key, _, value = param.partition("=")
        if key.strip().lower() == "charset" and value.strip():
            charset = value.strip().strip('"').lower()
    return main.strip().lower(), charset


class TextExtractor:
    """Turns document bytes into plain text.

    Parameters
    ----------
    layout_extractor:
        High-fidelity PDF reader tried before the heuristics.  ``None``
        disables it so only the byte-level strategies run.
    max_units:
        Maximum number of PDF pages processed; the rest are reported as
        skipped.
    min_length:
        Plausibility floor for heuristic candidates, in characters.
    """

    def __init__(
        self,
        layout_extractor: PDFLayoutExtractor | None = None,
        max_units: int = DEFAULT_MAX_UNITS,
        min_length: int = DEFAULT_MIN_LENGTH,
    ) -> None:
        self._layout = layout_extractor
        self._max_units = max_units
        self._min_length = min_length

    def extract(self, data: bytes, media_type: str) -> ExtractionResult:
        """Extract text from *data* according to *media_type*.

        Raises
        ------
        UnsupportedFormatError
            No strategy exists for the media type.
        ExtractionFailedError
            The bytes could not be decoded as the declared format.
        NoReadableTextError
            No PDF strategy produced plausible text.
        LowReadabilityError
            The chosen PDF candidate is mostly non-text.
        """
        kind, charset = split_media_type(media_type)

        if kind in PLAIN_TEXT_TYPES:
            return self._flat(self._decode(data, charset), ExtractionStrategy.PLAIN_TEXT)
        if kind in RTF_TYPES:
            # RTF is 7-bit; non-ASCII arrives as \'hh or \uN escapes
            return self._flat(strip_rtf(data.decode("latin-1")), ExtractionStrategy.MARKUP)
        if kind in HTML_TYPES:
            return self._flat(strip_html(self._decode(data, charset)), ExtractionStrategy.MARKUP)
        if kind in PDF_TYPES:
            return self._extract_pdf(data)

        raise UnsupportedFormatError(media_type=kind or media_type)

    # ------------------------------------------------------------------
    # Flat text
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(data: bytes, charset: str | None) -> str:
        for bom, encoding in _BOMS:
            if data.startswith(bom):
                try:
                    return data.decode(encoding)
                except UnicodeDecodeError as exc:
                    raise ExtractionFailedError(f"Invalid {encoding} text: {exc.reason}") from exc

        if charset:
            try:
                return data.decode(charset)
            except LookupError as exc:
                raise ExtractionFailedError(f"Unknown charset: {charset}") from exc
            except UnicodeDecodeError as exc:
                raise ExtractionFailedError(f"Invalid {charset} text: {exc.reason}") from exc

        for encoding in ("utf-8", "cp1252"):
            try:
                return data.decode(encoding)
            except UnicodeDecodeError:
                continue
        return data.decode("latin-1")

    @staticmethod
    def _flat(text: str, strategy: ExtractionStrategy) -> ExtractionResult:
        return ExtractionResult(
            text=text,
            strategy=strategy,
            readability=readability_ratio(text) if text else 1.0,
        )

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    def _extract_pdf(self, data: bytes) -> ExtractionResult:
        if self._layout is not None:
            try:
                layout = self._layout.extract(data, self._max_units)
            except PDFLayoutError as exc:
                logger.info("pdf_layout_fallback", reason=str(exc))
            else:
                if layout.text.strip():
                    return ExtractionResult(
                        text=layout.text,
                        strategy=ExtractionStrategy.LAYOUT,
                        readability=readability_ratio(layout.text),
                        units_processed=layout.pages_read,
                        units_skipped=layout.pages_skipped,
                    )
                logger.info("pdf_layout_fallback", reason="no text layer")

        raw, processed, skipped = pdf_heuristics.truncate_to_pages(
            pdf_heuristics.decode_raw(data), self._max_units
        )
        candidates = [
            pdf_heuristics.extract_literal_strings(raw),
            pdf_heuristics.extract_text_objects(raw),
        ]
        best = select_best_candidate(candidates, self._min_length)
        if best is None:
            logger.warning(
                "pdf_no_readable_text",
                candidates={c.strategy.value: len(c.text) for c in candidates},
            )
            raise NoReadableTextError()

        ratio = readability_ratio(best.text)
        if ratio < READABILITY_FLOOR:
            diagnosis = (
                LowReadabilityError.MOSTLY_BINARY
                if ratio < MOSTLY_BINARY_FLOOR
                else LowReadabilityError.MIXED_ENCODING
            )
            logger.warning(
                "pdf_low_readability",
                strategy=best.strategy.value,
                ratio=round(ratio, 3),
                diagnosis=diagnosis,
            )
            raise LowReadabilityError(ratio=ratio, diagnosis=diagnosis)

        logger.info(
            "pdf_heuristic_extracted",
            strategy=best.strategy.value,
            chars=len(best.text),
            ratio=round(ratio, 3),
            pages_skipped=skipped,
        )
        return ExtractionResult(
            text=best.text,
            strategy=best.strategy,
            readability=ratio,
            units_processed=processed,
            units_skipped=skipped,
        )
