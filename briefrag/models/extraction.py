"""Text extraction models.

Each extraction strategy produces an :class:`ExtractionCandidate`; the
extractor picks one and reports it as an :class:`ExtractionResult`.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ExtractionStrategy(str, Enum):
    """How a piece of text was recovered from document bytes."""

    PLAIN_TEXT = "plain_text"  # decoded directly
    MARKUP = "markup"  # RTF / HTML with control sequences stripped
    LAYOUT = "layout"  # PyMuPDF page text
    LITERAL = "literal"  # PDF ( ... ) literal strings
    TEXT_OBJECT = "text_object"  # strings shown inside BT ... ET blocks


class ExtractionCandidate(BaseModel):
    """Output of one strategy, scored for plausibility."""

    model_config = ConfigDict(frozen=True)

    strategy: ExtractionStrategy
    text: str
    score: float = Field(default=0.0, description="Higher is more plausible; length of text.")


class ExtractionResult(BaseModel):
    """Text chosen for a document plus diagnostics."""

    model_config = ConfigDict(frozen=True)

    text: str
    strategy: ExtractionStrategy
    readability: float = Field(default=1.0, ge=0.0, le=1.0)
    units_processed: int = Field(default=1, ge=0, description="Pages (or 1 for flat text).")
    units_skipped: int = Field(default=0, ge=0, description="Pages past the processing cap.")
