"""Unit tests for text sanitization, readability and token estimation."""

from __future__ import annotations

import pytest

from briefrag.utils.text_normalizer import estimate_tokens, readability_ratio, sanitize_text


# ======================================================================
# sanitize_text
# ======================================================================


class TestSanitizeText:
    def test_removes_control_characters(self) -> None:
        assert sanitize_text("abc\x00def\x07ghi\x7f") == "abcdefghi"

    def test_removes_c1_control_characters(self) -> None:
        assert sanitize_text("price\x9b31m \x80total\x9f") == "price31m total"

    def test_keeps_latin1_letters_above_c1_block(self) -> None:
        assert sanitize_text("\xa0caf\xe9 “ok”") == "café “ok”"

    def test_drops_replacement_characters(self) -> None:
        assert sanitize_text("caf� latte") == "caf latte"

    def test_collapses_whitespace_and_trims(self) -> None:
        assert sanitize_text("  one\t\ttwo\n\nthree  \r\n") == "one two three"

    def test_empty_string(self) -> None:
        assert sanitize_text("") == ""

    def test_only_noise_becomes_empty(self) -> None:
        assert sanitize_text("\x00\x01� \n\t") == ""

    def test_preserve_paragraphs_keeps_blank_line_boundaries(self) -> None:
        text = "First  line\nstill first.\n\n\n  Second\tparagraph.  "
        assert sanitize_text(text, preserve_paragraphs=True) == (
            "First line still first.\n\nSecond paragraph."
        )

    def test_preserve_paragraphs_normalizes_crlf(self) -> None:
        assert sanitize_text("a\r\n\r\nb", preserve_paragraphs=True) == "a\n\nb"

    def test_preserve_paragraphs_drops_empty_paragraphs(self) -> None:
        text = "a\n\n\x00�\n\n   \n\nb"
        assert sanitize_text(text, preserve_paragraphs=True) == "a\n\nb"

    @pytest.mark.parametrize(
        "text",
        [
            "plain",
            "  a \x00 b\n\n c�\r\n\r\nd\t",
            "x\n\x0c\ny",
            "\n\n\n",
            "Alpha beta.\n\nGamma delta epsilon.",
            "tab\tand\x1bescape\n \n \nend",
        ],
    )
    @pytest.mark.parametrize("preserve", [False, True])
    def test_idempotent(self, text: str, preserve: bool) -> None:
        once = sanitize_text(text, preserve_paragraphs=preserve)
        assert sanitize_text(once, preserve_paragraphs=preserve) == once


# ======================================================================
# readability_ratio
# ======================================================================


class TestReadabilityRatio:
    def test_plain_ascii_is_fully_readable(self) -> None:
        assert readability_ratio("Hello world 123") == 1.0

    def test_empty_is_zero(self) -> None:
        assert readability_ratio("") == 0.0

    def test_punctuation_counts_as_unreadable(self) -> None:
        assert readability_ratio("ab!!") == pytest.approx(0.5)

    def test_non_ascii_letters_count_as_unreadable(self) -> None:
        assert readability_ratio("ééab") == pytest.approx(0.5)


# ======================================================================
# estimate_tokens
# ======================================================================


class TestEstimateTokens:
    @pytest.mark.parametrize(
        ("length", "expected"),
        [(0, 0), (1, 1), (4, 1), (5, 2), (8000, 2000), (28001, 7001)],
    )
    def test_ceil_of_quarter_length(self, length: int, expected: int) -> None:
        assert estimate_tokens("x" * length) == expected
