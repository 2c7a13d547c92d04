"""Tests for core/lexer.py."""
import pytest

from core.lexer import GCodeLexer, ParseOptions, Word, strip_comments
from utils.errors import ErrorType, MalformedLine


def tokenize(line, options=None):
    return GCodeLexer(options).tokenize_line(line)


class TestStripComments:
    """Tests for comment removal."""

    def test_parenthesized_comment_removed(self):
        assert strip_comments("G0 (rapid) X1") == "G0  X1"

    def test_semicolon_ends_line(self):
        assert strip_comments("G1 X1 ; feed (not a comment start") == "G1 X1 "

    def test_unclosed_paren_swallows_rest(self):
        assert strip_comments("G1 X1 (open comment Y2") == "G1 X1 "

    def test_semicolon_inside_parens_is_comment_text(self):
        assert strip_comments("(a;b) X2") == " X2"


class TestTokenizeLine:
    """Tests for word scanning."""

    def test_basic_words(self):
        assert tokenize("G1 X10 Y-2.5") == [
            Word('G', 1.0), Word('X', 10.0), Word('Y', -2.5)
        ]

    def test_lowercase_and_packed_words(self):
        assert tokenize("g1x10y.5") == [Word('G', 1.0), Word('X', 10.0), Word('Y', 0.5)]

    def test_blank_and_comment_only_lines(self):
        assert tokenize("") == []
        assert tokenize("   ") == []
        assert tokenize("(setup)") == []
        assert tokenize("; header") == []

    def test_non_letters_outside_words_are_skipped(self):
        assert tokenize("% N10 G0") == [Word('N', 10.0), Word('G', 0.0)]

    def test_trailing_dot_and_plus_sign(self):
        assert tokenize("X5. Y+3") == [Word('X', 5.0), Word('Y', 3.0)]

    def test_missing_value_raises(self):
        with pytest.raises(MalformedLine) as excinfo:
            tokenize("G1 X")
        assert "missing value for X" in str(excinfo.value)
        assert excinfo.value.error_type == ErrorType.SYNTAX

    def test_value_separated_by_space_is_missing(self):
        with pytest.raises(MalformedLine):
            tokenize("X 10")

    def test_non_ascii_space_is_trimmed_from_value(self):
        assert tokenize("X\u00a010 Y2\u2003") == [Word('X', 10.0), Word('Y', 2.0)]

    def test_invalid_number_raises(self):
        with pytest.raises(MalformedLine):
            tokenize("X1.2.3")

    def test_exponent_is_not_a_plain_decimal(self):
        with pytest.raises(MalformedLine):
            tokenize("X1e3")


class TestParseOptions:
    """Tests for missing-value tolerances."""

    def test_ignore_missing_letter(self):
        options = ParseOptions.with_ignore_missing(["e"])
        assert tokenize("T1 E", options) == [Word('T', 1.0)]

    def test_ignore_missing_does_not_cover_other_letters(self):
        options = ParseOptions.with_ignore_missing(["E"])
        with pytest.raises(MalformedLine):
            tokenize("M", options)

    def test_ignore_unknown_words_skips_unknown_letters(self):
        options = ParseOptions().with_ignore_unknown_words(True)
        assert tokenize("M G0 X1", options) == [Word('G', 0.0), Word('X', 1.0)]

    def test_ignore_unknown_words_keeps_known_letters_strict(self):
        options = ParseOptions().with_ignore_unknown_words(True)
        for line in ("X", "G", "R", "K"):
            with pytest.raises(MalformedLine):
                tokenize(line, options)

    def test_unknown_words_with_values_are_kept(self):
        options = ParseOptions().with_ignore_unknown_words(True)
        assert tokenize("F300 S1000", options) == [Word('F', 300.0), Word('S', 1000.0)]

    def test_bad_number_is_an_error_even_when_tolerant(self):
        options = ParseOptions.with_ignore_missing(["E"]).with_ignore_unknown_words(True)
        with pytest.raises(MalformedLine):
            tokenize("E1..2", options)
