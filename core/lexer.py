"""
G-code lexer for splitting raw G-code lines into letter/value words.
"""
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Set
from utils.errors import MalformedLine


# Letters that take part in motion; everything else is "unknown" for the
# ignore_unknown_words option.
KNOWN_LETTERS = frozenset("GXYZIJKR")

# Values end at ASCII whitespace only; other spacing is trimmed off the value.
ASCII_WHITESPACE = frozenset(" \t\n\r\f\v")


@dataclass(frozen=True)
class Word:
    """A single letter-plus-number token from one source line."""
    letter: str
    value: float


@dataclass
class ParseOptions:
    """Word-level tolerances applied while lexing."""
    ignore_missing_value: Set[str] = field(default_factory=set)
    ignore_unknown_words: bool = False

    @classmethod
    def with_ignore_missing(cls, letters: Iterable[str]) -> 'ParseOptions':
        """Build options that drop the given letters when they carry no value."""
        return cls(ignore_missing_value={letter.upper() for letter in letters})

    def with_ignore_unknown_words(self, ignore_unknown_words: bool) -> 'ParseOptions':
        self.ignore_unknown_words = ignore_unknown_words
        return self

    def should_ignore_missing(self, letter: str) -> bool:
        if letter in self.ignore_missing_value:
            return True
        return self.ignore_unknown_words and letter not in KNOWN_LETTERS


class GCodeLexer:
    """Tokenizes one G-code line at a time into words."""

    NUMBER_PATTERN = re.compile(r'[+-]?(?:\d+\.?\d*|\.\d+)')

    def __init__(self, options: ParseOptions = None):
        self.options = options or ParseOptions()

    def tokenize_line(self, line: str) -> List[Word]:
        """Strip comments from a raw line and return its words."""
        cleaned = strip_comments(line).strip()
        if not cleaned:
            return []
        return self.parse_words(cleaned)

    def parse_words(self, line: str) -> List[Word]:
        """
        Scan comment-free text for words.

        A letter takes every following character up to the next ASCII whitespace
        or letter as its value, trimmed. Characters outside a word are skipped.
        """
        words = []
        pos = 0
        length = len(line)

        while pos < length:
            char = line[pos]
            if not _is_ascii_letter(char):
                pos += 1
                continue

            letter = char.upper()
            pos += 1
            value_start = pos
            while pos < length and line[pos] not in ASCII_WHITESPACE and not _is_ascii_letter(line[pos]):
                pos += 1
            value = line[value_start:pos].strip()

            if not value:
                if self.options.should_ignore_missing(letter):
                    continue
                raise MalformedLine(f"missing value for {letter}")

            if not self.NUMBER_PATTERN.fullmatch(value):
                raise MalformedLine(f"invalid number '{value}' for {letter}")

            words.append(Word(letter, float(value)))

        return words


def strip_comments(line: str) -> str:
    """
    Remove parenthesized comments and everything after a semicolon.

    An unclosed parenthesis swallows the rest of the line.
    """
    out = []
    in_paren = False
    for char in line:
        if in_paren:
            if char == ')':
                in_paren = False
            continue
        if char == '(':
            in_paren = True
            continue
        if char == ';':
            break
        out.append(char)
    return ''.join(out)


def _is_ascii_letter(char: str) -> bool:
    return char.isascii() and char.isalpha()
