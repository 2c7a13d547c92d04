"""
Error definitions for toolpath parsing.
"""
from enum import Enum
from typing import Optional


class ErrorType(Enum):
    SYNTAX = "syntax"
    SEMANTIC = "semantic"
    RUNTIME = "runtime"


class GCodeError(Exception):
    """
    Base error for G-code processing.

    Raised without a line number by the lexer and geometry code; the parse
    loop fills in the 1-based source line before re-raising.
    """
    error_type = ErrorType.RUNTIME

    def __init__(self, message: str, line_number: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line_number = line_number

    def __str__(self):
        if self.line_number is None:
            return self.message
        return f"Line {self.line_number}: {self.message}"


class MalformedLine(GCodeError):
    """A word whose value is missing or is not a number."""
    error_type = ErrorType.SYNTAX


class ArcError(GCodeError):
    """Arc geometry that cannot be resolved."""
    error_type = ErrorType.SEMANTIC


class ArcCenterMissing(ArcError):
    pass


class ArcDegenerate(ArcError):
    pass


class ArcRadiusTooSmall(ArcError):
    pass


class ConfigError(Exception):
    """Invalid viewer configuration file or value."""
