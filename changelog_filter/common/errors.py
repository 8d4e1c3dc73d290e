from datetime import datetime
from enum import Enum
from typing import Optional
import json


class ErrorCode(Enum):
    """Enumeration of error codes used in changelog-filter."""

    HEADER_FORMAT = "FORMAT001"
    TRAILER_FORMAT = "FORMAT002"
    DATE_FORMAT = "FORMAT003"
    UNTERMINATED_ENTRY = "FORMAT004"
    PATTERN_SYNTAX = "PATTERN001"


class ErrorEnumEncoder(json.JSONEncoder):
    """JSON encoder aware of ErrorCode members and datetimes."""

    def default(self, o):
        if isinstance(o, Enum):
            return o.value
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


class ChangelogFilterError(Exception):
    """Base class for all errors raised by changelog-filter."""

    code: ErrorCode = None

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class FormatError(ChangelogFilterError):
    """
    A changelog line did not have the shape its prefix announces.

    Attributes:
        line: The offending raw line, without its terminator
        line_number: 1-based position of the line in the input
        expected: Human-readable shape the line should have had
        column: 1-based column where the malformed part starts
    """

    def __init__(self, message: str, line: str, line_number: int, expected: str,
                 code: ErrorCode = ErrorCode.HEADER_FORMAT, column: int = 1):
        super().__init__(f"line {line_number}: {message}", code)
        self.line = line
        self.line_number = line_number
        self.expected = expected
        self.column = column


class PatternSyntaxError(ChangelogFilterError):
    """The filter pattern is not a valid regular expression."""

    code = ErrorCode.PATTERN_SYNTAX

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"invalid filter pattern {pattern!r}: {reason}")
        self.pattern = pattern
