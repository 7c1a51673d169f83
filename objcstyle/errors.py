"""Error taxonomy for objcstyle.

Only ``ConfigurationError`` is fatal. Source errors (lexing and parsing) are
recorded and turned into diagnostics so the rest of a file is still analyzed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Position


class ObjcStyleError(Exception):
    """Base class for all objcstyle errors."""


class ConfigurationError(ObjcStyleError):
    """Invalid configuration or rule registration; raised before any file is analyzed."""


class SourceError(ObjcStyleError):
    """A recoverable problem in a single source file."""

    diagnostic_id = "source-error"

    def __init__(self, kind: str, message: str, position: "Position"):
        self.kind = kind
        self.message = message
        self.position = position
        super().__init__(f"{kind} at line {position.line}, column {position.column}: {message}")


class LexError(SourceError):
    """Malformed raw text. Lexing resumes at the next line."""

    diagnostic_id = "lex-error"

    UNTERMINATED_LITERAL = "UnterminatedLiteral"
    UNTERMINATED_COMMENT = "UnterminatedComment"
    INVALID_CHARACTER = "InvalidCharacter"


class ParseError(SourceError):
    """Malformed declaration shape. Parsing resumes at the next declaration boundary."""

    diagnostic_id = "parse-error"

    MISSING_NAME = "MissingName"
    MISSING_TYPE = "MissingType"
    MALFORMED_SELECTOR = "MalformedSelector"
    UNEXPECTED_END = "UnexpectedEnd"
