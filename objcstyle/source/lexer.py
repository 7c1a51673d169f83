"""
Objective-C lexer (tokenizer).

Converts raw source text into a flat stream of tokens: identifiers, keywords,
punctuation, literals, comments, whitespace and preprocessor directives.
Every token carries its line/column and byte offset.

Usage:
    lexer = Lexer(source_text, "JPWidget.m")
    tokens = list(lexer)
    lexer.errors  # LexErrors recorded during the last iteration
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from ..errors import LexError
from ..models import Position

logger = logging.getLogger(__name__)


class TokenKind(Enum):
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    PUNCTUATION = "punctuation"
    LITERAL = "literal"
    COMMENT = "comment"
    WHITESPACE = "whitespace"
    DIRECTIVE = "directive"  # whole preprocessor line, continuations included


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""

    kind: TokenKind
    text: str
    position: Position

    @property
    def line(self) -> int:
        return self.position.line

    @property
    def column(self) -> int:
        return self.position.column

    @property
    def offset(self) -> int:
        return self.position.offset

    @property
    def end_offset(self) -> int:
        return self.position.offset + len(self.text.encode("utf-8"))

    @property
    def end_line(self) -> int:
        return self.position.line + self.text.count("\n")

    @property
    def is_significant(self) -> bool:
        return self.kind not in (TokenKind.WHITESPACE, TokenKind.COMMENT)

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.text!r}, L{self.line}:{self.column})"


# C keywords that matter for declarations; builtin type names stay identifiers.
C_KEYWORDS = frozenset(
    {
        "auto", "break", "case", "const", "continue", "default", "do", "else",
        "enum", "extern", "for", "goto", "if", "inline", "register", "restrict",
        "return", "sizeof", "static", "struct", "switch", "typedef", "union",
        "volatile", "while",
    }
)

_WHITESPACE = re.compile(r"[ \t\r\n\f\v]+")
_LINE_COMMENT = re.compile(r"//[^\n]*")
_DIRECTIVE = re.compile(r"#(?:\\\r?\n|\\.|[^\\\n])*")
_IDENTIFIER = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_NUMBER = re.compile(
    r"(?:0[xX][0-9A-Fa-f]*\.?[0-9A-Fa-f]*(?:[pP][+-]?\d+)?"
    r"|\d+\.?\d*(?:[eE][+-]?\d+)?"
    r"|\.\d+(?:[eE][+-]?\d+)?)"
    r"[uUlLfF]*"
)
_STRING = re.compile(r'"(?:[^"\\\n]|\\.)*"')
_CHAR = re.compile(r"'(?:[^'\\\n]|\\.)*'")
_PUNCTUATION = re.compile(
    r"\.\.\.|<<=|>>=|->|\+\+|--|<<|>>|<=|>=|==|!=|&&|\|\||\+=|-=|\*=|/=|%=|&=|\|=|\^=|::"
    r"|[{}\[\]();:,.<>+\-*/%&|^!~?=#@]"
)


class _Cursor:
    """Tracks line, column and byte offset while scanning."""

    def __init__(self, source: str, path: str):
        self.source = source
        self.path = path
        self.pos = 0
        self.line = 1
        self.column = 1
        self.offset = 0
        self.at_line_start = True

    def position(self) -> Position:
        return Position(self.path, self.line, self.column, self.offset)

    def consume(self, text: str) -> Position:
        """Advance past ``text`` (which starts at the cursor) and return its start position."""
        start = self.position()
        self.pos += len(text)
        self.offset += len(text.encode("utf-8"))
        newlines = text.count("\n")
        if newlines:
            self.line += newlines
            self.column = len(text) - text.rfind("\n")
        else:
            self.column += len(text)
        return start

    def skip_line(self) -> None:
        """Skip to the start of the next line."""
        end = self.source.find("\n", self.pos)
        end = len(self.source) if end == -1 else end + 1
        self.consume(self.source[self.pos:end])
        self.at_line_start = True


class Lexer:
    """
    Tokenizer for Objective-C source files.

    Iteration is lazy and restartable: every ``iter()`` scans from the start
    and resets ``errors``.
    """

    def __init__(self, source: str, path: str = "<unknown>"):
        self.source = source
        self.path = path
        self.errors: list[LexError] = []

    def __iter__(self) -> Iterator[Token]:
        return self.tokens()

    def tokens(self) -> Iterator[Token]:
        self.errors = []
        cursor = _Cursor(self.source, self.path)
        length = len(self.source)
        while cursor.pos < length:
            try:
                token = self._next_token(cursor)
            except LexError as exc:
                self.errors.append(exc)
                logger.debug("%s: %s", self.path, exc)
                cursor.skip_line()
                continue
            if token.kind is TokenKind.WHITESPACE:
                if "\n" in token.text:
                    cursor.at_line_start = True
            elif token.kind is not TokenKind.COMMENT:
                cursor.at_line_start = False
            yield token

    def _next_token(self, cursor: _Cursor) -> Token:
        source = cursor.source
        pos = cursor.pos
        ch = source[pos]

        match = _WHITESPACE.match(source, pos)
        if match:
            return self._emit(TokenKind.WHITESPACE, match.group(), cursor)

        if source.startswith("//", pos):
            return self._emit(TokenKind.COMMENT, _LINE_COMMENT.match(source, pos).group(), cursor)

        if source.startswith("/*", pos):
            end = source.find("*/", pos + 2)
            if end == -1:
                raise LexError(LexError.UNTERMINATED_COMMENT, "unterminated block comment", cursor.position())
            return self._emit(TokenKind.COMMENT, source[pos:end + 2], cursor)

        if ch == "#" and cursor.at_line_start:
            return self._emit(TokenKind.DIRECTIVE, _DIRECTIVE.match(source, pos).group(), cursor)

        if ch == "@":
            nxt = source[pos + 1:pos + 2]
            if nxt == '"':
                literal = self._match_literal(_STRING, source, pos + 1, cursor)
                return self._emit(TokenKind.LITERAL, "@" + literal, cursor)
            if nxt and (nxt.isalpha() or nxt == "_"):
                word = _IDENTIFIER.match(source, pos + 1).group()
                return self._emit(TokenKind.KEYWORD, "@" + word, cursor)
            return self._emit(TokenKind.PUNCTUATION, "@", cursor)

        if ch == '"':
            return self._emit(TokenKind.LITERAL, self._match_literal(_STRING, source, pos, cursor), cursor)

        if ch == "'":
            return self._emit(TokenKind.LITERAL, self._match_literal(_CHAR, source, pos, cursor), cursor)

        if ch.isdigit() or (ch == "." and source[pos + 1:pos + 2].isdigit()):
            return self._emit(TokenKind.LITERAL, _NUMBER.match(source, pos).group(), cursor)

        match = _IDENTIFIER.match(source, pos)
        if match:
            word = match.group()
            kind = TokenKind.KEYWORD if word in C_KEYWORDS else TokenKind.IDENTIFIER
            return self._emit(kind, word, cursor)

        match = _PUNCTUATION.match(source, pos)
        if match:
            return self._emit(TokenKind.PUNCTUATION, match.group(), cursor)

        raise LexError(LexError.INVALID_CHARACTER, f"invalid character {ch!r}", cursor.position())

    @staticmethod
    def _match_literal(pattern: re.Pattern[str], source: str, pos: int, cursor: _Cursor) -> str:
        match = pattern.match(source, pos)
        if match is None:
            raise LexError(LexError.UNTERMINATED_LITERAL, "unterminated literal", cursor.position())
        return match.group()

    @staticmethod
    def _emit(kind: TokenKind, text: str, cursor: _Cursor) -> Token:
        return Token(kind, text, cursor.consume(text))


def tokenize(source: str, path: str = "<unknown>") -> tuple[list[Token], list[LexError]]:
    """Tokenize ``source`` eagerly, returning the tokens and any lex errors."""
    lexer = Lexer(source, path)
    tokens = list(lexer)
    return tokens, lexer.errors
