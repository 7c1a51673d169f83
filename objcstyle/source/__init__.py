"""Lexing and declaration parsing of Objective-C sources."""

from .lexer import Lexer, Token, TokenKind, tokenize
from .parser import DeclarationParser, parse_source

__all__ = ["DeclarationParser", "Lexer", "Token", "TokenKind", "parse_source", "tokenize"]
