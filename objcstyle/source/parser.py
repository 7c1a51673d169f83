"""
Declaration parser for Objective-C sources.

Rebuilds the declaration structure of a file (classes, categories, protocols,
properties, methods, functions, constants, enums, macros, instance variables)
from the token stream without semantic resolution. Method and function bodies
are consumed as balanced brace groups; their top-level declaration statements
become local variables and constants of the method or function.

Malformed declarations are recorded in ``errors`` and parsing resumes at the
next declaration boundary, so one bad line never hides the rest of the file.
"""

from __future__ import annotations

import logging
import re
from pathlib import PurePath
from typing import Iterable, Iterator

from ..errors import ParseError
from ..models import (
    CategoryDecl,
    ClassDecl,
    ConstantDecl,
    DeclarationNode,
    EnumDecl,
    EnumValueDecl,
    FileUnit,
    FunctionDecl,
    InstanceVariableDecl,
    MacroDecl,
    MethodDecl,
    Position,
    PropertyDecl,
    ProtocolDecl,
    SelectorPiece,
    Span,
    VariableDecl,
)
from .lexer import Lexer, Token, TokenKind

logger = logging.getLogger(__name__)

CONTAINER_KEYWORDS = frozenset({"@interface", "@implementation", "@protocol"})
IVAR_ACCESS = frozenset({"@private", "@protected", "@public", "@package"})
STORAGE_KEYWORDS = frozenset({"static", "extern", "inline", "register", "__inline", "__inline__"})
ENUM_MACROS = frozenset(
    {"NS_ENUM", "NS_OPTIONS", "NS_CLOSED_ENUM", "NS_ERROR_ENUM", "CF_ENUM", "CF_OPTIONS", "CF_CLOSED_ENUM"}
)

# Platform attribute / availability / export macros that decorate declarations.
_ATTRIBUTE_MACRO = re.compile(
    r"^(?:NS|UI|API|CF|CG|OBJC|UIKIT|APPKIT|FOUNDATION|IB|AV|MK|WK|SWIFT|DEPRECATED|AVAILABLE)_[A-Z0-9_]+$"
)
# Project export macros: JP_EXTERN, JPKIT_EXPORT, JP_EXTERN_C.
_EXPORT_MACRO = re.compile(r"^[A-Z][A-Z0-9]*(?:_[A-Z0-9]+)*_(?:EXPORT|EXTERN|EXTERN_C)$")
EXPORT_SUFFIXES = ("EXPORT", "EXTERN", "EXTERN_C")
# Standalone macro lines such as NS_ASSUME_NONNULL_BEGIN.
_BARE_MACRO = re.compile(r"^_*[A-Z][A-Z0-9]*_[A-Z0-9_]*$")
# Statements inside bodies that never declare a variable.
STATEMENT_KEYWORDS = frozenset(
    {
        "if", "else", "for", "while", "do", "switch", "case", "default", "return", "break",
        "continue", "goto", "typedef", "sizeof", "try", "catch", "throw", "delete", "new",
        "using", "namespace", "template", "asm", "__asm__",
    }
)
TYPEOF_KEYWORDS = frozenset({"typeof", "__typeof", "__typeof__", "decltype"})
_DEFINE = re.compile(r"#\s*define\s+([A-Za-z_]\w*)(\(([^)]*)\))?[ \t]*(.*)", re.DOTALL)
_DEFINE_PREFIX = re.compile(r"#\s*define\b")
_CONTINUATION = re.compile(r"\\\r?\n")


def _split_lines(source: str) -> tuple[tuple[str, ...], tuple[int, ...]]:
    raw = source.split("\n")
    if raw and raw[-1] == "" and len(raw) > 1:
        raw.pop()
    lines: list[str] = []
    offsets: list[int] = []
    offset = 0
    for line in raw:
        offsets.append(offset)
        offset += len(line.encode("utf-8")) + 1
        lines.append(line.rstrip("\r"))
    return tuple(lines), tuple(offsets)


def _end_position(token: Token) -> Position:
    """Position just past ``token``."""
    text = token.text
    if "\n" in text:
        line = token.line + text.count("\n")
        column = len(text) - text.rfind("\n")
    else:
        line = token.line
        column = token.column + len(text)
    return Position(token.position.path, line, column, token.end_offset)


def _split_top_level(tokens: list[Token], separator: str = ",") -> list[list[Token]]:
    groups: list[list[Token]] = [[]]
    depth = 0
    for tok in tokens:
        if tok.text in ("(", "[", "{", "<"):
            depth += 1
        elif tok.text in (")", "]", "}", ">"):
            depth = max(0, depth - 1)
        elif tok.text == separator and depth == 0:
            groups.append([])
            continue
        groups[-1].append(tok)
    return groups


def _matching(tokens: list[Token], index: int) -> int:
    """Index of the token closing the bracket at ``tokens[index]`` (or the last index)."""
    opener = tokens[index].text
    closer = {"(": ")", "[": "]", "{": "}", "<": ">"}[opener]
    depth = 0
    for j in range(index, len(tokens)):
        if tokens[j].text == opener:
            depth += 1
        elif tokens[j].text == closer:
            depth -= 1
            if depth == 0:
                return j
    return len(tokens) - 1


def join_tokens(tokens: Iterable[Token]) -> str:
    """Render tokens as text, keeping a single space wherever the source had a gap."""
    out: list[str] = []
    prev: Token | None = None
    for tok in tokens:
        if prev is not None and tok.offset > prev.end_offset:
            out.append(" ")
        out.append(tok.text)
        prev = tok
    return "".join(out)


def is_attribute_token(tok: Token) -> bool:
    if tok.kind is not TokenKind.IDENTIFIER:
        return False
    text = tok.text
    if text in ("__attribute__", "__declspec") or text.startswith("__"):
        return True
    return bool(_ATTRIBUTE_MACRO.match(text) or _EXPORT_MACRO.match(text))


def _body_statements(body: list[Token]) -> Iterator[tuple[list[Token], Token]]:
    """Split body tokens into top-level statements and their closing ``;`` or ``}``.

    A brace group at the top level (``if (...) { ... }``) closes its statement.
    """
    statement: list[Token] = []
    depth = 0
    for tok in body:
        if tok.text in ("(", "[", "{"):
            depth += 1
        elif tok.text in (")", "]", "}"):
            depth = max(0, depth - 1)
        if depth == 0 and tok.text == ";":
            if statement:
                yield statement, tok
            statement = []
            continue
        statement.append(tok)
        if depth == 0 and tok.text == "}":
            yield statement, tok
            statement = []


def _looks_like_declaration(statement: list[Token]) -> bool:
    """True for ``Type name`` statements; calls, message sends and assignments are not."""
    first = statement[0]
    if first.kind not in (TokenKind.IDENTIFIER, TokenKind.KEYWORD) or first.text.startswith("@"):
        return False
    if first.text in STATEMENT_KEYWORDS:
        return False
    words = 0
    depth = 0
    for index, tok in enumerate(statement):
        text = tok.text
        if depth == 0 and text == "=":
            break
        if text == "(" and depth == 0:
            prev = statement[index - 1] if index else None
            nxt = statement[index + 1] if index + 1 < len(statement) else None
            if nxt is not None and nxt.text in ("^", "*"):
                words += 1
            elif prev is None or (prev.text != ")" and prev.text not in TYPEOF_KEYWORDS):
                return False
        if text in ("(", "[", "<"):
            depth += 1
        elif text in (")", "]", ">"):
            depth = max(0, depth - 1)
        elif text == ">>":
            depth = max(0, depth - 2)
        elif depth == 0:
            if tok.kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD):
                words += 1
            elif text not in ("*", "^", ","):
                return False
    return words >= 2


def _without_initializers(statement: list[Token]) -> list[Token]:
    kept: list[Token] = []
    depth = 0
    in_init = False
    for tok in statement:
        if tok.text in ("(", "[", "{"):
            depth += 1
        elif tok.text in (")", "]", "}"):
            depth = max(0, depth - 1)
        elif depth == 0 and tok.text == "=":
            in_init = True
        elif depth == 0 and tok.text == ",":
            in_init = False
        if not in_init:
            kept.append(tok)
    return kept


class DeclarationParser:
    """
    Parser producing a ``FileUnit`` tree from lexer tokens.

    Usage:
        parser = DeclarationParser(tokens, "JPWidget.m", source_text)
        unit = parser.parse()
        parser.errors  # recoverable ParseErrors
    """

    def __init__(self, tokens: Iterable[Token], path: str, source: str = ""):
        self.path = path
        self.source = source
        self.tokens = [t for t in tokens if t.is_significant]
        self.i = 0
        self.errors: list[ParseError] = []
        self.is_header = PurePath(path).suffix.lower() in (".h", ".hh", ".hpp")

    # -- token helpers -------------------------------------------------------

    def _peek(self, ahead: int = 0) -> Token | None:
        j = self.i + ahead
        return self.tokens[j] if j < len(self.tokens) else None

    def _at(self, text: str, ahead: int = 0) -> bool:
        tok = self._peek(ahead)
        return tok is not None and tok.text == text

    def _at_end(self) -> bool:
        return self.i >= len(self.tokens)

    def _next(self) -> Token:
        tok = self._peek()
        if tok is None:
            raise self._error(ParseError.UNEXPECTED_END, "unexpected end of file")
        self.i += 1
        return tok

    def _is_line_start(self, index: int) -> bool:
        return index == 0 or self.tokens[index - 1].end_line < self.tokens[index].line

    def _error(self, kind: str, message: str, token: Token | None = None) -> ParseError:
        if token is None:
            token = self._peek() or (self.tokens[-1] if self.tokens else None)
        position = token.position if token else Position(self.path, 1, 1, 0)
        return ParseError(kind, message, position)

    def _record(self, error: ParseError) -> None:
        logger.debug("%s: %s", self.path, error)
        self.errors.append(error)

    def _last_consumed(self) -> Token:
        return self.tokens[self.i - 1]

    def _skip_balanced(self) -> Token:
        """Consume a bracket group starting at the current token and return its closer."""
        open_tok = self._peek()
        opener = open_tok.text
        closer = {"(": ")", "[": "]", "{": "}"}[opener]
        depth = 0
        while not self._at_end():
            tok = self._next()
            if tok.text == opener:
                depth += 1
            elif tok.text == closer:
                depth -= 1
                if depth == 0:
                    return tok
        raise self._error(ParseError.UNEXPECTED_END, f"unbalanced '{opener}'", open_tok)

    def _paren_tokens(self) -> list[Token]:
        """Consume ``( ... )`` and return the inner tokens."""
        start = self.i
        self._skip_balanced()
        return self.tokens[start + 1:self.i - 1]

    def _skip_attribute(self) -> str:
        tok = self._next()
        if self._at("("):
            self._skip_balanced()
        return tok.text

    def _collect_statement(self, stop_at_brace: bool = False) -> tuple[list[Token], Token]:
        """Consume tokens up to and including ``;`` at nesting depth 0.

        Returns the statement tokens (without the ``;``) and the ``;`` token.
        """
        start_tok = self._peek()
        collected: list[Token] = []
        depth = 0
        while True:
            tok = self._peek()
            if tok is None:
                raise self._error(ParseError.UNEXPECTED_END, "missing ';'", start_tok)
            if depth == 0:
                if tok.text in CONTAINER_KEYWORDS or tok.text == "@end":
                    raise self._error(ParseError.UNEXPECTED_END, "missing ';'", start_tok)
                if tok.text == ";":
                    self.i += 1
                    return collected, tok
                if stop_at_brace and tok.text == "}":
                    raise self._error(ParseError.UNEXPECTED_END, "missing ';'", start_tok)
            if tok.text in ("(", "[", "{"):
                depth += 1
            elif tok.text in (")", "]", "}"):
                depth = max(0, depth - 1)
            if tok.kind is not TokenKind.DIRECTIVE:
                collected.append(tok)
            self.i += 1

    def _skip_statement(self) -> None:
        try:
            self._collect_statement()
        except ParseError:
            pass

    def _span(self, start: Token, end: Token) -> Span:
        return Span(start.position, _end_position(end))

    def _file_visibility(self, modifiers: Iterable[str]) -> str:
        mods = set(modifiers)
        if "static" in mods:
            return "private"
        if self.is_header or "extern" in mods or any(m.endswith(EXPORT_SUFFIXES) for m in mods):
            return "public"
        return "private"

    # -- entry point ---------------------------------------------------------

    def parse(self) -> FileUnit:
        lines, offsets = _split_lines(self.source)
        unit = FileUnit(
            name=PurePath(self.path).stem,
            path=self.path,
            lines=lines,
            line_offsets=offsets,
            visibility="public" if self.is_header else "private",
        )
        while not self._at_end():
            start = self.i
            try:
                self._parse_top_level_item(unit)
            except ParseError as exc:
                self._record(exc)
                self._synchronize_top_level(start)
            if self.i == start:
                self.i += 1

        end_line = max(len(lines), 1)
        end_column = (len(lines[-1]) if lines else 0) + 1
        unit.span = Span(
            Position(self.path, 1, 1, 0),
            Position(self.path, end_line, end_column, len(self.source.encode("utf-8"))),
        )
        unit.name_position = unit.span.start
        return unit

    def _synchronize_top_level(self, start: int) -> None:
        depth = 0
        while not self._at_end():
            tok = self._peek()
            if depth == 0 and self.i > start:
                if tok.text in CONTAINER_KEYWORDS or tok.kind is TokenKind.DIRECTIVE:
                    return
            self.i += 1
            if tok.text == "{":
                depth += 1
            elif tok.text == "}":
                depth -= 1
                if depth <= 0:
                    return
            elif tok.text == ";" and depth == 0:
                return

    def _parse_top_level_item(self, unit: FileUnit) -> None:
        tok = self._peek()
        text = tok.text

        if tok.kind is TokenKind.DIRECTIVE:
            self.i += 1
            macro = self._parse_macro(tok)
            if macro is not None:
                unit.children.append(macro)
        elif text in CONTAINER_KEYWORDS:
            self._parse_container(unit)
        elif tok.kind is TokenKind.KEYWORD and text.startswith("@"):
            # @class, @import, stray @end and friends
            if text in ("@class", "@import", "@compatibility_alias"):
                self._skip_statement()
            else:
                self.i += 1
        elif text in ("-", "+"):
            self._skip_stray_method()
        elif text in (";", "}"):
            self.i += 1
        elif text == "extern" and self._peek(1) is not None and self._peek(1).text == '"C"':
            self.i += 2
            if self._at("{"):
                self.i += 1
        elif text == "typedef":
            self._parse_typedef(unit)
        elif text == "enum" or (text in ENUM_MACROS and self._at("(", 1)):
            self._parse_enum(unit, self.i)
        elif self._is_bare_macro(self.i):
            self.i += 1
        else:
            self._parse_c_declaration(unit)

    def _is_bare_macro(self, index: int) -> bool:
        tok = self.tokens[index]
        if tok.kind is not TokenKind.IDENTIFIER or not _BARE_MACRO.match(tok.text) or _EXPORT_MACRO.match(tok.text):
            return False
        nxt = self.tokens[index + 1] if index + 1 < len(self.tokens) else None
        return nxt is None or (nxt.line > tok.end_line and nxt.text != "(")

    def _skip_stray_method(self) -> None:
        while not self._at_end():
            if self._at("{"):
                self._skip_balanced()
                return
            if self._next().text == ";":
                return

    # -- preprocessor --------------------------------------------------------

    def _parse_macro(self, tok: Token) -> MacroDecl | None:
        if not _DEFINE_PREFIX.match(tok.text):
            return None
        match = _DEFINE.match(tok.text)
        if match is None:
            self._record(self._error(ParseError.MISSING_NAME, "#define without a macro name", tok))
            return None

        prefix = tok.text[:match.start(1)]
        if "\n" in prefix:
            line = tok.line + prefix.count("\n")
            column = len(prefix) - prefix.rfind("\n")
        else:
            line = tok.line
            column = tok.column + len(prefix)
        name_position = Position(self.path, line, column, tok.offset + len(prefix.encode("utf-8")))

        parameters = None
        if match.group(2) is not None:
            parameters = tuple(p.strip() for p in match.group(3).split(",") if p.strip())
        value = " ".join(_CONTINUATION.sub(" ", match.group(4)).split())

        return MacroDecl(
            name=match.group(1),
            name_position=name_position,
            span=self._span(tok, tok),
            visibility="public" if self.is_header else "private",
            parameters=parameters,
            value=value,
            tokens=(tok,),
        )

    # -- @interface / @implementation / @protocol ----------------------------

    def _parse_container(self, parent: DeclarationNode) -> None:
        keyword = self._next()
        try:
            node = self._parse_container_header(keyword)
        except ParseError as exc:
            self._record(exc)
            self._skip_container()
            return
        if node is None:
            return
        parent.children.append(node)
        self._parse_container_body(node, keyword)

    def _skip_container(self) -> None:
        while not self._at_end():
            tok = self._peek()
            if tok.text in CONTAINER_KEYWORDS:
                return
            self.i += 1
            if tok.text == "@end":
                return

    def _angle_list(self) -> tuple[str, ...]:
        """Consume ``<A, B<C>>`` and return the top-level comma separated entries."""
        start = self.i
        close = _matching(self.tokens, start)
        inner = self.tokens[start + 1:close]
        self.i = close + 1
        return tuple(join_tokens(group) for group in _split_top_level(inner) if group)

    def _angle_followed_by(self, texts: tuple[str, ...]) -> bool:
        close = _matching(self.tokens, self.i)
        return close + 1 < len(self.tokens) and self.tokens[close + 1].text in texts

    def _parse_container_header(self, keyword: Token) -> DeclarationNode | None:
        name_tok = self._peek()
        if name_tok is None or name_tok.kind is not TokenKind.IDENTIFIER:
            raise self._error(ParseError.MISSING_NAME, f"{keyword.text} without a name", name_tok or keyword)
        self.i += 1

        if keyword.text == "@protocol":
            if self._at(";") or self._at(","):
                self._skip_statement()
                return None
            protocols = self._angle_list() if self._at("<") else ()
            return ProtocolDecl(
                name=name_tok.text,
                name_position=name_tok.position,
                visibility="public",
                protocols=protocols,
            )

        section = "interface" if keyword.text == "@interface" else "implementation"
        generics: tuple[str, ...] = ()
        if self._at("<") and self._angle_followed_by((":", "(", "{")):
            generics = self._angle_list()

        if self._at("("):
            self.i += 1
            category = ""
            if not self._at(")"):
                cat_tok = self._next()
                if cat_tok.kind is not TokenKind.IDENTIFIER:
                    raise self._error(ParseError.MISSING_NAME, "malformed category name", cat_tok)
                category = cat_tok.text
                if not self._at(")"):
                    raise self._error(ParseError.MISSING_NAME, "expected ')' after category name")
            self.i += 1
            is_extension = category == ""
            protocols = self._angle_list() if self._at("<") else ()
            private = is_extension or section == "implementation"
            return CategoryDecl(
                name=category,
                name_position=name_tok.position,
                visibility="private" if private else "public",
                class_name=name_tok.text,
                is_extension=is_extension,
                protocols=protocols,
                section=section,
            )

        superclass = None
        if self._at(":"):
            self.i += 1
            super_tok = self._next()
            if super_tok.kind is not TokenKind.IDENTIFIER:
                raise self._error(ParseError.MISSING_NAME, "missing superclass name", super_tok)
            superclass = super_tok.text
        protocols = self._angle_list() if self._at("<") else ()
        return ClassDecl(
            name=name_tok.text,
            name_position=name_tok.position,
            visibility="public" if section == "interface" else "private",
            superclass=superclass,
            protocols=protocols,
            generics=generics,
            section=section,
        )

    def _parse_container_body(self, node: DeclarationNode, keyword: Token) -> None:
        is_impl = keyword.text == "@implementation"
        if self._at("{") and not isinstance(node, ProtocolDecl):
            self._parse_ivar_block(node)

        while True:
            tok = self._peek()
            if tok is None or tok.text in CONTAINER_KEYWORDS:
                label = node.name or getattr(node, "class_name", "")
                self._record(self._error(ParseError.UNEXPECTED_END, f"missing @end for {keyword.text} {label}", keyword))
                break
            if tok.text == "@end":
                self.i += 1
                break
            start = self.i
            try:
                self._parse_member(node, tok, is_impl)
            except ParseError as exc:
                self._record(exc)
                self._synchronize_member(start)
            if self.i == start:
                self.i += 1

        node.span = self._span(keyword, self._last_consumed())

    def _synchronize_member(self, start: int) -> None:
        depth = 0
        while not self._at_end():
            tok = self._peek()
            if depth == 0:
                if tok.text in CONTAINER_KEYWORDS or tok.text in ("@end", "@property"):
                    return
                if tok.text in ("-", "+") and self.i > start and self._is_line_start(self.i):
                    return
            self.i += 1
            if tok.text == "{":
                depth += 1
            elif tok.text == "}":
                depth = max(0, depth - 1)
            elif tok.text == ";" and depth == 0:
                return

    def _parse_member(self, node: DeclarationNode, tok: Token, is_impl: bool) -> None:
        text = tok.text
        if tok.kind is TokenKind.DIRECTIVE:
            self.i += 1
            macro = self._parse_macro(tok)
            if macro is not None:
                node.children.append(macro)
        elif text in ("-", "+"):
            node.children.append(self._parse_method(node, is_impl))
        elif text == "@property":
            prop = self._parse_property(node)
            if prop is not None:
                node.children.append(prop)
        elif text in ("@synthesize", "@dynamic"):
            self._collect_statement()
        elif text in ("@optional", "@required", ";"):
            self.i += 1
        elif tok.kind is TokenKind.KEYWORD and text.startswith("@"):
            self.i += 1
        elif text == "typedef":
            self._parse_typedef(node)
        elif text == "enum" or (text in ENUM_MACROS and self._at("(", 1)):
            self._parse_enum(node, self.i)
        elif self._is_bare_macro(self.i):
            self.i += 1
        else:
            self._parse_c_declaration(node)

    # -- instance variables --------------------------------------------------

    def _parse_ivar_block(self, node: DeclarationNode) -> None:
        open_tok = self._next()
        access = None
        while True:
            tok = self._peek()
            if tok is None or tok.text in CONTAINER_KEYWORDS or tok.text == "@end":
                self._record(self._error(ParseError.UNEXPECTED_END, "unterminated instance variable block", open_tok))
                return
            if tok.text == "}":
                self.i += 1
                return
            if tok.text in IVAR_ACCESS:
                access = tok.text
                self.i += 1
                continue
            if tok.kind is TokenKind.DIRECTIVE or tok.text == ";":
                self.i += 1
                continue
            try:
                statement, end = self._collect_statement(stop_at_brace=True)
            except ParseError as exc:
                self._record(exc)
                if not self._at("}"):
                    self.i += 1
                continue
            for name_tok, type_text, modifiers, decl_tokens in self._declarators(statement, end):
                node.children.append(
                    InstanceVariableDecl(
                        name=name_tok.text,
                        name_position=name_tok.position,
                        span=self._span(statement[0], end),
                        visibility=node.visibility,
                        modifiers=modifiers,
                        tokens=decl_tokens,
                        type_name=type_text,
                        access=access,
                    )
                )

    # -- declarators ---------------------------------------------------------

    def _declarators(
        self, statement: list[Token], anchor: Token, record: bool = True
    ) -> list[tuple[Token, str, tuple[str, ...], tuple[Token, ...]]]:
        """Split ``statement`` into declarators; errors are recorded (when ``record``), not raised."""
        results = []
        base_type = ""
        for index, group in enumerate(_split_top_level(statement)):
            if not group:
                continue
            try:
                name_tok, type_tokens, modifiers = self._declarator(group, anchor, require_type=index == 0)
            except ParseError as exc:
                if record:
                    self._record(exc)
                continue
            if index == 0:
                type_text = join_tokens(type_tokens)
                base_type = join_tokens(t for t in type_tokens if t.text != "*")
            else:
                stars = "".join(t.text for t in type_tokens if t.text == "*")
                type_text = f"{base_type} {stars}".strip()
            results.append((name_tok, type_text, modifiers, tuple(group)))
        return results

    def _declarator(
        self, tokens: list[Token], anchor: Token, *, require_type: bool = True
    ) -> tuple[Token, list[Token], tuple[str, ...]]:
        modifiers: list[str] = []
        core: list[Token] = []
        depth = 0
        j = 0
        while j < len(tokens):
            tok = tokens[j]
            if is_attribute_token(tok):
                modifiers.append(tok.text)
                j += 1
                if j < len(tokens) and tokens[j].text == "(":
                    j = _matching(tokens, j) + 1
                continue
            if tok.text in STORAGE_KEYWORDS:
                modifiers.append(tok.text)
                j += 1
                continue
            if tok.text == "const" and "const" not in modifiers:
                modifiers.append("const")
            if tok.text == "(":
                depth += 1
            elif tok.text == ")":
                depth -= 1
            elif depth == 0 and tok.text in ("[", ":", "="):
                break
            core.append(tok)
            j += 1

        name_index = self._declarator_name_index(core)
        if name_index is None:
            where = core[-1] if core else (tokens[0] if tokens else anchor)
            raise self._error(ParseError.MISSING_NAME, "declaration without a name", where)
        name_tok = core[name_index]
        type_tokens = core[:name_index] + core[name_index + 1:]
        if require_type and not any(
            t.kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD) and t.text != "const" for t in type_tokens
        ):
            raise self._error(ParseError.MISSING_TYPE, f"declaration of '{name_tok.text}' without a type", name_tok)
        return name_tok, type_tokens, tuple(modifiers)

    @staticmethod
    def _declarator_name_index(core: list[Token]) -> int | None:
        # Block and function pointer declarators: ( ^ name ) / ( * name )
        for j in range(len(core) - 2):
            if core[j].text == "(" and core[j + 1].text in ("^", "*") and core[j + 2].kind is TokenKind.IDENTIFIER:
                return j + 2
        if core and core[-1].kind is TokenKind.IDENTIFIER:
            return len(core) - 1
        return None

    @staticmethod
    def _is_const(type_tokens: list[Token], name_tok: Token) -> bool:
        before = [t for t in type_tokens if t.offset < name_tok.offset]
        stars = [k for k, t in enumerate(before) if t.text == "*"]
        if stars:
            return any(t.text == "const" for t in before[stars[-1] + 1:])
        return any(t.text == "const" for t in before)

    # -- properties ----------------------------------------------------------

    def _parse_property(self, container: DeclarationNode) -> PropertyDecl | None:
        keyword = self._next()
        attributes = None
        if self._at("("):
            inner = self._paren_tokens()
            attributes = tuple(join_tokens(group) for group in _split_top_level(inner) if group)
        statement, end = self._collect_statement()
        try:
            name_tok, type_tokens, modifiers = self._declarator(statement, keyword)
        except ParseError as exc:
            self._record(exc)
            return None
        return PropertyDecl(
            name=name_tok.text,
            name_position=name_tok.position,
            span=self._span(keyword, end),
            visibility=container.visibility,
            modifiers=modifiers,
            tokens=(keyword, *statement),
            attributes=attributes,
            type_name=join_tokens(type_tokens),
        )

    # -- methods -------------------------------------------------------------

    def _parse_method(self, container: DeclarationNode, is_impl: bool) -> MethodDecl:
        sig_start = self.i
        scope_tok = self._next()
        return_type = None
        if self._at("("):
            open_tok = self._peek()
            inner = self._paren_tokens()
            if not inner:
                raise self._error(ParseError.MISSING_TYPE, "empty method return type", open_tok)
            return_type = join_tokens(inner)

        pieces: list[SelectorPiece] = []
        modifiers: list[str] = []
        variadic = False
        while True:
            tok = self._peek()
            if tok is None:
                raise self._error(ParseError.UNEXPECTED_END, "unterminated method declaration", scope_tok)
            if tok.text in (";", "{"):
                break
            if tok.text in CONTAINER_KEYWORDS or tok.text in ("@end", "@property"):
                raise self._error(ParseError.MALFORMED_SELECTOR, "method declaration missing ';'", scope_tok)
            if pieces and is_attribute_token(tok):
                modifiers.append(self._skip_attribute())
                continue
            if tok.text == "," and self._at("...", 1):
                self.i += 2
                variadic = True
                continue

            label_tok = None
            if tok.kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD) and not tok.text.startswith("@"):
                label_tok = tok
                self.i += 1
            elif tok.text != ":":
                raise self._error(ParseError.MALFORMED_SELECTOR, f"unexpected {tok.text!r} in method selector", tok)

            if pieces and not pieces[-1].has_colon:
                raise self._error(
                    ParseError.MALFORMED_SELECTOR, "selector piece follows a selector without arguments", label_tok or tok
                )

            if not self._at(":"):
                if pieces:
                    raise self._error(
                        ParseError.MALFORMED_SELECTOR, f"selector piece '{label_tok.text}' is missing ':'", label_tok
                    )
                pieces.append(SelectorPiece(label=label_tok.text, position=label_tok.position))
                continue

            colon = self._next()
            param_type = None
            if self._at("("):
                param_type = join_tokens(self._paren_tokens())
            name_tok = self._peek()
            if name_tok is None or name_tok.kind is not TokenKind.IDENTIFIER or is_attribute_token(name_tok):
                label = label_tok.text if label_tok else ""
                raise self._error(
                    ParseError.MISSING_NAME, f"missing parameter name for selector piece '{label}:'", name_tok or colon
                )
            self.i += 1
            pieces.append(
                SelectorPiece(
                    label=label_tok.text if label_tok else "",
                    position=(label_tok or colon).position,
                    param_type=param_type,
                    param_name=name_tok.text,
                    has_colon=True,
                )
            )

        if not pieces:
            raise self._error(ParseError.MALFORMED_SELECTOR, "method without a selector", scope_tok)

        signature = tuple(self.tokens[sig_start:self.i])
        end = signature[-1]
        if self._at(";"):
            end = self._next()
        body_start = None
        local_decls: list[DeclarationNode] = []
        if is_impl and self._at("{"):
            body_start = self._peek().position
            end, local_decls = self._parse_body()

        method = MethodDecl(
            name="",
            name_position=pieces[0].position,
            span=self._span(scope_tok, end),
            visibility=container.visibility,
            modifiers=tuple(modifiers),
            tokens=signature,
            scope="instance" if scope_tok.text == "-" else "class",
            return_type=return_type,
            pieces=tuple(pieces),
            variadic=variadic,
            body_start=body_start,
            children=local_decls,
        )
        method.name = method.selector
        return method

    # -- typedefs and enums --------------------------------------------------

    def _parse_typedef(self, parent: DeclarationNode) -> None:
        nxt = self._peek(1)
        if nxt is not None and (nxt.text == "enum" or (nxt.text in ENUM_MACROS and self._at("(", 2))):
            start_index = self.i
            self.i += 1
            self._parse_enum(parent, start_index, typedef=True)
            return
        self._skip_statement()

    def _parse_enum(self, parent: DeclarationNode, start_index: int, typedef: bool = False) -> None:
        tok = self._next()
        name_tok = None
        backing = None

        if tok.text in ENUM_MACROS:
            args = _split_top_level(self._paren_tokens())
            backing = join_tokens(args[0]) if args and args[0] else None
            name_group = args[-1] if len(args) > 1 else []
            idents = [t for t in name_group if t.kind is TokenKind.IDENTIFIER]
            if not idents:
                raise self._error(ParseError.MISSING_NAME, f"{tok.text} without a type name", tok)
            name_tok = idents[-1]
            style = tok.text
        else:
            style = "enum"
            if self._peek() is not None and self._peek().kind is TokenKind.IDENTIFIER:
                name_tok = self._next()
            if self._at(":"):
                self.i += 1
                type_tokens = []
                while not self._at_end() and not self._at("{") and not self._at(";"):
                    type_tokens.append(self._next())
                backing = join_tokens(type_tokens) or None
            if not self._at("{"):
                # forward declaration or a variable of enum type
                self._skip_statement()
                return

        visibility = "public" if self.is_header else "private"
        enum = EnumDecl(
            name=name_tok.text if name_tok else "",
            name_position=name_tok.position if name_tok else tok.position,
            visibility=visibility,
            backing_type=backing,
            style=style,
            tokens=tuple(self.tokens[start_index:self.i]),
        )
        if self._at("{"):
            self._parse_enum_body(enum)

        trailing, end = self._collect_statement()
        if typedef and style == "enum":
            idents = [t for t in trailing if t.kind is TokenKind.IDENTIFIER and not is_attribute_token(t)]
            if idents:
                enum.name = idents[-1].text
                enum.name_position = idents[-1].position
        enum.span = self._span(self.tokens[start_index], end)
        parent.children.append(enum)

    def _parse_enum_body(self, enum: EnumDecl) -> None:
        open_index = self.i
        close = self._skip_balanced()
        body = [t for t in self.tokens[open_index + 1:self.i - 1] if t.kind is not TokenKind.DIRECTIVE]
        for group in _split_top_level(body):
            if not group:
                continue
            first = group[0]
            if first.kind is not TokenKind.IDENTIFIER:
                self._record(self._error(ParseError.MISSING_NAME, "enum value without a name", first))
                continue
            value = None
            for k, t in enumerate(group):
                if t.text == "=":
                    value = join_tokens(group[k + 1:]) or None
                    break
            enum.children.append(
                EnumValueDecl(
                    name=first.text,
                    name_position=first.position,
                    span=self._span(first, group[-1]),
                    visibility=enum.visibility,
                    tokens=tuple(group),
                    value=value,
                )
            )
        logger.debug("%s: enum %s closes at line %d", self.path, enum.name or "<anonymous>", close.line)

    # -- C declarations ------------------------------------------------------

    def _parse_c_declaration(self, parent: DeclarationNode) -> None:
        start_tok = self._peek()
        sig: list[Token] = []
        depth = 0
        in_init = False
        body_start = None
        local_decls: list[DeclarationNode] = []
        end = None

        while True:
            tok = self._peek()
            if tok is None:
                raise self._error(ParseError.UNEXPECTED_END, "missing ';'", start_tok)
            if depth == 0 and (tok.text in CONTAINER_KEYWORDS or tok.text == "@end"):
                raise self._error(ParseError.UNEXPECTED_END, "missing ';'", start_tok)
            if tok.kind is TokenKind.DIRECTIVE:
                self.i += 1
                continue
            if depth == 0 and tok.text == ";":
                end = self._next()
                break
            if depth == 0 and tok.text == "{":
                if not in_init and self._function_name_index(sig) is not None:
                    body_start = tok.position
                    end, local_decls = self._parse_body()
                    break
                self._skip_balanced()
                continue
            if tok.text in ("(", "["):
                depth += 1
            elif tok.text in (")", "]"):
                depth = max(0, depth - 1)
            elif depth == 0 and tok.text == "=":
                in_init = True
            elif depth == 0 and tok.text == ",":
                in_init = False
            if not in_init:
                sig.append(tok)
            self.i += 1

        if not sig:
            return
        if sig[0].text in ("struct", "union", "enum") and len(sig) <= 2:
            return

        func_index = self._function_name_index(sig)
        if func_index is not None:
            name_tok = sig[func_index]
            modifiers = tuple(t.text for t in sig[:func_index] if t.text in STORAGE_KEYWORDS or is_attribute_token(t))
            return_tokens = [t for t in sig[:func_index] if t.text not in STORAGE_KEYWORDS and not is_attribute_token(t)]
            parent.children.append(
                FunctionDecl(
                    name=name_tok.text,
                    name_position=name_tok.position,
                    span=self._span(start_tok, end),
                    visibility=self._file_visibility(modifiers),
                    modifiers=modifiers,
                    tokens=tuple(sig),
                    return_type=join_tokens(return_tokens),
                    body_start=body_start,
                    children=local_decls,
                )
            )
            return

        if func_index is None and self._is_macro_invocation(sig):
            return

        parent.children.extend(self._variables(sig, end))

    def _variables(self, sig: list[Token], end: Token, local: bool = False) -> list[DeclarationNode]:
        """Constant and variable nodes for a declaration statement without initializers.

        Locals are private, and only ``static`` locals can be constants.
        """
        nodes: list[DeclarationNode] = []
        shared_modifiers: tuple[str, ...] = ()
        for index, (name_tok, type_text, modifiers, decl_tokens) in enumerate(
            self._declarators(sig, end, record=not local)
        ):
            if index == 0:
                shared_modifiers = modifiers
            else:
                modifiers = tuple(dict.fromkeys(shared_modifiers + modifiers))
            type_tokens = [t for t in decl_tokens if t is not name_tok]
            const = self._is_const(type_tokens, name_tok) or (
                index > 0 and "const" in shared_modifiers and "*" not in type_text
            )
            if local and "static" not in modifiers:
                const = False
            cls = ConstantDecl if const else VariableDecl
            nodes.append(
                cls(
                    name=name_tok.text,
                    name_position=name_tok.position,
                    span=self._span(decl_tokens[0], end),
                    visibility="private" if local else self._file_visibility(modifiers),
                    modifiers=modifiers,
                    tokens=decl_tokens,
                    type_name=type_text,
                )
            )
        return nodes

    def _parse_body(self) -> tuple[Token, list[DeclarationNode]]:
        """Consume a ``{ ... }`` body; return its closing brace and its local declarations.

        Only top-level statements are read; nested blocks are skipped whole.
        """
        open_index = self.i
        close = self._skip_balanced()
        body = [t for t in self.tokens[open_index + 1:self.i - 1] if t.kind is not TokenKind.DIRECTIVE]
        local_decls: list[DeclarationNode] = []
        for statement, end in _body_statements(body):
            if _looks_like_declaration(statement):
                local_decls.extend(self._variables(_without_initializers(statement), end, local=True))
        return close, local_decls

    def _function_name_index(self, sig: list[Token]) -> int | None:
        depth = 0
        for j, tok in enumerate(sig):
            if tok.text in ("(", "["):
                if depth == 0 and tok.text == "(" and j > 0:
                    prev = sig[j - 1]
                    after = sig[j + 1] if j + 1 < len(sig) else None
                    if (
                        prev.kind is TokenKind.IDENTIFIER
                        and not is_attribute_token(prev)
                        and (after is None or after.text not in ("^", "*"))
                        and j - 1 > 0
                    ):
                        return j - 1
                depth += 1
            elif tok.text in (")", "]"):
                depth = max(0, depth - 1)
        return None

    @staticmethod
    def _is_macro_invocation(sig: list[Token]) -> bool:
        return bool(sig) and sig[0].kind is TokenKind.IDENTIFIER and len(sig) > 1 and sig[1].text == "("


def parse_source(source: str, path: str = "<unknown>") -> tuple[FileUnit, list]:
    """Lex and parse ``source``; returns the tree and all recoverable errors (lex first)."""
    lexer = Lexer(source, path)
    tokens = list(lexer)
    parser = DeclarationParser(tokens, path, source)
    unit = parser.parse()
    return unit, [*lexer.errors, *parser.errors]
