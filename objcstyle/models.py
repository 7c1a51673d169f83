"""Structural model of an Objective-C source file."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import TYPE_CHECKING, ClassVar, Iterator, Literal

if TYPE_CHECKING:
    from .source.lexer import Token

Visibility = Literal["public", "private"]
Section = Literal["interface", "implementation"]

HEADER_SUFFIXES = (".h", ".hh", ".hpp")


@dataclass(frozen=True, order=True)
class Position:
    """A location in a source file.

    ``line`` and ``column`` are 1-based, ``offset`` is the 0-based byte offset
    into the UTF-8 encoded source.
    """

    path: str
    line: int
    column: int
    offset: int


@dataclass(frozen=True)
class Span:
    start: Position
    end: Position

    def contains(self, other: "Span") -> bool:
        return self.start.offset <= other.start.offset and other.end.offset <= self.end.offset


@dataclass
class DeclarationNode:
    """Base class for all declarations."""

    kind: ClassVar[str] = "node"
    label: ClassVar[str] = "declaration"

    name: str = ""
    span: Span | None = None
    visibility: Visibility = "public"
    children: list["DeclarationNode"] = field(default_factory=list)
    modifiers: tuple[str, ...] = ()
    tokens: tuple["Token", ...] = field(default=(), repr=False)  # signature, without bodies
    name_position: Position | None = None

    @property
    def position(self) -> Position | None:
        """Where diagnostics about this declaration are reported: its name, else its start."""
        if self.name_position is not None:
            return self.name_position
        return self.span.start if self.span else None

    def walk(self) -> Iterator["DeclarationNode"]:
        """Yield this node and every descendant in pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def walk_with_ancestors(
        self, ancestors: tuple["DeclarationNode", ...] = ()
    ) -> Iterator[tuple["DeclarationNode", tuple["DeclarationNode", ...]]]:
        """Pre-order walk yielding ``(node, ancestors)`` with the root first in ``ancestors``."""
        yield self, ancestors
        inner = ancestors + (self,)
        for child in self.children:
            yield from child.walk_with_ancestors(inner)


@dataclass
class FileUnit(DeclarationNode):
    """Root of a declaration tree: one source file."""

    kind: ClassVar[str] = "file"
    label: ClassVar[str] = "file"

    path: str = ""
    lines: tuple[str, ...] = field(default=(), repr=False)
    line_offsets: tuple[int, ...] = field(default=(), repr=False)

    @property
    def suffix(self) -> str:
        return PurePath(self.path).suffix.lower()

    @property
    def is_header(self) -> bool:
        return self.suffix in HEADER_SUFFIXES

    @property
    def filename(self) -> str:
        return PurePath(self.path).name

    def line_position(self, line: int, column: int = 1) -> Position:
        """Position of ``column`` on 1-based ``line``; the offset assumes ASCII up to the column."""
        base = self.line_offsets[line - 1] if 0 < line <= len(self.line_offsets) else 0
        prefix = self.lines[line - 1][: column - 1] if 0 < line <= len(self.lines) else ""
        return Position(self.path, line, column, base + len(prefix.encode("utf-8")))

    def declares_interface(self, class_name: str, category: str | None = None) -> bool:
        """True when this file holds an ``@interface`` for the class (or category)."""
        for node in self.walk():
            if category is None and isinstance(node, ClassDecl):
                if node.name == class_name and node.section == "interface":
                    return True
            elif category is not None and isinstance(node, CategoryDecl):
                if node.class_name == class_name and node.name == category and node.section == "interface":
                    return True
        return False

    def declares_method(self, class_name: str, selector: str, scope: str) -> bool:
        """True when an interface, category or extension of the class in this file declares the method."""
        for node in self.children:
            if isinstance(node, ClassDecl):
                owner = node.name
            elif isinstance(node, CategoryDecl):
                owner = node.class_name
            else:
                continue
            if owner != class_name or node.section != "interface":
                continue
            for member in node.children:
                if isinstance(member, MethodDecl) and member.selector == selector and member.scope == scope:
                    return True
        return False

    def declares_class(self, class_name: str) -> bool:
        return any(isinstance(n, ClassDecl) and n.name == class_name for n in self.walk())


@dataclass
class ClassDecl(DeclarationNode):
    kind: ClassVar[str] = "class"
    label: ClassVar[str] = "class"

    superclass: str | None = None
    protocols: tuple[str, ...] = ()
    generics: tuple[str, ...] = ()
    section: Section = "interface"


@dataclass
class CategoryDecl(DeclarationNode):
    """A category or, when ``is_extension`` is set, a class extension.

    ``name`` is the category name (empty for extensions); ``class_name`` is the
    class being extended.
    """

    kind: ClassVar[str] = "category"
    label: ClassVar[str] = "category"

    class_name: str = ""
    is_extension: bool = False
    protocols: tuple[str, ...] = ()
    section: Section = "interface"


@dataclass
class ProtocolDecl(DeclarationNode):
    kind: ClassVar[str] = "protocol"
    label: ClassVar[str] = "protocol"

    protocols: tuple[str, ...] = ()


@dataclass
class PropertyDecl(DeclarationNode):
    kind: ClassVar[str] = "property"
    label: ClassVar[str] = "property"

    attributes: tuple[str, ...] | None = None  # None when no attribute list is written
    type_name: str = ""


@dataclass(frozen=True)
class SelectorPiece:
    """One ``label:(type)name`` piece of a method selector."""

    label: str
    position: Position
    param_type: str | None = None
    param_name: str | None = None
    has_colon: bool = False


@dataclass
class MethodDecl(DeclarationNode):
    kind: ClassVar[str] = "method"
    label: ClassVar[str] = "method"

    scope: Literal["instance", "class"] = "instance"
    return_type: str | None = None
    pieces: tuple[SelectorPiece, ...] = ()
    variadic: bool = False
    body_start: Position | None = None

    @property
    def selector(self) -> str:
        if not any(p.has_colon for p in self.pieces):
            return self.pieces[0].label if self.pieces else ""
        return "".join(f"{p.label}:" for p in self.pieces)

    @property
    def is_definition(self) -> bool:
        return self.body_start is not None


@dataclass
class FunctionDecl(DeclarationNode):
    kind: ClassVar[str] = "function"
    label: ClassVar[str] = "function"

    return_type: str = ""
    body_start: Position | None = None


@dataclass
class ConstantDecl(DeclarationNode):
    kind: ClassVar[str] = "constant"
    label: ClassVar[str] = "constant"

    type_name: str = ""


@dataclass
class VariableDecl(DeclarationNode):
    """A non-constant variable: file-scope, or local to a method or function body."""

    kind: ClassVar[str] = "variable"
    label: ClassVar[str] = "variable"

    type_name: str = ""


@dataclass
class EnumDecl(DeclarationNode):
    kind: ClassVar[str] = "enum"
    label: ClassVar[str] = "enum"

    backing_type: str | None = None
    style: str = "enum"  # NS_ENUM, NS_OPTIONS, ..., or plain "enum"


@dataclass
class EnumValueDecl(DeclarationNode):
    kind: ClassVar[str] = "enum_value"
    label: ClassVar[str] = "enum value"

    value: str | None = None


@dataclass
class MacroDecl(DeclarationNode):
    kind: ClassVar[str] = "macro"
    label: ClassVar[str] = "macro"

    parameters: tuple[str, ...] | None = None  # None for object-like macros
    value: str = ""


@dataclass
class InstanceVariableDecl(DeclarationNode):
    kind: ClassVar[str] = "ivar"
    label: ClassVar[str] = "instance variable"

    type_name: str = ""
    access: str | None = None  # @private, @protected, @public, @package


NODE_KINDS: dict[str, type[DeclarationNode]] = {
    cls.kind: cls
    for cls in (
        FileUnit,
        ClassDecl,
        CategoryDecl,
        ProtocolDecl,
        PropertyDecl,
        MethodDecl,
        FunctionDecl,
        ConstantDecl,
        VariableDecl,
        EnumDecl,
        EnumValueDecl,
        MacroDecl,
        InstanceVariableDecl,
    )
}
