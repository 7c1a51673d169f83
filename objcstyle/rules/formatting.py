"""Formatting rules: spacing, braces, asterisks and raw line checks."""

from __future__ import annotations

from typing import Iterator

from ..models import DeclarationNode, FileUnit, MethodDecl
from ..source.lexer import TokenKind
from .context import RuleContext
from .schema import Finding, Rule, define_rule, finding

RULES: list[Rule] = []

POINTER_QUALIFIERS = frozenset(
    {
        "const",
        "_Nullable",
        "_Nonnull",
        "_Null_unspecified",
        "__nullable",
        "__nonnull",
        "__autoreleasing",
        "__strong",
        "__weak",
        "__unsafe_unretained",
    }
)
BRACE_STYLES = ("same-line", "next-line")


@define_rule(
    RULES,
    "method-scope-spacing",
    kinds=("method",),
    severity="warning",
    message="method '{name}': {problem}",
    description="Method signatures are spaced as '- (type)selector'.",
)
def method_scope_spacing(node: MethodDecl, ctx: RuleContext) -> Iterator[Finding]:
    """
    A method signature has exactly one space between the scope (`-` or `+`) and
    the return type, and no space between the return type and the selector:
    `- (void)reloadData`, not `-(void)reloadData` or `- (void) reloadData`.
    """
    tokens = node.tokens
    if len(tokens) < 3 or tokens[1].text != "(":
        return
    scope, open_paren = tokens[0], tokens[1]
    if open_paren.line != scope.line or open_paren.offset - scope.end_offset != 1:
        yield finding(at=scope.position, name=node.selector, problem=f"put exactly one space after '{scope.text}'")
        return

    depth = 0
    for index, tok in enumerate(tokens[1:], start=1):
        if tok.text == "(":
            depth += 1
        elif tok.text == ")":
            depth -= 1
            if depth == 0:
                label = tokens[index + 1] if index + 1 < len(tokens) else None
                if label is not None and label.offset != tok.end_offset:
                    yield finding(
                        at=label.position,
                        name=node.selector,
                        problem="no space between the return type and the selector",
                    )
                return


@define_rule(
    RULES,
    "pointer-asterisk-placement",
    kinds=("property", "ivar", "constant", "variable", "method", "function"),
    severity="warning",
    message="'*' in {kind} '{name}' belongs to the name: write '{expected}'",
    description="Pointer asterisks bind to the variable name.",
)
def pointer_asterisk_placement(node: DeclarationNode, ctx: RuleContext) -> Iterator[Finding]:
    """
    The asterisk sits next to the variable, not the type: `NSString *text`,
    `- (NSString *)title`, never `NSString* text` or `NSString * text`.

    Qualifiers may follow the asterisk: `NSString *const kName`,
    `NSString * _Nullable text`.
    """
    tokens = node.tokens
    for index, star in enumerate(tokens):
        if star.text != "*" or index == 0:
            continue
        prev = tokens[index - 1]
        nxt = tokens[index + 1] if index + 1 < len(tokens) else None
        if prev.kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD) and prev.end_offset == star.offset:
            yield finding(at=star.position, kind=node.label, name=node.name, expected=f"{prev.text} *")
            return
        if (
            nxt is not None
            and nxt.kind is TokenKind.IDENTIFIER
            and nxt.text not in POINTER_QUALIFIERS
            and nxt.offset > star.end_offset
        ):
            yield finding(at=star.position, kind=node.label, name=node.name, expected=f"*{nxt.text}")
            return


@define_rule(
    RULES,
    "brace-style",
    kinds=("method", "function"),
    severity="warning",
    message="opening brace of '{name}' must be on {where}",
    description="Opening braces of bodies follow the configured style.",
    parameters={"style": "same-line"},
    choices={"style": BRACE_STYLES},
)
def brace_style(node: DeclarationNode, ctx: RuleContext) -> Iterator[Finding]:
    """
    The opening brace of a method or function body goes on the same line as the
    signature (`style = "same-line"`, the default) or on the following line
    (`style = "next-line"`).
    """
    body_start = getattr(node, "body_start", None)
    if body_start is None or not node.tokens:
        return
    style = ctx.params.get("style", "same-line")
    signature_line = node.tokens[-1].end_line
    if style == "same-line" and body_start.line != signature_line:
        yield finding(at=body_start, name=node.name, where="the same line as the signature")
    elif style == "next-line" and body_start.line == signature_line:
        yield finding(at=body_start, name=node.name, where="its own line")


@define_rule(
    RULES,
    "no-tab-indentation",
    kinds=("file",),
    severity="warning",
    message="line {line} is indented with tabs",
    description="Indentation uses spaces, never tabs.",
    multiple=True,
)
def no_tab_indentation(node: FileUnit, ctx: RuleContext) -> Iterator[Finding]:
    """Indent with spaces. Tabs in leading whitespace are reported once per line."""
    for number, text in enumerate(node.lines, start=1):
        indent = text[: len(text) - len(text.lstrip(" \t"))]
        if "\t" in indent:
            yield finding(at=node.line_position(number, indent.index("\t") + 1), line=number)


@define_rule(
    RULES,
    "no-trailing-whitespace",
    kinds=("file",),
    severity="warning",
    message="line {line} has trailing whitespace",
    description="Lines do not end in whitespace.",
    multiple=True,
)
def no_trailing_whitespace(node: FileUnit, ctx: RuleContext) -> Iterator[Finding]:
    """Lines never end with spaces or tabs."""
    for number, text in enumerate(node.lines, start=1):
        stripped = text.rstrip(" \t")
        if stripped != text:
            yield finding(at=node.line_position(number, len(stripped) + 1), line=number)


@define_rule(
    RULES,
    "max-line-length",
    kinds=("file",),
    severity="warning",
    message="line {line} is {length} characters long (limit {limit})",
    description="Lines stay within a configurable length.",
    parameters={"limit": 120},
    enabled_by_default=False,
    multiple=True,
)
def max_line_length(node: FileUnit, ctx: RuleContext) -> Iterator[Finding]:
    """
    Lines are at most `limit` characters long (default 120). Disabled by
    default; enable it with `enabled_rules = ["max-line-length"]`.
    """
    limit = int(ctx.params.get("limit", 120))
    for number, text in enumerate(node.lines, start=1):
        if len(text) > limit:
            yield finding(at=node.line_position(number, limit + 1), line=number, length=len(text), limit=limit)
