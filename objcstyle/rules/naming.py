"""
Naming rules: casing, prefixes, constants, enums and selectors.

Each predicate yields a ``Finding`` per failure; the docstring is the rule's
explanation shown by ``objcstyle lint --explain``.
"""

from __future__ import annotations

import re
from pathlib import PurePath
from typing import Iterator

from ..models import CategoryDecl, ClassDecl, DeclarationNode, FileUnit, InstanceVariableDecl, MethodDecl
from .context import RuleContext
from .schema import Finding, Rule, define_rule, finding

RULES: list[Rule] = []

CAMEL_UPPER = re.compile(r"^[A-Z][A-Za-z0-9]*$")
CAMEL_LOWER = re.compile(r"^[a-z][A-Za-z0-9]*$")
K_CONSTANT = re.compile(r"^k[A-Z][A-Za-z0-9]*$")
MACRO_NAME = re.compile(r"^_?[A-Z][A-Z0-9]*(?:_[A-Z0-9]+)*_?$")
GETTER_PREFIX = re.compile(r"^get[A-Z]")

_CAMEL_WORD = re.compile(r"[A-Z]{2,}s(?![a-z])|[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+")
CONJUNCTIONS = ("and", "with")


def camel_words(name: str) -> list[str]:
    """Split a camel-case identifier into words; ``URLs`` stays one word."""
    return _CAMEL_WORD.findall(name)


def is_lower_camel(name: str, acronyms: frozenset[str] = frozenset()) -> bool:
    """lowerCamelCase, allowing a leading acceptable acronym (``URLString``)."""
    if CAMEL_LOWER.match(name):
        return True
    words = camel_words(name)
    if words and words[0].rstrip("s") in acronyms and name.startswith(words[0]):
        rest = name[len(words[0]):]
        return rest == "" or bool(CAMEL_UPPER.match(rest))
    return False


def _declared_elsewhere_in_file(node: DeclarationNode, ctx: RuleContext) -> bool:
    """True for an implementation section, or a method definition, already declared in the same file."""
    if isinstance(node, ClassDecl) and node.section == "implementation":
        return ctx.file.declares_interface(node.name)
    if isinstance(node, CategoryDecl) and node.section == "implementation":
        return ctx.file.declares_interface(node.class_name, node.name)
    if isinstance(node, MethodDecl) and node.is_definition:
        owner = ctx.parent
        if isinstance(owner, ClassDecl) and owner.section == "implementation":
            return ctx.file.declares_method(owner.name, node.selector, node.scope)
        if isinstance(owner, CategoryDecl) and owner.section == "implementation":
            return ctx.file.declares_method(owner.class_name, node.selector, node.scope)
    return False


@define_rule(
    RULES,
    "class-name-camel-upper",
    kinds=("class", "category", "protocol"),
    severity="error",
    message="{kind} name '{name}' must be UpperCamelCase without underscores",
    description="Class, category and protocol names are UpperCamelCase.",
)
def class_name_camel_upper(node: DeclarationNode, ctx: RuleContext) -> Iterator[Finding]:
    """
    Class, category and protocol names start with an uppercase letter and use
    camel case with no underscores: `JPWidget`, not `jp_widget` or `JP_Widget`.

    Class extensions have no name and are skipped. An `@implementation` is only
    checked when its `@interface` is not in the same file.
    """
    if isinstance(node, CategoryDecl) and node.is_extension:
        return
    if _declared_elsewhere_in_file(node, ctx):
        return
    if not CAMEL_UPPER.match(node.name):
        yield finding(kind=node.label, name=node.name)


@define_rule(
    RULES,
    "variable-name-camel-lower",
    kinds=("property", "ivar", "variable"),
    severity="warning",
    message="{kind} name '{name}' must be lowerCamelCase",
    description="Property, instance variable and variable names are lowerCamelCase.",
)
def variable_name_camel_lower(node: DeclarationNode, ctx: RuleContext) -> Iterator[Finding]:
    """
    Variable names start with a lowercase letter and use camel case:
    `titleLabel`, not `TitleLabel` or `title_label`.

    Locals and `static` variables inside method and function bodies are
    checked too. One leading underscore is ignored on instance variables
    (`_titleLabel`).
    A leading acronym listed in `acceptable_acronyms` may stay uppercase
    (`URLString`).
    """
    name = node.name
    if isinstance(node, InstanceVariableDecl) and name.startswith("_"):
        name = name[1:]
    if not is_lower_camel(name, ctx.config.acceptable_acronyms):
        yield finding(kind=node.label, name=node.name)


@define_rule(
    RULES,
    "method-name-camel-lower",
    kinds=("method",),
    severity="warning",
    message="selector piece '{piece}' of '{name}' must be lowerCamelCase",
    description="Method selector pieces are lowerCamelCase.",
)
def method_name_camel_lower(node: MethodDecl, ctx: RuleContext) -> Iterator[Finding]:
    """
    Every selector piece starts with a lowercase letter and uses camel case:
    `- (void)reloadDataWithCompletion:`, not `- (void)ReloadData_completion:`.

    A definition whose declaration is in the same file is reported at the
    declaration only.
    """
    if _declared_elsewhere_in_file(node, ctx):
        return
    for piece in node.pieces:
        if piece.label and not is_lower_camel(piece.label, ctx.config.acceptable_acronyms):
            yield finding(at=piece.position, piece=piece.label, name=node.selector)


@define_rule(
    RULES,
    "ivar-leading-underscore",
    kinds=("ivar",),
    severity="warning",
    message="instance variable '{name}' must start with an underscore",
    description="Instance variables are prefixed with an underscore.",
)
def ivar_leading_underscore(node: DeclarationNode, ctx: RuleContext) -> Iterator[Finding]:
    """
    Directly declared instance variables start with `_` so they cannot be
    confused with locals or properties: `NSString *_title;`.
    """
    if not node.name.startswith("_"):
        yield finding(name=node.name)


def suggest_constant_name(name: str, type_context: str | None) -> str:
    words = [w for w in re.split(r"[^A-Za-z0-9]+", name) if w]
    base = "".join(w.capitalize() if w.isupper() else w[:1].upper() + w[1:] for w in words)
    if len(base) > 1 and base[0] == "K" and base[1].isupper():
        base = base[1:]
    if type_context and not base.startswith(type_context):
        base = type_context + base
    return "k" + base


@define_rule(
    RULES,
    "constant-k-prefix",
    kinds=("constant",),
    severity="warning",
    message="constant '{name}' must be named k<Type><Value> in camel case (e.g. '{suggestion}')",
    description="Constants are named k<Type><Value>.",
    parameters={"type_context": None},
)
def constant_k_prefix(node: DeclarationNode, ctx: RuleContext) -> Iterator[Finding]:
    """
    Named constants use a lowercase `k`, then the type they relate to, then the
    value, all in camel case: `static NSString *const kProductsKey = @"products";`.
    Inside method and function bodies only `static` constants are checked.

    Parameters:
    - `type_context`: the `<Type>` used in the suggested name. Defaults to the
      enclosing class name without the project prefix.
    """
    if K_CONSTANT.match(node.name):
        return
    type_context = ctx.params.get("type_context")
    if not type_context:
        owner = ctx.enclosing("class")
        if owner is not None:
            prefix = ctx.config.prefix
            type_context = owner.name[len(prefix):] if prefix and owner.name.startswith(prefix) else owner.name
    yield finding(name=node.name, suggestion=suggest_constant_name(node.name, type_context))


@define_rule(
    RULES,
    "define-uppercase-underscore",
    kinds=("macro",),
    severity="warning",
    message="macro '{name}' must be UPPERCASE_WITH_UNDERSCORES",
    description="Preprocessor macros are uppercase with underscore delimiters.",
)
def define_uppercase_underscore(node: DeclarationNode, ctx: RuleContext) -> Iterator[Finding]:
    """
    `#define` names are entirely uppercase with words separated by underscores:
    `#define JP_DEFAULT_TIMEOUT 30`. Include guards may carry a leading or
    trailing underscore.
    """
    if not MACRO_NAME.match(node.name):
        yield finding(name=node.name)


@define_rule(
    RULES,
    "enum-type-echoed-in-values",
    kinds=("enum_value",),
    severity="warning",
    message="enum value '{name}' must start with its type name '{enum}'",
    description="Enum values repeat the enum type name.",
)
def enum_type_echoed_in_values(node: DeclarationNode, ctx: RuleContext) -> Iterator[Finding]:
    """
    Each enum value begins with the name of its enum type, so values read
    unambiguously at call sites:

        typedef NS_ENUM(NSInteger, JPPlacementType) {
            JPPlacementTypeTop,
            JPPlacementTypeBottom,
        };

    Anonymous enums are skipped.
    """
    enum = ctx.parent
    if enum is None or not enum.name:
        return
    if not node.name.startswith(enum.name):
        yield finding(name=node.name, enum=enum.name)


@define_rule(
    RULES,
    "selector-no-conjunctions",
    kinds=("method",),
    severity="warning",
    message="selector piece '{piece}:' must not contain the conjunction '{word}'",
    description="Selector pieces after the first do not use 'and' or 'with'.",
)
def selector_no_conjunctions(node: MethodDecl, ctx: RuleContext) -> Iterator[Finding]:
    """
    Multi-parameter selectors name each argument without joining words:
    `initWithFrame:backgroundColor:`, not `initWithFrame:andBackgroundColor:`.

    `with` in the first piece (`initWithFrame:`) is fine.
    """
    if _declared_elsewhere_in_file(node, ctx):
        return
    for piece in node.pieces[1:]:
        words = [w.lower() for w in camel_words(piece.label)]
        for word in CONJUNCTIONS:
            if word in words:
                yield finding(at=piece.position, piece=piece.label, word=word)
                return


@define_rule(
    RULES,
    "getter-no-get-prefix",
    kinds=("method",),
    severity="warning",
    message="getter '{name}' must not use a 'get' prefix (use '{suggestion}')",
    description="Getters are named after the value they return.",
)
def getter_no_get_prefix(node: MethodDecl, ctx: RuleContext) -> Iterator[Finding]:
    """
    Accessors are named after the value: `- (NSString *)title`, not
    `- (NSString *)getTitle`.
    """
    if _declared_elsewhere_in_file(node, ctx):
        return
    if node.scope != "instance" or len(node.pieces) != 1 or node.pieces[0].has_colon:
        return
    name = node.pieces[0].label
    if GETTER_PREFIX.match(name):
        yield finding(name=name, suggestion=name[3].lower() + name[4:])


@define_rule(
    RULES,
    "acronym-capitalization",
    kinds=("class", "protocol", "property", "method"),
    severity="warning",
    message="acronym '{acronym}' in '{name}' is not listed in acceptable_acronyms",
    description="Only configured acronyms may be written in all caps.",
)
def acronym_capitalization(node: DeclarationNode, ctx: RuleContext) -> Iterator[Finding]:
    """
    Runs of two or more capitals are acronyms and must be listed in the
    `acceptable_acronyms` configuration (`URL`, `HTTP`, ...). Everything else is
    written in camel case: `JPHtmlParser` unless `HTML` is listed.

    There is no built-in acronym list. The project prefix and reserved platform
    prefixes at the start of a type name are not acronyms.
    """
    if _declared_elsewhere_in_file(node, ctx):
        return
    names = [p.label for p in node.pieces] if isinstance(node, MethodDecl) else [node.name]
    is_type = node.kind in ("class", "protocol")
    for name in names:
        words = camel_words(_strip_type_prefix(name, ctx) if is_type else name)
        if is_type and words and words[0].isupper() and not ctx.config.prefix:
            words = words[1:]
        for word in words:
            acronym = word[:-1] if word.endswith("s") else word
            if len(acronym) >= 2 and acronym.isupper() and acronym not in ctx.config.acceptable_acronyms:
                yield finding(acronym=acronym, name=name)
                return


def _strip_type_prefix(name: str, ctx: RuleContext) -> str:
    prefix = ctx.config.prefix
    if prefix and name.startswith(prefix):
        return name[len(prefix):]
    reserved = ctx.config.reserved_prefix_of(name)
    return name[len(reserved):] if reserved else name


@define_rule(
    RULES,
    "project-prefix-required",
    kinds=("class", "category", "protocol", "file"),
    severity="error",
    message="{kind} '{name}' must start with the project prefix '{prefix}'",
    description="Globally visible names carry the project prefix.",
    parameters={"exempt_files": ["main"]},
)
def project_prefix_required(node: DeclarationNode, ctx: RuleContext) -> Iterator[Finding]:
    """
    Classes, protocols and file names start with the configured project prefix
    (`prefix = "JP"` gives `JPWidget`, `JPWidget.h`). Does nothing when no prefix
    is configured.

    Categories pass when either the category name or the extended class carries
    the prefix. Class extensions and categories on platform classes (reserved
    prefixes such as `NS` and `UI`) are exempt; their files follow
    `category-filename-pattern` instead. File stems listed in `exempt_files`
    (default `main`) are exempt.
    """
    prefix = ctx.config.prefix
    if not prefix:
        return

    if isinstance(node, FileUnit):
        stem = PurePath(node.path).stem
        if stem in ctx.params.get("exempt_files", ()):
            return
        if "+" in stem:
            base, _, category = stem.partition("+")
            if ctx.config.is_reserved(base) or base.startswith(prefix) or category.startswith(prefix):
                return
        if not stem.startswith(prefix):
            yield finding(kind=node.label, name=node.filename, prefix=prefix)
        return

    if isinstance(node, CategoryDecl):
        if node.is_extension or ctx.config.is_reserved(node.class_name):
            return
        if not (node.name.startswith(prefix) or node.class_name.startswith(prefix)):
            yield finding(kind=node.label, name=f"{node.class_name} ({node.name})", prefix=prefix)
        return

    if _declared_elsewhere_in_file(node, ctx):
        return
    if not node.name.startswith(prefix):
        yield finding(kind=node.label, name=node.name, prefix=prefix)


@define_rule(
    RULES,
    "no-apple-prefix-collision",
    kinds=("class", "protocol"),
    severity="error",
    message="{kind} '{name}' uses the reserved platform prefix '{prefix}'",
    description="Classes and protocols never use platform-reserved prefixes.",
)
def no_apple_prefix_collision(node: DeclarationNode, ctx: RuleContext) -> Iterator[Finding]:
    """
    Prefixes such as `NS`, `UI` and `CG` belong to the platform frameworks. Own
    classes and protocols must not use them, even when the rest of the name is
    unique. The list is the `reserved_prefixes` configuration.

    Categories on platform classes are fine and are not checked here.
    """
    if _declared_elsewhere_in_file(node, ctx):
        return
    reserved = ctx.config.reserved_prefix_of(node.name)
    if reserved:
        yield finding(kind=node.label, name=node.name, prefix=reserved)
