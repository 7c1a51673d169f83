"""Structural rules: where declarations live and how they are declared."""

from __future__ import annotations

from pathlib import PurePath
from typing import Iterator

from ..models import CategoryDecl, DeclarationNode, PropertyDecl
from .context import RuleContext
from .schema import Finding, Rule, define_rule, finding

RULES: list[Rule] = []


@define_rule(
    RULES,
    "no-public-ivars",
    kinds=("ivar",),
    severity="error",
    message="instance variable '{name}' is declared in a public interface",
    description="Public interfaces declare no instance variables.",
)
def no_public_ivars(node: DeclarationNode, ctx: RuleContext) -> Iterator[Finding]:
    """
    Instance variables are implementation details. Declare them in the class
    extension or the `@implementation` block, or use a property, but never in
    the public `@interface`.
    """
    if node.visibility == "public":
        yield finding(name=node.name)


@define_rule(
    RULES,
    "category-filename-pattern",
    kinds=("category",),
    severity="warning",
    message="category '{class_name} ({name})' belongs in a file named '{expected}'",
    description="Categories live in Class+Category files.",
)
def category_filename_pattern(node: CategoryDecl, ctx: RuleContext) -> Iterator[Finding]:
    """
    A category on a class declared elsewhere lives in its own pair of files
    named `Class+Category`: `NSString+JPTrimming.h` / `NSString+JPTrimming.m`.

    Categories on a class declared in the same file are skipped.
    """
    if node.is_extension or ctx.file.declares_class(node.class_name):
        return
    expected = f"{node.class_name}+{node.name}"
    if PurePath(ctx.file.path).stem != expected:
        yield finding(class_name=node.class_name, name=node.name, expected=expected + ctx.file.suffix)


@define_rule(
    RULES,
    "extension-in-implementation-file",
    kinds=("category",),
    severity="warning",
    message="class extension on '{class_name}' belongs in an implementation file",
    description="Class extensions are declared in .m files.",
    parameters={"allowed_header_suffixes": ["+Private", "_Private"]},
)
def extension_in_implementation_file(node: CategoryDecl, ctx: RuleContext) -> Iterator[Finding]:
    """
    Private API goes into a class extension, `@interface JPWidget ()`, at the top
    of the implementation file, so it stays out of the public header.

    Dedicated private headers whose name ends with one of
    `allowed_header_suffixes` (default `+Private`, `_Private`) are allowed.
    """
    if not node.is_extension or not ctx.file.is_header:
        return
    stem = PurePath(ctx.file.path).stem
    if any(stem.endswith(suffix) for suffix in ctx.params.get("allowed_header_suffixes", ())):
        return
    yield finding(class_name=node.class_name)


@define_rule(
    RULES,
    "property-explicit-attributes",
    kinds=("property",),
    severity="warning",
    message="property '{name}' {problem}",
    description="Properties spell out their attributes.",
    parameters={"required_attributes": []},
)
def property_explicit_attributes(node: PropertyDecl, ctx: RuleContext) -> Iterator[Finding]:
    """
    Every `@property` writes its attribute list instead of relying on defaults:
    `@property (nonatomic, copy) NSString *title;`.

    Parameters:
    - `required_attributes`: attributes that must always be present. An entry
      may list alternatives separated by `|`, e.g. `"nonatomic|atomic"`.
    """
    if not node.attributes:
        yield finding(name=node.name, problem="must declare its attributes explicitly")
        return
    present = {attr.split("=")[0].strip() for attr in node.attributes}
    for required in ctx.params.get("required_attributes", ()):
        options = [option.strip() for option in required.split("|")]
        if not present.intersection(options):
            yield finding(name=node.name, problem=f"is missing attribute '{required}'")
            return
