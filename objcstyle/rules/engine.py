"""
Rule engine.

Walks a declaration tree once in pre-order and evaluates every enabled rule
applicable to each node. Rules only read the tree; a rule that raises is
reported as an internal error and the walk continues.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from ..diagnostics import Diagnostic
from ..models import DeclarationNode, FileUnit
from .context import RuleContext
from .schema import Finding, Rule

if TYPE_CHECKING:
    from ..config import Configuration
    from .registry import RuleRegistry

logger = logging.getLogger(__name__)


def evaluate_rule(rule: Rule, ctx: RuleContext) -> list[Diagnostic]:
    """Evaluate one rule on one node; never raises."""
    node = ctx.node
    try:
        findings = list(rule.predicate(node, ctx))
        if not rule.multiple:
            findings = findings[:1]
        return [_to_diagnostic(rule, node, ctx.file, found) for found in findings]
    except Exception as exc:
        logger.warning("rule %s failed on %s %r in %s: %s", rule.id, node.kind, node.name, ctx.file.path, exc)
        position = node.position
        return [
            Diagnostic(
                rule_id=rule.id,
                severity="error",
                file=ctx.file.path,
                line=position.line if position else 1,
                column=position.column if position else 1,
                message=f"internal rule error: {type(exc).__name__}: {exc}",
                kind="internal-error",
            )
        ]


def _to_diagnostic(rule: Rule, node: DeclarationNode, unit: FileUnit, found: Finding) -> Diagnostic:
    position = found.position or node.position
    return Diagnostic(
        rule_id=rule.id,
        severity=rule.severity,
        file=unit.path,
        line=position.line if position else 1,
        column=position.column if position else 1,
        message=rule.render(found),
    )


def lint_tree(tree: FileUnit, registry: "RuleRegistry", config: "Configuration") -> list[Diagnostic]:
    """
    Apply every applicable enabled rule to every node of ``tree``.

    Diagnostics come back in traversal order, then registration order.
    """
    diagnostics: list[Diagnostic] = []
    applicable: dict[str, list[Rule]] = {}
    params: dict[str, Mapping[str, Any]] = {}

    for node, ancestors in tree.walk_with_ancestors():
        if node.kind not in applicable:
            applicable[node.kind] = registry.rules_for(node.kind, config)
        for rule in applicable[node.kind]:
            if rule.id not in params:
                params[rule.id] = config.parameters_for(rule)
            ctx = RuleContext(node=node, ancestors=ancestors, file=tree, config=config, params=params[rule.id])
            diagnostics.extend(evaluate_rule(rule, ctx))
    return diagnostics
