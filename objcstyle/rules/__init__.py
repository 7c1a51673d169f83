"""Style rules (metadata as data, predicates as code) and the engine that runs them."""

from .context import RuleContext
from .engine import evaluate_rule, lint_tree
from .registry import RuleRegistry, default_registry
from .schema import Finding, Rule, define_rule, finding

__all__ = [
    "Finding",
    "Rule",
    "RuleContext",
    "RuleRegistry",
    "default_registry",
    "define_rule",
    "evaluate_rule",
    "finding",
    "lint_tree",
]
