"""
Rule registry: rule id -> Rule lookup.

Rules are registered once at startup and never change afterwards. Lookup by
declaration kind preserves registration order so output is deterministic.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Iterator

from ..errors import ConfigurationError
from .schema import Rule

if TYPE_CHECKING:
    from ..config import Configuration


class RuleRegistry:
    def __init__(self, rules: Iterable[Rule] = ()):
        self._rules: dict[str, Rule] = {}
        for rule in rules:
            self.register(rule)

    def register(self, rule: Rule) -> None:
        """
        Register a rule by its id.

        Raises:
            ConfigurationError: if a rule with the same id is already registered
        """
        if rule.id in self._rules:
            raise ConfigurationError(f"duplicate rule id: {rule.id!r}")
        self._rules[rule.id] = rule

    def get(self, rule_id: str) -> Rule | None:
        return self._rules.get(rule_id)

    def ids(self) -> list[str]:
        return list(self._rules)

    def rules_for(self, kind: str, config: "Configuration | None" = None) -> list[Rule]:
        """
        Enabled rules applicable to a declaration kind, in registration order.

        Args:
            kind: Declaration kind (e.g., "class", "method")
            config: Configuration deciding which rules are enabled; defaults apply when None
        """
        return [
            rule
            for rule in self._rules.values()
            if kind in rule.kinds and (config.is_enabled(rule) if config is not None else rule.enabled_by_default)
        ]

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules


def default_registry() -> RuleRegistry:
    """Registry holding every built-in rule."""
    from . import formatting, naming, structure

    return RuleRegistry([*naming.RULES, *structure.RULES, *formatting.RULES])
