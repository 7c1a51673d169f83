from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

from ..models import DeclarationNode, FileUnit

if TYPE_CHECKING:
    from ..config import Configuration


@dataclass(frozen=True)
class RuleContext:
    """Read-only bundle handed to every predicate for one (node, rule) visit."""

    node: DeclarationNode
    ancestors: tuple[DeclarationNode, ...]
    file: FileUnit
    config: "Configuration"
    params: Mapping[str, Any] = field(default_factory=dict, hash=False)  # read-only, see freeze_parameters

    @property
    def parent(self) -> DeclarationNode | None:
        return self.ancestors[-1] if self.ancestors else None

    @property
    def siblings(self) -> tuple[DeclarationNode, ...]:
        """Other children of the parent, in source order."""
        parent = self.parent
        if parent is None:
            return ()
        return tuple(child for child in parent.children if child is not self.node)

    def enclosing(self, kind: str) -> DeclarationNode | None:
        """Nearest ancestor of the given kind."""
        for ancestor in reversed(self.ancestors):
            if ancestor.kind == kind:
                return ancestor
        return None
