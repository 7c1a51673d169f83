from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Iterable, Literal, Mapping

if TYPE_CHECKING:
    from ..models import DeclarationNode, Position
    from .context import RuleContext


Severity = Literal["error", "warning"]


def freeze_parameters(value: Any) -> Any:
    """Read-only copy of a parameter value: mappings become proxies, lists become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze_parameters(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze_parameters(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(value)
    return value


def thaw_parameters(value: Any) -> Any:
    """Plain dicts and lists again, for JSON output and pickling."""
    if isinstance(value, Mapping):
        return {key: thaw_parameters(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [thaw_parameters(item) for item in value]
    return value


@dataclass(frozen=True)
class Finding:
    """A failed check: template arguments plus an optional position override."""

    args: dict[str, Any] = field(default_factory=dict, hash=False)
    position: "Position | None" = None


def finding(at: "Position | None" = None, **args: Any) -> Finding:
    return Finding(args=args, position=at)


PredicateFn = Callable[["DeclarationNode", "RuleContext"], Iterable[Finding]]


@dataclass(frozen=True)
class Rule:
    id: str
    kinds: frozenset[str]
    severity: Severity
    message: str
    predicate: PredicateFn = field(compare=False, repr=False)
    description: str = ""
    parameters: Mapping[str, Any] = field(default_factory=dict, hash=False, compare=False)
    choices: Mapping[str, tuple[Any, ...]] = field(default_factory=dict, hash=False, compare=False)
    enabled_by_default: bool = True
    multiple: bool = False  # file-text rules report every offending line

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", freeze_parameters(self.parameters))
        object.__setattr__(self, "choices", freeze_parameters(self.choices))

    # mappingproxy cannot be pickled; rules travel to worker processes
    def __getstate__(self) -> dict[str, Any]:
        state = dict(self.__dict__)
        state["parameters"] = thaw_parameters(self.parameters)
        state["choices"] = thaw_parameters(self.choices)
        return state

    def __setstate__(self, state: dict[str, Any]) -> None:
        self.__dict__.update(state)
        object.__setattr__(self, "parameters", freeze_parameters(state["parameters"]))
        object.__setattr__(self, "choices", freeze_parameters(state["choices"]))

    @property
    def explanation(self) -> str:
        """Markdown explanation, taken from the predicate's docstring."""
        return inspect.getdoc(self.predicate) or self.description

    def render(self, found: Finding) -> str:
        return self.message.format(**found.args)


def define_rule(
    catalog: list[Rule],
    rule_id: str,
    *,
    kinds: Iterable[str],
    severity: Severity,
    message: str,
    description: str,
    parameters: dict[str, Any] | None = None,
    choices: dict[str, Iterable[Any]] | None = None,
    enabled_by_default: bool = True,
    multiple: bool = False,
) -> Callable[[PredicateFn], PredicateFn]:
    """Decorator appending a predicate to ``catalog`` as a ``Rule``.

    ``choices`` restricts a parameter to a fixed set of values; the
    configuration is checked against it before any file is analyzed.
    """

    def decorator(fn: PredicateFn) -> PredicateFn:
        catalog.append(
            Rule(
                id=rule_id,
                kinds=frozenset(kinds),
                severity=severity,
                message=message,
                predicate=fn,
                description=description,
                parameters=parameters or {},
                choices={name: tuple(values) for name, values in (choices or {}).items()},
                enabled_by_default=enabled_by_default,
                multiple=multiple,
            )
        )
        return fn

    return decorator
