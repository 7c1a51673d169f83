"""
Run configuration.

The configuration is loaded once at startup and is immutable afterwards.
Sources, first match wins while walking up from the working directory:
``objcstyle.toml``, ``.objcstyle.toml``, ``.objcstyle.yml``,
``.objcstyle.yaml`` and the ``[tool.objcstyle]`` table of ``pyproject.toml``.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Mapping

import yaml

from .errors import ConfigurationError
from .rules.schema import freeze_parameters

if TYPE_CHECKING:
    from .rules.registry import RuleRegistry
    from .rules.schema import Rule

logger = logging.getLogger(__name__)

DEFAULT_RESERVED_PREFIXES = ("NS", "UI", "CG", "CA", "CF", "CL", "MK", "AV", "SK", "GL", "AB", "WK")
CONFIG_FILENAMES = ("objcstyle.toml", ".objcstyle.toml", ".objcstyle.yml", ".objcstyle.yaml")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower() if not key.islower() else key


def _string_list(value: Any, key: str) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"{key} must be a list of strings")
    return tuple(v.strip() for v in value if v.strip())


@dataclass(frozen=True)
class Configuration:
    prefix: str = ""
    reserved_prefixes: tuple[str, ...] = DEFAULT_RESERVED_PREFIXES
    acceptable_acronyms: frozenset[str] = frozenset()
    enabled_rules: frozenset[str] = frozenset()
    disabled_rules: frozenset[str] = frozenset()
    rule_parameters: dict[str, dict[str, Any]] = field(default_factory=dict, hash=False)
    source: str | None = None

    # -- queries -------------------------------------------------------------

    def is_enabled(self, rule: "Rule") -> bool:
        """Disabling wins over enabling; otherwise the rule's default applies."""
        if rule.id in self.disabled_rules:
            return False
        if rule.id in self.enabled_rules:
            return True
        return rule.enabled_by_default

    def parameters_for(self, rule: "Rule") -> Mapping[str, Any]:
        """Rule defaults overlaid with configured values, read-only."""
        merged = dict(rule.parameters)
        merged.update(self.rule_parameters.get(rule.id, {}))
        return freeze_parameters(merged)

    def reserved_prefix_of(self, name: str) -> str | None:
        """The reserved prefix ``name`` starts with (followed by an uppercase letter), if any."""
        for prefix in sorted(self.reserved_prefixes, key=len, reverse=True):
            rest = name[len(prefix):]
            if name.startswith(prefix) and rest[:1].isupper():
                return prefix
        return None

    def is_reserved(self, name: str) -> bool:
        return self.reserved_prefix_of(name) is not None

    # -- validation ----------------------------------------------------------

    def validate(self, registry: "RuleRegistry") -> None:
        """
        Check the configuration against the registered rules.

        Raises:
            ConfigurationError: unknown rule ids or parameters, or a project
                prefix that collides with a reserved prefix
        """
        for key, ids in (("enabled_rules", self.enabled_rules), ("disabled_rules", self.disabled_rules)):
            unknown = sorted(rule_id for rule_id in ids if rule_id not in registry)
            if unknown:
                raise ConfigurationError(f"unknown rule id in {key}: {', '.join(unknown)}")

        for rule_id, params in self.rule_parameters.items():
            rule = registry.get(rule_id)
            if rule is None:
                raise ConfigurationError(f"unknown rule id in rule_parameters: {rule_id}")
            unknown = sorted(name for name in params if name not in rule.parameters)
            if unknown:
                raise ConfigurationError(f"unknown parameter(s) for {rule_id}: {', '.join(unknown)}")
            for name, value in params.items():
                allowed = rule.choices.get(name)
                if allowed is not None and value not in allowed:
                    expected = ", ".join(repr(v) for v in allowed)
                    raise ConfigurationError(f"invalid value {value!r} for {rule_id}.{name} (expected one of {expected})")

        if self.prefix:
            for reserved in self.reserved_prefixes:
                if self.prefix.startswith(reserved) or reserved.startswith(self.prefix):
                    raise ConfigurationError(
                        f"project prefix {self.prefix!r} collides with reserved prefix {reserved!r}"
                    )

    # -- construction --------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], source: str | None = None) -> "Configuration":
        """Build a configuration from an already-parsed mapping (camelCase keys accepted)."""
        known = {f.name for f in dataclasses.fields(cls)} - {"source"}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _snake(str(key))
            if name not in known:
                raise ConfigurationError(f"unknown configuration key: {key!r}")
            values[name] = value

        kwargs: dict[str, Any] = {"source": source}
        if "prefix" in values:
            if not isinstance(values["prefix"], str):
                raise ConfigurationError("prefix must be a string")
            kwargs["prefix"] = values["prefix"].strip()
        if "reserved_prefixes" in values:
            kwargs["reserved_prefixes"] = _string_list(values["reserved_prefixes"], "reserved_prefixes")
        for key in ("acceptable_acronyms", "enabled_rules", "disabled_rules"):
            if key in values:
                kwargs[key] = frozenset(_string_list(values[key], key))
        if "rule_parameters" in values:
            raw = values["rule_parameters"]
            if not isinstance(raw, Mapping) or not all(isinstance(v, Mapping) for v in raw.values()):
                raise ConfigurationError("rule_parameters must map rule ids to tables")
            kwargs["rule_parameters"] = {
                str(rule_id): {_snake(str(k)): v for k, v in params.items()} for rule_id, params in raw.items()
            }
        return cls(**kwargs)

    def with_overrides(
        self,
        *,
        prefix: str | None = None,
        enable: Iterable[str] = (),
        disable: Iterable[str] = (),
    ) -> "Configuration":
        """Copy with command-line overrides applied on top."""
        enable = frozenset(enable)
        disable = frozenset(disable)
        return dataclasses.replace(
            self,
            prefix=self.prefix if prefix is None else prefix.strip(),
            enabled_rules=(self.enabled_rules - disable) | enable,
            disabled_rules=(self.disabled_rules - enable) | disable,
        )


def load_configuration(path: Path) -> Configuration:
    """
    Load a configuration file (TOML, YAML, or ``pyproject.toml``).

    Raises:
        ConfigurationError: if the file cannot be read or parsed
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"cannot read configuration {path}: {exc}") from exc

    if path.suffix in (".yml", ".yaml"):
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"invalid YAML in {path}: {exc}") from exc
    else:
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigurationError(f"invalid TOML in {path}: {exc}") from exc
        if path.name == "pyproject.toml":
            data = data.get("tool", {}).get("objcstyle", {})

    if not isinstance(data, dict):
        raise ConfigurationError(f"configuration in {path} must be a table")
    return Configuration.from_mapping(data, source=str(path))


def _pyproject_has_section(path: Path) -> bool:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError):
        logger.debug("ignoring unreadable %s", path)
        return False
    return isinstance(data.get("tool", {}).get("objcstyle"), dict)


def find_configuration(start: Path) -> Path | None:
    start = start.resolve()
    for directory in (start, *start.parents):
        for name in CONFIG_FILENAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
        pyproject = directory / "pyproject.toml"
        if pyproject.is_file() and _pyproject_has_section(pyproject):
            return pyproject
    return None


def discover_configuration(start: Path | None = None) -> Configuration:
    """Load the nearest configuration file, or the defaults when there is none."""
    path = find_configuration(start or Path.cwd())
    if path is None:
        logger.debug("no configuration file found; using defaults")
        return Configuration()
    logger.info("using configuration %s", path)
    return load_configuration(path)
