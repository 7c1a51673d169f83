"""Diagnostics and the per-run report built from them."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Iterable, Literal

from .errors import SourceError

Severity = Literal["error", "warning"]
DiagnosticKind = Literal["violation", "lex-error", "parse-error", "io-error", "internal-error"]


@dataclass(frozen=True)
class Diagnostic:
    """A single reported problem. Value type: equal fields mean the same diagnostic."""

    rule_id: str
    severity: Severity
    file: str
    line: int
    column: int
    message: str
    kind: DiagnosticKind = "violation"

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}: {self.severity}: [{self.rule_id}] {self.message}"

    @property
    def key(self) -> tuple[str, str, int, int]:
        """Deduplication key: (rule id, file, line, column)."""
        return (self.rule_id, self.file, self.line, self.column)

    @property
    def sort_key(self) -> tuple[str, int, int, str]:
        return (self.file, self.line, self.column, self.rule_id)

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_source_error(cls, error: SourceError, path: str) -> "Diagnostic":
        """Diagnostic for a recoverable lex/parse error."""
        return cls(
            rule_id=error.diagnostic_id,
            severity="error",
            file=path,
            line=error.position.line,
            column=error.position.column,
            message=f"{error.kind}: {error.message}",
            kind=error.diagnostic_id,  # type: ignore[arg-type]
        )


class DiagnosticReport:
    """
    Ordered, deduplicated diagnostics of one run.

    Built from the unordered diagnostics of every analyzed file; the first
    diagnostic seen for a (rule id, file, line, column) key wins.
    """

    def __init__(self, diagnostics: Iterable[Diagnostic] = (), files_checked: int = 0):
        seen: dict[tuple[str, str, int, int], Diagnostic] = {}
        for diagnostic in diagnostics:
            seen.setdefault(diagnostic.key, diagnostic)
        self.diagnostics: list[Diagnostic] = sorted(seen.values(), key=lambda d: d.sort_key)
        self.files_checked = files_checked

    def __iter__(self):
        return iter(self.diagnostics)

    def __len__(self) -> int:
        return len(self.diagnostics)

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)

    def counts(self) -> dict[str, int]:
        counts = {"error": 0, "warning": 0}
        for diagnostic in self.diagnostics:
            counts[diagnostic.severity] = counts.get(diagnostic.severity, 0) + 1
        return counts

    def exit_status(self, fail_on: str = "error") -> int:
        """0 when the run passes, 1 otherwise. ``fail_on="warning"`` also fails on warnings."""
        counts = self.counts()
        if fail_on == "warning":
            return 1 if counts["error"] or counts["warning"] else 0
        return 1 if counts["error"] else 0

    def by_file(self) -> dict[str, list[Diagnostic]]:
        grouped: dict[str, list[Diagnostic]] = defaultdict(list)
        for diagnostic in self.diagnostics:
            grouped[diagnostic.file].append(diagnostic)
        return dict(grouped)

    def by_rule(self) -> dict[str, list[Diagnostic]]:
        grouped: dict[str, list[Diagnostic]] = defaultdict(list)
        for diagnostic in self.diagnostics:
            grouped[diagnostic.rule_id].append(diagnostic)
        return dict(sorted(grouped.items()))

    def to_dict(self) -> dict:
        counts = self.counts()
        return {
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "summary": {
                "files": self.files_checked,
                "errors": counts["error"],
                "warnings": counts["warning"],
                "has_errors": self.has_errors,
            },
        }
