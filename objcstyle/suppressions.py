"""
Inline suppression comments.

    // objcstyle:disable=rule-id[,rule-id]        this line
    // objcstyle:disable-next-line=rule-id         the following line
    // objcstyle:disable-file=rule-id              the whole file

``all`` matches every rule. Lex, parse, I/O and internal errors are never
suppressed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from .diagnostics import Diagnostic
from .source.lexer import Token, TokenKind

_DIRECTIVE = re.compile(r"objcstyle:(disable|disable-next-line|disable-file)\s*=\s*([A-Za-z0-9_\-]+(?:\s*,\s*[A-Za-z0-9_\-]+)*)")


@dataclass(frozen=True)
class Suppressions:
    by_line: dict[int, frozenset[str]] = field(default_factory=dict, hash=False)
    file_wide: frozenset[str] = frozenset()

    @classmethod
    def from_tokens(cls, tokens: Iterable[Token]) -> "Suppressions":
        by_line: dict[int, set[str]] = {}
        file_wide: set[str] = set()
        for tok in tokens:
            if tok.kind is not TokenKind.COMMENT:
                continue
            for match in _DIRECTIVE.finditer(tok.text):
                scope = match.group(1)
                ids = {part.strip() for part in match.group(2).split(",") if part.strip()}
                # the line the directive itself sits on, for block comments too
                line = tok.line + tok.text[: match.start()].count("\n")
                if scope == "disable-file":
                    file_wide |= ids
                elif scope == "disable-next-line":
                    by_line.setdefault(line + 1, set()).update(ids)
                else:
                    by_line.setdefault(line, set()).update(ids)
        return cls(
            by_line={line: frozenset(ids) for line, ids in by_line.items()},
            file_wide=frozenset(file_wide),
        )

    def suppresses(self, diagnostic: Diagnostic) -> bool:
        if diagnostic.kind != "violation":
            return False
        ids = self.file_wide | self.by_line.get(diagnostic.line, frozenset())
        return "all" in ids or diagnostic.rule_id in ids

    def apply(self, diagnostics: Iterable[Diagnostic]) -> list[Diagnostic]:
        return [d for d in diagnostics if not self.suppresses(d)]
