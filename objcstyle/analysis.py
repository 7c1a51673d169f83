"""
Per-file analysis pipeline and the worker pool that runs it.

One file is one unit of work: lex, parse, lint, suppress. Files are read
upfront; analysis runs serially or across worker processes that each receive
the (immutable) registry and configuration once at startup.
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from .config import Configuration
from .diagnostics import Diagnostic, DiagnosticReport
from .models import FileUnit
from .rules.engine import lint_tree
from .rules.registry import RuleRegistry, default_registry
from .source.lexer import Lexer
from .source.parser import DeclarationParser
from .suppressions import Suppressions

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = (".h", ".m", ".mm")
SKIPPED_DIRECTORIES = frozenset({"Pods", "Carthage", "build", "DerivedData", ".build", ".git", ".svn", "node_modules"})


@dataclass(frozen=True)
class SourceFile:
    path: str
    text: str


def iter_source_files(paths: Iterable[Path]) -> Iterator[Path]:
    """
    Expand directories into Objective-C sources, in sorted order.

    Files given explicitly are always yielded. Dependency and build output
    directories are skipped.
    """
    seen: set[Path] = set()
    for path in paths:
        if path.is_dir():
            candidates = (
                p
                for p in sorted(path.rglob("*"))
                if p.suffix in SOURCE_SUFFIXES
                and p.is_file()
                and not SKIPPED_DIRECTORIES.intersection(p.relative_to(path).parts[:-1])
            )
        else:
            candidates = iter([path])
        for candidate in candidates:
            if candidate not in seen:
                seen.add(candidate)
                yield candidate


def read_source(path: Path) -> SourceFile | Diagnostic:
    """Read a file as UTF-8, or return an ``io-error`` diagnostic."""
    try:
        text = path.read_bytes().decode("utf-8-sig")
    except OSError as exc:
        message = f"cannot read file: {exc.strerror or exc}"
    except UnicodeDecodeError as exc:
        message = f"file is not valid UTF-8 (byte {exc.start})"
    else:
        return SourceFile(str(path), text)
    return Diagnostic(
        rule_id="io-error",
        severity="error",
        file=str(path),
        line=1,
        column=1,
        message=message,
        kind="io-error",
    )


class StyleChecker:
    """
    Checks Objective-C sources against the registered rules.

    The configuration is validated against the registry on construction, so a
    ``ConfigurationError`` surfaces before any file is analyzed.
    """

    def __init__(self, registry: RuleRegistry | None = None, config: Configuration | None = None):
        self.registry = registry if registry is not None else default_registry()
        self.config = config if config is not None else Configuration()
        self.config.validate(self.registry)

    def parse(self, text: str, path: str) -> tuple[FileUnit, list[Diagnostic], Suppressions]:
        lexer = Lexer(text, path)
        tokens = list(lexer)
        parser = DeclarationParser(tokens, path, text)
        tree = parser.parse()
        errors = [Diagnostic.from_source_error(e, path) for e in [*lexer.errors, *parser.errors]]
        if errors:
            logger.debug("%s: %d lex error(s), %d parse error(s)", path, len(lexer.errors), len(parser.errors))
        return tree, errors, Suppressions.from_tokens(tokens)

    def check_source(self, text: str, path: str = "<unknown>") -> list[Diagnostic]:
        """All diagnostics for one file's text, in traversal order."""
        tree, diagnostics, suppressions = self.parse(text, path)
        diagnostics.extend(lint_tree(tree, self.registry, self.config))
        return suppressions.apply(diagnostics)

    def check_text(self, text: str, path: str = "<unknown>") -> DiagnosticReport:
        return DiagnosticReport(self.check_source(text, path), files_checked=1)

    def check_files(self, paths: Iterable[Path], jobs: int = 1) -> DiagnosticReport:
        """
        Check files and merge their diagnostics into one report.

        Args:
            paths: Source files (directories are not expanded here)
            jobs: Number of worker processes; 1 runs in this process
        """
        sources: list[SourceFile] = []
        diagnostics: list[Diagnostic] = []
        for path in paths:
            source = read_source(path)
            if isinstance(source, Diagnostic):
                diagnostics.append(source)
            else:
                sources.append(source)

        checked = len(sources) + len(diagnostics)
        logger.info("checking %d file(s) with %d job(s)", checked, max(1, jobs))

        if jobs > 1 and len(sources) > 1:
            with ProcessPoolExecutor(
                max_workers=jobs, initializer=_init_worker, initargs=(self.registry, self.config)
            ) as pool:
                for result in pool.map(_check_in_worker, sources):
                    diagnostics.extend(result)
        else:
            for source in sources:
                diagnostics.extend(self.check_source(source.text, source.path))

        return DiagnosticReport(diagnostics, files_checked=checked)


_worker_checker: StyleChecker | None = None


def _init_worker(registry: RuleRegistry, config: Configuration) -> None:
    global _worker_checker
    _worker_checker = StyleChecker(registry, config)


def _check_in_worker(source: SourceFile) -> list[Diagnostic]:
    if _worker_checker is None:
        raise RuntimeError("worker process was started without a checker")
    return _worker_checker.check_source(source.text, source.path)
