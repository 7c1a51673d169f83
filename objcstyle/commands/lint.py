"""Lint command implementation."""

import json
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown

from ..analysis import StyleChecker, iter_source_files
from ..config import Configuration
from ..diagnostics import DiagnosticReport
from ..rules.registry import RuleRegistry, default_registry
from ..rules.schema import thaw_parameters

LEVEL_STYLES = {"error": "bold red", "warning": "yellow"}


def run_lint(
    paths: list[Path],
    config: Configuration,
    fail_on: str = "error",
    output_json: bool = False,
    group: str = "none",
    jobs: int = 1,
) -> int:
    """Lint Objective-C sources.

    Args:
        paths: Files and/or directories to check
        config: Run configuration (already merged with command-line overrides)
        fail_on: Exit with error if this level or higher found ("error" or "warning")
        output_json: Output results as JSON instead of human-readable
        group: "none" for a flat list, "file" or "rule" for grouped output
        jobs: Number of worker processes

    Returns:
        Exit code (0 = success, 1 = failures found)

    Raises:
        ConfigurationError: if the configuration does not match the registered rules
    """
    console = Console()
    status = Console(stderr=True)

    checker = StyleChecker(config=config)
    files = list(iter_source_files(paths))
    if not files:
        status.print("No Objective-C sources found.", style="yellow")
        return 0

    if not output_json:
        status.print(f"Checking {len(files)} file(s)...", style="dim")
    report = checker.check_files(files, jobs=jobs)

    if output_json:
        _output_json(report)
    else:
        if group == "file":
            _print_by_file(console, report)
        elif group == "rule":
            _print_by_rule(console, report)
        else:
            _print_flat(console, report)
        _print_summary(console, report)

    return report.exit_status(fail_on)


def _print_line(console: Console, text: str, severity: str) -> None:
    console.print(text, style=LEVEL_STYLES.get(severity, ""), markup=False, highlight=False, soft_wrap=True)


def _print_flat(console: Console, report: DiagnosticReport) -> None:
    for diagnostic in report:
        _print_line(console, str(diagnostic), diagnostic.severity)


def _print_by_file(console: Console, report: DiagnosticReport) -> None:
    for file, diagnostics in report.by_file().items():
        console.print()
        console.print(file, style="bold", markup=False, highlight=False, soft_wrap=True)
        for d in diagnostics:
            _print_line(console, f"  {d.line}:{d.column} {d.severity} [{d.rule_id}] {d.message}", d.severity)


def _print_by_rule(console: Console, report: DiagnosticReport) -> None:
    for rule_id, diagnostics in report.by_rule().items():
        console.print()
        console.print(f"Rule: {rule_id} ({len(diagnostics)})", style="bold", markup=False, highlight=False)
        for d in diagnostics:
            _print_line(console, f"  {d.file}:{d.line}:{d.column} - {d.message}", d.severity)


def _print_summary(console: Console, report: DiagnosticReport) -> None:
    counts = report.counts()
    console.print()
    if counts["error"] > 0:
        console.print(f"✗ {counts['error']} error(s)", style="bold red")
    if counts["warning"] > 0:
        console.print(f"⚠ {counts['warning']} warning(s)", style="yellow")
    if not len(report):
        console.print(f"✓ No problems found in {report.files_checked} file(s)", style="bold green")


def _output_json(report: DiagnosticReport) -> None:
    print(json.dumps(report.to_dict(), indent=2))


def run_explain(rule_id: str, registry: RuleRegistry | None = None) -> int:
    """Explain a specific lint rule.

    Args:
        rule_id: Rule ID to explain

    Returns:
        Exit code (0 = success, 2 = rule not found)
    """
    console = Console()
    registry = registry if registry is not None else default_registry()

    rule_id = rule_id.lower().strip()
    rule = registry.get(rule_id)
    if rule is None:
        console.print(f"Unknown rule: {rule_id}", style="bold red", markup=False)
        console.print()
        console.print("Known rules:", style="bold")
        for rid in sorted(registry.ids()):
            console.print(f"  - {rid}", markup=False)
        return 2

    lines = [
        f"# {rule.id}",
        "",
        f"**Severity**: {rule.severity}  ",
        f"**Applies to**: {', '.join(sorted(rule.kinds))}  ",
        f"**Default**: {'enabled' if rule.enabled_by_default else 'disabled'}",
        "",
        rule.explanation,
    ]
    if rule.parameters:
        lines += ["", "## Defaults", ""]
        lines += [f"- `{name}` = `{thaw_parameters(value)!r}`" for name, value in rule.parameters.items()]
    console.print(Markdown("\n".join(lines)))
    return 0

