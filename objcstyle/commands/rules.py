"""Rules listing command."""

import json

from rich.console import Console
from rich.table import Table

from ..config import Configuration
from ..rules.registry import RuleRegistry, default_registry
from ..rules.schema import thaw_parameters


def run_rules(config: Configuration, output_json: bool = False, registry: RuleRegistry | None = None) -> int:
    """List registered rules and whether the configuration enables them.

    Returns:
        Exit code (always 0)
    """
    registry = registry if registry is not None else default_registry()

    if output_json:
        rows = [
            {
                "id": rule.id,
                "severity": rule.severity,
                "kinds": sorted(rule.kinds),
                "enabled": config.is_enabled(rule),
                "parameters": thaw_parameters(config.parameters_for(rule)),
                "description": rule.description,
            }
            for rule in registry
        ]
        print(json.dumps(rows, indent=2, default=str))
        return 0

    console = Console()
    table = Table(title="Rules")
    table.add_column("Rule", style="cyan", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Applies to", style="dim")
    table.add_column("Enabled", justify="center")
    table.add_column("Description")

    for rule in registry:
        severity_style = "bold red" if rule.severity == "error" else "yellow"
        enabled = config.is_enabled(rule)
        table.add_row(
            rule.id,
            f"[{severity_style}]{rule.severity}[/]",
            ", ".join(sorted(rule.kinds)),
            "[green]yes[/]" if enabled else "[dim]no[/]",
            rule.description,
        )

    console.print(table)
    return 0
