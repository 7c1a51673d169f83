"""CLI entrypoint for objcstyle."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import Configuration, discover_configuration, load_configuration
from .errors import ConfigurationError


class ConfigError(click.ClickException):
    """Configuration problems exit with status 2, before any file is checked."""

    exit_code = 2


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(ctx: click.Context) -> Configuration:
    config_path = ctx.obj.get("config_path")
    try:
        if config_path is not None:
            return load_configuration(config_path)
        return discover_configuration()
    except ConfigurationError as exc:
        raise ConfigError(str(exc)) from exc


@click.group()
@click.version_option(__version__, prog_name="objcstyle")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
    default=None,
    help="Configuration file (defaults to the nearest objcstyle.toml, .objcstyle.yml or pyproject.toml)",
)
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """objcstyle - Style-conformance checker for Objective-C sources.

    Checks naming, prefixing, constant/enum conventions, brace style,
    whitespace and public/private API separation.
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option(
    "--fail-on",
    type=click.Choice(["error", "warning"]),
    default="error",
    help="Exit with error if this level or higher found",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output results as JSON",
)
@click.option(
    "--group",
    type=click.Choice(["none", "file", "rule"]),
    default="none",
    help="Group human-readable output by file or by rule",
)
@click.option(
    "--jobs",
    "-j",
    type=click.IntRange(min=1),
    default=1,
    help="Number of worker processes",
)
@click.option("--enable", multiple=True, metavar="RULE_ID", help="Enable a rule (repeatable)")
@click.option("--disable", multiple=True, metavar="RULE_ID", help="Disable a rule (repeatable)")
@click.option("--prefix", type=str, default=None, help="Project prefix (overrides the configuration)")
@click.option(
    "--explain",
    "explain_rule",
    type=str,
    default=None,
    metavar="RULE_ID",
    help="Explain a specific rule and exit (e.g., --explain constant-k-prefix)",
)
@click.pass_context
def lint(
    ctx: click.Context,
    paths: tuple[Path, ...],
    fail_on: str,
    output_json: bool,
    group: str,
    jobs: int,
    enable: tuple[str, ...],
    disable: tuple[str, ...],
    prefix: str | None,
    explain_rule: str | None,
) -> None:
    """Check Objective-C files and directories for style violations.

    Directories are searched for .h, .m and .mm files (Pods, Carthage and
    build output are skipped).

    Examples:

        objcstyle lint Sources/

        objcstyle lint --prefix JP --group rule JPWidget.h JPWidget.m

        objcstyle lint --explain selector-no-conjunctions
    """
    from .commands.lint import run_explain, run_lint

    if explain_rule:
        sys.exit(run_explain(explain_rule))

    if not paths:
        raise click.UsageError("no files or directories given")

    config = _load_config(ctx).with_overrides(prefix=prefix, enable=enable, disable=disable)
    try:
        exit_code = run_lint(list(paths), config, fail_on, output_json, group, jobs)
    except ConfigurationError as exc:
        raise ConfigError(str(exc)) from exc
    sys.exit(exit_code)


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output rules as JSON")
@click.pass_context
def rules(ctx: click.Context, output_json: bool) -> None:
    """List the available rules and whether they are enabled."""
    from .commands.rules import run_rules

    sys.exit(run_rules(_load_config(ctx), output_json))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def outline(path: Path) -> None:
    """Print the declaration tree parsed from PATH."""
    from .commands.outline import run_outline

    sys.exit(run_outline(path))
