"""Outline command: print the declaration tree of one file."""

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from ..analysis import StyleChecker, read_source
from ..diagnostics import Diagnostic
from ..models import CategoryDecl, DeclarationNode, MethodDecl


def _label(node: DeclarationNode) -> str:
    name = node.name
    if isinstance(node, MethodDecl):
        name = f"{'-' if node.scope == 'instance' else '+'}{node.selector}"
    elif isinstance(node, CategoryDecl):
        name = f"{node.class_name} ({node.name})"
    position = node.position
    where = f" [dim]L{position.line}:{position.column}[/]" if position else ""
    private = " [magenta]private[/]" if node.visibility == "private" else ""
    return f"[cyan]{node.label}[/] [bold]{escape(name or '<anonymous>')}[/]{private}{where}"


def _add_children(branch: Tree, node: DeclarationNode) -> None:
    for child in node.children:
        _add_children(branch.add(_label(child)), child)


def run_outline(path: Path) -> int:
    """Show the parsed declaration tree and any lex/parse errors.

    Returns:
        Exit code (0 = parsed cleanly, 1 = file unreadable or has lex/parse errors)
    """
    console = Console()
    source = read_source(path)
    if isinstance(source, Diagnostic):
        console.print(str(source), style="bold red", markup=False)
        return 1

    tree, errors, _ = StyleChecker().parse(source.text, source.path)
    root = Tree(f"[bold]{escape(tree.filename)}[/] [dim]({len(tree.lines)} lines)[/]")
    _add_children(root, tree)
    console.print(root)

    if errors:
        console.print()
        for error in errors:
            console.print(str(error), style="bold red", markup=False, highlight=False, soft_wrap=True)
        return 1
    return 0
