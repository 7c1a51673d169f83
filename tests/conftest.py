"""Pytest configuration and fixtures."""

import textwrap
from pathlib import Path
from typing import Callable

import pytest

from objcstyle.analysis import StyleChecker
from objcstyle.config import Configuration
from objcstyle.diagnostics import Diagnostic
from objcstyle.models import FileUnit
from objcstyle.source.parser import parse_source


@pytest.fixture
def fixtures_path() -> Path:
    """Path to the fixture sources."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def clean_path(fixtures_path: Path) -> Path:
    """Directory holding a JPWidget header/implementation pair with no violations."""
    return fixtures_path / "clean"


@pytest.fixture
def checker() -> StyleChecker:
    """Checker with the built-in rules and the default configuration."""
    return StyleChecker()


@pytest.fixture
def lint() -> Callable[..., list[Diagnostic]]:
    """Check a dedented source snippet; keyword arguments become the configuration."""

    def _lint(source: str, path: str = "JPWidget.m", **config) -> list[Diagnostic]:
        checker = StyleChecker(config=Configuration.from_mapping(config))
        return checker.check_source(textwrap.dedent(source), path)

    return _lint


@pytest.fixture
def parse() -> Callable[..., tuple[FileUnit, list]]:
    """Lex and parse a dedented source snippet into (tree, errors)."""

    def _parse(source: str, path: str = "JPWidget.m") -> tuple[FileUnit, list]:
        return parse_source(textwrap.dedent(source), path)

    return _parse
