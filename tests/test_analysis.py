"""Tests for the per-file pipeline and multi-file runs."""

from pathlib import Path

import pytest

from objcstyle import analysis
from objcstyle.analysis import SourceFile, StyleChecker, iter_source_files, read_source
from objcstyle.config import Configuration
from objcstyle.diagnostics import Diagnostic


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_clean_fixture_has_no_diagnostics(clean_path: Path):
    """The clean JPWidget pair passes with and without a project prefix."""
    files = sorted(clean_path.iterdir())

    for config in (Configuration(), Configuration(prefix="JP")):
        report = StyleChecker(config=config).check_files(files)
        assert list(report) == []
        assert report.files_checked == 2
        assert report.exit_status("warning") == 0


def test_malformed_declaration_does_not_hide_the_rest(checker):
    """A parse error is reported and later declarations are still checked."""
    source = """\
@interface JPView : UIView
- (void)setName:(NSString *);
- (void)reload_data;
@end
@interface bad_name : NSObject
@end
"""
    diagnostics = checker.check_source(source, "JPView.h")

    assert [(d.rule_id, d.line) for d in diagnostics] == [
        ("parse-error", 2),
        ("method-name-camel-lower", 3),
        ("class-name-camel-upper", 5),
    ]
    assert diagnostics[0].kind == "parse-error"
    assert "MissingName" in diagnostics[0].message


def test_lex_error_is_reported_and_analysis_continues(checker):
    diagnostics = checker.check_source('NSString *s = @"oops;\n@interface bad_name : NSObject\n@end\n', "JPView.m")

    assert diagnostics[0].kind == "lex-error"
    assert any(d.rule_id == "class-name-camel-upper" for d in diagnostics)


def test_check_text_builds_a_report(checker):
    report = checker.check_text("@interface widget : NSObject\n@end\n", "widget.h")

    assert report.files_checked == 1
    assert report.has_errors
    assert report.exit_status() == 1


def test_iter_source_files(tmp_path: Path):
    _write(tmp_path / "Sources" / "JPWidget.h", "")
    _write(tmp_path / "Sources" / "JPWidget.m", "")
    _write(tmp_path / "Sources" / "README.md", "")
    _write(tmp_path / "Pods" / "AFNetworking" / "AFHTTPClient.m", "")
    _write(tmp_path / "build" / "Generated.h", "")
    _write(tmp_path / "Tests" / "JPWidgetTests.mm", "")

    found = [p.relative_to(tmp_path).as_posix() for p in iter_source_files([tmp_path])]

    assert found == ["Sources/JPWidget.h", "Sources/JPWidget.m", "Tests/JPWidgetTests.mm"]


def test_explicit_files_are_always_checked_once(tmp_path: Path):
    path = tmp_path / "notes.txt"
    _write(path, "")

    assert list(iter_source_files([path, path])) == [path]


def test_read_source_strips_bom(tmp_path: Path):
    path = tmp_path / "JPWidget.h"
    path.write_bytes("\ufeff@interface JPWidget : NSObject\n@end\n".encode("utf-8"))

    source = read_source(path)

    assert not isinstance(source, Diagnostic)
    assert source.text.startswith("@interface")


def test_unreadable_file_is_an_io_error(tmp_path: Path, checker):
    bad = tmp_path / "JPBroken.m"
    bad.write_bytes(b"@interface JPBroken : NSObject\n\xff\xfe\n@end\n")
    good = tmp_path / "widget.h"
    _write(good, "@interface widget : NSObject\n@end\n")

    report = checker.check_files([bad, good])

    kinds = [(d.file, d.kind) for d in report]
    assert (str(bad), "io-error") in kinds
    assert (str(good), "violation") in kinds
    assert report.files_checked == 2


def test_parallel_run_matches_serial_run(tmp_path: Path):
    """Worker processes produce the same report as a single-process run."""
    for index in range(4):
        _write(
            tmp_path / f"widget{index}.m",
            f"@interface widget{index} : NSObject\n@property NSString* Title;\n- (NSString *)getTitle;\n@end\n",
        )
    files = sorted(tmp_path.glob("*.m"))
    checker = StyleChecker()

    serial = checker.check_files(files, jobs=1)
    parallel = checker.check_files(files, jobs=2)

    assert parallel.diagnostics == serial.diagnostics
    assert len(serial) == 4 * 5


def test_worker_without_checker_fails_loudly(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(analysis, "_worker_checker", None)

    with pytest.raises(RuntimeError, match="without a checker"):
        analysis._check_in_worker(SourceFile("JPWidget.m", ""))
