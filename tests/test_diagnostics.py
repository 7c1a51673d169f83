"""Tests for diagnostics and the run report."""

from objcstyle.diagnostics import Diagnostic, DiagnosticReport
from objcstyle.errors import ParseError
from objcstyle.models import Position


def _diag(rule_id="class-name-camel-upper", file="JPWidget.h", line=1, column=1, severity="error", message="m"):
    return Diagnostic(rule_id=rule_id, severity=severity, file=file, line=line, column=column, message=message)


def test_diagnostic_text_format():
    diagnostic = _diag(line=12, column=5, severity="warning", rule_id="constant-k-prefix", message="bad name")

    assert str(diagnostic) == "JPWidget.h:12:5: warning: [constant-k-prefix] bad name"


def test_diagnostics_are_values():
    assert _diag() == _diag()
    assert len({_diag(), _diag()}) == 1


def test_report_sorts_by_file_line_column_rule():
    report = DiagnosticReport(
        [
            _diag(file="b.m", line=1),
            _diag(file="a.m", line=3, rule_id="z-rule"),
            _diag(file="a.m", line=3, rule_id="a-rule"),
            _diag(file="a.m", line=2, column=9),
        ]
    )

    assert [(d.file, d.line, d.column, d.rule_id) for d in report] == [
        ("a.m", 2, 9, "class-name-camel-upper"),
        ("a.m", 3, 1, "a-rule"),
        ("a.m", 3, 1, "z-rule"),
        ("b.m", 1, 1, "class-name-camel-upper"),
    ]


def test_report_deduplicates_keeping_the_first():
    report = DiagnosticReport([_diag(message="first"), _diag(message="second"), _diag(line=2)])

    assert len(report) == 2
    assert report.diagnostics[0].message == "first"


def test_exit_status():
    warnings_only = DiagnosticReport([_diag(severity="warning")])
    with_error = DiagnosticReport([_diag(severity="warning"), _diag(line=2)])

    assert DiagnosticReport([]).exit_status() == 0
    assert warnings_only.exit_status() == 0
    assert warnings_only.exit_status("warning") == 1
    assert with_error.exit_status() == 1
    assert with_error.has_errors


def test_grouping():
    report = DiagnosticReport(
        [
            _diag(file="b.m", rule_id="brace-style"),
            _diag(file="a.m", rule_id="no-tab-indentation"),
            _diag(file="a.m", line=2, rule_id="brace-style"),
        ]
    )

    assert list(report.by_file()) == ["a.m", "b.m"]
    assert list(report.by_rule()) == ["brace-style", "no-tab-indentation"]
    assert len(report.by_rule()["brace-style"]) == 2


def test_report_to_dict():
    report = DiagnosticReport([_diag(), _diag(line=2, severity="warning")], files_checked=3)

    data = report.to_dict()
    assert data["summary"] == {"files": 3, "errors": 1, "warnings": 1, "has_errors": True}
    assert data["diagnostics"][0] == {
        "rule_id": "class-name-camel-upper",
        "severity": "error",
        "file": "JPWidget.h",
        "line": 1,
        "column": 1,
        "message": "m",
        "kind": "violation",
    }


def test_from_source_error():
    error = ParseError(ParseError.MISSING_NAME, "missing parameter name", Position("JPWidget.h", 4, 20, 88))

    diagnostic = Diagnostic.from_source_error(error, "JPWidget.h")

    assert diagnostic.rule_id == "parse-error"
    assert diagnostic.kind == "parse-error"
    assert diagnostic.severity == "error"
    assert (diagnostic.line, diagnostic.column) == (4, 20)
    assert diagnostic.message == "MissingName: missing parameter name"
