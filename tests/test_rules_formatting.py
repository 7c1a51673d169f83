"""Tests for the formatting rules."""


def _hits(diagnostics, rule_id):
    return [d for d in diagnostics if d.rule_id == rule_id]


def test_method_scope_spacing(lint):
    diagnostics = lint(
        """\
@interface JPWidget : NSObject
-(void)reloadData;
- (void) layoutViews;
-  (void)resetState;
- (void)clearCache;
@end
"""
    )

    hits = _hits(diagnostics, "method-scope-spacing")
    assert [(d.line, d.column) for d in hits] == [(2, 1), (3, 10), (4, 1)]
    assert "one space after '-'" in hits[0].message
    assert "no space between the return type and the selector" in hits[1].message


def test_pointer_asterisk_placement(lint):
    diagnostics = lint(
        """\
@interface JPWidget : NSObject
@property (nonatomic, copy) NSString* title;
@property (nonatomic, copy) NSString * subtitle;
@property (nonatomic, copy) NSString *caption;
@property (nonatomic, copy) NSString * _Nullable footer;
- (NSString*)summary;
@end
static NSString *const kWidgetKey = @"key";
"""
    )

    hits = _hits(diagnostics, "pointer-asterisk-placement")
    assert [(d.line, d.column) for d in hits] == [(2, 37), (3, 38), (6, 12)]
    assert "'NSString *'" in hits[0].message
    assert "'*subtitle'" in hits[1].message


def test_brace_style_same_line(lint):
    diagnostics = lint(
        """\
@implementation JPWidget
- (void)reloadData {
}
- (void)layoutViews
{
}
@end
void JPLog(void)
{
}
"""
    )

    hits = _hits(diagnostics, "brace-style")
    assert [(d.line, d.column) for d in hits] == [(5, 1), (9, 1)]
    assert "the same line as the signature" in hits[0].message


def test_brace_style_next_line(lint):
    diagnostics = lint(
        "@implementation JPWidget\n- (void)reloadData {\n}\n- (void)layoutViews\n{\n}\n@end\n",
        rule_parameters={"brace-style": {"style": "next-line"}},
    )

    hits = _hits(diagnostics, "brace-style")
    assert [(d.line, d.column) for d in hits] == [(2, 20)]
    assert "its own line" in hits[0].message


def test_brace_style_ignores_declarations(lint):
    diagnostics = lint("@interface JPWidget : NSObject\n- (void)reloadData;\n@end\nvoid JPLog(void);\n")

    assert _hits(diagnostics, "brace-style") == []


def test_no_tab_indentation(lint):
    diagnostics = lint("@implementation JPWidget\n- (void)reloadData {\n\tint a = 0;\n  \tint b = 1;\n}\n@end\n")

    hits = _hits(diagnostics, "no-tab-indentation")
    assert [(d.line, d.column) for d in hits] == [(3, 1), (4, 3)]


def test_no_trailing_whitespace(lint):
    diagnostics = lint("@interface JPWidget : NSObject  \n@end\t\n\n")

    hits = _hits(diagnostics, "no-trailing-whitespace")
    assert [(d.line, d.column) for d in hits] == [(1, 31), (2, 5)]
    assert hits[0].message == "line 1 has trailing whitespace"


def test_max_line_length_is_disabled_by_default(lint):
    long_line = "static NSString *const kWidgetKey = @\"" + "x" * 150 + "\";\n"

    assert _hits(lint(long_line), "max-line-length") == []

    hits = _hits(lint(long_line, enabled_rules=["max-line-length"]), "max-line-length")
    assert len(hits) == 1
    assert (hits[0].line, hits[0].column) == (1, 121)

    hits = _hits(
        lint(long_line, enabled_rules=["max-line-length"], rule_parameters={"max-line-length": {"limit": 200}}),
        "max-line-length",
    )
    assert hits == []
