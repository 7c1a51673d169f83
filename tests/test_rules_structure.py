"""Tests for the structural rules."""


def _hits(diagnostics, rule_id):
    return [d for d in diagnostics if d.rule_id == rule_id]


def test_no_public_ivars(lint):
    """Instance variables in a public @interface are errors; private ones are fine."""
    diagnostics = lint(
        """\
@interface JPWidget : NSObject {
    NSString *_title;
}
@end

@interface JPWidget () {
    NSString *_cache;
}
@end

@implementation JPWidget {
    BOOL _loaded;
}
@end
""",
        "JPWidget.h",
    )

    hits = _hits(diagnostics, "no-public-ivars")
    assert len(hits) == 1
    assert hits[0].severity == "error"
    assert "'_title'" in hits[0].message
    assert (hits[0].line, hits[0].column) == (2, 15)


def test_category_filename_pattern(lint):
    source = "@interface NSString (JPTrimming)\n- (NSString *)jp_trimmed;\n@end\n"

    hits = _hits(lint(source, "JPStringHelpers.h"), "category-filename-pattern")
    assert len(hits) == 1
    assert "'NSString+JPTrimming.h'" in hits[0].message

    assert _hits(lint(source, "NSString+JPTrimming.h"), "category-filename-pattern") == []


def test_category_on_class_in_same_file_is_exempt(lint):
    diagnostics = lint(
        """\
@interface JPWidget : NSObject
@end
@interface JPWidget (Layout)
@end
""",
        "JPWidget.h",
    )

    assert _hits(diagnostics, "category-filename-pattern") == []


def test_extension_in_header(lint):
    source = "@interface JPWidget ()\n@property (nonatomic) BOOL loaded;\n@end\n"

    hits = _hits(lint(source, "JPWidget.h"), "extension-in-implementation-file")
    assert len(hits) == 1
    assert "'JPWidget'" in hits[0].message

    assert _hits(lint(source, "JPWidget.m"), "extension-in-implementation-file") == []
    assert _hits(lint(source, "JPWidget+Private.h"), "extension-in-implementation-file") == []


def test_extension_allowed_header_suffixes_are_configurable(lint):
    source = "@interface JPWidget ()\n@end\n"
    params = {"extension-in-implementation-file": {"allowed_header_suffixes": ["Internal"]}}

    assert _hits(lint(source, "JPWidgetInternal.h", rule_parameters=params), "extension-in-implementation-file") == []
    assert len(_hits(lint(source, "JPWidget+Private.h", rule_parameters=params), "extension-in-implementation-file")) == 1


def test_property_explicit_attributes(lint):
    diagnostics = lint(
        """\
@interface JPWidget : NSObject
@property NSString *title;
@property (nonatomic, copy) NSString *subtitle;
@end
"""
    )

    hits = _hits(diagnostics, "property-explicit-attributes")
    assert len(hits) == 1
    assert hits[0].message == "property 'title' must declare its attributes explicitly"


def test_property_required_attributes(lint):
    diagnostics = lint(
        """\
@interface JPWidget : NSObject
@property (copy) NSString *title;
@property (atomic, copy) NSString *subtitle;
@property (nonatomic, strong) NSString *caption;
@end
""",
        rule_parameters={"property-explicit-attributes": {"required_attributes": ["nonatomic|atomic"]}},
    )

    hits = _hits(diagnostics, "property-explicit-attributes")
    assert len(hits) == 1
    assert hits[0].message == "property 'title' is missing attribute 'nonatomic|atomic'"
