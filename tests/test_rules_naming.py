"""Tests for the naming rules."""

from objcstyle.rules.naming import camel_words, is_lower_camel, suggest_constant_name


def _hits(diagnostics, rule_id):
    return [d for d in diagnostics if d.rule_id == rule_id]


def test_camel_words():
    assert camel_words("JPWidget") == ["JP", "Widget"]
    assert camel_words("URLString") == ["URL", "String"]
    assert camel_words("loadURLsForItem2") == ["load", "URLs", "For", "Item", "2"]


def test_is_lower_camel_with_acronyms():
    assert is_lower_camel("titleLabel")
    assert not is_lower_camel("TitleLabel")
    assert not is_lower_camel("title_label")
    assert not is_lower_camel("URLString")
    assert is_lower_camel("URLString", frozenset({"URL"}))


def test_class_name_must_be_upper_camel(lint):
    """A lowercase class name is the only problem in an otherwise clean file."""
    diagnostics = lint("@interface widget : NSObject\n@end\n", "widget.h")

    assert len(diagnostics) == 1
    (found,) = diagnostics
    assert found.rule_id == "class-name-camel-upper"
    assert found.severity == "error"
    assert (found.line, found.column) == (1, 12)
    assert "widget" in found.message


def test_renaming_a_clean_class_yields_exactly_one_diagnostic(checker, clean_path):
    """Renaming JPWidget to widget in a clean header adds one class-name diagnostic."""
    text = (clean_path / "JPWidget.h").read_text()
    assert checker.check_source(text, "JPWidget.h") == []

    renamed = text.replace("@interface JPWidget : UIView", "@interface widget : UIView")
    diagnostics = checker.check_source(renamed, "JPWidget.h")

    assert [d.rule_id for d in diagnostics] == ["class-name-camel-upper"]
    assert diagnostics[0].line == 16


def test_category_and_protocol_names(lint):
    diagnostics = lint(
        """\
@protocol jp_delegate <NSObject>
@end
@interface NSString (jp_trimming)
@end
@interface JPWidget ()
@end
"""
    )

    names = [d.message for d in _hits(diagnostics, "class-name-camel-upper")]
    assert len(names) == 2
    assert "jp_delegate" in names[0]
    assert "jp_trimming" in names[1]


def test_implementation_with_interface_in_same_file_is_checked_once(lint):
    diagnostics = lint("@interface widget : NSObject\n@end\n@implementation widget\n@end\n")

    assert len(_hits(diagnostics, "class-name-camel-upper")) == 1


def test_variable_names(lint):
    diagnostics = lint(
        """\
@interface JPWidget : NSObject {
    NSString *_titleText;
    NSString *_Bad_name;
}
@property (nonatomic, copy) NSString *TitleLabel;
@property (nonatomic, copy) NSString *URLString;
@end
static NSInteger counter_value;
""",
        acceptable_acronyms=["URL"],
    )

    flagged = [d.message for d in _hits(diagnostics, "variable-name-camel-lower")]
    assert len(flagged) == 3
    assert "'_Bad_name'" in flagged[0]
    assert "'TitleLabel'" in flagged[1]
    assert "'counter_value'" in flagged[2]


def test_local_and_static_variables_in_bodies(lint):
    """Locals and function-local statics are named like any other variable."""
    diagnostics = lint(
        """\
@implementation JPWidget
+ (instancetype)sharedWidget {
    static dispatch_once_t Once_Token;
    static NSString *const WidgetKey = @"key";
    NSString *Bad_Local = @"x";
    NSString *goodLocal = Bad_Local;
    return nil;
}
@end
""",
        prefix="JP",
    )

    variables = _hits(diagnostics, "variable-name-camel-lower")
    assert [(d.line, d.column) for d in variables] == [(3, 28), (5, 15)]
    assert "'Once_Token'" in variables[0].message
    constants = _hits(diagnostics, "constant-k-prefix")
    assert [d.line for d in constants] == [4]
    assert "'kWidgetKey'" in constants[0].message


def test_method_selector_pieces(lint):
    diagnostics = lint(
        """\
@interface JPWidget : NSObject
- (void)ReloadData;
- (void)setTitle:(NSString *)title Animated:(BOOL)animated;
- (void)reloadData;
@end
"""
    )

    hits = _hits(diagnostics, "method-name-camel-lower")
    assert [(d.line, d.column) for d in hits] == [(2, 9), (3, 36)]
    assert "'Animated'" in hits[1].message


def test_ivar_leading_underscore(lint):
    diagnostics = lint("@implementation JPWidget {\n    NSString *title;\n    NSString *_name;\n}\n@end\n")

    hits = _hits(diagnostics, "ivar-leading-underscore")
    assert len(hits) == 1
    assert "'title'" in hits[0].message


def test_constant_k_prefix_with_type_context(lint):
    """The suggestion uses the configured type context."""
    diagnostics = lint(
        "NSString *const ProductsKey;\n",
        rule_parameters={"constant-k-prefix": {"type_context": "Products"}},
    )

    (found,) = _hits(diagnostics, "constant-k-prefix")
    assert (found.line, found.column) == (1, 17)
    assert "'kProductsKey'" in found.message


def test_constant_k_prefix_accepts_k_names(lint):
    diagnostics = lint(
        """\
static NSString *const kProductsKey = @"products";
static const CGFloat kWidgetPadding = 8.0;
static NSString *mutableName;
"""
    )

    assert _hits(diagnostics, "constant-k-prefix") == []


def test_constant_k_prefix_defaults_to_enclosing_class():
    assert suggest_constant_name("MAX_COUNT", "Widget") == "kWidgetMaxCount"
    assert suggest_constant_name("KeyName", None) == "kKeyName"
    assert suggest_constant_name("WidgetKey", "Widget") == "kWidgetKey"


def test_define_uppercase_underscore(lint):
    diagnostics = lint(
        """\
#define JP_TIMEOUT 30
#define _JP_WIDGET_H_
#define kTimeout 30
#define jpMax(a, b) ((a) > (b) ? (a) : (b))
"""
    )

    hits = _hits(diagnostics, "define-uppercase-underscore")
    assert [d.line for d in hits] == [3, 4]
    assert (hits[0].line, hits[0].column) == (3, 9)


def test_enum_values_echo_the_type_name(lint):
    """Each enum value that does not start with its type name is reported."""
    diagnostics = lint(
        """\
typedef NS_ENUM(NSInteger, PlacementType) {
    Top,
    Center,
    Bottom
};
""",
        "JPPlacement.h",
    )

    assert len(diagnostics) == 3
    assert [d.rule_id for d in diagnostics] == ["enum-type-echoed-in-values"] * 3
    assert [(d.line, d.column) for d in diagnostics] == [(2, 5), (3, 5), (4, 5)]
    assert "'PlacementType'" in diagnostics[0].message


def test_enum_values_with_type_name_pass(lint):
    diagnostics = lint(
        """\
typedef NS_OPTIONS(NSUInteger, JPEdge) {
    JPEdgeTop = 1 << 0,
    JPEdgeBottom = 1 << 1,
};
enum { AnonymousValue };
"""
    )

    assert _hits(diagnostics, "enum-type-echoed-in-values") == []


def test_selector_no_conjunctions(lint):
    """'and' in a later selector piece is flagged at that piece."""
    source = "@interface JPView : UIView\n- (id)initWithFrame:(CGRect)frame andBackgroundColor:(UIColor *)color;\n@end\n"

    hits = _hits(lint(source), "selector-no-conjunctions")
    assert len(hits) == 1
    assert (hits[0].line, hits[0].column) == (2, 35)
    assert "'and'" in hits[0].message

    fixed = source.replace("andBackgroundColor", "backgroundColor")
    assert _hits(lint(fixed), "selector-no-conjunctions") == []


def test_selector_with_in_first_piece_is_fine(lint):
    diagnostics = lint(
        """\
@interface JPView : UIView
+ (instancetype)viewWithTitle:(NSString *)title;
- (void)reloadWithAnimation:(BOOL)animated withCompletion:(id)completion;
- (void)setBandwidth:(NSInteger)bandwidth;
@end
"""
    )

    hits = _hits(diagnostics, "selector-no-conjunctions")
    assert len(hits) == 1
    assert "'withCompletion:'" in hits[0].message


def test_getter_no_get_prefix(lint):
    diagnostics = lint(
        """\
@interface JPView : UIView
- (NSString *)getTitle;
- (void)getBytes:(void *)buffer;
+ (NSString *)getDefaultTitle;
- (NSString *)title;
- (BOOL)getter;
@end
"""
    )

    hits = _hits(diagnostics, "getter-no-get-prefix")
    assert len(hits) == 1
    assert "'title'" in hits[0].message


def test_method_defined_after_its_declaration_is_reported_once(lint):
    diagnostics = lint(
        """\
@interface JPWidget ()
- (NSString *)getTitle;
- (void)reloadWithFrame:(CGRect)frame andColor:(id)color;
@end
@implementation JPWidget
- (NSString *)getTitle {
    return nil;
}
- (void)reloadWithFrame:(CGRect)frame andColor:(id)color {
}
- (NSString *)getSubtitle {
    return nil;
}
@end
"""
    )

    assert [d.line for d in _hits(diagnostics, "getter-no-get-prefix")] == [2, 11]
    assert [d.line for d in _hits(diagnostics, "selector-no-conjunctions")] == [3]


def test_acronym_capitalization(lint):
    diagnostics = lint(
        """\
@interface JPHTMLParser : NSObject
@property (nonatomic, copy) NSString *URLString;
- (void)loadJSONData;
@end
""",
        prefix="JP",
        acceptable_acronyms=["URL"],
    )

    hits = _hits(diagnostics, "acronym-capitalization")
    assert len(hits) == 2
    assert "'HTML'" in hits[0].message
    assert "'JSON'" in hits[1].message


def test_acronym_rule_ignores_platform_prefix(lint):
    diagnostics = lint("@interface NSWidgetHelper : NSObject\n@end\n")

    assert _hits(diagnostics, "acronym-capitalization") == []


def test_project_prefix_required(lint):
    diagnostics = lint(
        """\
@interface Widget : NSObject
@end
@protocol JPDelegate <NSObject>
@end
@interface NSString (Trimming)
@end
@interface Widget (Extras)
@end
""",
        "Widget.m",
        prefix="JP",
    )

    hits = _hits(diagnostics, "project-prefix-required")
    messages = [d.message for d in hits]
    assert len(hits) == 3
    assert any("file 'Widget.m'" in m for m in messages)
    assert any("class 'Widget'" in m for m in messages)
    assert any("'Widget (Extras)'" in m for m in messages)


def test_project_prefix_exemptions(lint):
    diagnostics = lint("int main(int argc, char *argv[]) {\n    return 0;\n}\n", "main.m", prefix="JP")

    assert _hits(diagnostics, "project-prefix-required") == []
    assert _hits(lint("@interface Widget : NSObject\n@end\n", "Widget.m"), "project-prefix-required") == []


def test_no_apple_prefix_collision(lint):
    diagnostics = lint(
        """\
@interface NSWidget : NSObject
@end
@protocol UIWidgetDelegate <NSObject>
@end
@interface NSString (JPTrimming)
@end
@interface NSLabel : NSObject
@end
""",
        reserved_prefixes=["NS", "UI"],
    )

    hits = _hits(diagnostics, "no-apple-prefix-collision")
    assert len(hits) == 3
    assert "'NS'" in hits[0].message
    assert "'UI'" in hits[1].message
