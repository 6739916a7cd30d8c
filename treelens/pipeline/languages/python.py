"""Python language rule tables."""

from treelens.models.results import ThingCategory
from treelens.pipeline.rules.models import (
    Always,
    Anchor,
    And,
    FeatureSet,
    HighlightRule,
    IndentAction,
    IndentOffset,
    NodeIs,
    NoNode,
    OverrideMode,
    ParentIs,
    Rule,
    RuleTable,
    TextMatches,
    ThingAction,
)

from .base import LanguageConfig

INDENT = IndentOffset(units=1)

_KEYWORDS = " ".join(
    f'"{keyword}"'
    for keyword in (
        "def class return if elif else for while in import from as pass break continue "
        "try except finally with yield lambda raise global nonlocal assert del not and or "
        "is async await"
    ).split()
)

_BUILTINS = (
    r"^(abs|all|any|bool|dict|enumerate|filter|float|getattr|hasattr|int|isinstance|"
    r"iter|len|list|map|max|min|next|open|print|range|repr|reversed|set|setattr|"
    r"sorted|str|sum|super|tuple|type|zip)$"
)

_BRACKETED = (
    "argument_list|parameters|list|tuple|dictionary|set|parenthesized_expression|"
    "list_comprehension|dictionary_comprehension|set_comprehension|generator_expression"
)

_BLOCK_OPENERS = (
    "function_definition|class_definition|if_statement|elif_clause|else_clause|"
    "for_statement|while_statement|with_statement|try_statement|except_clause|finally_clause"
)


class PythonConfig(LanguageConfig):
    """Rule tables for Python."""

    def get_language_name(self) -> str:
        return "python"

    def get_file_extensions(self) -> list[str]:
        return [".py", ".pyi"]

    def get_highlight_rules(self) -> FeatureSet:
        return FeatureSet(
            levels=[
                ["comment", "definition"],
                ["keyword", "string", "type"],
                ["docstring", "number", "constant", "decorator", "builtin"],
                ["function", "property", "bracket", "operator", "variable"],
            ],
            rules=[
                HighlightRule(name="Comments", feature="comment", query="(comment) @comment"),
                HighlightRule(
                    name="Function names",
                    feature="definition",
                    query="(function_definition name: (identifier) @function-name)",
                ),
                HighlightRule(
                    name="Class names",
                    feature="definition",
                    query="(class_definition name: (identifier) @type-name)",
                ),
                HighlightRule(
                    name="Parameters",
                    feature="definition",
                    query="(parameters (identifier) @variable-name)",
                ),
                HighlightRule(name="Keywords", feature="keyword", query=f"[{_KEYWORDS}] @keyword"),
                HighlightRule(name="Strings", feature="string", query="(string) @string"),
                HighlightRule(name="Annotations", feature="type", query="(type (identifier) @type)"),
                HighlightRule(
                    name="Base classes",
                    feature="type",
                    query="(class_definition superclasses: (argument_list (identifier) @type))",
                ),
                HighlightRule(
                    name="Docstrings",
                    feature="docstring",
                    query="""
                    (module . (expression_statement (string) @docstring))
                    (block . (expression_statement (string) @docstring))
                    """,
                    override=OverrideMode.OVERRIDE,
                ),
                HighlightRule(name="Numbers", feature="number", query="[(integer) (float)] @number"),
                HighlightRule(
                    name="Literal constants",
                    feature="constant",
                    query="[(true) (false) (none)] @constant",
                ),
                HighlightRule(
                    name="Upper-case names",
                    feature="constant",
                    query="(identifier) @constant",
                    refine=[
                        Rule(TextMatches(r"^[A-Z][A-Z0-9_]+$"), "constant"),
                        Rule(Always(), None),
                    ],
                ),
                HighlightRule(name="Decorators", feature="decorator", query="(decorator) @decorator"),
                HighlightRule(
                    name="Builtin calls",
                    feature="builtin",
                    query="(call function: (identifier) @builtin)",
                    refine=[Rule(TextMatches(_BUILTINS), "builtin"), Rule(Always(), None)],
                ),
                HighlightRule(
                    name="Function calls",
                    feature="function",
                    query="""
                    (call function: (identifier) @function-call)
                    (call function: (attribute attribute: (identifier) @function-call))
                    """,
                    override=OverrideMode.KEEP,
                ),
                HighlightRule(
                    name="Attributes",
                    feature="property",
                    query="(attribute attribute: (identifier) @property)",
                    override=OverrideMode.KEEP,
                ),
                HighlightRule(
                    name="Brackets",
                    feature="bracket",
                    query='["(" ")" "[" "]" "{" "}"] @bracket',
                ),
                HighlightRule(
                    name="Operators",
                    feature="operator",
                    query='["+" "-" "*" "/" "%" "**" "//" "==" "!=" "<" ">" "<=" ">=" "=" "+=" "-=" "->"] @operator',
                ),
                HighlightRule(
                    name="Variables",
                    feature="variable",
                    query="(identifier) @variable",
                    override=OverrideMode.KEEP,
                ),
            ],
        )

    def get_indent_rules(self) -> RuleTable[IndentAction]:
        return RuleTable(
            "python indent",
            [
                Rule(ParentIs("module"), IndentAction(Anchor.COLUMN_0), "Top-level statements"),
                Rule(NodeIs(r"\)|\]|\}"), IndentAction(Anchor.PARENT_BOL), "Closing brackets"),
                Rule(
                    And(NodeIs(r"\."), ParentIs("attribute")),
                    IndentAction(Anchor.MEMBER_CHAIN, chain=("attribute", "call")),
                    "Dotted continuation lines",
                ),
                Rule(NodeIs("block"), IndentAction(Anchor.PARENT_BOL, INDENT), "Compound statement bodies"),
                Rule(
                    NodeIs("else_clause|elif_clause|except_clause|finally_clause"),
                    IndentAction(Anchor.PARENT_BOL),
                    "Continuation clauses",
                ),
                Rule(ParentIs("block"), IndentAction(Anchor.PARENT_BOL), "Statements in a block"),
                Rule(ParentIs(_BRACKETED), IndentAction(Anchor.PARENT_BOL, INDENT), "Bracketed continuation"),
                Rule(
                    And(NoNode() | NodeIs("comment"), ParentIs(_BLOCK_OPENERS)),
                    IndentAction(Anchor.PARENT_BOL, INDENT),
                    "Blank line or comment after a block opener",
                ),
                Rule(
                    And(NoNode(), ParentIs("string|string_content")),
                    IndentAction(Anchor.PREV_LINE),
                    "String interiors",
                ),
                Rule(Always(), IndentAction(Anchor.PARENT_BOL), "Everything else"),
            ],
        )

    def get_thing_rules(self) -> RuleTable[ThingAction]:
        return RuleTable(
            "python things",
            [
                Rule(NodeIs("comment"), ThingAction(ThingCategory.COMMENT), "Comments"),
                Rule(NodeIs("string"), ThingAction(ThingCategory.STRING), "Strings"),
                Rule(
                    NodeIs("function_definition|class_definition"),
                    ThingAction(ThingCategory.DEFINITION),
                    "Definitions",
                ),
                Rule(NodeIs(r".*_statement"), ThingAction(ThingCategory.STATEMENT), "Statements"),
                Rule(
                    NodeIs(
                        r"call|attribute|subscript|binary_operator|boolean_operator|comparison_operator|"
                        r"unary_operator|not_operator|conditional_expression|"
                        r"list|dictionary|tuple|set|.*_comprehension|parenthesized_expression"
                    ),
                    ThingAction(ThingCategory.EXPRESSION),
                    "Expressions",
                ),
            ],
        )
