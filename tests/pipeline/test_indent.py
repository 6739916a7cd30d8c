"""Tests for the indentation calculator."""

from pathlib import Path

import pytest

from treelens.config import IndentSettings
from treelens.errors import MalformedTreeError
from treelens.models.tree import SyntaxTree
from treelens.pipeline.indent import compute_indent, indent_for, indent_lines, misindented_lines
from treelens.pipeline.rules import (
    Always,
    Anchor,
    And,
    IndentAction,
    IndentOffset,
    NodeIs,
    NoNode,
    ParentIs,
    Rule,
    RuleTable,
)

LEDGER = Path(__file__).parent.parent / "fixtures" / "ledger.py"

INDENT = IndentOffset(units=1)


def _strip_indentation(source: str) -> str:
    return "\n".join(line.lstrip() for line in source.split("\n"))


class TestPositionTarget:
    """Tests for resolving a line to the node/parent pair rules see."""

    def test_largest_node_starting_at_line(self, syntax):
        tree = syntax("def f():\n    return 1\n")
        target = tree.position_target(1)
        assert target.node.type == "block"
        assert target.parent.type == "function_definition"

    def test_top_level_line(self, syntax):
        tree = syntax("x = 1\ny = 2\n")
        target = tree.position_target(1)
        assert target.node.type == "expression_statement"
        assert target.parent.type == "module"

    def test_blank_line_has_no_node(self, syntax):
        tree = syntax("x = [\n    1,\n\n]\n")
        target = tree.position_target(2)
        assert target.node is None
        assert target.parent.type == "list"

    def test_string_interior_has_no_node(self, syntax):
        tree = syntax('x = """\nabc\n"""\n')
        target = tree.position_target(1)
        assert target.node is None
        assert target.parent is not None

    def test_empty_buffer(self, syntax):
        target = syntax("").position_target(0)
        assert target.node is None
        assert target.parent is None

    def test_row_out_of_range(self, syntax):
        with pytest.raises(MalformedTreeError, match="outside the buffer"):
            syntax("x = 1\n").position_target(7)


class TestAnchors:
    """Tests for the anchor policies with hand-written tables."""

    def _table(self, *rules: Rule) -> RuleTable[IndentAction]:
        return RuleTable("test", list(rules))

    def test_parent_bol_plus_indent(self, syntax):
        tree = syntax("def f():\n    return 1\n")
        table = self._table(
            Rule(NodeIs("block"), IndentAction(Anchor.PARENT_BOL, INDENT)),
            Rule(Always(), IndentAction(Anchor.COLUMN_0)),
        )
        result = compute_indent(tree, 1, table)
        assert (result.anchor_column, result.offset, result.column) == (0, 4, 4)

    def test_offset_units_follow_settings(self, syntax):
        tree = syntax("def f():\n    return 1\n")
        table = self._table(Rule(NodeIs("block"), IndentAction(Anchor.PARENT_BOL, INDENT)))
        assert indent_for(tree, 1, table, IndentSettings(offset=2)) == 2

    def test_standalone_parent(self, syntax):
        source = "result = call(\n    first,\n    second)\n"
        tree = syntax(source)
        table = self._table(Rule(ParentIs("argument_list"), IndentAction(Anchor.STANDALONE_PARENT, INDENT)))
        assert indent_for(tree, 1, table) == 4

    def test_standalone_parent_falls_back_to_parent_line(self, syntax):
        # the argument list opens mid-line, so its line's indentation is used
        tree = syntax("x = [\n    1, foo(\n        a)\n]\n")
        table = self._table(Rule(ParentIs("argument_list"), IndentAction(Anchor.STANDALONE_PARENT)))
        assert tree.position_target(2).parent.type == "argument_list"
        assert indent_for(tree, 2, table) == 4

    def test_standalone_parent_on_its_own_line(self, syntax):
        tree = syntax("x = [\n    [\n        1,\n    ],\n]\n")
        table = self._table(Rule(ParentIs("list"), IndentAction(Anchor.STANDALONE_PARENT, INDENT)))
        assert indent_for(tree, 2, table) == 8
        assert indent_for(tree, 1, table) == 4

    def test_block_table_puts_other_lines_at_column_0(self, syntax):
        tree = syntax("def f():\n    return 1\nx = 2\nclass A:\n    pass\n")
        table = self._table(
            Rule(NodeIs("block"), IndentAction(Anchor.PARENT_BOL, INDENT)),
            Rule(Always(), IndentAction(Anchor.COLUMN_0)),
        )
        for row in range(5):
            target = tree.position_target(row)
            expected = 4 if target.node.type == "block" else 0
            assert indent_for(tree, row, table) == expected, row

    def test_first_sibling(self, syntax):
        source = "value = (a +\n         b)\n"
        tree = syntax(source)
        table = self._table(Rule(Always(), IndentAction(Anchor.FIRST_SIBLING)))
        target = tree.position_target(1)
        assert target.node.type == "identifier"
        assert indent_for(tree, 1, table) == source.index("(a") + 1

    def test_prev_sibling(self, syntax):
        source = "items = [1,\n         2]\n"
        tree = syntax(source)
        table = self._table(Rule(Always(), IndentAction(Anchor.PREV_SIBLING)))
        # previous sibling of '2' is the comma after '1'
        assert indent_for(tree, 1, table) == source.index(",")

    def test_parent_column(self, syntax):
        source = "items = [1,\n2]\n"
        tree = syntax(source)
        table = self._table(Rule(Always(), IndentAction(Anchor.PARENT, IndentOffset(columns=1))))
        assert indent_for(tree, 1, table) == source.index("[") + 1

    def test_grand_parent(self, syntax):
        source = "if x:\n    y = 1\n"
        tree = syntax(source)
        table = self._table(Rule(Always(), IndentAction(Anchor.GRAND_PARENT)))
        # node=block, parent=if_statement, grandparent=module
        assert indent_for(tree, 1, table) == 0

    def test_prev_line(self, syntax):
        source = "a = 1\n      \nb = 2\n"
        tree = syntax(source)
        table = self._table(Rule(Always(), IndentAction(Anchor.PREV_LINE, IndentOffset(columns=3))))
        assert indent_for(tree, 2, table) == 3
        assert indent_for(tree, 0, table) == 3

    def test_negative_result_clamped(self, syntax):
        tree = syntax("x = 1\n")
        table = self._table(Rule(Always(), IndentAction(Anchor.COLUMN_0, IndentOffset(columns=-4))))
        result = compute_indent(tree, 0, table)
        assert result.offset == -4
        assert result.column == 0

    def test_no_rule_keeps_current_indentation(self, syntax):
        tree = syntax("if x:\n      y = 1\n")
        result = compute_indent(tree, 1, self._table(Rule(NodeIs("class_definition"), IndentAction(Anchor.COLUMN_0))))
        assert result.rule_name is None
        assert result.column == 6

    def test_tabs_expand_when_measuring(self, syntax):
        tree = syntax("if x:\n\ty = 1\n\ty = 2\n", tab_width=8)
        table = self._table(Rule(ParentIs("block"), IndentAction(Anchor.PARENT_BOL)))
        assert indent_for(tree, 2, table) == 8


class TestBlockComment:
    """Tests for comment-continuation alignment."""

    SOURCE = "function f() {\n  /*\n   * hello\n   */\n}\n"

    @pytest.fixture
    def table(self):
        return RuleTable(
            "javascript indent",
            [
                Rule(And(NoNode(), ParentIs("comment")), IndentAction(Anchor.PREV_ADAPTIVE_PREFIX)),
                Rule(NodeIs(r"\}"), IndentAction(Anchor.PARENT_BOL)),
                Rule(ParentIs("statement_block"), IndentAction(Anchor.PARENT_BOL, IndentOffset(columns=2))),
                Rule(Always(), IndentAction(Anchor.COLUMN_0)),
            ],
        )

    def test_star_lines_align_under_opener_star(self, syntax, table):
        tree = syntax(self.SOURCE, "javascript")
        assert indent_for(tree, 1, table) == 2
        assert indent_for(tree, 2, table) == 3
        assert indent_for(tree, 3, table) == 3
        assert indent_for(tree, 4, table) == 0

    def test_plain_line_after_line_comment(self, syntax):
        source = "x = 1\n# first\nsecond\n"
        tree = syntax(source)
        table = RuleTable("t", [Rule(Always(), IndentAction(Anchor.PREV_ADAPTIVE_PREFIX))])
        assert indent_for(tree, 2, table) == 2


class TestPythonIndentation:
    """Tests for the built-in Python indent table."""

    @pytest.fixture
    def indent(self, syntax, python_rules):
        def _indent(source: str, row: int) -> int:
            return indent_for(syntax(source), row, python_rules.indent)

        return _indent

    @pytest.mark.parametrize(
        "source,row,expected",
        [
            ("def f():\n    return 1\n", 1, 4),
            ("def f():\n    x = 1\n    return x\n", 2, 4),
            ("if a:\n    b()\nelse:\n    c()\n", 2, 0),
            ("if a:\n    b()\nelse:\n    c()\n", 3, 4),
            ("class A:\n    def f(self):\n        pass\n", 2, 8),
            ("x = [\n    1,\n]\n", 1, 4),
            ("x = [\n    1,\n]\n", 2, 0),
            ("x = [\n    1,\n\n]\n", 2, 4),
            ("x = 1\n\ny = 2\n", 1, 0),
            ("def f(\n    a,\n):\n    pass\n", 1, 4),
            ("def f():\n    # note\n    pass\n", 1, 4),
            ("try:\n    a()\nexcept E:\n    b()\n", 2, 0),
        ],
    )
    def test_scenarios(self, indent, source, row, expected):
        assert indent(source, row) == expected

    def test_empty_file(self, syntax, python_rules):
        result = compute_indent(syntax(""), 0, python_rules.indent)
        assert result.column == 0

    def test_member_chain(self, indent):
        source = "foo = (bar\n    .baz()\n    .qux())\n"
        assert indent(source, 1) == 4
        assert indent(source, 2) == 4

    def test_member_chain_aligns_with_earlier_dot(self, indent):
        source = "foo = (bar\n        .baz()\n    .qux())\n"
        assert indent(source, 2) == 8

    def test_fixture_is_fixed_point(self, syntax, python_rules):
        tree = syntax(LEDGER.read_text())
        assert misindented_lines(tree, python_rules.indent) == []

    def test_reindenting_flat_brackets(self, syntax, python_rules):
        expected = "values = [\n    1,\n    f(2),\n]\n"
        tree = syntax(_strip_indentation(expected))
        results = indent_lines(tree, python_rules.indent)
        for result, line in zip(results, expected.split("\n")):
            if line.strip():
                assert result.column == len(line) - len(line.lstrip()), line

    def test_misindented_lines_reports_offenders(self, syntax, python_rules):
        tree = syntax("def f():\n  return 1\n")
        assert misindented_lines(tree, python_rules.indent) == [(1, 2, 4)]


class TestMalformedTree:
    """Tests for stale trees and positions."""

    def test_fresh_tree_passes_checks(self, syntax):
        tree = syntax("x = [\n    1, foo(\n        a)\n]\n")
        tree.check_fresh()
        tree.check_node(tree.position_target(2).node)

    def test_edited_tree_without_reparse(self, parse, python_rules):
        parsed = parse("x = 1\n")
        parsed.tree.edit(
            start_byte=0,
            old_end_byte=1,
            new_end_byte=2,
            start_point=(0, 0),
            old_end_point=(0, 1),
            new_end_point=(0, 2),
        )
        with pytest.raises(MalformedTreeError, match="not re-parsed"):
            compute_indent(SyntaxTree(parsed.tree, b"xx = 1\n", "python"), 0, python_rules.indent)

    def test_negative_row(self, syntax, python_rules):
        with pytest.raises(MalformedTreeError):
            compute_indent(syntax("x = 1\n"), -1, python_rules.indent)
