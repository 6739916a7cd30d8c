"""Tests for the Python rule tables."""

import pytest

from treelens.models.results import ThingCategory
from treelens.pipeline.languages.python import PythonConfig
from treelens.pipeline.navigation import classify


def test_language_name():
    assert PythonConfig().get_language_name() == "python"


def test_tables_end_in_catch_all(python_rules):
    assert python_rules.indent.has_catch_all
    assert python_rules.language == "python"


def test_every_rule_is_named(python_rules):
    assert all(rule.name for rule in python_rules.indent)
    assert all(rule.name for rule in python_rules.things)
    assert all(rule.name for rule in python_rules.highlight.rules)


def test_levels_cover_every_feature(python_rules):
    declared = set(python_rules.highlight.features)
    assert {rule.feature for rule in python_rules.highlight.rules} <= declared


@pytest.mark.parametrize(
    "source,node_type,expected",
    [
        ("class A:\n    pass\n", "class_definition", ThingCategory.DEFINITION),
        ("for x in y:\n    pass\n", "for_statement", ThingCategory.STATEMENT),
        ("x = f(1)\n", "call", ThingCategory.EXPRESSION),
        ("x = [i for i in y]\n", "list_comprehension", ThingCategory.EXPRESSION),
        ("# hi\n", "comment", ThingCategory.COMMENT),
        ("x = 'hi'\n", "string", ThingCategory.STRING),
        ("x = y\n", "identifier", None),
    ],
)
def test_thing_categories(syntax, find, python_rules, source, node_type, expected):
    tree = syntax(source)
    assert classify(tree, find(tree.root, node_type), python_rules.things) is expected
