"""Tests for the YAML rule parser."""

from pathlib import Path

import pytest

from treelens.errors import RuleParseError
from treelens.models.results import ThingCategory
from treelens.pipeline.rules import (
    NIL,
    Always,
    Anchor,
    AncestorChain,
    And,
    FieldIs,
    IndentOffset,
    LineMatches,
    NodeIs,
    NoNode,
    Not,
    Or,
    OverrideMode,
    ParentIs,
    StructuralQuery,
    TextMatches,
    parse_predicate,
    parse_yaml_rules,
    parse_yaml_rules_file,
)

RULES_FILE = Path(__file__).parent.parent.parent / "fixtures" / "rules.yaml"


class TestParsePredicate:
    """Tests for parse_predicate."""

    def test_string_forms(self):
        assert parse_predicate("always") == Always()
        assert parse_predicate("catch-all") == Always()
        assert parse_predicate("no-node") == NoNode()

    def test_unknown_string_raises(self):
        with pytest.raises(RuleParseError, match="Unknown predicate"):
            parse_predicate("sometimes")

    def test_single_key(self):
        assert parse_predicate({"node": "block"}) == NodeIs("block")
        assert parse_predicate({"parent": "module"}) == ParentIs("module")
        assert parse_predicate({"line": "^#"}) == LineMatches("^#")

    def test_several_keys_are_anded(self):
        predicate = parse_predicate({"node": "comment", "parent": "block"})
        assert predicate == And(NodeIs("comment"), ParentIs("block"))

    def test_chain_with_nil(self):
        predicate = parse_predicate({"chain": [None, "if_statement", "nil"]})
        assert isinstance(predicate, AncestorChain)
        assert predicate.node is None
        assert predicate.grandparent is NIL

    def test_chain_length_checked(self):
        with pytest.raises(RuleParseError, match="'chain' must be a list"):
            parse_predicate({"chain": ["a", "b", "c", "d"]})

    def test_field_forms(self):
        assert parse_predicate({"field": "body"}) == FieldIs("body")
        nested = parse_predicate({"field": {"name": "body", "match": {"node": "block"}}})
        assert nested == FieldIs("body", NodeIs("block"))

    def test_query_requires_capture(self):
        with pytest.raises(RuleParseError, match="missing required 'capture'"):
            parse_predicate({"query": "(block) @b"})
        predicate = parse_predicate({"query": "(block) @b", "capture": "b"})
        assert predicate == StructuralQuery("(block) @b", "b")

    def test_text_with_field(self):
        predicate = parse_predicate({"text": "^test_", "text_field": "name"})
        assert predicate == TextMatches("^test_", "name")

    def test_combinators(self):
        predicate = parse_predicate(
            {"any": [{"node": "a"}, {"all": ["no-node", {"parent": "b"}]}], "not": {"node": "c"}}
        )
        assert predicate == And(
            Or(NodeIs("a"), And(NoNode(), ParentIs("b"))),
            Not(NodeIs("c")),
        )

    def test_unknown_key_raises(self):
        with pytest.raises(RuleParseError, match="Unknown predicate key"):
            parse_predicate({"nod": "block"})

    def test_invalid_regex_is_parse_error(self):
        with pytest.raises(RuleParseError, match="Invalid type pattern"):
            parse_predicate({"node": "(oops"})

    def test_empty_mapping_raises(self):
        with pytest.raises(RuleParseError):
            parse_predicate({})


def _rules(**ruleset):
    return {"rulesets": {"default": {"language": "python", **ruleset}}}


class TestParseYamlRules:
    """Tests for parsing whole rule tables."""

    def test_indent_rules(self):
        rules = parse_yaml_rules(
            _rules(
                indent=[
                    {"match": {"node": "block"}, "anchor": "parent-bol", "offset": "indent"},
                    {"match": "always", "anchor": "column-0"},
                ]
            )
        )
        first, last = rules.indent.rules
        assert first.action.anchor is Anchor.PARENT_BOL
        assert first.action.offset == IndentOffset(units=1)
        assert last.action.offset == IndentOffset()
        assert rules.indent.has_catch_all

    def test_invalid_anchor(self):
        with pytest.raises(RuleParseError, match="Invalid anchor 'nowhere'"):
            parse_yaml_rules(_rules(indent=[{"match": "always", "anchor": "nowhere"}]))

    def test_missing_match(self):
        with pytest.raises(RuleParseError, match="missing required 'match'"):
            parse_yaml_rules(_rules(indent=[{"name": "x", "anchor": "parent-bol"}]))

    def test_thing_rules(self):
        rules = parse_yaml_rules(
            _rules(things=[{"match": {"node": "function_definition"}, "category": "definition"}])
        )
        assert rules.things.rules[0].action.category is ThingCategory.DEFINITION

    def test_invalid_category(self):
        with pytest.raises(RuleParseError, match="Invalid category"):
            parse_yaml_rules(_rules(things=[{"match": "always", "category": "widget"}]))

    def test_highlight_rules(self):
        rules = parse_yaml_rules(
            _rules(
                highlight={
                    "levels": [["comment"], ["docstring"]],
                    "rules": [
                        {"feature": "comment", "query": "(comment) @comment"},
                        {
                            "feature": "docstring",
                            "query": "(string) @docstring",
                            "override": True,
                            "refine": [{"match": {"text": '^"""'}, "tag": "docstring"}, {"match": "always"}],
                        },
                        {"feature": "comment", "query": "(comment) @x", "override": "keep"},
                    ],
                }
            )
        )
        comment, docstring, keep = rules.highlight.rules
        assert rules.highlight.features == ["comment", "docstring"]
        assert comment.override is OverrideMode.APPEND
        assert docstring.override is OverrideMode.OVERRIDE
        assert keep.override is OverrideMode.KEEP
        assert [rule.action for rule in docstring.refine] == ["docstring", None]
        assert not docstring.refine.accumulating

    def test_accumulating_refine(self):
        rules = parse_yaml_rules(
            _rules(
                highlight={
                    "levels": [["names"]],
                    "rules": [
                        {
                            "feature": "names",
                            "query": "(identifier) @id",
                            "accumulate": True,
                            "refine": [{"match": "always", "tag": "variable"}],
                        }
                    ],
                }
            )
        )
        refine = rules.highlight.rules[0].refine
        assert refine.accumulating
        assert refine.name == "names refine"

    def test_names(self):
        rules = parse_yaml_rules(
            _rules(names={"decorated_definition": {"named_child": 1}, "lambda": {"field": "body"}})
        )
        assert rules.names["decorated_definition"].named_child == 1
        assert rules.names["decorated_definition"].field_name is None
        assert rules.names["lambda"].field_name == "body"

    def test_missing_language(self):
        with pytest.raises(RuleParseError, match="missing 'language'"):
            parse_yaml_rules({"rulesets": {"default": {"indent": []}}})

    def test_missing_ruleset(self):
        with pytest.raises(RuleParseError, match="Ruleset 'other' not found"):
            parse_yaml_rules(_rules(), "other")

    def test_circular_extends(self):
        data = {
            "rulesets": {
                "a": {"language": "python", "extends": "b"},
                "b": {"language": "python", "extends": "a"},
            }
        }
        with pytest.raises(RuleParseError, match="Circular dependency"):
            parse_yaml_rules(data, "a")


class TestParseYamlRulesFile:
    """Tests for loading rulesets from a file."""

    def test_extends_puts_own_rules_first(self):
        rules = parse_yaml_rules_file(str(RULES_FILE))
        names = [rule.name for rule in rules.indent]
        assert names == ["Top level", "Bodies", "Statements", "Everything else"]
        assert rules.highlight.features == ["comment", "keyword"]
        assert [rule.name for rule in rules.things] == ["Functions"]

    def test_named_ruleset(self):
        rules = parse_yaml_rules_file(str(RULES_FILE), "no-catch-all")
        assert not rules.indent.has_catch_all

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            parse_yaml_rules_file(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("rulesets: [unclosed")
        with pytest.raises(RuleParseError, match="Invalid YAML"):
            parse_yaml_rules_file(str(path))

    def test_missing_rulesets_key(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("language: python\n")
        with pytest.raises(RuleParseError, match="missing 'rulesets'"):
            parse_yaml_rules_file(str(path))
