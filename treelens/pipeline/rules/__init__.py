"""Rules system: typed predicates, first-match resolution and table loading."""

from .matcher import matches
from .models import (
    NIL,
    Always,
    Anchor,
    AncestorChain,
    And,
    FeatureSet,
    FieldIs,
    HighlightRule,
    IndentAction,
    IndentOffset,
    LanguageRules,
    LineMatches,
    NameSource,
    NodeIs,
    NoNode,
    Not,
    Or,
    OverrideMode,
    ParentIs,
    Predicate,
    Rule,
    RuleTable,
    StructuralQuery,
    TextMatches,
    ThingAction,
    TypePattern,
)
from .parser import parse_predicate, parse_yaml_rules, parse_yaml_rules_file
from .resolver import resolve, resolve_all, resolve_rule
from .validation import check_catch_all, validate_language_rules, validate_predicate

__all__ = [
    "NIL",
    "Always",
    "Anchor",
    "AncestorChain",
    "And",
    "FeatureSet",
    "FieldIs",
    "HighlightRule",
    "IndentAction",
    "IndentOffset",
    "LanguageRules",
    "LineMatches",
    "NameSource",
    "NoNode",
    "NodeIs",
    "Not",
    "Or",
    "OverrideMode",
    "ParentIs",
    "Predicate",
    "Rule",
    "RuleTable",
    "StructuralQuery",
    "TextMatches",
    "ThingAction",
    "TypePattern",
    "check_catch_all",
    "matches",
    "parse_predicate",
    "parse_yaml_rules",
    "parse_yaml_rules_file",
    "resolve",
    "resolve_all",
    "resolve_rule",
    "validate_language_rules",
    "validate_predicate",
]
