"""Load-time validation of rule tables against a grammar."""

import logging
from typing import Iterable

from tree_sitter import Language

from treelens.errors import InvalidPredicateError, UnresolvedPatternError

from .models import (
    AncestorChain,
    And,
    Anchor,
    FieldIs,
    IndentAction,
    LanguageRules,
    NodeIs,
    Not,
    Or,
    ParentIs,
    Predicate,
    Rule,
    RuleTable,
    StructuralQuery,
    TextMatches,
    TypePattern,
)
from .queries import capture_names, get_compiled_query, load_language

logger = logging.getLogger(__name__)


def _check_type(pattern: TypePattern, language: Language, language_name: str) -> None:
    """Literal type names must exist in the grammar; regexes are families and are not checked."""
    if not pattern.is_literal:
        return
    if (
        language.id_for_node_kind(pattern.pattern, True) is None
        and language.id_for_node_kind(pattern.pattern, False) is None
    ):
        raise InvalidPredicateError(
            f"Node type '{pattern.pattern}' does not exist in the {language_name} grammar"
        )


def _check_field(field_name: str, language: Language, language_name: str) -> None:
    if language.field_id_for_name(field_name) is None:
        raise InvalidPredicateError(f"Field '{field_name}' does not exist in the {language_name} grammar")


def validate_predicate(predicate: Predicate, language: Language, language_name: str) -> None:
    """Check a predicate against the grammar before it is ever evaluated.

    Raises:
        InvalidPredicateError: If the predicate references unknown node types,
            unknown fields, or a query that does not compile
    """
    if isinstance(predicate, (NodeIs, ParentIs)):
        _check_type(predicate.type_pattern, language, language_name)
    elif isinstance(predicate, AncestorChain):
        for element in (predicate.node, predicate.parent, predicate.grandparent):
            if isinstance(element, TypePattern):
                _check_type(element, language, language_name)
    elif isinstance(predicate, FieldIs):
        _check_field(predicate.field_name, language, language_name)
        validate_predicate(predicate.predicate, language, language_name)
    elif isinstance(predicate, TextMatches) and predicate.field_name is not None:
        _check_field(predicate.field_name, language, language_name)
    elif isinstance(predicate, StructuralQuery):
        query = get_compiled_query(language_name, predicate.query)
        if predicate.capture not in capture_names(query):
            raise InvalidPredicateError(
                f"Capture '@{predicate.capture}' is not defined by query {predicate.query!r}"
            )
    elif isinstance(predicate, (And, Or)):
        for inner in predicate.predicates:
            validate_predicate(inner, language, language_name)
    elif isinstance(predicate, Not):
        validate_predicate(predicate.predicate, language, language_name)


def _validate_rules(rules: Iterable[Rule], language: Language, language_name: str) -> None:
    for rule in rules:
        try:
            validate_predicate(rule.predicate, language, language_name)
        except InvalidPredicateError as e:
            label = f" '{rule.name}'" if rule.name else ""
            raise InvalidPredicateError(f"Rule{label}: {e}") from e


def _validate_indent_actions(table: RuleTable[IndentAction], language: Language, language_name: str) -> None:
    for rule in table:
        action = rule.action
        if action.anchor is Anchor.MEMBER_CHAIN and not action.chain:
            raise InvalidPredicateError(
                f"Rule '{rule.name}' uses the member-chain anchor without chain node types"
            )
        for node_type in action.chain:
            _check_type(TypePattern(node_type), language, language_name)


def _check_first_match(table: RuleTable) -> None:
    if table.accumulating:
        raise InvalidPredicateError(f"Table '{table.name}' must be first-match, not accumulating")


def check_catch_all(table: RuleTable, strict: bool) -> None:
    """Report a table that can fall through without a match.

    Raises:
        UnresolvedPatternError: In strict mode, if the table lacks a catch-all
    """
    if table.has_catch_all:
        return
    message = f"Table '{table.name}' does not end in a catch-all rule"
    if strict:
        raise UnresolvedPatternError(message)
    logger.warning("%s; unmatched requests fall back to neutral defaults", message)


def validate_language_rules(rules: LanguageRules, strict: bool = False) -> None:
    """Validate every table of a language before first use."""
    language = load_language(rules.language)
    name = rules.language

    for highlight_rule in rules.highlight.rules:
        if highlight_rule.feature not in rules.highlight.features:
            raise InvalidPredicateError(
                f"Highlight rule '{highlight_rule.name}' belongs to undeclared feature "
                f"'{highlight_rule.feature}'"
            )
        get_compiled_query(name, highlight_rule.query)
        _validate_rules(highlight_rule.refine, language, name)

    _check_first_match(rules.indent)
    _validate_rules(rules.indent, language, name)
    _validate_indent_actions(rules.indent, language, name)
    check_catch_all(rules.indent, strict)

    _check_first_match(rules.things)
    _validate_rules(rules.things, language, name)
    logger.debug(
        "Validated %s tables: %d highlight, %d indent, %d thing rule(s)",
        name,
        len(rules.highlight.rules),
        len(rules.indent),
        len(rules.things),
    )
