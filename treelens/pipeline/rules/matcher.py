"""Pattern matcher: evaluates one predicate against a node or line position."""

from typing import Callable, Optional

from tree_sitter import Node, QueryCursor

from treelens.models.tree import MatchTarget

from .models import (
    NIL,
    Always,
    AncestorChain,
    And,
    ChainElement,
    FieldIs,
    LineMatches,
    NodeIs,
    NoNode,
    Not,
    Or,
    ParentIs,
    Predicate,
    StructuralQuery,
    TextMatches,
)
from .queries import get_compiled_query


def _type_is(node: Optional[Node], predicate: NodeIs | ParentIs) -> bool:
    return node is not None and predicate.type_pattern.matches(node.type)


def _chain_element_matches(node: Optional[Node], element: ChainElement) -> bool:
    if element is None:
        return True
    if element is NIL:
        return node is None
    return node is not None and element.matches(node.type)  # type: ignore[union-attr]


def _match_node_is(predicate: NodeIs, target: MatchTarget) -> bool:
    return _type_is(target.node, predicate)


def _match_parent_is(predicate: ParentIs, target: MatchTarget) -> bool:
    return _type_is(target.parent, predicate)


def _match_ancestor_chain(predicate: AncestorChain, target: MatchTarget) -> bool:
    return (
        _chain_element_matches(target.node, predicate.node)
        and _chain_element_matches(target.parent, predicate.parent)
        and _chain_element_matches(target.grandparent, predicate.grandparent)
    )


def _match_field_is(predicate: FieldIs, target: MatchTarget) -> bool:
    if target.node is None:
        return False
    if target.syntax.field_name(target.node) != predicate.field_name:
        return False
    return matches(predicate.predicate, target)


def _captured_keys(predicate: StructuralQuery, target: MatchTarget) -> set[tuple[int, int, str]]:
    """Run the query once per request and remember which nodes it captured."""
    key = (predicate.query, predicate.capture)
    if key not in target.captures:
        syntax = target.syntax
        query = get_compiled_query(syntax.language, predicate.query)
        cursor = QueryCursor(query)
        captures = cursor.captures(syntax.root)
        target.captures[key] = {
            (node.start_byte, node.end_byte, node.type)
            for node in captures.get(predicate.capture, [])
        }
    return target.captures[key]


def _match_structural_query(predicate: StructuralQuery, target: MatchTarget) -> bool:
    node = target.node
    if node is None:
        return False
    return (node.start_byte, node.end_byte, node.type) in _captured_keys(predicate, target)


def _match_text(predicate: TextMatches, target: MatchTarget) -> bool:
    node = target.node
    if node is None:
        return False
    if predicate.field_name is not None:
        node = node.child_by_field_name(predicate.field_name)
        if node is None:
            return False
    return predicate.regex.search(target.syntax.node_text(node)) is not None


def _match_line(predicate: LineMatches, target: MatchTarget) -> bool:
    if target.row is None or target.bol is None:
        return False
    syntax = target.syntax
    end = syntax.line_end_byte(target.row)
    text = syntax.source[target.bol : end].decode("utf-8", errors="replace")
    return predicate.regex.match(text) is not None


def _match_no_node(predicate: NoNode, target: MatchTarget) -> bool:
    return target.node is None


def _match_always(predicate: Always, target: MatchTarget) -> bool:
    return True


def _match_and(predicate: And, target: MatchTarget) -> bool:
    return all(matches(p, target) for p in predicate.predicates)


def _match_or(predicate: Or, target: MatchTarget) -> bool:
    return any(matches(p, target) for p in predicate.predicates)


def _match_not(predicate: Not, target: MatchTarget) -> bool:
    return not matches(predicate.predicate, target)


_MATCHERS: dict[type, Callable[..., bool]] = {
    NodeIs: _match_node_is,
    ParentIs: _match_parent_is,
    AncestorChain: _match_ancestor_chain,
    FieldIs: _match_field_is,
    StructuralQuery: _match_structural_query,
    TextMatches: _match_text,
    LineMatches: _match_line,
    NoNode: _match_no_node,
    Always: _match_always,
    And: _match_and,
    Or: _match_or,
    Not: _match_not,
}


def matches(predicate: Predicate, target: MatchTarget) -> bool:
    """Evaluate a predicate against a target. Pure; never mutates the tree."""
    try:
        matcher = _MATCHERS[type(predicate)]
    except KeyError:
        raise TypeError(f"Unsupported predicate {predicate!r}") from None
    return matcher(predicate, target)
