"""Navigation classifier: thing categories, definition names, outline and motion."""

import logging
from typing import Iterable, Optional

from tree_sitter import Node

from treelens.models.results import OutlineEntry, ThingCategory
from treelens.models.tree import MatchTarget, SyntaxTree
from treelens.pipeline.rules.models import NameSource, RuleTable, ThingAction
from treelens.pipeline.rules.resolver import resolve

logger = logging.getLogger(__name__)

_TEXT_CATEGORIES = {ThingCategory.TEXT, ThingCategory.COMMENT, ThingCategory.STRING}

_DEFAULT_NAME_SOURCE = NameSource()


def classify(
    syntax: SyntaxTree,
    node: Node,
    table: RuleTable[ThingAction],
    query_cache: Optional[dict] = None,
) -> Optional[ThingCategory]:
    """Category of the first matching rule, or None for unclassified nodes.

    Raises:
        MalformedTreeError: If the node reference is stale
    """
    syntax.check_node(node)
    action = resolve(table, MatchTarget.for_node(syntax, node, query_cache))
    return action.category if action is not None else None


def is_a(
    syntax: SyntaxTree,
    node: Node,
    category: ThingCategory,
    table: RuleTable[ThingAction],
    query_cache: Optional[dict] = None,
) -> bool:
    """True if the node belongs to the category; 'text' covers comments and strings."""
    found = classify(syntax, node, table, query_cache)
    if found is None:
        return False
    if category is ThingCategory.TEXT:
        return found in _TEXT_CATEGORIES
    return found is category


def _name_node(node: Node, source: NameSource) -> Optional[Node]:
    if source.field_name is not None:
        return node.child_by_field_name(source.field_name)
    if source.child is not None and source.child < node.child_count:
        return node.children[source.child]
    if source.named_child is not None and source.named_child < node.named_child_count:
        return node.named_children[source.named_child]
    return None


def name_of(
    syntax: SyntaxTree,
    node: Node,
    table: RuleTable[ThingAction],
    names: dict[str, NameSource],
) -> Optional[str]:
    """Human-readable name of a definition node; None for anything else."""
    if classify(syntax, node, table) is not ThingCategory.DEFINITION:
        return None
    name_node = _name_node(node, names.get(node.type, _DEFAULT_NAME_SOURCE))
    if name_node is None:
        logger.debug("Definition '%s' at byte %d has no name", node.type, node.start_byte)
        return None
    return syntax.node_text(name_node)


def outline(
    syntax: SyntaxTree,
    table: RuleTable[ThingAction],
    names: dict[str, NameSource],
    categories: Iterable[ThingCategory] = (ThingCategory.DEFINITION,),
) -> dict[ThingCategory, list[OutlineEntry]]:
    """Classified nodes grouped by category, each group in traversal order."""
    syntax.check_fresh()
    wanted = set(categories)
    grouped: dict[ThingCategory, list[OutlineEntry]] = {}
    query_cache: dict = {}

    for node in syntax.walk():
        category = classify(syntax, node, table, query_cache)
        if category is None or category not in wanted:
            continue
        name = None
        if category is ThingCategory.DEFINITION:
            name_node = _name_node(node, names.get(node.type, _DEFAULT_NAME_SOURCE))
            name = syntax.node_text(name_node) if name_node is not None else None
        grouped.setdefault(category, []).append(
            OutlineEntry(
                category=category,
                name=name,
                node_type=node.type,
                start_byte=node.start_byte,
                end_byte=node.end_byte,
                start_line=node.start_point[0] + 1,
                end_line=node.end_point[0] + 1,
            )
        )

    logger.debug(
        "Outline: %s",
        ", ".join(f"{len(entries)} {category.value}" for category, entries in grouped.items()),
    )
    return grouped


def next_thing(
    syntax: SyntaxTree,
    byte: int,
    category: ThingCategory,
    table: RuleTable[ThingAction],
) -> Optional[Node]:
    """First node of the category starting after the position."""
    syntax.check_byte(byte)
    query_cache: dict = {}
    for node in syntax.walk():
        if node.start_byte > byte and is_a(syntax, node, category, table, query_cache):
            return node
    return None


def prev_thing(
    syntax: SyntaxTree,
    byte: int,
    category: ThingCategory,
    table: RuleTable[ThingAction],
) -> Optional[Node]:
    """Node of the category with the closest start before the position (outermost on ties)."""
    syntax.check_byte(byte)
    query_cache: dict = {}
    found: Optional[Node] = None
    for node in syntax.walk():
        if node.start_byte >= byte:
            continue
        if found is not None and node.start_byte <= found.start_byte:
            continue
        if is_a(syntax, node, category, table, query_cache):
            found = node
    return found


def enclosing_thing(
    syntax: SyntaxTree,
    byte: int,
    category: ThingCategory,
    table: RuleTable[ThingAction],
) -> Optional[Node]:
    """Smallest node of the category that contains the position (for expand-selection)."""
    syntax.check_byte(byte)
    node = syntax.smallest_enclosing(byte)
    query_cache: dict = {}
    while node is not None:
        if is_a(syntax, node, category, table, query_cache):
            return node
        node = node.parent
    return None
