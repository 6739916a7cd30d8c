"""Indentation calculator: resolve a line to an anchor column plus an offset."""

import logging
import re
from typing import Callable, Optional

from tree_sitter import Node

from treelens.config import IndentSettings
from treelens.models.results import IndentResult
from treelens.models.tree import MatchTarget, SyntaxTree
from treelens.pipeline.rules.models import Anchor, IndentAction, RuleTable
from treelens.pipeline.rules.resolver import resolve_rule

logger = logging.getLogger(__name__)

# Comment-continuation prefix: leading blanks, a marker, blanks after it
_ADAPTIVE_PREFIX = re.compile(r"^([ \t]*)(/\*+|\*+|//+|#+|--+)?([ \t]*)")
_CHAIN_OPERATOR = re.compile(r"\.|\?\.|->|::")

AnchorFunc = Callable[[MatchTarget, IndentAction, int], int]


def _column(syntax: SyntaxTree, node: Node) -> int:
    return syntax.column_of(node.start_byte)


def _previous_nonblank_row(syntax: SyntaxTree, row: int) -> Optional[int]:
    for candidate in range(row - 1, -1, -1):
        if not syntax.is_blank_line(candidate):
            return candidate
    return None


def _anchor_column_0(target: MatchTarget, action: IndentAction, indent: int) -> int:
    return 0


def _anchor_parent_bol(target: MatchTarget, action: IndentAction, indent: int) -> int:
    if target.parent is None:
        return 0
    return target.syntax.bol_column(target.parent)


def _anchor_standalone_parent(target: MatchTarget, action: IndentAction, indent: int) -> int:
    """Column of the parent when it begins its own line, else parent-bol."""
    if target.parent is not None and target.syntax.starts_own_line(target.parent):
        return _column(target.syntax, target.parent)
    return _anchor_parent_bol(target, action, indent)


def _anchor_grand_parent(target: MatchTarget, action: IndentAction, indent: int) -> int:
    grandparent = target.grandparent
    if grandparent is None:
        return 0
    return _column(target.syntax, grandparent)


def _anchor_parent(target: MatchTarget, action: IndentAction, indent: int) -> int:
    if target.parent is None:
        return 0
    return _column(target.syntax, target.parent)


def _anchor_first_sibling(target: MatchTarget, action: IndentAction, indent: int) -> int:
    if target.parent is None or target.parent.child_count == 0:
        return _anchor_parent_bol(target, action, indent)
    return _column(target.syntax, target.parent.children[0])


def _anchor_prev_sibling(target: MatchTarget, action: IndentAction, indent: int) -> int:
    sibling: Optional[Node] = None
    if target.node is not None:
        sibling = target.node.prev_sibling
    elif target.parent is not None and target.bol is not None:
        for child in target.parent.children:
            if child.end_byte <= target.bol:
                sibling = child
    if sibling is None:
        return _anchor_parent_bol(target, action, indent)
    return _column(target.syntax, sibling)


def _anchor_prev_line(target: MatchTarget, action: IndentAction, indent: int) -> int:
    previous = _previous_nonblank_row(target.syntax, target.row or 0)
    if previous is None:
        return 0
    return target.syntax.current_indentation(previous)


def _anchor_prev_adaptive_prefix(target: MatchTarget, action: IndentAction, indent: int) -> int:
    """Align with the comment-continuation marker of the previous line.

    A line that starts with its own marker lines up with the previous
    marker (the star of a '/*' opener); a plain line starts after it.
    """
    syntax = target.syntax
    previous = _previous_nonblank_row(syntax, target.row or 0)
    if previous is None:
        return _anchor_parent_bol(target, action, indent)

    prefix = _ADAPTIVE_PREFIX.match(syntax.line_text(previous))
    if prefix is None:
        return _anchor_parent_bol(target, action, indent)
    leading = len(prefix.group(1).expandtabs(syntax.tab_width))
    marker = prefix.group(2)
    if not marker:
        return leading

    current = _ADAPTIVE_PREFIX.match(syntax.line_text(target.row or 0))
    current_marker = current.group(2) if current else None
    if current_marker:
        if marker.startswith("/*") and current_marker.startswith("*"):
            return leading + 1
        return leading
    return leading + len(marker) + len(prefix.group(3))


def _flatten_chain(top: Node, chain: frozenset[str]) -> list[Node]:
    """Links of a left-nested chain, outermost first."""
    links = []
    current: Optional[Node] = top
    while current is not None and current.type in chain:
        links.append(current)
        current = current.children[0] if current.child_count else None
    return links


def _anchor_member_chain(target: MatchTarget, action: IndentAction, indent: int) -> int:
    """Align a dotted continuation line with the chain's earlier dotted lines.

    Chains parse left-nested (the last call is the outermost node), so the
    whole chain is flattened before looking for an earlier link whose
    operator begins its own line. Without one, the line is indented one
    unit past the line the chain starts on.
    """
    syntax = target.syntax
    chain = frozenset(action.chain)
    link = target.node if target.node is not None else target.parent
    while link is not None and link.type not in chain:
        link = link.parent
    if link is None:
        return _anchor_parent_bol(target, action, indent)

    top = link
    while top.parent is not None and top.parent.type in chain:
        top = top.parent

    bol = target.bol if target.bol is not None else 0
    operators = [
        child
        for node in _flatten_chain(top, chain)
        for child in node.children
        if not child.is_named and _CHAIN_OPERATOR.fullmatch(child.type)
    ]
    aligned = [op for op in operators if op.start_byte < bol and syntax.starts_own_line(op)]
    if aligned:
        first = min(aligned, key=lambda op: op.start_byte)
        return _column(syntax, first)
    return syntax.bol_column(top) + indent


_ANCHORS: dict[Anchor, AnchorFunc] = {
    Anchor.COLUMN_0: _anchor_column_0,
    Anchor.PARENT_BOL: _anchor_parent_bol,
    Anchor.STANDALONE_PARENT: _anchor_standalone_parent,
    Anchor.GRAND_PARENT: _anchor_grand_parent,
    Anchor.PREV_ADAPTIVE_PREFIX: _anchor_prev_adaptive_prefix,
    Anchor.PARENT: _anchor_parent,
    Anchor.FIRST_SIBLING: _anchor_first_sibling,
    Anchor.PREV_SIBLING: _anchor_prev_sibling,
    Anchor.PREV_LINE: _anchor_prev_line,
    Anchor.MEMBER_CHAIN: _anchor_member_chain,
}


def compute_indent(
    syntax: SyntaxTree,
    row: int,
    table: RuleTable[IndentAction],
    settings: Optional[IndentSettings] = None,
) -> IndentResult:
    """Resolve the indentation rule for a line.

    When no rule matches, the line keeps its current indentation.

    Raises:
        MalformedTreeError: If the tree is stale or the row is outside the buffer
    """
    settings = settings or IndentSettings()
    syntax.check_fresh()
    target = syntax.position_target(row)

    rule = resolve_rule(table, target)
    if rule is None:
        logger.debug("No indent rule for line %d in table '%s'", row, table.name)
        return IndentResult(row=row, anchor_column=syntax.current_indentation(row), offset=0)

    action = rule.action
    anchor = _ANCHORS[action.anchor](target, action, settings.offset)
    offset = action.offset.resolve(settings.offset)
    logger.debug(
        "Line %d: rule '%s' anchor=%s(%d) offset=%d", row, rule.name, action.anchor.value, anchor, offset
    )
    return IndentResult(row=row, anchor_column=anchor, offset=offset, rule_name=rule.name or None)


def indent_for(
    syntax: SyntaxTree,
    row: int,
    table: RuleTable[IndentAction],
    settings: Optional[IndentSettings] = None,
) -> int:
    """Absolute column the line should be indented to."""
    return compute_indent(syntax, row, table, settings).column


def indent_lines(
    syntax: SyntaxTree,
    table: RuleTable[IndentAction],
    settings: Optional[IndentSettings] = None,
    rows: Optional[range] = None,
) -> list[IndentResult]:
    """Indentation for a range of lines (all lines by default)."""
    rows = rows if rows is not None else range(syntax.line_count)
    return [compute_indent(syntax, row, table, settings) for row in rows]


def misindented_lines(
    syntax: SyntaxTree,
    table: RuleTable[IndentAction],
    settings: Optional[IndentSettings] = None,
) -> list[tuple[int, int, int]]:
    """(row, current column, expected column) for every non-blank line that is off."""
    problems = []
    for result in indent_lines(syntax, table, settings):
        if syntax.is_blank_line(result.row):
            continue
        current = syntax.current_indentation(result.row)
        if current != result.column:
            problems.append((result.row, current, result.column))
    return problems
