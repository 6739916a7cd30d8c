"""Rule resolver: the ordered first-match scan shared by every view."""

import logging
from typing import Iterable, Optional, TypeVar

from treelens.errors import InvalidPredicateError
from treelens.models.tree import MatchTarget

from .matcher import matches
from .models import Rule

logger = logging.getLogger(__name__)

A = TypeVar("A")


def is_accumulating(rules: Iterable[Rule[A]]) -> bool:
    """Plain rule lists are first-match; only RuleTables can accumulate."""
    return bool(getattr(rules, "accumulating", False))


def resolve_rule(rules: Iterable[Rule[A]], target: MatchTarget) -> Optional[Rule[A]]:
    """Return the first rule whose predicate matches the target, if any."""
    for rule in rules:
        if matches(rule.predicate, target):
            return rule
    return None


def resolve(rules: Iterable[Rule[A]], target: MatchTarget) -> Optional[A]:
    """Return the action of the first matching rule, or None when nothing matches.

    Tables that end in a catch-all never return None from here (unless the
    catch-all's own action is None).

    Raises:
        InvalidPredicateError: If the table is accumulating; use resolve_all
    """
    if is_accumulating(rules):
        raise InvalidPredicateError(
            f"Table '{getattr(rules, 'name', '')}' is accumulating; resolve_all returns every match"
        )
    rule = resolve_rule(rules, target)
    if rule is None:
        logger.debug("No rule matched %s", _describe(target))
        return None
    return rule.action


def resolve_all(rules: Iterable[Rule[A]], target: MatchTarget) -> list[A]:
    """Return the matching actions in table order.

    Accumulating tables yield every match; any other table yields at most
    its first match, so callers can use this for both kinds.
    """
    if not is_accumulating(rules):
        rule = resolve_rule(rules, target)
        return [] if rule is None else [rule.action]
    return [rule.action for rule in rules if matches(rule.predicate, target)]


def _describe(target: MatchTarget) -> str:
    node = target.node.type if target.node is not None else None
    parent = target.parent.type if target.parent is not None else None
    return f"node={node} parent={parent} row={target.row}"
