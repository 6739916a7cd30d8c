"""Exceptions raised by the rule engine."""


class TreelensError(Exception):
    """Base class for all engine errors."""


class RuleParseError(TreelensError):
    """Raised when a rules file cannot be parsed."""

    pass


class InvalidPredicateError(TreelensError):
    """Raised when a predicate cannot apply to the grammar it is loaded for.

    Detected while a table is loaded or validated, before any traversal.
    """

    pass


class UnresolvedPatternError(TreelensError):
    """Raised when a table that must be total lacks a catch-all rule."""

    pass


class MalformedTreeError(TreelensError):
    """Raised when a node or position is inconsistent with the tree.

    Typically a node reference kept across an edit that was never re-parsed.
    """

    pass
