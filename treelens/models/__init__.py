"""Data models for treelens."""

from .results import HighlightSpan, IndentResult, OutlineEntry, ThingCategory
from .tree import MatchTarget, ParsedSource, SyntaxTree

__all__ = [
    "HighlightSpan",
    "IndentResult",
    "MatchTarget",
    "OutlineEntry",
    "ParsedSource",
    "SyntaxTree",
    "ThingCategory",
]
