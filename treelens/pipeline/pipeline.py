"""Per-document entry points for the three views.

A DocumentEngine is configured once when a buffer is opened: it owns the
validated rule tables and the settings, and answers highlight, indent and
navigation requests against whatever tree snapshot the host passes in.
"""

import logging
from typing import Iterable, Optional

from tree_sitter import Node

from treelens.config import EngineSettings
from treelens.models.results import HighlightSpan, IndentResult, OutlineEntry, ThingCategory
from treelens.models.tree import ParsedSource, SyntaxTree
from treelens.pipeline import highlight, indent, navigation
from treelens.pipeline.rules import LanguageRules
from treelens.pipeline.rules_factory import build_language_rules

logger = logging.getLogger(__name__)


class DocumentEngine:
    """Rule tables plus settings for one document session."""

    def __init__(self, rules: LanguageRules, settings: Optional[EngineSettings] = None):
        self.rules = rules
        self.settings = settings or EngineSettings()

    @classmethod
    def for_language(cls, language: str, settings: Optional[EngineSettings] = None) -> "DocumentEngine":
        settings = settings or EngineSettings()
        return cls(build_language_rules(settings, language), settings)

    def syntax(self, parsed: ParsedSource) -> SyntaxTree:
        return parsed.syntax(tab_width=self.settings.indent.tab_width)

    @property
    def enabled_features(self) -> list[str]:
        highlight_settings = self.settings.highlight
        return self.rules.highlight.enabled(
            highlight_settings.level,
            highlight_settings.enable,
            highlight_settings.disable,
        )

    def highlight(
        self,
        parsed: ParsedSource,
        byte_range: Optional[tuple[int, int]] = None,
        features: Optional[list[str]] = None,
    ) -> list[HighlightSpan]:
        """Tagged spans for the enabled features, optionally within a byte range."""
        return highlight.project(
            self.syntax(parsed),
            self.rules.highlight,
            features if features is not None else self.enabled_features,
            byte_range,
        )

    def highlight_lines(self, parsed: ParsedSource, start_row: int, end_row: int) -> list[HighlightSpan]:
        """Tagged spans for a row range (inclusive), e.g. the visible viewport."""
        syntax = self.syntax(parsed)
        syntax.check_row(start_row)
        syntax.check_row(end_row)
        byte_range = (syntax.line_start_byte(start_row), syntax.line_end_byte(end_row))
        return highlight.project(syntax, self.rules.highlight, self.enabled_features, byte_range)

    def indent_for(self, parsed: ParsedSource, row: int) -> int:
        return indent.indent_for(self.syntax(parsed), row, self.rules.indent, self.settings.indent)

    def compute_indent(self, parsed: ParsedSource, row: int) -> IndentResult:
        return indent.compute_indent(self.syntax(parsed), row, self.rules.indent, self.settings.indent)

    def misindented_lines(self, parsed: ParsedSource) -> list[tuple[int, int, int]]:
        return indent.misindented_lines(self.syntax(parsed), self.rules.indent, self.settings.indent)

    def classify(self, parsed: ParsedSource, node: Node) -> Optional[ThingCategory]:
        return navigation.classify(self.syntax(parsed), node, self.rules.things)

    def name_of(self, parsed: ParsedSource, node: Node) -> Optional[str]:
        return navigation.name_of(self.syntax(parsed), node, self.rules.things, self.rules.names)

    def outline(
        self,
        parsed: ParsedSource,
        categories: Iterable[ThingCategory] = (ThingCategory.DEFINITION,),
    ) -> dict[ThingCategory, list[OutlineEntry]]:
        return navigation.outline(self.syntax(parsed), self.rules.things, self.rules.names, categories)

    def next_thing(self, parsed: ParsedSource, byte: int, category: ThingCategory) -> Optional[Node]:
        return navigation.next_thing(self.syntax(parsed), byte, category, self.rules.things)

    def prev_thing(self, parsed: ParsedSource, byte: int, category: ThingCategory) -> Optional[Node]:
        return navigation.prev_thing(self.syntax(parsed), byte, category, self.rules.things)

    def enclosing_thing(self, parsed: ParsedSource, byte: int, category: ThingCategory) -> Optional[Node]:
        return navigation.enclosing_thing(self.syntax(parsed), byte, category, self.rules.things)
