"""Base interface for language-specific rule tables."""

from abc import ABC, abstractmethod

from treelens.pipeline.rules.models import (
    FeatureSet,
    IndentAction,
    LanguageRules,
    NameSource,
    RuleTable,
    ThingAction,
)


class LanguageConfig(ABC):
    """Base class for language-specific rule tables."""

    @abstractmethod
    def get_language_name(self) -> str:
        """Return the tree-sitter grammar name."""
        pass

    @abstractmethod
    def get_highlight_rules(self) -> FeatureSet:
        """Return highlight rules grouped into feature levels."""
        pass

    @abstractmethod
    def get_indent_rules(self) -> RuleTable[IndentAction]:
        """Return the ordered indentation table (ending in a catch-all)."""
        pass

    @abstractmethod
    def get_thing_rules(self) -> RuleTable[ThingAction]:
        """Return the ordered thing classification table."""
        pass

    def get_file_extensions(self) -> list[str]:
        """Return the file suffixes that select this grammar."""
        return []

    def get_name_sources(self) -> dict[str, NameSource]:
        """Return where definition names live, per node type (default: field 'name')."""
        return {}

    def get_rules(self) -> LanguageRules:
        return LanguageRules(
            language=self.get_language_name(),
            highlight=self.get_highlight_rules(),
            indent=self.get_indent_rules(),
            things=self.get_thing_rules(),
            names=self.get_name_sources(),
        )
