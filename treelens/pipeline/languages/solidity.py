"""Solidity language rule tables, loaded from the bundled YAML ruleset."""

from functools import cached_property
from pathlib import Path

from treelens.pipeline.rules.models import (
    FeatureSet,
    IndentAction,
    LanguageRules,
    NameSource,
    RuleTable,
    ThingAction,
)
from treelens.pipeline.rules.parser import parse_yaml_rules_file

from .base import LanguageConfig

RULES_FILE = Path(__file__).with_name("solidity.yaml")


class SolidityConfig(LanguageConfig):
    """Rule tables for Solidity."""

    @cached_property
    def _rules(self) -> LanguageRules:
        return parse_yaml_rules_file(str(RULES_FILE))

    def get_language_name(self) -> str:
        return "solidity"

    def get_file_extensions(self) -> list[str]:
        return [".sol"]

    def get_highlight_rules(self) -> FeatureSet:
        return self._rules.highlight

    def get_indent_rules(self) -> RuleTable[IndentAction]:
        return self._rules.indent

    def get_thing_rules(self) -> RuleTable[ThingAction]:
        return self._rules.things

    def get_name_sources(self) -> dict[str, NameSource]:
        return self._rules.names
