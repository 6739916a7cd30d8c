from pathlib import Path
from typing import Callable, Optional

import pytest
from tree_sitter import Node

from treelens.config import EngineSettings, get_settings, set_settings
from treelens.models.tree import ParsedSource, SyntaxTree
from treelens.pipeline.languages import LANGUAGE_CONFIGS
from treelens.pipeline.parse import parse_source
from treelens.pipeline.rules import LanguageRules

fixtures_dir = Path(__file__).parent / "fixtures"


def parse_text(source: str, language: str = "python") -> ParsedSource:
    """Parse a source string for any language."""
    return parse_source(source, language, Path("test_file"))


def find_node_by_type(node: Node, node_type: str) -> Optional[Node]:
    """Find first node of given type in tree (pre-order)."""
    if node.type == node_type:
        return node
    for child in node.children:
        result = find_node_by_type(child, node_type)
        if result:
            return result
    return None


@pytest.fixture
def parse() -> Callable[..., ParsedSource]:
    """Parse source text: parse(source, language='python')."""
    return parse_text


@pytest.fixture
def syntax() -> Callable[..., SyntaxTree]:
    """Parse source text and return its read-only accessor."""

    def _syntax(source: str, language: str = "python", tab_width: int = 8) -> SyntaxTree:
        return parse_text(source, language).syntax(tab_width=tab_width)

    return _syntax


@pytest.fixture
def find() -> Callable[[Node, str], Optional[Node]]:
    return find_node_by_type


@pytest.fixture
def python_rules() -> LanguageRules:
    return LANGUAGE_CONFIGS["python"].get_rules()


@pytest.fixture
def solidity_rules() -> LanguageRules:
    return LANGUAGE_CONFIGS["solidity"].get_rules()


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    """Run every test with default settings, whatever the environment says."""
    for name in ("RULES_RULES_FILE", "HIGHLIGHT_LEVEL", "INDENT_OFFSET", "INDENT_TAB_WIDTH"):
        monkeypatch.delenv(name, raising=False)

    original_settings = get_settings()
    set_settings(EngineSettings())

    yield

    set_settings(original_settings)
