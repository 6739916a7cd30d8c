"""Declarative tree-sitter rule engine for highlighting, indentation and navigation."""
