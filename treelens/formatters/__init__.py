"""Output formatters for treelens results."""

from treelens.formatters.json import format_highlights, format_indent, format_outline

__all__ = ["format_highlights", "format_indent", "format_outline"]
