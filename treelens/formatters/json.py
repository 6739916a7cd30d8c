"""JSON formatter for treelens results."""

import json
from pathlib import Path
from typing import Any

from treelens.models.results import HighlightSpan, IndentResult, OutlineEntry, ThingCategory


def _dump(data: dict[str, Any], pretty: bool) -> str:
    if pretty:
        return json.dumps(data, indent=2)
    return json.dumps(data)


def _span_to_dict(span: HighlightSpan) -> dict[str, Any]:
    """Convert a HighlightSpan to a dictionary."""
    return {
        "start_byte": span.start_byte,
        "end_byte": span.end_byte,
        "tag": span.tag,
        "feature": span.feature,
    }


def _entry_to_dict(entry: OutlineEntry) -> dict[str, Any]:
    """Convert an OutlineEntry to a dictionary."""
    return {
        "name": entry.name,
        "node_type": entry.node_type,
        "start_line": entry.start_line,
        "end_line": entry.end_line,
        "start_byte": entry.start_byte,
        "end_byte": entry.end_byte,
    }


def _indent_to_dict(result: IndentResult, current: int | None) -> dict[str, Any]:
    data: dict[str, Any] = {
        "line": result.row + 1,
        "column": result.column,
        "anchor_column": result.anchor_column,
        "offset": result.offset,
        "rule": result.rule_name,
    }
    if current is not None:
        data["current"] = current
    return data


def format_highlights(
    path: Path,
    language: str,
    features: list[str],
    spans: list[HighlightSpan],
    *,
    pretty: bool = True,
) -> str:
    """Format a highlight overlay as JSON.

    Args:
        path: File the overlay was computed for
        language: Grammar name
        features: Features that were enabled, in application order
        spans: Overlay spans in start order
        pretty: If True, format with indentation for readability

    Returns:
        JSON-formatted string
    """
    data = {
        "file_path": str(path),
        "language": language,
        "features": features,
        "total_spans": len(spans),
        "spans": [_span_to_dict(span) for span in spans],
    }
    return _dump(data, pretty)


def format_outline(
    path: Path,
    language: str,
    grouped: dict[ThingCategory, list[OutlineEntry]],
    *,
    pretty: bool = True,
) -> str:
    """Format an outline (classified nodes grouped by category) as JSON."""
    data = {
        "file_path": str(path),
        "language": language,
        "categories": {
            category.value: [_entry_to_dict(entry) for entry in entries]
            for category, entries in grouped.items()
        },
    }
    return _dump(data, pretty)


def format_indent(
    path: Path,
    language: str,
    results: list[IndentResult],
    current: dict[int, int] | None = None,
    *,
    pretty: bool = True,
) -> str:
    """Format per-line indentation as JSON, with current columns when given."""
    current = current or {}
    data = {
        "file_path": str(path),
        "language": language,
        "lines": [_indent_to_dict(result, current.get(result.row)) for result in results],
    }
    return _dump(data, pretty)
