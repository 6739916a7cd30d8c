"""Highlight projection: run each enabled feature's queries and layer the tags."""

import logging
from typing import Optional

from tree_sitter import Node, QueryCursor

from treelens.models.results import HighlightSpan
from treelens.models.tree import MatchTarget, SyntaxTree
from treelens.pipeline.rules.models import FeatureSet, HighlightRule, OverrideMode
from treelens.pipeline.rules.queries import get_compiled_query
from treelens.pipeline.rules.resolver import resolve_all

logger = logging.getLogger(__name__)


class HighlightOverlay:
    """Layered tags in the order they were added.

    Appended tags coexist with earlier ones; overriding tags cut earlier tags
    out from under their span; keep-mode tags only fill uncovered gaps.
    """

    def __init__(self) -> None:
        self._spans: list[HighlightSpan] = []

    def add(self, start: int, end: int, tag: str, feature: str, mode: OverrideMode) -> None:
        if end <= start:
            return
        if mode is OverrideMode.OVERRIDE:
            self._cut(start, end)
            self._spans.append(HighlightSpan(start_byte=start, end_byte=end, tag=tag, feature=feature))
        elif mode is OverrideMode.KEEP:
            for gap_start, gap_end in self._gaps(start, end):
                self._spans.append(
                    HighlightSpan(start_byte=gap_start, end_byte=gap_end, tag=tag, feature=feature)
                )
        else:
            self._spans.append(HighlightSpan(start_byte=start, end_byte=end, tag=tag, feature=feature))

    def _cut(self, start: int, end: int) -> None:
        kept: list[HighlightSpan] = []
        for span in self._spans:
            if span.end_byte <= start or span.start_byte >= end:
                kept.append(span)
                continue
            if span.start_byte < start:
                kept.append(span.model_copy(update={"end_byte": start}))
            if span.end_byte > end:
                kept.append(span.model_copy(update={"start_byte": end}))
        self._spans = kept

    def _gaps(self, start: int, end: int) -> list[tuple[int, int]]:
        covered = sorted(
            (max(span.start_byte, start), min(span.end_byte, end))
            for span in self._spans
            if span.start_byte < end and span.end_byte > start
        )
        gaps = []
        position = start
        for cover_start, cover_end in covered:
            if cover_start > position:
                gaps.append((position, cover_start))
            position = max(position, cover_end)
        if position < end:
            gaps.append((position, end))
        return gaps

    def spans(self) -> list[HighlightSpan]:
        """Spans sorted by position; equal spans keep their layering order."""
        order = {id(span): index for index, span in enumerate(self._spans)}
        return sorted(self._spans, key=lambda s: (s.start_byte, s.end_byte, order[id(s)]))


def _captures_in_order(
    syntax: SyntaxTree, rule: HighlightRule, byte_range: Optional[tuple[int, int]]
) -> list[tuple[Node, str]]:
    """Captures of one rule's query in document order."""
    query = get_compiled_query(syntax.language, rule.query)
    cursor = QueryCursor(query)
    if byte_range is not None:
        cursor.set_byte_range(byte_range[0], byte_range[1])
    captured: list[tuple[Node, str]] = []
    for name, nodes in cursor.captures(syntax.root).items():
        if name.startswith("_"):
            continue
        captured.extend((node, name) for node in nodes)
    captured.sort(key=lambda item: (item[0].start_byte, -item[0].end_byte))
    return captured


def _tags_for(
    syntax: SyntaxTree,
    rule: HighlightRule,
    node: Node,
    capture: str,
    query_cache: dict,
) -> list[str]:
    """Tags for one capture; refine rules may rename, drop or (accumulating) add tags."""
    if not rule.refine:
        return [capture]
    target = MatchTarget.for_node(syntax, node, query_cache)
    return [tag for tag in resolve_all(rule.refine, target) if tag]


def _clip(start: int, end: int, byte_range: Optional[tuple[int, int]]) -> tuple[int, int]:
    if byte_range is None:
        return start, end
    return max(start, byte_range[0]), min(end, byte_range[1])


def project(
    syntax: SyntaxTree,
    feature_set: FeatureSet,
    features: list[str],
    byte_range: Optional[tuple[int, int]] = None,
) -> list[HighlightSpan]:
    """Project tags for the enabled features over the tree.

    Args:
        syntax: Tree snapshot to highlight
        feature_set: Highlight rules grouped by feature
        features: Enabled features; layering follows the feature set's order
        byte_range: Optional (start, end) bound for viewport highlighting

    Returns:
        Tagged spans sorted by position
    """
    syntax.check_fresh()
    enabled = set(features)
    overlay = HighlightOverlay()
    query_cache: dict = {}

    for feature in feature_set.features:
        if feature not in enabled:
            continue
        for rule in feature_set.rules_for(feature):
            for node, capture in _captures_in_order(syntax, rule, byte_range):
                start, end = _clip(node.start_byte, node.end_byte, byte_range)
                for tag in _tags_for(syntax, rule, node, capture, query_cache):
                    overlay.add(start, end, tag, feature, rule.override)

    spans = overlay.spans()
    logger.debug("Projected %d span(s) for feature(s) %s", len(spans), ", ".join(features))
    return spans
