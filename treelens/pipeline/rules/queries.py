"""Compiled tree-sitter queries, shared by every table of a language."""

import logging

from tree_sitter import Language, Query, QueryError
from tree_sitter_language_pack import get_language

from treelens.errors import InvalidPredicateError

logger = logging.getLogger(__name__)

# (language, query_str) -> Query
_compiled_queries: dict[tuple[str, str], Query] = {}


def load_language(language: str) -> Language:
    """Get the tree-sitter language for a grammar name."""
    try:
        return get_language(language)  # type: ignore[arg-type]
    except Exception as e:
        raise InvalidPredicateError(f"Unknown grammar '{language}': {e}") from e


def get_compiled_query(language: str, query_str: str) -> Query:
    """Get or compile a query for a language.

    Raises:
        InvalidPredicateError: If the query does not compile against the grammar
    """
    key = (language, query_str)
    if key not in _compiled_queries:
        lang = load_language(language)
        try:
            _compiled_queries[key] = Query(lang, query_str)
        except QueryError as e:
            raise InvalidPredicateError(f"Query does not compile for {language}: {e}\n{query_str}") from e
        logger.debug("Compiled %s query: %s", language, query_str.strip()[:60])
    return _compiled_queries[key]


def capture_names(query: Query) -> list[str]:
    return [query.capture_name(index) for index in range(query.capture_count)]
