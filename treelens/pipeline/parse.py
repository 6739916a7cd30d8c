"""Produce tree snapshots for buffers.

The engine only reads trees; this module is the thin bridge to the parsers
bundled with tree-sitter-language-pack so the CLI and tests have snapshots to
hand to it.
"""

import logging
from pathlib import Path

from tree_sitter_language_pack import get_parser

from treelens.models.tree import ParsedSource
from treelens.pipeline.languages import LANGUAGE_CONFIGS

logger = logging.getLogger(__name__)


def detect_language(file_path: Path) -> str | None:
    """Pick the grammar whose configured suffixes include the file's suffix."""
    suffix = file_path.suffix.lower()
    for name, config in LANGUAGE_CONFIGS.items():
        if suffix in config.get_file_extensions():
            return name
    return None


def parse_source(source: str | bytes, language: str, path: Path | None = None) -> ParsedSource:
    """Parse a buffer into a snapshot.

    Raises:
        RuntimeError: If no parser is available for the language
    """
    if isinstance(source, str):
        source = source.encode("utf-8")
    path = path or Path(f"<{language} buffer>")

    try:
        parser = get_parser(language)  # type: ignore[arg-type]
    except Exception as e:
        raise RuntimeError(f"Failed to get parser for {language}: {e}") from e

    tree = parser.parse(source)
    if tree.root_node.has_error:
        # Error nodes are ordinary nodes to the rule tables; the views still work.
        logger.warning("Parse tree contains errors for %s", path)

    return ParsedSource(path=path, language=language, tree=tree, source=source)


def parse_file(file_path: Path, language: str | None = None) -> ParsedSource:
    """Read and parse a file, detecting the grammar from its suffix when not given.

    Raises:
        ValueError: If the language cannot be detected or the file cannot be read
        RuntimeError: If no parser is available for the language
    """
    language = language or detect_language(file_path)
    if not language:
        raise ValueError(f"Cannot detect language for file: {file_path}")

    try:
        source = file_path.read_bytes()
    except OSError as e:
        raise ValueError(f"Failed to read file {file_path}: {e}") from e

    logger.debug("Parsing %s as %s (%d bytes)", file_path, language, len(source))
    return parse_source(source, language, file_path)
