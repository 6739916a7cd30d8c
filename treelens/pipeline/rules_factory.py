"""Factory for building validated rule tables from settings."""

import logging
from pathlib import Path

from treelens.config import EngineSettings
from treelens.errors import RuleParseError
from treelens.pipeline.languages import LANGUAGE_CONFIGS
from treelens.pipeline.rules import LanguageRules, parse_yaml_rules_file, validate_language_rules

logger = logging.getLogger(__name__)


def _load_rules_from_file(rules_file_path: str, ruleset_name: str = "default") -> LanguageRules:
    """Load rule tables from a YAML file with error handling.

    Raises:
        FileNotFoundError: If file doesn't exist
        RuleParseError: If parsing fails
    """
    path = Path(rules_file_path)
    logger.info("Loading rules from file: %s", path)

    try:
        rules = parse_yaml_rules_file(str(path), ruleset_name)
    except (FileNotFoundError, RuleParseError) as e:
        logger.error("Failed to load rules file: %s", e)
        raise
    logger.info(
        "Loaded %s ruleset '%s' from %s",
        rules.language,
        ruleset_name,
        path,
    )
    return rules


def _log_active_rules(rules: LanguageRules) -> None:
    """Log the active rules for debugging."""
    logger.debug("Active %s rules:", rules.language)
    for highlight_rule in rules.highlight.rules:
        query = highlight_rule.query.strip()
        logger.debug(
            "  highlight %s (feature=%s, override=%s, query=%s)",
            highlight_rule.name,
            highlight_rule.feature,
            highlight_rule.override.value,
            query[:50] + "..." if len(query) > 50 else query,
        )
    for rule in rules.indent:
        logger.debug(
            "  indent %s (anchor=%s, offset=%s)",
            rule.name,
            rule.action.anchor.value,
            rule.action.offset,
        )
    for rule in rules.things:
        logger.debug("  thing %s (category=%s)", rule.name, rule.action.category.value)


def available_languages() -> list[str]:
    return sorted(LANGUAGE_CONFIGS)


def build_language_rules(settings: EngineSettings, language: str) -> LanguageRules:
    """Build and validate the rule tables for a language.

    A configured rules file takes priority over the built-in tables.

    Raises:
        ValueError: If there are no tables for the language
        RuleParseError: If the rules file is malformed
        InvalidPredicateError: If a rule does not apply to the grammar
        UnresolvedPatternError: In strict mode, if the indent table lacks a catch-all
    """
    if settings.rules.rules_file:
        rules = _load_rules_from_file(settings.rules.rules_file, settings.rules.rules_file_ruleset)
        if rules.language != language:
            raise ValueError(
                f"Rules file is for '{rules.language}' but the buffer is '{language}'"
            )
    elif language in LANGUAGE_CONFIGS:
        rules = LANGUAGE_CONFIGS[language].get_rules()
        logger.info("Using built-in %s rules", language)
    else:
        raise ValueError(
            f"No rule tables for '{language}'. Available: {', '.join(available_languages())}"
        )

    validate_language_rules(rules, strict=settings.rules.strict_tables)
    _log_active_rules(rules)
    return rules
